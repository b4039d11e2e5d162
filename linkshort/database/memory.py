"""In-process link store, used for tests and single-process runs."""

import asyncio
import copy
import logging
from typing import Dict, List, Any, Optional

from .base import LinkStoreBase
from .models import Click, Link
from ..errors import DuplicateCode, NotFound


class InMemoryLinkStore(LinkStoreBase):
    """Link store backed by a dict guarded by an asyncio lock."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)
        self._links: Dict[str, Link] = {}
        self._lock = asyncio.Lock()

    async def exists(self, short_code: str) -> bool:
        return short_code in self._links

    async def insert(self, link: Link) -> Link:
        async with self._lock:
            if link.short_code in self._links:
                raise DuplicateCode(link.short_code)
            stored = copy.deepcopy(link)
            self._links[link.short_code] = stored
        self.logger.debug(f"Stored link {link.short_code}")
        return copy.deepcopy(stored)

    async def get(self, short_code: str) -> Link:
        link = self._links.get(short_code)
        if link is None:
            raise NotFound(short_code)
        return copy.deepcopy(link)

    async def append_click(self, short_code: str, click: Click) -> Link:
        async with self._lock:
            link = self._links.get(short_code)
            if link is None:
                raise NotFound(short_code)
            link.clicks.append(click)
            return copy.deepcopy(link)

    async def list_all(self) -> List[Link]:
        return [copy.deepcopy(link) for link in self._links.values()]

    async def get_statistics(self) -> Dict[str, Any]:
        return {
            "total_links": len(self._links),
            "total_clicks": sum(len(link.clicks) for link in self._links.values()),
            "database": "memory",
        }

    async def health_check(self) -> bool:
        return True

    async def close(self) -> None:
        pass
