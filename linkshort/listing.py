"""Listing of stored links."""

import logging
from typing import List, Optional

from .database.base import LinkStoreBase
from .database.models import Link


class ListingService:
    """Returns every link as stored, expired ones included."""

    def __init__(self, store: LinkStoreBase, logger: Optional[logging.Logger] = None):
        self.store = store
        self.logger = logger or logging.getLogger(__name__)

    async def list_all(self) -> List[Link]:
        links = await self.store.list_all()
        self.logger.debug(f"Listed {len(links)} links")
        return links
