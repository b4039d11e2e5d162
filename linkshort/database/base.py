"""Abstract base class for link store implementations."""

from abc import ABC, abstractmethod
from typing import List, Dict, Any

from .models import Click, Link


class LinkStoreBase(ABC):
    """Abstract base class for link store operations.

    Implementations raise ``StoreUnavailable`` for any persistence failure.
    """

    @abstractmethod
    async def exists(self, short_code: str) -> bool:
        """Check if a short code is already assigned.

        Args:
            short_code: The short code to check

        Returns:
            True if exists, False otherwise
        """
        pass

    @abstractmethod
    async def insert(self, link: Link) -> Link:
        """Insert a new link unless its short code is taken.

        The existence check and the write are one atomic step.

        Args:
            link: The link to store

        Returns:
            The stored link

        Raises:
            DuplicateCode: If the short code already exists
        """
        pass

    @abstractmethod
    async def get(self, short_code: str) -> Link:
        """Get the link for a short code.

        Args:
            short_code: The short code to lookup

        Returns:
            The stored link with its clicks in chronological order

        Raises:
            NotFound: If the short code does not exist
        """
        pass

    @abstractmethod
    async def append_click(self, short_code: str, click: Click) -> Link:
        """Atomically append a click event to a link.

        Concurrent appends to the same link must all be kept.

        Args:
            short_code: The short code that was visited
            click: The click event

        Returns:
            The link after the append

        Raises:
            NotFound: If the short code does not exist
        """
        pass

    @abstractmethod
    async def list_all(self) -> List[Link]:
        """List every stored link, expired ones included. Order is unspecified."""
        pass

    @abstractmethod
    async def get_statistics(self) -> Dict[str, Any]:
        """Get store statistics.

        Returns:
            Dictionary with total_links, total_clicks and database name
        """
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """Check if the store is healthy.

        Returns:
            True if healthy, False otherwise
        """
        pass

    @abstractmethod
    async def close(self) -> None:
        """Release store resources."""
        pass
