"""Database layer for the link shortener."""

from .base import LinkStoreBase
from .memory import InMemoryLinkStore
from .postgres import LinkStorePostgres
from .cache import RedisCache
from .models import Click, Link

__all__ = [
    "LinkStoreBase",
    "InMemoryLinkStore",
    "LinkStorePostgres",
    "RedisCache",
    "Click",
    "Link",
]
