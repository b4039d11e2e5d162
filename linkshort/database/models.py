"""Data models for the link shortener."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional


UNKNOWN = "Unknown"


def _parse_timestamp(value) -> datetime:
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass(frozen=True)
class Click:
    """One resolved visit of a short link."""

    timestamp: datetime
    source: str = UNKNOWN
    geo: str = UNKNOWN

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "timestamp": self.timestamp.isoformat(),
            "source": self.source,
            "geo": self.geo,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Click":
        """Create from dictionary."""
        return cls(
            timestamp=_parse_timestamp(data["timestamp"]),
            source=data.get("source") or UNKNOWN,
            geo=data.get("geo") or UNKNOWN,
        )


@dataclass
class Link:
    """A short code mapped to its destination, with its click log."""

    short_code: str
    original_url: str
    expire_at: datetime
    clicks: List[Click] = field(default_factory=list)
    created_at: Optional[datetime] = None

    def is_valid(self, now: Optional[datetime] = None) -> bool:
        """Check whether the link is still inside its validity window."""
        now = now or datetime.now(timezone.utc)
        return now < self.expire_at

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "short_code": self.short_code,
            "original_url": self.original_url,
            "expire_at": self.expire_at.isoformat(),
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "clicks": [click.to_dict() for click in self.clicks],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Link":
        """Create from dictionary."""
        created_at = data.get("created_at")
        return cls(
            short_code=data["short_code"],
            original_url=data["original_url"],
            expire_at=_parse_timestamp(data["expire_at"]),
            clicks=[Click.from_dict(c) for c in data.get("clicks", [])],
            created_at=_parse_timestamp(created_at) if created_at else None,
        )
