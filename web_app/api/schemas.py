"""Pydantic schemas for API requests and responses."""

from pydantic import BaseModel, Field
from typing import List, Optional, Union
from datetime import datetime

from linkshort.database.models import Link


class ShortenRequest(BaseModel):
    """Request to shorten a URL.

    Field-level checks are left to the service so that every rejection
    comes back as a 400 with a message.
    """

    url: Optional[str] = Field(None, description="The URL to shorten")
    custom_code: Optional[str] = Field(None, alias="customCode", description="Optional custom short code")
    validity: Optional[Union[int, float, str]] = Field(None, description="Validity in minutes (default 30)")

    model_config = {
        "populate_by_name": True,
        "json_schema_extra": {
            "examples": [
                {
                    "url": "https://example.com/very/long/path/to/resource",
                },
                {
                    "url": "https://github.com/user/repo",
                    "customCode": "myrepo",
                    "validity": 60,
                }
            ]
        }
    }


class ClickResponse(BaseModel):
    """One recorded visit."""

    timestamp: datetime
    source: str
    geo: str


class LinkResponse(BaseModel):
    """A short link with its click log."""

    short_code: str = Field(..., alias="shortCode")
    short_url: str = Field(..., alias="shortUrl")
    original_url: str = Field(..., alias="originalUrl")
    expire_at: datetime = Field(..., alias="expireAt")
    created_at: Optional[datetime] = Field(None, alias="createdAt")
    clicks: List[ClickResponse] = Field(default_factory=list)

    model_config = {
        "populate_by_name": True,
        "json_schema_extra": {
            "examples": [
                {
                    "shortCode": "abc123",
                    "shortUrl": "https://short.link/abc123",
                    "originalUrl": "https://example.com/very/long/path",
                    "expireAt": "2024-01-01T12:30:00Z",
                    "createdAt": "2024-01-01T12:00:00Z",
                    "clicks": [
                        {"timestamp": "2024-01-01T12:05:00Z", "source": "Chrome 120.0 / Windows 10", "geo": "Berlin"}
                    ],
                }
            ]
        }
    }

    @classmethod
    def from_link(cls, link: Link, short_url: str) -> "LinkResponse":
        return cls(
            short_code=link.short_code,
            short_url=short_url,
            original_url=link.original_url,
            expire_at=link.expire_at,
            created_at=link.created_at,
            clicks=[
                ClickResponse(timestamp=c.timestamp, source=c.source, geo=c.geo)
                for c in link.clicks
            ],
        )


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(..., description="Overall status")
    database: str = Field(..., description="Database status")
    cache: str = Field(..., description="Cache status")
    timestamp: datetime = Field(..., description="Check timestamp")


class ErrorResponse(BaseModel):
    """Error response."""

    message: str = Field(..., description="Error message")


class StatisticsResponse(BaseModel):
    """Statistics response."""

    total_links: int
    total_clicks: int
    click_failures: int
    database: str
    cache_enabled: bool
    custom_codes_enabled: bool
