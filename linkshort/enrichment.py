"""Click enrichment: approximate geography and client identification.

Both lookups are best-effort. Anything that cannot be resolved, fails,
or takes longer than the configured timeout is reported as "Unknown".
"""

import asyncio
import logging
from typing import Optional, Tuple

import geoip2.database
import geoip2.errors
from user_agents import parse as parse_user_agent

from .database.models import UNKNOWN


class GeoLocator:
    """Maps a client address to a city/region name. Default: unknown."""

    def locate(self, address: Optional[str]) -> str:
        return UNKNOWN

    def close(self) -> None:
        pass


class ClientIdentifier:
    """Maps a User-Agent string to a browser/OS description. Default: unknown."""

    def identify(self, user_agent: Optional[str]) -> str:
        return UNKNOWN


class GeoIP2Locator(GeoLocator):
    """Geography lookup against a MaxMind GeoLite2/GeoIP2 City database."""

    def __init__(self, database_path: str, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)
        self.reader = geoip2.database.Reader(database_path)
        self.logger.info(f"Loaded GeoIP database from {database_path}")

    def locate(self, address: Optional[str]) -> str:
        if not address:
            return UNKNOWN

        try:
            response = self.reader.city(address)
        except geoip2.errors.AddressNotFoundError:
            return UNKNOWN
        except ValueError:
            # Not an IP address (e.g. "unknown" from a proxy)
            self.logger.debug(f"Unparseable client address: {address!r}")
            return UNKNOWN

        return (
            response.city.name
            or response.subdivisions.most_specific.name
            or response.country.name
            or UNKNOWN
        )

    def close(self) -> None:
        self.reader.close()


class UserAgentIdentifier(ClientIdentifier):
    """Client identification from the User-Agent header."""

    def identify(self, user_agent: Optional[str]) -> str:
        if not user_agent:
            return UNKNOWN

        ua = parse_user_agent(user_agent)
        parts = []
        for family, version in (
            (ua.browser.family, ua.browser.version_string),
            (ua.os.family, ua.os.version_string),
        ):
            if family and family != "Other":
                parts.append(f"{family} {version}".strip())

        return " / ".join(parts) if parts else UNKNOWN


class ClickEnricher:
    """Runs the lookups off the event loop with a time limit."""

    def __init__(
        self,
        geo_locator: Optional[GeoLocator] = None,
        client_identifier: Optional[ClientIdentifier] = None,
        timeout_seconds: float = 0.5,
        logger: Optional[logging.Logger] = None,
    ):
        self.geo_locator = geo_locator or GeoLocator()
        self.client_identifier = client_identifier or ClientIdentifier()
        self.timeout_seconds = timeout_seconds
        self.logger = logger or logging.getLogger(__name__)

    async def _lookup(self, name: str, func, arg) -> str:
        try:
            result = await asyncio.wait_for(
                asyncio.to_thread(func, arg),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError:
            self.logger.warning(f"{name} lookup timed out after {self.timeout_seconds}s")
            return UNKNOWN
        except Exception as e:
            self.logger.warning(f"{name} lookup failed: {e}")
            return UNKNOWN
        return result or UNKNOWN

    async def enrich(
        self,
        client_source: Optional[str],
        client_address: Optional[str],
    ) -> Tuple[str, str]:
        """Resolve (source, geo) for a visit.

        Args:
            client_source: User-Agent header value
            client_address: Client IP address

        Returns:
            Tuple of (source, geo), each "Unknown" when unresolved
        """
        source, geo = await asyncio.gather(
            self._lookup("Client identification", self.client_identifier.identify, client_source),
            self._lookup("Geography", self.geo_locator.locate, client_address),
        )
        return source, geo

    def close(self) -> None:
        self.geo_locator.close()
