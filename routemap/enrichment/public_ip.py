"""
Public IP detection via an IP echo service
"""

import logging
from typing import Optional
from urllib.parse import urlsplit

import httpx

from ..config import DEFAULT_GEO_TIMEOUT, DEFAULT_IP_LOOKUP_URL
from ..errors import PublicIPError
from ..models import PublicIPInfo
from .geo_lookup import GeoResolver


logger = logging.getLogger(__name__)


class PublicIPLookup:
    """
    Detect the caller's public IP and geolocate it.

    The echo service must answer with a JSON object carrying an "ip"
    field, e.g. https://api.ipify.org?format=json.
    """

    def __init__(
        self,
        resolver: GeoResolver,
        url: str = DEFAULT_IP_LOOKUP_URL,
        timeout: float = DEFAULT_GEO_TIMEOUT,
        client: Optional[httpx.AsyncClient] = None
    ):
        self.resolver = resolver
        self.url = url
        self.timeout = timeout
        self._client = client

    @property
    def source(self) -> str:
        host = urlsplit(self.url).hostname or self.url
        return f"{host} + {' + '.join(self.resolver.provider_names)}"

    async def _fetch_ip(self) -> str:
        try:
            if self._client is not None:
                response = await self._client.get(self.url)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.get(self.url)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise PublicIPError(f"IP lookup failed: {e}") from e

        if not response.is_success:
            raise PublicIPError(f"IP lookup failed: {response.status_code}")

        try:
            data = response.json()
        except ValueError as e:
            raise PublicIPError("IP lookup returned malformed JSON") from e

        ip = data.get('ip') if isinstance(data, dict) else None
        if not ip or not isinstance(ip, str):
            raise PublicIPError("No IP returned from upstream service")
        return ip

    async def lookup(self) -> PublicIPInfo:
        """
        Detect and geolocate the public IP.

        Returns:
            PublicIPInfo; geo is None when no provider could locate it

        Raises:
            PublicIPError: If the echo service fails or returns no IP
        """
        ip = await self._fetch_ip()
        geo = await self.resolver.resolve(ip)

        if geo:
            logger.info("Detected IP %s - %s, %s", ip, geo.city, geo.country)
        else:
            logger.info("Detected IP %s - no geo", ip)

        return PublicIPInfo(ip=ip, geo=geo, source=self.source)
