"""
Geographic IP lookup with provider fallback
"""

import logging
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional, Sequence

import httpx

from ..cache import GeoCache
from ..config import DEFAULT_GEO_PRIMARY_URL, DEFAULT_GEO_TIMEOUT
from ..models import GeoInfo


logger = logging.getLogger(__name__)


def get_flag(country_code: Optional[str]) -> str:
    """Get flag emoji for country code"""
    if not country_code:
        return ''
    code = country_code.strip().upper()
    if len(code) != 2 or not code.isascii() or not code.isalpha():
        return '🌍'
    return ''.join(chr(0x1F1E6 + ord(c) - ord('A')) for c in code)


def _coordinate(value: Any) -> Optional[float]:
    """Accept real JSON numbers only; strings and booleans are rejected"""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if not math.isfinite(value):
        return None
    return float(value)


def _text(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value
    return None


@dataclass
class ProviderAnswer:
    """Outcome of one provider lookup: accepted with geo, or declined with a reason"""
    provider: str
    geo: Optional[GeoInfo] = None
    reason: Optional[str] = None

    @property
    def accepted(self) -> bool:
        return self.geo is not None

    @classmethod
    def decline(cls, provider: str, reason: str) -> 'ProviderAnswer':
        return cls(provider=provider, reason=reason)


class GeoProvider(ABC):
    """
    One geolocation web service.

    Subclasses build the URL and map the provider's JSON document
    onto GeoInfo; transport and status handling live here.
    """

    name = "base"

    @abstractmethod
    def url(self, ip: str) -> str:
        pass

    @abstractmethod
    def failure_reason(self, data: dict) -> Optional[str]:
        """Return why the provider refused to answer, or None"""
        pass

    @abstractmethod
    def normalize(self, data: dict) -> dict:
        """Map the provider document onto GeoInfo field names"""
        pass

    def parse(self, data: Any) -> ProviderAnswer:
        """
        Validate a decoded response body.

        Args:
            data: Decoded JSON body

        Returns:
            ProviderAnswer, declined on any shape mismatch
        """
        if not isinstance(data, dict):
            return ProviderAnswer.decline(self.name, "response is not an object")

        reason = self.failure_reason(data)
        if reason:
            return ProviderAnswer.decline(self.name, reason)

        fields = self.normalize(data)
        lat = _coordinate(fields.get('lat'))
        lon = _coordinate(fields.get('lon'))
        if lat is None or lon is None:
            return ProviderAnswer.decline(self.name, "missing or non-numeric coordinates")

        return ProviderAnswer(
            provider=self.name,
            geo=GeoInfo(
                lat=lat,
                lon=lon,
                city=_text(fields.get('city')),
                region=_text(fields.get('region')),
                country=_text(fields.get('country')),
                country_code=_text(fields.get('country_code')),
            ),
        )

    async def lookup(self, client: httpx.AsyncClient, ip: str) -> ProviderAnswer:
        """
        Query this provider for a single IP.

        Args:
            client: Shared HTTP client
            ip: Public IP address

        Returns:
            ProviderAnswer; transport errors and bad statuses decline
        """
        try:
            response = await client.get(self.url(ip))
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.warning("%s lookup failed for %s: %s", self.name, ip, e)
            return ProviderAnswer.decline(self.name, f"transport error: {e}")

        if not response.is_success:
            return ProviderAnswer.decline(self.name, f"HTTP {response.status_code}")

        try:
            data = response.json()
        except ValueError:
            return ProviderAnswer.decline(self.name, "malformed JSON body")

        return self.parse(data)


class IpWhoIsProvider(GeoProvider):
    """ipwho.is - signals failure with "success": false"""

    name = "ipwho.is"

    def __init__(self, base_url: str = DEFAULT_GEO_PRIMARY_URL):
        self.base_url = base_url.rstrip('/')

    def url(self, ip: str) -> str:
        return f"{self.base_url}/{ip}"

    def failure_reason(self, data: dict) -> Optional[str]:
        if data.get('success') is False:
            return data.get('message') or "success=false"
        return None

    def normalize(self, data: dict) -> dict:
        return {
            'lat': data.get('latitude'),
            'lon': data.get('longitude'),
            'city': data.get('city'),
            'region': data.get('region'),
            'country': data.get('country'),
            'country_code': data.get('country_code'),
        }


class IpApiCoProvider(GeoProvider):
    """ipapi.co - signals failure with an "error" field"""

    name = "ipapi.co"
    API_URL = "https://ipapi.co/{ip}/json/"

    def url(self, ip: str) -> str:
        return self.API_URL.format(ip=ip)

    def failure_reason(self, data: dict) -> Optional[str]:
        if data.get('error'):
            return data.get('reason') or "error flag set"
        return None

    def normalize(self, data: dict) -> dict:
        return {
            'lat': data.get('latitude'),
            'lon': data.get('longitude'),
            'city': data.get('city'),
            'region': data.get('region'),
            'country': data.get('country_name') or data.get('country'),
            'country_code': data.get('country_code'),
        }


class IpApiComProvider(GeoProvider):
    """
    ip-api.com - signals failure with "status" other than "success".

    Free tier: 45 requests/minute, HTTP only.
    """

    name = "ip-api.com"
    API_URL = "http://ip-api.com/json/{ip}"
    FIELDS = "status,message,country,countryCode,regionName,city,lat,lon"

    def url(self, ip: str) -> str:
        return f"{self.API_URL.format(ip=ip)}?fields={self.FIELDS}"

    def failure_reason(self, data: dict) -> Optional[str]:
        if data.get('status') != 'success':
            return data.get('message') or f"status={data.get('status')}"
        return None

    def normalize(self, data: dict) -> dict:
        return {
            'lat': data.get('lat'),
            'lon': data.get('lon'),
            'city': data.get('city'),
            'region': data.get('regionName'),
            'country': data.get('country'),
            'country_code': data.get('countryCode'),
        }


PROVIDERS = {
    IpWhoIsProvider.name: IpWhoIsProvider,
    IpApiCoProvider.name: IpApiCoProvider,
    IpApiComProvider.name: IpApiComProvider,
}


def build_providers(names: Sequence[str],
                    primary_url: str = DEFAULT_GEO_PRIMARY_URL) -> list[GeoProvider]:
    """
    Instantiate providers by name, keeping the given order.

    Raises:
        ValueError: If a name is not a known provider
    """
    providers = []
    for name in names:
        provider_class = PROVIDERS.get(name)
        if not provider_class:
            raise ValueError(
                f"Unknown geolocation provider '{name}'. "
                f"Supported: {', '.join(PROVIDERS.keys())}"
            )
        if provider_class is IpWhoIsProvider:
            providers.append(provider_class(base_url=primary_url))
        else:
            providers.append(provider_class())
    return providers


class GeoResolver:
    """
    Resolve IP addresses to locations.

    Consults the cache first, then asks each provider in order until
    one returns usable coordinates. When every provider declines, a
    negative result is cached so a failing address is not retried
    until the entry expires.
    """

    def __init__(
        self,
        providers: Sequence[GeoProvider],
        cache: Optional[GeoCache] = None,
        timeout: float = DEFAULT_GEO_TIMEOUT,
        client: Optional[httpx.AsyncClient] = None
    ):
        if not providers:
            raise ValueError("At least one geolocation provider is required")
        self.providers = list(providers)
        self.cache = cache if cache is not None else GeoCache()
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None

    @property
    def provider_names(self) -> list[str]:
        return [p.name for p in self.providers]

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client"""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
            self._owns_client = True
        return self._client

    async def resolve(self, ip: str) -> Optional[GeoInfo]:
        """
        Lookup geo info for single IP.

        Args:
            ip: Public IP address

        Returns:
            GeoInfo or None when no provider could locate it
        """
        entry = self.cache.get(ip)
        if entry is not None:
            logger.debug("Cache hit for %s (%s)", ip, "positive" if entry.value else "negative")
            return entry.value

        client = await self._get_client()

        for provider in self.providers:
            answer = await provider.lookup(client, ip)
            if answer.accepted:
                logger.debug("%s located %s at %.4f,%.4f", provider.name, ip,
                             answer.geo.lat, answer.geo.lon)
                self.cache.put(ip, answer.geo)
                return answer.geo
            logger.debug("%s declined %s: %s", provider.name, ip, answer.reason)

        logger.info("No provider could locate %s", ip)
        self.cache.put(ip, None)
        return None

    async def close(self):
        """Close HTTP client"""
        if self._client and self._owns_client:
            await self._client.aclose()
        self._client = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
        return False
