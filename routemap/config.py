"""
Runtime configuration for RouteMap
"""

from dataclasses import dataclass


DEFAULT_MTR_BIN = "mtr"
DEFAULT_MTR_COUNT = 3
DEFAULT_MAX_HOPS = 30
DEFAULT_TRACE_TIMEOUT = 20.0  # seconds
DEFAULT_GEO_TIMEOUT = 5.0  # seconds
DEFAULT_CACHE_TTL = 3600  # 1 hour in seconds
DEFAULT_GEO_PROVIDERS = ("ipwho.is", "ipapi.co")
DEFAULT_GEO_PRIMARY_URL = "https://ipwho.is"
DEFAULT_IP_LOOKUP_URL = "https://api.ipify.org?format=json"


@dataclass
class Settings:
    """
    Pipeline settings.

    The CLI fills these from options and ROUTEMAP_* environment
    variables; library users construct it directly.
    """
    mtr_bin: str = DEFAULT_MTR_BIN
    mtr_count: int = DEFAULT_MTR_COUNT
    max_hops: int = DEFAULT_MAX_HOPS
    trace_timeout: float = DEFAULT_TRACE_TIMEOUT
    geo_timeout: float = DEFAULT_GEO_TIMEOUT
    cache_ttl: float = DEFAULT_CACHE_TTL
    geo_providers: tuple[str, ...] = DEFAULT_GEO_PROVIDERS
    geo_primary_url: str = DEFAULT_GEO_PRIMARY_URL
    ip_lookup_url: str = DEFAULT_IP_LOOKUP_URL

    def __post_init__(self):
        if self.mtr_count < 1:
            raise ValueError("mtr_count must be at least 1")
        if self.max_hops < 1:
            raise ValueError("max_hops must be at least 1")
        if self.trace_timeout <= 0:
            raise ValueError("trace_timeout must be positive")
        if self.cache_ttl < 0:
            raise ValueError("cache_ttl must not be negative")
        if not self.geo_providers:
            raise ValueError("At least one geolocation provider is required")
