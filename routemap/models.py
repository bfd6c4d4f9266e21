"""
Data models for RouteMap
"""

from dataclasses import dataclass, field
from typing import Optional
from datetime import datetime


@dataclass
class Hop:
    """Single hop as reported by the trace utility"""
    index: int
    address: Optional[str] = None
    display_name: Optional[str] = None
    rtt_ms: Optional[float] = None


@dataclass
class GeoInfo:
    """Geographic information"""
    lat: float
    lon: float
    city: Optional[str] = None
    region: Optional[str] = None
    country: Optional[str] = None
    country_code: Optional[str] = None


@dataclass
class EnrichedHop:
    """Hop with enrichment data"""
    index: int
    address: Optional[str] = None
    display_name: Optional[str] = None
    rtt_ms: Optional[float] = None
    is_private: bool = True
    geo: Optional[GeoInfo] = None

    @classmethod
    def from_hop(cls, hop: Hop, is_private: bool,
                 geo: Optional[GeoInfo] = None) -> 'EnrichedHop':
        return cls(
            index=hop.index,
            address=hop.address,
            display_name=hop.display_name,
            rtt_ms=hop.rtt_ms,
            is_private=is_private,
            geo=None if is_private else geo,
        )

    @property
    def latitude(self) -> Optional[float]:
        return self.geo.lat if self.geo else None

    @property
    def longitude(self) -> Optional[float]:
        return self.geo.lon if self.geo else None

    @property
    def city(self) -> Optional[str]:
        return self.geo.city if self.geo else None

    @property
    def region(self) -> Optional[str]:
        return self.geo.region if self.geo else None

    @property
    def country(self) -> Optional[str]:
        return self.geo.country if self.geo else None

    @property
    def country_code(self) -> Optional[str]:
        return self.geo.country_code if self.geo else None

    @property
    def geolocated(self) -> bool:
        return self.geo is not None


@dataclass
class CacheEntry:
    """Cached resolution outcome; value None marks a negative result"""
    value: Optional[GeoInfo]
    inserted_at: float


@dataclass
class TraceStats:
    """Aggregate counters for one pipeline run"""
    total_hops: int = 0
    public_hops: int = 0
    geolocated_hops: int = 0
    duration_ms: float = 0.0


@dataclass
class TraceResult:
    """Complete trace result"""
    target: str
    hops: list[EnrichedHop] = field(default_factory=list)
    stats: TraceStats = field(default_factory=TraceStats)
    source: str = "mtr"
    geo_providers: list[str] = field(default_factory=list)
    timestamp: datetime = field(default_factory=datetime.now)

    @property
    def final_rtt(self) -> Optional[float]:
        if self.hops and self.hops[-1].rtt_ms is not None:
            return self.hops[-1].rtt_ms
        return None


@dataclass
class PublicIPInfo:
    """Caller's public address and its location"""
    ip: str
    geo: Optional[GeoInfo] = None
    source: str = ""
