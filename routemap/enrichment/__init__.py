"""
Enrichment modules for RouteMap
"""

from .ip_classifier import IPClassifier, IPType
from .geo_lookup import (
    GeoProvider, GeoResolver, IpApiCoProvider, IpApiComProvider,
    IpWhoIsProvider, ProviderAnswer, build_providers,
)
from .public_ip import PublicIPLookup

__all__ = [
    'IPClassifier', 'IPType', 'GeoProvider', 'GeoResolver', 'IpApiCoProvider',
    'IpApiComProvider', 'IpWhoIsProvider', 'ProviderAnswer', 'build_providers',
    'PublicIPLookup',
]
