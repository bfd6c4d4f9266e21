"""
IP address classifier
"""

import ipaddress
from enum import Enum
from typing import Optional


class IPType(Enum):
    """IP address classification types"""
    PRIVATE = "private"
    LOOPBACK = "loopback"
    LINKLOCAL = "linklocal"
    PUBLIC = "public"
    UNKNOWN = "unknown"


class IPClassifier:
    """
    Classify IP addresses into categories.

    Categories:
    - private: RFC1918 (10/8, 172.16/12, 192.168/16)
    - loopback: Localhost (127/8, ::1)
    - linklocal: Link-local (169.254/16, fe80::/10)
    - public: Anything else that parses as an address
    - unknown: Missing address or text that is not an address

    Only the first three are private. Unknown text is treated as
    public; a missing address is treated as private so it is never
    sent to a geolocation service.
    """

    LOOPBACK_NETWORKS = (
        ipaddress.ip_network('127.0.0.0/8'),
        ipaddress.ip_network('::1/128'),
    )
    LINKLOCAL_NETWORKS = (
        ipaddress.ip_network('169.254.0.0/16'),
        ipaddress.ip_network('fe80::/10'),
    )
    PRIVATE_NETWORKS = (
        ipaddress.ip_network('10.0.0.0/8'),
        ipaddress.ip_network('172.16.0.0/12'),
        ipaddress.ip_network('192.168.0.0/16'),
    )

    PRIVATE_TYPES = frozenset({IPType.PRIVATE, IPType.LOOPBACK, IPType.LINKLOCAL})

    @staticmethod
    def _parse(ip: str):
        try:
            addr = ipaddress.ip_address(ip)
        except ValueError:
            return None
        # Match IPv4-mapped IPv6 against the IPv4 ranges
        if addr.version == 6 and addr.ipv4_mapped is not None:
            return addr.ipv4_mapped
        return addr

    @staticmethod
    def _in_any(addr, networks) -> bool:
        return any(
            addr.version == net.version and addr in net
            for net in networks
        )

    @classmethod
    def classify(cls, ip: Optional[str]) -> IPType:
        """
        Classify an IP address.

        Args:
            ip: IPv4 or IPv6 address string

        Returns:
            IPType enum value
        """
        if not ip or not isinstance(ip, str):
            return IPType.UNKNOWN

        addr = cls._parse(ip.strip())
        if addr is None:
            return IPType.UNKNOWN

        if cls._in_any(addr, cls.LOOPBACK_NETWORKS):
            return IPType.LOOPBACK

        if cls._in_any(addr, cls.LINKLOCAL_NETWORKS):
            return IPType.LINKLOCAL

        if cls._in_any(addr, cls.PRIVATE_NETWORKS):
            return IPType.PRIVATE

        return IPType.PUBLIC

    @classmethod
    def is_private(cls, ip: Optional[str]) -> bool:
        """Check if IP is private, loopback, link-local or absent"""
        if not ip:
            return True
        return cls.classify(ip) in cls.PRIVATE_TYPES

    @classmethod
    def get_tag(cls, ip: Optional[str]) -> Optional[str]:
        """Get tag for non-public IPs, None for public"""
        if not ip:
            return "no_reply"

        ip_type = cls.classify(ip)
        if ip_type in cls.PRIVATE_TYPES:
            return ip_type.value

        return None
