"""
RouteMap - Traceroute with Geolocation

Runs mtr against a target, parses its report and places every
public hop on the map using third-party geolocation services.
"""

__version__ = "1.0.0"
__author__ = "RouteMap"
