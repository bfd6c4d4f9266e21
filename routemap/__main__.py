"""
RouteMap - Traceroute with Geolocation

Entry point for running as a module:
    python -m routemap trace <target>
"""

from .cli import main

if __name__ == '__main__':
    main()
