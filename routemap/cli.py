import asyncio
import functools
import logging
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.logging import RichHandler

from . import __version__
from .config import (
    DEFAULT_GEO_PRIMARY_URL, DEFAULT_GEO_PROVIDERS, DEFAULT_GEO_TIMEOUT,
    DEFAULT_IP_LOOKUP_URL, DEFAULT_MAX_HOPS, DEFAULT_MTR_BIN, DEFAULT_MTR_COUNT,
    DEFAULT_TRACE_TIMEOUT, DEFAULT_CACHE_TTL, Settings,
)
from .enrichment import PublicIPLookup
from .enrichment.geo_lookup import PROVIDERS
from .errors import RouteMapError
from .models import EnrichedHop
from .output import ConsoleOutput, JsonExporter
from .pipeline import DIAG_TARGET, EnrichmentPipeline
from .validation import validate_target


console = Console()


def setup_logging(verbose: int):
    """Send log records to stderr through rich"""
    level = logging.WARNING
    if verbose == 1:
        level = logging.INFO
    elif verbose >= 2:
        level = logging.DEBUG

    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(max(level, logging.WARNING))


def _validate_target(ctx, param, value: str) -> str:
    try:
        return validate_target(value)
    except ValueError as e:
        raise click.BadParameter(str(e))


def settings_options(func):
    """Options shared by every command that builds a pipeline"""
    options = [
        click.option('--mtr-bin', default=DEFAULT_MTR_BIN, show_default=True,
                     envvar=['ROUTEMAP_MTR_BIN', 'MTR_BIN'],
                     help='Path to the mtr binary'),
        click.option('-c', '--count', 'mtr_count', default=DEFAULT_MTR_COUNT, type=click.IntRange(min=1),
                     envvar=['ROUTEMAP_MTR_COUNT', 'MTR_COUNT'], show_default=True,
                     help='Measurement rounds per hop'),
        click.option('-m', '--max-hops', default=DEFAULT_MAX_HOPS, type=click.IntRange(min=1),
                     envvar='ROUTEMAP_MAX_HOPS', show_default=True,
                     help='Maximum hops'),
        click.option('-w', '--timeout', 'trace_timeout', default=DEFAULT_TRACE_TIMEOUT,
                     type=click.FloatRange(min=0, min_open=True),
                     envvar='ROUTEMAP_TRACE_TIMEOUT', show_default=True,
                     help='Seconds before mtr is killed'),
        click.option('--geo-timeout', default=DEFAULT_GEO_TIMEOUT,
                     type=click.FloatRange(min=0, min_open=True),
                     envvar='ROUTEMAP_GEO_TIMEOUT', show_default=True,
                     help='Timeout per geolocation request in seconds'),
        click.option('--cache-ttl', default=DEFAULT_CACHE_TTL, type=click.FloatRange(min=0),
                     envvar='ROUTEMAP_CACHE_TTL', show_default=True,
                     help='Seconds a geolocation result stays cached'),
        click.option('--provider', 'geo_providers', multiple=True,
                     type=click.Choice(list(PROVIDERS.keys())),
                     default=DEFAULT_GEO_PROVIDERS, show_default=True,
                     envvar='ROUTEMAP_GEO_PROVIDERS',
                     help='Geolocation provider, in fallback order (repeatable)'),
        click.option('--geo-primary-url', default=DEFAULT_GEO_PRIMARY_URL,
                     envvar=['ROUTEMAP_GEO_PRIMARY_URL', 'GEO_PRIMARY_URL'],
                     help='Base URL of the ipwho.is-compatible provider'),
        click.option('--ip-lookup-url', default=DEFAULT_IP_LOOKUP_URL,
                     envvar=['ROUTEMAP_IP_LOOKUP_URL', 'IP_LOOKUP_URL'],
                     help='IP echo service used by whoami'),
        click.option('-v', '--verbose', count=True,
                     help='Log progress (-v) or debug details (-vv) to stderr'),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def build_settings(options: dict) -> Settings:
    return Settings(
        mtr_bin=options['mtr_bin'],
        mtr_count=options['mtr_count'],
        max_hops=options['max_hops'],
        trace_timeout=options['trace_timeout'],
        geo_timeout=options['geo_timeout'],
        cache_ttl=options['cache_ttl'],
        geo_providers=tuple(options['geo_providers']),
        geo_primary_url=options['geo_primary_url'],
        ip_lookup_url=options['ip_lookup_url'],
    )


def handle_errors(func):
    """Map RouteMap errors and interrupts onto exit statuses"""
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except RouteMapError as e:
            ConsoleOutput(console).print_error(str(e))
            sys.exit(1)
        except KeyboardInterrupt:
            console.print("\n[yellow]Interrupted[/]")
            sys.exit(130)
    return wrapper


@click.group()
@click.version_option(version=__version__)
def main():
    """
    RouteMap - traceroute with geolocation.

    Runs mtr against a target and places every public hop on the map
    using ipwho.is, ipapi.co or ip-api.com.

    Examples:

        routemap trace 8.8.8.8

        routemap trace example.com --json route.json

        routemap whoami
    """


@main.command()
@click.argument('target', callback=_validate_target)
@settings_options
@click.option('--geo/--no-geo', default=True,
              help='Enable/disable geo lookups (default: enabled)')
@click.option('--json', 'json_path', type=click.Path(dir_okay=False),
              help='Export results to JSON file')
@click.option('--no-cache', is_flag=True,
              help='Disable cache (always fetch fresh data)')
@handle_errors
def trace(target: str, geo: bool, json_path: Optional[str], no_cache: bool, **options):
    """
    Trace route to TARGET (IP address or hostname) and geolocate each hop.
    """
    setup_logging(options['verbose'])
    settings = build_settings(options)
    if no_cache:
        settings.cache_ttl = 0

    output = ConsoleOutput(console)
    output.print_header(target, settings, geolocate=geo)

    def on_hop(hop: EnrichedHop):
        output.print_hop_realtime(hop)

    async def run():
        async with EnrichmentPipeline.from_settings(settings) as pipeline:
            return await pipeline.enrich(target, geolocate=geo, on_hop=on_hop)

    result = asyncio.run(run())

    output.print_separator()
    output.print_summary(result)

    if json_path:
        json_file = Path(json_path)
        JsonExporter().export(result, json_file)
        console.print(f"\n[dim]Results exported to:[/] {json_file.absolute()}")


@main.command()
@settings_options
@handle_errors
def diag(**options):
    """
    Check that mtr runs by tracing 8.8.8.8 without geolocation.
    """
    setup_logging(options['verbose'])
    settings = build_settings(options)

    async def run():
        async with EnrichmentPipeline.from_settings(settings) as pipeline:
            return await pipeline.diagnose(DIAG_TARGET)

    result = asyncio.run(run())
    ConsoleOutput(console).print_diag(result, settings)


@main.command()
@settings_options
@click.option('--json', 'as_json', is_flag=True, help='Print result as JSON')
@handle_errors
def whoami(as_json: bool, **options):
    """
    Detect your public IP and geolocate it.
    """
    setup_logging(options['verbose'])
    settings = build_settings(options)

    async def run():
        async with EnrichmentPipeline.from_settings(settings) as pipeline:
            lookup = PublicIPLookup(
                pipeline.resolver,
                url=settings.ip_lookup_url,
                timeout=settings.geo_timeout,
            )
            return await lookup.lookup()

    info = asyncio.run(run())

    if as_json:
        console.print_json(data=JsonExporter().export_public_ip(info))
    else:
        ConsoleOutput(console).print_public_ip(info)


if __name__ == '__main__':
    main()
