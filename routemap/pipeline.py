"""
Trace-and-geolocate pipeline
"""

import logging
import time
from datetime import datetime
from typing import Callable, Optional

from .cache import GeoCache
from .config import Settings
from .enrichment import GeoResolver, IPClassifier, build_providers
from .errors import ExecutionError, PipelineError
from .models import EnrichedHop, Hop, TraceResult, TraceStats
from .trace import TraceRunner


logger = logging.getLogger(__name__)

DIAG_TARGET = "8.8.8.8"


class EnrichmentPipeline:
    """
    Runs a trace and enriches its hops with locations.

    Hops are processed one at a time in path order. Public hops wait for
    their lookup before the next hop starts, which keeps outbound
    traffic to the geolocation providers to one request at a time per
    run. The resolver (and its cache) may be shared between pipelines.
    """

    def __init__(
        self,
        runner: TraceRunner,
        resolver: GeoResolver,
        max_hops: Optional[int] = None,
        trace_timeout: Optional[float] = None
    ):
        self.runner = runner
        self.resolver = resolver
        self.max_hops = max_hops
        self.trace_timeout = trace_timeout

    @classmethod
    def from_settings(cls, settings: Settings,
                      cache: Optional[GeoCache] = None) -> 'EnrichmentPipeline':
        """Build a pipeline with the default runner, providers and cache"""
        runner = TraceRunner(
            mtr_bin=settings.mtr_bin,
            count=settings.mtr_count,
            max_hops=settings.max_hops,
            timeout=settings.trace_timeout,
        )
        resolver = GeoResolver(
            providers=build_providers(settings.geo_providers, settings.geo_primary_url),
            cache=cache if cache is not None else GeoCache(ttl=settings.cache_ttl),
            timeout=settings.geo_timeout,
        )
        return cls(runner, resolver,
                   max_hops=settings.max_hops,
                   trace_timeout=settings.trace_timeout)

    async def enrich(
        self,
        target: str,
        geolocate: bool = True,
        on_hop: Optional[Callable[[EnrichedHop], None]] = None
    ) -> TraceResult:
        """
        Trace a target and geolocate its public hops.

        Args:
            target: Validated hostname or IP address
            geolocate: Skip provider lookups when False
            on_hop: Optional callback for real-time hop updates

        Returns:
            TraceResult with every hop and aggregate stats

        Raises:
            PipelineError: If the trace itself could not be run
        """
        start = time.perf_counter()
        logger.info("Starting traceroute to %s", target)

        try:
            hops = await self.runner.run(target, self.max_hops, self.trace_timeout)
        except ExecutionError as e:
            raise PipelineError(f"Traceroute failed: {e}", target=target) from e

        logger.info("Received %d hops from %s", len(hops), self.runner.mtr_bin)

        enriched: list[EnrichedHop] = []
        for hop in hops:
            enriched_hop = await self._enrich_hop(hop, geolocate)
            enriched.append(enriched_hop)
            if on_hop:
                on_hop(enriched_hop)

        stats = TraceStats(
            total_hops=len(enriched),
            public_hops=sum(1 for h in enriched if not h.is_private),
            geolocated_hops=sum(1 for h in enriched if h.geolocated),
            duration_ms=round((time.perf_counter() - start) * 1000, 1),
        )
        logger.info("Completed in %.0fms - %d/%d public hops with geo",
                    stats.duration_ms, stats.geolocated_hops, stats.public_hops)

        return TraceResult(
            target=target,
            hops=enriched,
            stats=stats,
            geo_providers=self.resolver.provider_names if geolocate else [],
            timestamp=datetime.now(),
        )

    async def diagnose(self, target: str = DIAG_TARGET) -> TraceResult:
        """Trace a known-good target without geolocation"""
        return await self.enrich(target, geolocate=False)

    async def _enrich_hop(self, hop: Hop, geolocate: bool) -> EnrichedHop:
        """Classify one hop and geolocate it if public"""
        is_private = IPClassifier.is_private(hop.address)

        status = "NO_IP" if not hop.address else "PRIVATE" if is_private else "PUBLIC"
        logger.debug("Hop %d: %s (%s) [%s] RTT: %s", hop.index, hop.address or "???",
                     hop.display_name, status,
                     f"{hop.rtt_ms}ms" if hop.rtt_ms is not None else "N/A")

        if is_private or not geolocate:
            return EnrichedHop.from_hop(hop, is_private=is_private)

        geo = await self.resolver.resolve(hop.address)
        return EnrichedHop.from_hop(hop, is_private=False, geo=geo)

    async def close(self):
        await self.resolver.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
        return False
