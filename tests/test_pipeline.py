import asyncio

import pytest

from conftest import IPWHOIS_GOOGLE
from routemap.cache import GeoCache
from routemap.config import Settings
from routemap.enrichment import GeoResolver, IpApiCoProvider, IpWhoIsProvider
from routemap.errors import ExecutionError, PipelineError
from routemap.models import Hop
from routemap.pipeline import EnrichmentPipeline


class StubRunner:
    """Stands in for TraceRunner; returns canned hops or raises"""

    mtr_bin = "mtr"

    def __init__(self, hops=None, error=None):
        self.hops = hops or []
        self.error = error
        self.calls = []

    async def run(self, target, hop_limit=None, timeout=None):
        self.calls.append((target, hop_limit, timeout))
        if self.error:
            raise self.error
        return self.hops


THREE_HOPS = [
    Hop(index=1, address="192.168.1.1", display_name="router.lan", rtt_ms=1.2),
    Hop(index=2),
    Hop(index=3, address="8.8.8.8", display_name="dns.google", rtt_ms=12.5),
]


def _enrich(runner, geo_api, target="8.8.8.8", **kwargs):
    async def run():
        async with geo_api.client() as client:
            resolver = GeoResolver(
                [IpWhoIsProvider(), IpApiCoProvider()],
                cache=GeoCache(ttl=60),
                client=client,
            )
            pipeline = EnrichmentPipeline(runner, resolver, max_hops=30, trace_timeout=5.0)
            return await pipeline.enrich(target, **kwargs)
    return asyncio.run(run())


def test_three_hop_trace(geo_api):
    geo_api.add("ipwho.is", (200, IPWHOIS_GOOGLE))

    result = _enrich(StubRunner(THREE_HOPS), geo_api)

    assert [h.is_private for h in result.hops] == [True, True, False]
    assert [h.latitude for h in result.hops] == [None, None, 37.4]
    assert [h.longitude for h in result.hops] == [None, None, -122.1]
    assert result.hops[2].city == "Mountain View"
    assert result.stats.total_hops == 3
    assert result.stats.public_hops == 1
    assert result.stats.geolocated_hops == 1
    assert result.stats.duration_ms >= 0
    assert result.target == "8.8.8.8"
    assert result.geo_providers == ["ipwho.is", "ipapi.co"]
    assert geo_api.calls == ["ipwho.is"]


def test_private_hops_never_reach_providers(geo_api):
    hops = [
        Hop(index=1, address="10.0.0.1"),
        Hop(index=2, address="172.16.4.4"),
        Hop(index=3, address="127.0.0.1"),
    ]

    result = _enrich(StubRunner(hops), geo_api)

    assert all(h.is_private and h.geo is None for h in result.hops)
    assert geo_api.calls == []
    assert result.stats.public_hops == 0


def test_unresolved_public_hop_is_kept(geo_api):
    result = _enrich(StubRunner([Hop(index=1, address="203.0.113.5")]), geo_api)

    hop = result.hops[0]
    assert hop.is_private is False
    assert hop.geo is None
    assert result.stats.public_hops == 1
    assert result.stats.geolocated_hops == 0


def test_lookups_are_sequential_in_hop_order(geo_api):
    hops = [
        Hop(index=1, address="8.8.8.8"),
        Hop(index=2, address="8.8.4.4"),
        Hop(index=3, address="8.8.8.8"),
    ]
    seen = []
    original = geo_api.handler

    def recording_handler(request):
        seen.append(request.url.path)
        return original(request)

    geo_api.handler = recording_handler
    geo_api.add("ipwho.is", (200, IPWHOIS_GOOGLE))

    result = _enrich(StubRunner(hops), geo_api)

    # The repeated address is served from cache
    assert seen == ["/8.8.8.8", "/8.8.4.4"]
    assert result.stats.geolocated_hops == 3


def test_on_hop_callback_receives_each_hop(geo_api):
    geo_api.add("ipwho.is", (200, IPWHOIS_GOOGLE))
    received = []

    result = _enrich(StubRunner(THREE_HOPS), geo_api, on_hop=received.append)

    assert received == result.hops


def test_geolocate_disabled(geo_api):
    result = _enrich(StubRunner(THREE_HOPS), geo_api, geolocate=False)

    assert geo_api.calls == []
    assert result.stats.public_hops == 1
    assert result.stats.geolocated_hops == 0
    assert result.geo_providers == []


def test_runner_receives_limits(geo_api):
    runner = StubRunner(THREE_HOPS)

    _enrich(runner, geo_api, target="example.com", geolocate=False)

    assert runner.calls == [("example.com", 30, 5.0)]


def test_execution_error_becomes_pipeline_error(geo_api):
    runner = StubRunner(error=ExecutionError("mtr timed out after 20s"))

    with pytest.raises(PipelineError) as exc_info:
        _enrich(runner, geo_api)

    assert isinstance(exc_info.value.__cause__, ExecutionError)
    assert exc_info.value.target == "8.8.8.8"
    assert geo_api.calls == []


def test_empty_trace_is_not_an_error(geo_api):
    result = _enrich(StubRunner([]), geo_api)

    assert result.hops == []
    assert result.stats.total_hops == 0


def test_diagnose_traces_default_target(geo_api):
    runner = StubRunner(THREE_HOPS)

    async def run():
        resolver = GeoResolver([IpWhoIsProvider()], client=geo_api.client())
        async with EnrichmentPipeline(runner, resolver) as pipeline:
            return await pipeline.diagnose()

    result = asyncio.run(run())

    assert result.target == "8.8.8.8"
    assert result.stats.geolocated_hops == 0
    assert geo_api.calls == []


def test_from_settings_wires_components():
    settings = Settings(
        mtr_bin="/opt/mtr", mtr_count=5, max_hops=12, trace_timeout=7.0,
        cache_ttl=10, geo_providers=("ipapi.co", "ip-api.com"),
    )
    cache = GeoCache(ttl=99)

    pipeline = EnrichmentPipeline.from_settings(settings, cache=cache)

    assert pipeline.runner.build_command("x")[:7] == [
        "/opt/mtr", "--report", "--report-wide", "-c", "5", "-m", "12",
    ]
    assert pipeline.runner.timeout == 7.0
    assert pipeline.resolver.provider_names == ["ipapi.co", "ip-api.com"]
    assert pipeline.resolver.cache is cache
    assert pipeline.max_hops == 12


def test_from_settings_creates_cache_with_ttl():
    pipeline = EnrichmentPipeline.from_settings(Settings(cache_ttl=42))

    assert pipeline.resolver.cache.ttl == 42


def test_settings_validation():
    with pytest.raises(ValueError):
        Settings(mtr_count=0)
    with pytest.raises(ValueError):
        Settings(geo_providers=())
