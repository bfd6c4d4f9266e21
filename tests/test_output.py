import io
import json
from datetime import datetime

from rich.console import Console

from routemap.config import Settings
from routemap.models import EnrichedHop, GeoInfo, PublicIPInfo, TraceResult, TraceStats
from routemap.output import ConsoleOutput, JsonExporter


def _result() -> TraceResult:
    return TraceResult(
        target="8.8.8.8",
        hops=[
            EnrichedHop(index=1, address="192.168.1.1", display_name="router.lan",
                        rtt_ms=1.234, is_private=True),
            EnrichedHop(index=2, is_private=True),
            EnrichedHop(index=3, address="8.8.8.8", display_name="dns.google", rtt_ms=12.5,
                        is_private=False,
                        geo=GeoInfo(lat=0.0, lon=-122.1, city="Mountain View", country_code="US")),
        ],
        stats=TraceStats(total_hops=3, public_hops=1, geolocated_hops=1, duration_ms=812.4),
        geo_providers=["ipwho.is", "ipapi.co"],
        timestamp=datetime(2024, 5, 1, 10, 0, 0),
    )


def test_export_structure():
    data = JsonExporter().export(_result())

    assert data["success"] is True
    assert data["target"] == "8.8.8.8"
    assert data["stats"] == {
        "totalHops": 3, "publicHops": 1, "geolocatedHops": 1, "durationMs": 812.4,
    }
    assert data["metadata"] == {
        "source": "mtr",
        "geoProviders": ["ipwho.is", "ipapi.co"],
        "timestamp": "2024-05-01T10:00:00",
    }


def test_absent_fields_are_omitted():
    hops = JsonExporter().export(_result())["hops"]

    assert hops[0] == {
        "hop": 1, "isPrivate": True, "ip": "192.168.1.1", "hostname": "router.lan", "rtt": 1.23,
    }
    assert hops[1] == {"hop": 2, "isPrivate": True}
    assert hops[2] == {
        "hop": 3, "isPrivate": False, "ip": "8.8.8.8", "hostname": "dns.google", "rtt": 12.5,
        "lat": 0.0, "lon": -122.1, "city": "Mountain View", "countryCode": "US",
    }


def test_export_writes_file(tmp_path):
    path = tmp_path / "out" / "route.json"

    JsonExporter().export(_result(), path)

    assert json.loads(path.read_text(encoding="utf-8"))["stats"]["totalHops"] == 3


def test_export_public_ip():
    info = PublicIPInfo(ip="8.8.8.8", geo=GeoInfo(lat=37.4, lon=-122.1), source="api.ipify.org + ipwho.is")

    assert JsonExporter().export_public_ip(info) == {
        "success": True, "ip": "8.8.8.8", "source": "api.ipify.org + ipwho.is",
        "geo": {"lat": 37.4, "lon": -122.1},
    }


def test_console_renders_hops_and_summary():
    buffer = io.StringIO()
    output = ConsoleOutput(Console(file=buffer, width=140, color_system=None))
    result = _result()

    output.print_header(result.target, Settings())
    for hop in result.hops:
        output.print_hop_realtime(hop)
    output.print_separator()
    output.print_summary(result)

    text = buffer.getvalue()
    assert "192.168.1.1" in text
    assert "Mountain View" in text
    assert "1/1 public hops" in text
    assert text.count("RTT (ms)") == 1


def test_console_renders_diag_and_whoami():
    buffer = io.StringIO()
    output = ConsoleOutput(Console(file=buffer, width=140, color_system=None))

    output.print_diag(_result(), Settings())
    output.print_public_ip(PublicIPInfo(ip="8.8.8.8", geo=None, source="api.ipify.org + ipwho.is"))

    text = buffer.getvalue()
    assert "router.lan" in text
    assert "Public IP: 8.8.8.8" in text
