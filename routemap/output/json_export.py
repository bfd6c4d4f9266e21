"""
JSON export for RouteMap
"""

import json
from pathlib import Path
from typing import Optional

from ..models import EnrichedHop, GeoInfo, PublicIPInfo, TraceResult


class JsonExporter:
    """
    Export trace results to JSON format.

    Optional fields are omitted when absent rather than written as
    null, so a missing coordinate is never confused with 0.0.
    """

    def export(self, result: TraceResult,
               output_path: Optional[Path] = None) -> dict:
        """
        Export trace result to JSON.

        Args:
            result: Trace result
            output_path: Optional file path to write

        Returns:
            JSON-serializable dict
        """
        data = {
            "success": True,
            "target": result.target,
            "stats": {
                "totalHops": result.stats.total_hops,
                "publicHops": result.stats.public_hops,
                "geolocatedHops": result.stats.geolocated_hops,
                "durationMs": result.stats.duration_ms,
            },
            "hops": [self._serialize_hop(hop) for hop in result.hops],
            "metadata": {
                "source": result.source,
                "geoProviders": result.geo_providers,
                "timestamp": result.timestamp.isoformat(),
            },
        }

        if output_path:
            self._write_file(data, output_path)

        return data

    def export_public_ip(self, info: PublicIPInfo) -> dict:
        """Serialize a public IP lookup"""
        data = {"success": True, "ip": info.ip, "source": info.source}
        if info.geo:
            data["geo"] = self._serialize_geo(info.geo)
        return data

    def _serialize_hop(self, hop: EnrichedHop) -> dict:
        """Serialize a single hop"""
        data = {"hop": hop.index, "isPrivate": hop.is_private}

        if hop.address is not None:
            data["ip"] = hop.address
        if hop.display_name is not None:
            data["hostname"] = hop.display_name
        if hop.rtt_ms is not None:
            data["rtt"] = round(hop.rtt_ms, 2)
        if hop.geo:
            data.update(self._serialize_geo(hop.geo))

        return data

    def _serialize_geo(self, geo: GeoInfo) -> dict:
        """Serialize geo info, skipping unknown locality fields"""
        data = {"lat": geo.lat, "lon": geo.lon}
        for key, value in (
            ("city", geo.city),
            ("region", geo.region),
            ("country", geo.country),
            ("countryCode", geo.country_code),
        ):
            if value is not None:
                data[key] = value
        return data

    def _write_file(self, data: dict, path: Path):
        """Write JSON to file"""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=2, ensure_ascii=False)


def export_json(result: TraceResult, output_path: Optional[Path] = None) -> dict:
    """Convenience function for JSON export"""
    return JsonExporter().export(result, output_path)
