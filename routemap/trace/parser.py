"""
Decoders for mtr report output (JSON and plain text)
"""

import json
import logging
import math
import re
from typing import Any, Optional, Sequence

from ..models import Hop
from .base import BaseDecoder, DecodeResult


logger = logging.getLogger(__name__)

DOTTED_QUAD = re.compile(r'^\d{1,3}\.\d{1,3}\.\d{1,3}\.\d{1,3}$')

# mtr prints "???" for hops that sent no reply
NO_REPLY_HOST = "???"


def first_valid_number(*values: Any) -> Optional[float]:
    """Return the first value that converts to a finite, non-negative float"""
    for value in values:
        if value is None or isinstance(value, bool):
            continue
        try:
            number = float(value)
        except (TypeError, ValueError):
            continue
        if math.isfinite(number) and number >= 0:
            return number
    return None


class JsonReportDecoder(BaseDecoder):
    """
    Decoder for `mtr --json` output.

    Expects {"report": {"hubs": [...]}}. Each hub names the hop in
    `host`, `hostname` or `ip`; latency comes from the first usable
    sample field in RTT_FIELDS order. mtr itself writes capitalised
    keys (Avg, Last, Best, Wrst), other producers use lower case,
    so keys are matched case-insensitively.
    """

    name = "json"

    RTT_FIELDS = (
        ('avg',),
        ('last',),
        ('best',),
        ('wst', 'wrst', 'worst'),
    )

    def decode(self, raw: str) -> DecodeResult:
        try:
            payload = json.loads(raw)
        except (json.JSONDecodeError, TypeError) as e:
            return DecodeResult.decline(f"not JSON: {e}")

        if not isinstance(payload, dict):
            return DecodeResult.decline("top-level value is not an object")

        report = payload.get('report')
        hubs = report.get('hubs') if isinstance(report, dict) else None
        if not isinstance(hubs, list):
            return DecodeResult.decline("missing report.hubs list")

        hops: list[Hop] = []
        for hub in hubs:
            if not isinstance(hub, dict):
                logger.debug("Skipping non-object hub entry: %r", hub)
                continue
            hops.append(self._decode_hub(hub, len(hops) + 1))

        return DecodeResult.accept(hops)

    def _decode_hub(self, hub: dict, index: int) -> Hop:
        """Build a Hop from one hub entry"""
        host = hub.get('host') or hub.get('hostname') or hub.get('ip') or None
        if host is not None:
            host = str(host)
        if host == NO_REPLY_HOST:
            host = None

        # Heuristic: an address-shaped host label wins over the ip field
        if host and DOTTED_QUAD.match(host):
            address = host
        else:
            address = self._explicit_ip(hub)

        return Hop(
            index=index,
            address=address,
            display_name=host or address,
            rtt_ms=self._rtt(hub),
        )

    @staticmethod
    def _explicit_ip(hub: dict) -> Optional[str]:
        ip = hub.get('ip')
        if isinstance(ip, str) and ip:
            return ip
        if ip:
            logger.debug("Ignoring non-string ip field: %r", ip)
        return None

    def _rtt(self, hub: dict) -> Optional[float]:
        lowered = {str(k).lower(): v for k, v in hub.items()}
        loss = first_valid_number(lowered.get('loss%'))
        if loss is not None and loss >= 100:
            return None
        for aliases in self.RTT_FIELDS:
            value = first_valid_number(*(lowered.get(a) for a in aliases))
            if value is not None:
                return value
        return None


class TextReportDecoder(BaseDecoder):
    """
    Decoder for plain `mtr --report` text.

    Hop lines look like:

        1.|-- router.lan (192.168.1.1)   0.0%  3   1.2   1.4   1.1   1.9   0.3
        2.|-- ???                       100.0%  3   0.0   0.0   0.0   0.0   0.0

    Other traceroute-style lines that carry "<n> ms" are accepted too,
    as long as they start with the "N.|--" marker. This decoder never
    declines; output with no hop lines yields an empty list.
    """

    name = "text"

    HOP_LINE = re.compile(r'^\s*(\d+)\.\|--')
    ADDRESS = re.compile(r'(\d{1,3}(?:\.\d{1,3}){3})')
    HOST = re.compile(r'\d+\.\|--\s*([^\s(]+)')
    RTT_MS = re.compile(r'(\d+(?:\.\d+)?)\s*ms')
    # Loss%  Snt  Last  Avg  Best  Wrst  StDev
    REPORT_COLUMNS = re.compile(
        r'(\d+(?:\.\d+)?)%?\s+(\d+)\s+(\d+(?:\.\d+)?)\s+(\d+(?:\.\d+)?)'
        r'\s+(\d+(?:\.\d+)?)\s+(\d+(?:\.\d+)?)\s+(\d+(?:\.\d+)?)\s*$'
    )

    def decode(self, raw: str) -> DecodeResult:
        hops: list[Hop] = []

        for line in (raw or '').splitlines():
            match = self.HOP_LINE.match(line)
            if not match:
                continue

            position = len(hops) + 1
            reported = int(match.group(1))
            if reported != position:
                logger.debug("Hop line reports index %d at position %d", reported, position)

            hops.append(self._decode_line(line, position))

        return DecodeResult.accept(hops)

    def _decode_line(self, line: str, index: int) -> Hop:
        """Build a Hop from one qualifying report line"""
        address_match = self.ADDRESS.search(line)
        address = address_match.group(1) if address_match else None

        host_match = self.HOST.search(line)
        host = host_match.group(1) if host_match else None
        if host == NO_REPLY_HOST:
            host = None

        return Hop(
            index=index,
            address=address,
            display_name=host or address,
            rtt_ms=self._rtt(line),
        )

    def _rtt(self, line: str) -> Optional[float]:
        ms_match = self.RTT_MS.search(line)
        if ms_match:
            return float(ms_match.group(1))

        columns = self.REPORT_COLUMNS.search(line)
        if columns:
            loss = float(columns.group(1))
            if loss >= 100:
                return None
            return float(columns.group(4))

        return None


class TraceOutputParser:
    """
    Runs decoders in order and returns the first accepted result.

    The JSON decoder goes first; mtr falls back to text output on
    builds without JSON support, so a declined JSON decode is expected
    and only logged.
    """

    def __init__(self, decoders: Optional[Sequence[BaseDecoder]] = None):
        self.decoders = list(decoders) if decoders is not None else [
            JsonReportDecoder(),
            TextReportDecoder(),
        ]

    def parse(self, raw: str) -> list[Hop]:
        """
        Parse raw utility output into an ordered hop list.

        Args:
            raw: Captured standard output

        Returns:
            Hops numbered from 1; empty when nothing could be decoded
        """
        for decoder in self.decoders:
            result = decoder.decode(raw)
            if result.accepted:
                logger.debug("Decoded %d hops with %s decoder", len(result.hops), decoder.name)
                return result.hops
            logger.warning("%s decode failed (%s), falling back", decoder.name, result.reason)

        return []
