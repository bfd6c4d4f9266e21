"""
Pytest configuration and fixtures for RouteMap tests.

Provides a factory for fake mtr executables and an httpx mock
transport that stands in for the geolocation providers.
"""
import json
import stat
import sys
import textwrap

import httpx
import pytest


MTR_JSON = {
    "report": {
        "mtr": {"src": "workstation", "dst": "8.8.8.8", "tests": 3},
        "hubs": [
            {"count": 1, "host": "192.168.1.1", "Loss%": 0.0, "Snt": 3,
             "Last": 1.2, "Avg": 1.5, "Best": 1.1, "Wrst": 1.9, "StDev": 0.3},
            {"count": 2, "host": "8.8.8.8", "Loss%": 0.0, "Snt": 3,
             "Last": 12.0, "Avg": 12.4, "Best": 11.8, "Wrst": 13.1, "StDev": 0.5},
        ],
    }
}

MTR_TEXT = """\
Start: 2024-05-01T10:00:00+0000
HOST: workstation                 Loss%   Snt   Last   Avg  Best  Wrst StDev
  1.|-- 192.168.1.1                0.0%     3    1.2   1.5   1.1   1.9   0.3
  2.|-- 8.8.8.8                    0.0%     3   12.0  12.4  11.8  13.1   0.5
"""


@pytest.fixture
def mtr_json() -> str:
    return json.dumps(MTR_JSON)


@pytest.fixture
def mtr_text() -> str:
    return MTR_TEXT


@pytest.fixture
def fake_mtr(tmp_path):
    """
    Create an executable shell script that stands in for mtr.

    Returns:
        Callable taking the script body and returning its path
    """
    if sys.platform == 'win32':
        pytest.skip("fake mtr scripts need a POSIX shell")

    counter = {"n": 0}

    def make(body: str) -> str:
        counter["n"] += 1
        path = tmp_path / f"mtr-{counter['n']}"
        path.write_text("#!/bin/sh\n" + textwrap.dedent(body))
        path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return str(path)

    return make


class GeoAPIStub:
    """
    Routes requests by host to canned responses and records every call.

    A response is either (status, body) or an exception instance to raise.
    """

    def __init__(self):
        self.responses = {}
        self.calls: list[str] = []

    def add(self, host: str, response):
        self.responses[host] = response

    def calls_to(self, host: str) -> int:
        return sum(1 for h in self.calls if h == host)

    def handler(self, request: httpx.Request) -> httpx.Response:
        host = request.url.host
        self.calls.append(host)
        response = self.responses.get(host)
        if response is None:
            return httpx.Response(404, json={"error": True, "reason": "no route"})
        if isinstance(response, Exception):
            raise response
        status, body = response
        if isinstance(body, str):
            return httpx.Response(status, text=body)
        return httpx.Response(status, json=body)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


@pytest.fixture
def geo_api() -> GeoAPIStub:
    return GeoAPIStub()


IPWHOIS_GOOGLE = {
    "ip": "8.8.8.8",
    "success": True,
    "country": "United States",
    "country_code": "US",
    "region": "California",
    "city": "Mountain View",
    "latitude": 37.4,
    "longitude": -122.1,
}

IPAPICO_CLOUDFLARE = {
    "ip": "1.1.1.1",
    "city": "Sydney",
    "region": "New South Wales",
    "country": "AU",
    "country_name": "Australia",
    "country_code": "AU",
    "latitude": -33.86,
    "longitude": 151.2,
}
