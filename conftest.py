"""Shared fakes for the measurement tests."""

from __future__ import annotations

import asyncio
import time
from contextlib import asynccontextmanager
from pathlib import Path

import aiohttp
import pytest
import requests

from speedprobe.config import load_config
from speedprobe.measurements.models import Coordinate, ServerDescriptor

CONFIG_URL = "https://config.example/speedtest-config.php"
MIRROR_URLS = [
    "https://mirror-a.example/servers.php",
    "https://mirror-b.example/servers.php",
    "https://mirror-c.example/servers.php",
    "https://mirror-d.example/servers.php",
]

PRIMARY_XML = """<?xml version="1.0" encoding="UTF-8"?>
<settings>
  <client ip="203.0.113.5" lat="52.52" lon="13.40" isp="Example ISP" isprating="3.7"
          rating="0" ispdlavg="0" ispulavg="0" country="DE" />
  <server-config threadcount="4" ignoreids="3, 7" notonmap="" forcepingid="" preferredserverid="" />
</settings>
"""

SERVERS_XML = """<?xml version="1.0" encoding="UTF-8"?>
<settings>
  <servers>
    <server url="http://paris.example:8080/speedtest/upload.php" lat="48.8566" lon="2.3522"
            name="Paris" country="France" cc="FR" sponsor="Paris Net" id="2" host="paris.example:8080" />
    <server url="http://hamburg.example:8080/speedtest/upload.php" lat="53.5511" lon="9.9937"
            name="Hamburg" country="Germany" cc="DE" sponsor="Hanse" id="3" host="hamburg.example:8080" />
    <server url="http://berlin.example:8080/speedtest/upload.php" lat="52.5200" lon="13.4050"
            name="Berlin" country="Germany" cc="DE" sponsor="Spree" id="1" host="berlin.example:8080" />
    <server url="http://munich.example:8080/speedtest/upload.php" lat="48.1351" lon="11.5820"
            name="Munich" country="Germany" cc="DE" sponsor="Isar" id="4" host="munich.example:8080" />
    <server url="http://warsaw.example:8080/speedtest/upload.php" lat="52.2297" lon="21.0122"
            name="Warsaw" country="Poland" cc="PL" sponsor="Vistula" id="7" host="warsaw.example:8080" />
  </servers>
</settings>
"""


class FakeResponse:
    def __init__(self, text: str, status_code: int = 200):
        self.text = text
        self.status_code = status_code


class FakeHttp:
    """Stands in for ``HttpClient``.

    ``documents`` maps URLs to XML text or an exception to raise.
    ``probe_delays`` maps URLs to a sleep in seconds or an exception.
    """

    def __init__(self, documents=None, probe_delays=None):
        self.documents = documents or {}
        self.probe_delays = probe_delays or {}
        self.requested = []

    def get_text(self, url, timeout=None):
        self.requested.append(url)
        value = self.documents.get(url, requests.ConnectionError(f"no route to {url}"))
        if isinstance(value, Exception):
            raise value
        return value

    def get(self, url, timeout=None):
        self.requested.append(url)
        value = self.probe_delays.get(url, 0.0)
        if isinstance(value, Exception):
            raise value
        time.sleep(value)
        return FakeResponse("test=test")

    def close(self):
        pass


class FakeTransport:
    """Async transport that records how many requests overlap."""

    def __init__(self, body_size=1000, failing_hosts=(), delay=0.01):
        self.body_size = body_size
        self.failing_hosts = tuple(failing_hosts)
        self.delay = delay
        self.in_flight = 0
        self.max_in_flight = 0
        self.downloads = []
        self.uploads = []

    def _check(self, url):
        if any(host in url for host in self.failing_hosts):
            raise aiohttp.ClientConnectionError(f"connection reset by {url}")

    async def _exchange(self):
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
        finally:
            self.in_flight -= 1

    async def download(self, url):
        self._check(url)
        await self._exchange()
        self.downloads.append(url)
        return self.body_size

    async def upload(self, url, payload):
        self._check(url)
        await self._exchange()
        self.uploads.append((url, len(payload)))


def make_server(server_id, host, latitude=0.0, longitude=0.0, **kwargs):
    return ServerDescriptor(
        id=str(server_id),
        url=f"http://{host}/speedtest/upload.php",
        coordinate=Coordinate(latitude, longitude),
        host=host,
        **kwargs,
    )


@pytest.fixture
def fake_transport():
    return FakeTransport()


@pytest.fixture
def transport_factory(fake_transport):
    @asynccontextmanager
    async def factory():
        yield fake_transport

    return factory


@pytest.fixture
def config_file(tmp_path: Path):
    path = tmp_path / "config.yaml"
    path.write_text(
        "\n".join(
            [
                "paths:",
                "  logs_dir: logs",
                "endpoints:",
                f"  config_url: {CONFIG_URL}",
                "  server_urls:",
                *[f"    - {url}" for url in MIRROR_URLS],
                "selection:",
                "  best_servers: 2",
                "download:",
                "  retry_count: 2",
                "  sizes: [350, 750]",
                "upload:",
                "  retry_count: 2",
                "  max_tier: 1",
            ]
        ),
        encoding="utf-8",
    )
    return path


@pytest.fixture
def app_config(config_file):
    return load_config(str(config_file))
