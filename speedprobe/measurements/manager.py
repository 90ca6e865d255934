"""Measurement orchestration: directory, server selection and transfers."""

from __future__ import annotations

import asyncio
import logging
import random
from datetime import datetime
from typing import AsyncContextManager, Callable, List, Optional, Tuple

from ..config import AppConfig
from ..errors import DirectoryUnavailable
from ..http_client import HttpClient, open_transport
from .directory import DirectoryResolver
from .latency import probe_best
from .models import BatchResult, ServerDescriptor, ServerDirectory, SpeedtestResult
from .transfer import TransferEngine

LOGGER = logging.getLogger(__name__)

TransportFactory = Callable[[], AsyncContextManager]


class MeasurementManager:
    def __init__(
        self,
        config: AppConfig,
        http: HttpClient,
        transport_factory: Optional[TransportFactory] = None,
        rng: Optional[random.Random] = None,
    ):
        self.config = config
        self.http = http
        self.transport_factory = transport_factory or (lambda: open_transport(config.http))
        self.rng = rng
        self.resolver = DirectoryResolver(
            http, config.endpoints.config_url, config.endpoints.server_urls
        )

    def resolve_servers(self) -> ServerDirectory:
        return self.resolver.resolve()

    def select_servers(self, directory: ServerDirectory, limit: Optional[int] = None) -> List[ServerDescriptor]:
        """Probe the closest candidates and keep the fastest ``limit`` of them."""
        latency = self.config.latency
        candidates = list(directory.servers[: latency.candidates])
        ranked = probe_best(
            self.http,
            candidates,
            retry_count=latency.retry_count,
            timeout_seconds=latency.timeout_seconds,
            max_latency_ms=latency.max_latency_ms,
        )
        return ranked[: limit or self.config.selection.best_servers]

    async def _run_transfers(
        self, servers: List[ServerDescriptor]
    ) -> Tuple[Optional[BatchResult], Optional[BatchResult]]:
        download, upload = self.config.download, self.config.upload
        async with self.transport_factory() as transport:
            engine = TransferEngine(transport, rng=self.rng)
            down = await engine.download_batch(
                servers,
                concurrency=download.concurrency,
                retry_count=download.retry_count,
                sizes=download.file_sizes,
            )
            up = await engine.upload_batch(
                servers,
                concurrency=upload.concurrency,
                retry_count=upload.retry_count,
                max_tier=upload.max_tier,
            )
        return down, up

    def run_speedtest(self, best_servers: Optional[int] = None) -> SpeedtestResult:
        timestamp = datetime.utcnow()
        try:
            directory = self.resolve_servers()
        except DirectoryUnavailable as exc:
            LOGGER.error("Server directory unavailable: %s", exc)
            return _empty_result(timestamp)

        client = directory.client
        selected = self.select_servers(directory, best_servers)
        if not selected:
            LOGGER.warning("No server answered the latency probe")
            return _empty_result(timestamp, client.ip, client.isp)

        down, up = asyncio.run(self._run_transfers(selected))
        # report the server whose batch actually completed
        best = down.server if down else up.server if up else selected[0]
        result = SpeedtestResult(
            timestamp=timestamp,
            client_ip=client.ip,
            isp=client.isp,
            server=str(best),
            latency_ms=best.latency,
            download=down.throughput if down else 0.0,
            upload=up.throughput if up else 0.0,
            download_mbps=down.mbps if down else None,
            upload_mbps=up.mbps if up else None,
            bytes_used=(down.total_bytes if down else 0) + (up.total_bytes if up else 0),
            servers_tested=len(selected),
        )
        LOGGER.info(
            "Speedtest via %s: latency %.1f ms, down %.2f, up %.2f",
            result.server,
            result.latency_ms or 0,
            result.download,
            result.upload,
        )
        return result


def _empty_result(timestamp: datetime, client_ip: Optional[str] = None, isp: Optional[str] = None) -> SpeedtestResult:
    return SpeedtestResult(
        timestamp=timestamp,
        client_ip=client_ip,
        isp=isp,
        server=None,
        latency_ms=None,
        download=0.0,
        upload=0.0,
        download_mbps=None,
        upload_mbps=None,
        bytes_used=0,
    )
