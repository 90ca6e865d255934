"""Bounded-concurrency download and upload measurement."""

from __future__ import annotations

import asyncio
import logging
import random
import time
from typing import Awaitable, Callable, List, Optional, Sequence, TypeVar

from ..errors import BatchTransportError
from ..http_client import TRANSPORT_ERRORS
from .models import DEFAULT_DOWNLOAD_SIZES, BatchResult, FileSize, ServerDescriptor
from .targets import MAX_UPLOAD_TIER, generate_download_urls, generate_payloads

LOGGER = logging.getLogger(__name__)

Job = TypeVar("Job")


async def run_batch(
    jobs: Sequence[Job],
    perform: Callable[[Job], Awaitable[int]],
    concurrency: int,
) -> int:
    """Run ``perform`` over ``jobs`` with at most ``concurrency`` in flight.

    A fixed pool of worker tasks pulls jobs from a queue in submission order.
    Each worker passes the semaphore before issuing its request and releases
    it once the response has been read, whatever the outcome. Returns the sum
    of the byte counts reported by ``perform``. The first failure cancels the
    remaining workers and is re-raised.
    """
    if concurrency < 1:
        raise ValueError("concurrency must be at least 1")

    queue: asyncio.Queue = asyncio.Queue()
    for job in jobs:
        queue.put_nowait(job)
    gate = asyncio.Semaphore(concurrency)
    sizes: List[int] = []

    async def worker() -> None:
        while True:
            try:
                job = queue.get_nowait()
            except asyncio.QueueEmpty:
                return
            async with gate:
                sizes.append(await perform(job))

    workers = [asyncio.ensure_future(worker()) for _ in range(min(concurrency, len(jobs)))]
    try:
        await asyncio.gather(*workers)
    except BaseException:
        for task in workers:
            task.cancel()
        await asyncio.gather(*workers, return_exceptions=True)
        raise
    return sum(sizes)


class TransferEngine:
    """Download/upload measurement with whole-server fallback.

    ``transport`` provides ``download(url) -> int`` and
    ``upload(url, payload)`` coroutines and may be shared between batches.
    """

    def __init__(self, transport, rng: Optional[random.Random] = None):
        self.transport = transport
        self.rng = rng

    @staticmethod
    async def _run_server_batch(server, jobs, perform, concurrency: int) -> int:
        try:
            return await run_batch(jobs, lambda job: perform(server, job), concurrency)
        except TRANSPORT_ERRORS as exc:
            raise BatchTransportError(server.id, exc) from exc

    async def _first_clean_batch(
        self,
        kind: str,
        servers: Sequence[ServerDescriptor],
        build_jobs: Callable[[ServerDescriptor], list],
        perform: Callable[[ServerDescriptor, object], Awaitable[int]],
        concurrency: int,
    ) -> Optional[BatchResult]:
        for server in servers:
            jobs = build_jobs(server)
            if not jobs:
                LOGGER.warning("Empty %s batch for server %s, nothing to measure", kind, server.id)
                return None

            start = time.perf_counter()
            try:
                total_bytes = await self._run_server_batch(server, jobs, perform, concurrency)
            except BatchTransportError as exc:
                LOGGER.warning("%s; trying next server", exc)
                continue
            elapsed_ms = (time.perf_counter() - start) * 1000

            result = BatchResult(
                server=server, job_count=len(jobs), total_bytes=total_bytes, elapsed_ms=elapsed_ms
            )
            LOGGER.info(
                "%s against server %s: %d bytes in %.0f ms (%.2f Mbps)",
                kind.capitalize(), server.id, total_bytes, elapsed_ms, result.mbps,
            )
            return result

        LOGGER.warning("No server completed a %s batch", kind)
        return None

    async def download_batch(
        self,
        servers: Sequence[ServerDescriptor],
        concurrency: int = 2,
        retry_count: int = 3,
        sizes: Sequence[FileSize] = DEFAULT_DOWNLOAD_SIZES,
    ) -> Optional[BatchResult]:
        async def fetch(server: ServerDescriptor, url: str) -> int:
            return await self.transport.download(url)

        return await self._first_clean_batch(
            "download",
            servers,
            lambda server: generate_download_urls(server, retry_count, sizes),
            fetch,
            concurrency,
        )

    async def upload_batch(
        self,
        servers: Sequence[ServerDescriptor],
        concurrency: int = 2,
        retry_count: int = 3,
        max_tier: int = MAX_UPLOAD_TIER,
    ) -> Optional[BatchResult]:
        async def send(server: ServerDescriptor, payload: str) -> int:
            await self.transport.upload(server.url, payload)
            return len(payload)

        return await self._first_clean_batch(
            "upload",
            servers,
            lambda server: generate_payloads(retry_count, rng=self.rng, max_tier=max_tier),
            send,
            concurrency,
        )

    async def measure_download(
        self,
        servers: Sequence[ServerDescriptor],
        concurrency: int = 2,
        retry_count: int = 3,
        sizes: Sequence[FileSize] = DEFAULT_DOWNLOAD_SIZES,
    ) -> float:
        result = await self.download_batch(servers, concurrency, retry_count, sizes)
        return result.throughput if result else 0.0

    async def measure_upload(
        self,
        servers: Sequence[ServerDescriptor],
        concurrency: int = 2,
        retry_count: int = 3,
        max_tier: int = MAX_UPLOAD_TIER,
    ) -> float:
        result = await self.upload_batch(servers, concurrency, retry_count, max_tier)
        return result.throughput if result else 0.0
