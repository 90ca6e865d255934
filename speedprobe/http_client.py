"""HTTP clients used by the measurement pipeline.

Directory documents and latency probes go through a blocking ``requests``
session. Transfer batches need many requests in flight from one thread, so
they run on an ``aiohttp`` session wrapped by :class:`AioHttpTransport`.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import aiohttp
import requests

from .config import HttpConfig

LOGGER = logging.getLogger(__name__)

# Failures that abandon a transfer batch. Anything else is a bug and propagates.
TRANSPORT_ERRORS = (aiohttp.ClientError, asyncio.TimeoutError, OSError)


class HttpClient:
    """Blocking client with the configured user agent and default timeout."""

    def __init__(self, config: HttpConfig):
        self.config = config
        self.session = requests.Session()
        self.session.headers.update({"User-Agent": config.user_agent, "Cache-Control": "no-cache"})

    def get(self, url: str, timeout: Optional[float] = None) -> requests.Response:
        LOGGER.debug("GET %s", url)
        return self.session.get(url, timeout=timeout or self.config.request_timeout)

    def get_text(self, url: str, timeout: Optional[float] = None) -> str:
        response = self.get(url, timeout=timeout)
        response.raise_for_status()
        return response.text

    def close(self) -> None:
        self.session.close()


class AioHttpTransport:
    """Async download/upload primitives over a shared ``aiohttp`` session."""

    def __init__(self, session: aiohttp.ClientSession):
        self.session = session

    async def download(self, url: str) -> int:
        async with self.session.get(url) as response:
            response.raise_for_status()
            body = await response.read()
        return len(body)

    async def upload(self, url: str, payload: str) -> None:
        async with self.session.post(url, data=payload) as response:
            response.raise_for_status()
            await response.read()


@asynccontextmanager
async def open_transport(config: HttpConfig) -> AsyncIterator[AioHttpTransport]:
    timeout = aiohttp.ClientTimeout(total=config.transfer_timeout)
    headers = {"User-Agent": config.user_agent, "Cache-Control": "no-cache"}
    async with aiohttp.ClientSession(timeout=timeout, headers=headers) as session:
        yield AioHttpTransport(session)
