"""Latency probing and ranking of candidate servers."""

from __future__ import annotations

import concurrent.futures
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import List, Sequence

import requests

from ..errors import ProbeTimeout, ProbeTransportError
from ..http_client import HttpClient
from .models import ServerDescriptor
from .targets import LATENCY_FILE, build_test_url

LOGGER = logging.getLogger(__name__)

MAX_LATENCY_MS = 500.0


def _round_trip(http: HttpClient, url: str, timeout_seconds: float) -> float:
    """Time one GET of ``url`` in milliseconds.

    The wait is bounded by ``timeout_seconds``; a request still running at
    that point is left to finish on its own thread.
    """
    executor = ThreadPoolExecutor(max_workers=1)
    start = time.perf_counter()
    try:
        future = executor.submit(http.get, url, timeout_seconds)
        future.result(timeout=timeout_seconds)
    except (concurrent.futures.TimeoutError, requests.Timeout) as exc:
        raise ProbeTimeout(url, (time.perf_counter() - start) * 1000) from exc
    except requests.RequestException as exc:
        raise ProbeTransportError(f"Latency probe to {url} failed: {exc}") from exc
    finally:
        executor.shutdown(wait=False)
    return (time.perf_counter() - start) * 1000


def probe_best(
    http: HttpClient,
    candidates: Sequence[ServerDescriptor],
    retry_count: int = 2,
    timeout_seconds: float = 2,
    max_latency_ms: float = MAX_LATENCY_MS,
) -> List[ServerDescriptor]:
    """Return the reachable candidates with ``latency`` set, fastest first.

    One probe is issued per server and its round trip is divided by
    ``retry_count``. Timed-out probes keep their elapsed time; failed ones
    are dropped. Servers at or above ``max_latency_ms`` are discarded.
    """
    survivors = []
    for server in candidates:
        url = build_test_url(server, LATENCY_FILE)
        try:
            elapsed_ms = _round_trip(http, url, timeout_seconds)
        except ProbeTimeout as exc:
            LOGGER.debug("%s", exc)
            elapsed_ms = exc.elapsed_ms
        except ProbeTransportError as exc:
            LOGGER.debug("Dropping server %s: %s", server.id, exc)
            continue

        latency = elapsed_ms / retry_count
        if latency < max_latency_ms:
            survivors.append(server.with_latency(latency))
        else:
            LOGGER.debug("Server %s too slow (%.1f ms)", server.id, latency)

    ranked = sorted(survivors, key=lambda server: server.latency)
    LOGGER.info("%d of %d candidate servers answered in time", len(ranked), len(candidates))
    return ranked
