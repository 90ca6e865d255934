"""Builders for probe, download and upload test targets."""

from __future__ import annotations

import random
import re
from typing import List, Optional, Sequence
from urllib.parse import urlsplit, urlunsplit

from .models import DEFAULT_DOWNLOAD_SIZES, FileSize, ServerDescriptor

LATENCY_FILE = "latency.txt"
DOWNLOAD_FILE = "random{0}x{0}.jpg?r={1}"

UPLOAD_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ"
UPLOAD_TIER_BYTES = 200 * 1024
MAX_UPLOAD_TIER = 4

_UPLOAD_HANDLER = re.compile(r"upload\.(php|aspx?|jsp)$", re.IGNORECASE)


def build_test_url(server: ServerDescriptor, file_name: str) -> str:
    """Swap the upload handler at the end of the server URL for ``file_name``."""
    parts = urlsplit(server.url)
    directory, _, last = parts.path.rpartition("/")
    if last and not _UPLOAD_HANDLER.search(last):
        directory = f"{directory}/{last}"
    base = urlunsplit((parts.scheme, parts.netloc, f"{directory}/", "", ""))
    return base + file_name


def generate_download_urls(
    server: ServerDescriptor,
    retry_count: int,
    sizes: Sequence[FileSize] = DEFAULT_DOWNLOAD_SIZES,
) -> List[str]:
    urls = []
    for size in sizes:
        for counter in range(retry_count):
            urls.append(build_test_url(server, DOWNLOAD_FILE.format(size.dimension, counter)))
    return urls


def generate_payloads(
    retry_count: int,
    rng: Optional[random.Random] = None,
    max_tier: int = MAX_UPLOAD_TIER,
) -> List[str]:
    """Upload bodies of ``k * 200 KiB`` random characters for tiers ``1..max_tier``.

    Each tier's payload is emitted ``retry_count`` times in a row. The random
    source is injectable so tests can pin the content.
    """
    rng = rng or random.Random()
    payloads: List[str] = []
    for tier in range(1, max_tier + 1):
        body = "".join(rng.choices(UPLOAD_ALPHABET, k=tier * UPLOAD_TIER_BYTES))
        payload = f"content {tier}={body}"
        payloads.extend([payload] * retry_count)
    return payloads
