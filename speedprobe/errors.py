"""Exception types raised inside the measurement pipeline."""

from __future__ import annotations

from typing import Optional


class SpeedprobeError(Exception):
    """Base class for measurement failures."""


class DirectoryUnavailable(SpeedprobeError):
    """The primary configuration document could not be fetched or parsed."""


class ProbeTimeout(SpeedprobeError):
    def __init__(self, url: str, elapsed_ms: float):
        super().__init__(f"Latency probe to {url} timed out after {elapsed_ms:.0f} ms")
        self.url = url
        self.elapsed_ms = elapsed_ms


class ProbeTransportError(SpeedprobeError):
    pass


class BatchTransportError(SpeedprobeError):
    def __init__(self, server_id: str, cause: Optional[BaseException] = None):
        super().__init__(f"Transfer batch against server {server_id} failed: {cause}")
        self.server_id = server_id
        self.cause = cause


class DivisionUndefined(SpeedprobeError, ZeroDivisionError):
    """Throughput requested for a zero-duration batch."""
