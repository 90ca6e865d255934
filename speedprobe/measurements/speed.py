"""Throughput arithmetic.

``throughput`` keeps the legacy unit convention of the speedtest clients this
tool replaces: bytes are turned into bits, divided by 1024 to get "kilobits",
divided by elapsed seconds and finally by 1000. The result is close to, but
not exactly, megabits per second. ``throughput_mbps`` gives the SI figure.
"""

from __future__ import annotations

from ..errors import DivisionUndefined


def throughput(total_bytes: int, elapsed_ms: float) -> float:
    """Legacy-unit transfer rate for ``total_bytes`` moved in ``elapsed_ms``."""
    if elapsed_ms == 0:
        raise DivisionUndefined("Cannot compute throughput of a zero-duration batch")
    return (total_bytes * 8 / 1024) / (elapsed_ms / 1000) / 1000


def throughput_mbps(total_bytes: int, elapsed_ms: float) -> float:
    if elapsed_ms == 0:
        raise DivisionUndefined("Cannot compute throughput of a zero-duration batch")
    return (total_bytes * 8 / 1_000_000) / (elapsed_ms / 1000)
