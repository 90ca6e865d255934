"""Shared dataclasses for measurements."""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Any, Dict, FrozenSet, Iterator, Optional, Tuple

from .speed import throughput, throughput_mbps

EARTH_RADIUS_M = 6376500.0


class FileSize(Enum):
    """Dimensions served by the random image endpoint (``random{d}x{d}.jpg``)."""

    SIZE_350 = 350
    SIZE_500 = 500
    SIZE_750 = 750
    SIZE_1000 = 1000
    SIZE_1500 = 1500
    SIZE_2000 = 2000
    SIZE_2500 = 2500
    SIZE_3000 = 3000
    SIZE_3500 = 3500
    SIZE_4000 = 4000

    @property
    def dimension(self) -> int:
        return self.value


DEFAULT_DOWNLOAD_SIZES: Tuple[FileSize, ...] = (FileSize.SIZE_750,)


@dataclass(frozen=True)
class Coordinate:
    latitude: float
    longitude: float

    def distance_to(self, other: Coordinate) -> float:
        """Great-circle (haversine) distance in metres."""
        lat1 = math.radians(self.latitude)
        lat2 = math.radians(other.latitude)
        d_lat = lat2 - lat1
        d_lon = math.radians(other.longitude - self.longitude)
        a = math.sin(d_lat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(d_lon / 2) ** 2
        a = min(1.0, max(0.0, a))
        return EARTH_RADIUS_M * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


@dataclass(frozen=True)
class ServerDescriptor:
    id: str
    url: str
    coordinate: Coordinate
    name: str = ""
    country: str = ""
    cc: str = ""
    sponsor: str = ""
    host: str = ""
    distance: Optional[float] = None
    latency: Optional[float] = None

    def with_distance(self, distance: float) -> ServerDescriptor:
        return replace(self, distance=distance)

    def with_latency(self, latency: float) -> ServerDescriptor:
        return replace(self, latency=latency)

    def __str__(self) -> str:
        return f"{self.id}) {self.sponsor} ({self.name}, {self.country})"


@dataclass(frozen=True)
class ClientProfile:
    coordinate: Coordinate
    ignore_ids: FrozenSet[str] = frozenset()
    ip: str = ""
    isp: str = ""
    country: str = ""
    isp_rating: Optional[float] = None
    rating: Optional[float] = None
    isp_download_avg: Optional[float] = None
    isp_upload_avg: Optional[float] = None


@dataclass(frozen=True)
class ServerDirectory:
    client: ClientProfile
    servers: Tuple[ServerDescriptor, ...] = ()

    def __iter__(self) -> Iterator[ServerDescriptor]:
        return iter(self.servers)

    def __len__(self) -> int:
        return len(self.servers)


@dataclass(frozen=True)
class BatchResult:
    server: ServerDescriptor
    job_count: int
    total_bytes: int
    elapsed_ms: float

    @property
    def throughput(self) -> float:
        return throughput(self.total_bytes, self.elapsed_ms)

    @property
    def mbps(self) -> float:
        return throughput_mbps(self.total_bytes, self.elapsed_ms)


@dataclass
class SpeedtestResult:
    timestamp: datetime
    client_ip: Optional[str]
    isp: Optional[str]
    server: Optional[str]
    latency_ms: Optional[float]
    download: float
    upload: float
    download_mbps: Optional[float]
    upload_mbps: Optional[float]
    bytes_used: int
    servers_tested: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "client_ip": self.client_ip,
            "isp": self.isp,
            "server": self.server,
            "latency_ms": self.latency_ms,
            "download": self.download,
            "upload": self.upload,
            "download_mbps": self.download_mbps,
            "upload_mbps": self.upload_mbps,
            "bytes_used": self.bytes_used,
            "servers_tested": self.servers_tested,
        }
