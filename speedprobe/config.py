"""Configuration loading helpers for the speed measurement client."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional
import yaml

from .measurements.models import FileSize

DEFAULT_CONFIG_URL = "https://www.speedtest.net/speedtest-config.php"
DEFAULT_SERVER_URLS = [
    "https://www.speedtest.net/speedtest-servers-static.php",
    "https://c.speedtest.net/speedtest-servers-static.php",
    "https://www.speedtest.net/speedtest-servers.php",
    "https://c.speedtest.net/speedtest-servers.php",
]


@dataclass
class PathsConfig:
    logs_dir: Path


@dataclass
class EndpointsConfig:
    config_url: str = DEFAULT_CONFIG_URL
    server_urls: List[str] = field(default_factory=lambda: list(DEFAULT_SERVER_URLS))


@dataclass
class HttpConfig:
    user_agent: str = "AppleWebKit/537.36 (KHTML, like Gecko)"
    request_timeout: float = 10.0
    transfer_timeout: float = 60.0


@dataclass
class LatencyConfig:
    retry_count: int = 2
    timeout_seconds: float = 2.0
    max_latency_ms: float = 500.0
    candidates: int = 10


@dataclass
class SelectionConfig:
    best_servers: int = 3


@dataclass
class DownloadConfig:
    concurrency: int = 2
    retry_count: int = 3
    sizes: List[int] = field(default_factory=lambda: [FileSize.SIZE_750.value])

    def __post_init__(self) -> None:
        # ValueError for dimensions the random image endpoint does not serve
        self.sizes = [FileSize(int(size)).value for size in self.sizes]

    @property
    def file_sizes(self) -> List[FileSize]:
        return [FileSize(size) for size in self.sizes]


@dataclass
class UploadConfig:
    concurrency: int = 2
    retry_count: int = 3
    max_tier: int = 4


@dataclass
class SchedulerConfig:
    interval_minutes: int = 60


@dataclass
class LoggingConfig:
    level: str = "INFO"
    file_name: str = "speedprobe.log"
    max_bytes: int = 5 * 1024 * 1024
    backup_count: int = 5
    console: bool = True
    quiet_loggers: List[str] = field(default_factory=lambda: ["urllib3", "asyncio"])


@dataclass
class AppConfig:
    root_dir: Path
    paths: PathsConfig
    endpoints: EndpointsConfig
    http: HttpConfig
    latency: LatencyConfig
    selection: SelectionConfig
    download: DownloadConfig
    upload: UploadConfig
    scheduler: SchedulerConfig
    logging: LoggingConfig


def _as_path(base: Path, maybe_path: Optional[str]) -> Path:
    if not maybe_path:
        raise ValueError("Path configuration entries cannot be empty")
    path = (base / maybe_path).resolve()
    path.mkdir(parents=True, exist_ok=True)
    return path


def load_config(path: Optional[str] = None) -> AppConfig:
    """Load application configuration from YAML file."""

    root_dir = Path(path).resolve().parent if path else Path.cwd()
    source_path = Path(path) if path else root_dir / "config.yaml"
    if not source_path.exists():
        raise FileNotFoundError(f"Missing configuration file at {source_path}")

    with source_path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}

    paths_data = data.get("paths", {})
    paths = PathsConfig(logs_dir=_as_path(root_dir, paths_data.get("logs_dir", "logs")))

    config = AppConfig(
        root_dir=root_dir,
        paths=paths,
        endpoints=EndpointsConfig(**data.get("endpoints", {})),
        http=HttpConfig(**data.get("http", {})),
        latency=LatencyConfig(**data.get("latency", {})),
        selection=SelectionConfig(**data.get("selection", {})),
        download=DownloadConfig(**data.get("download", {})),
        upload=UploadConfig(**data.get("upload", {})),
        scheduler=SchedulerConfig(**data.get("scheduler", {})),
        logging=LoggingConfig(**data.get("logging", {})),
    )

    return config
