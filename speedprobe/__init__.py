"""Application bootstrap helpers."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from .config import AppConfig, load_config
from .http_client import HttpClient
from .logging_setup import configure_logging
from .measurements.manager import MeasurementManager
from .scheduler import SchedulerService

__version__ = "0.1.0"


class ApplicationContext:
    """Holds shared singletons for the client."""

    def __init__(self, config: AppConfig):
        self.config = config
        configure_logging(config)
        self.http = HttpClient(config.http)
        self.measurements = MeasurementManager(config, self.http)
        self.scheduler = SchedulerService(config, self.measurements)

    def close(self) -> None:
        self.scheduler.shutdown()
        self.http.close()


def bootstrap(config_path: Optional[str] = None) -> ApplicationContext:
    """Load configuration and wire dependencies."""

    config_file = Path(config_path).resolve() if config_path else None
    config = load_config(str(config_file)) if config_file else load_config()
    return ApplicationContext(config)
