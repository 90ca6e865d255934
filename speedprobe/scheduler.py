"""Periodic measurement scheduling."""

from __future__ import annotations

import logging
from typing import Optional

from apscheduler.schedulers.blocking import BlockingScheduler
from apscheduler.triggers.interval import IntervalTrigger

from .config import AppConfig
from .measurements.manager import MeasurementManager

LOGGER = logging.getLogger(__name__)

JOB_ID = "scheduled-speedtest"


class SchedulerService:
    def __init__(self, config: AppConfig, measurement_manager: MeasurementManager) -> None:
        self.config = config
        self.measurements = measurement_manager
        self.scheduler = BlockingScheduler(timezone="UTC")
        self.started = False

    def configure(self, interval_minutes: Optional[int] = None) -> int:
        interval = interval_minutes or self.config.scheduler.interval_minutes
        if interval < 1:
            raise ValueError("Scheduler interval must be at least one minute")
        self.scheduler.add_job(
            self._run_cycle,
            trigger=IntervalTrigger(minutes=interval),
            id=JOB_ID,
            replace_existing=True,
        )
        return interval

    def start(self, interval_minutes: Optional[int] = None) -> None:
        """Run a measurement now, then every interval until interrupted."""
        if self.started:
            LOGGER.warning("Scheduler already started, ignoring duplicate start request")
            return

        interval = self.configure(interval_minutes)
        LOGGER.info("Scheduler started with interval %s minutes", interval)
        self._run_cycle()
        self.started = True
        try:
            self.scheduler.start()
        except (KeyboardInterrupt, SystemExit):
            LOGGER.info("Scheduler interrupted, shutting down")
        finally:
            self.shutdown()

    def shutdown(self) -> None:
        if self.started:
            if self.scheduler.running:
                self.scheduler.shutdown(wait=False)
            self.started = False

    def _run_cycle(self) -> None:
        LOGGER.info("Starting scheduled speedtest")
        try:
            self.measurements.run_speedtest()
        except Exception as exc:  # pylint: disable=broad-except
            LOGGER.exception("Scheduled speedtest failed: %s", exc)
