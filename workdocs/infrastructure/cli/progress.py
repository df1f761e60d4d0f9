"""Upload progress bar built on rich.progress."""

import logging
import time
from dataclasses import dataclass, replace
from typing import Callable, Optional

from rich.console import Console
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    TaskProgressColumn,
    TextColumn,
    TimeRemainingColumn,
)

from workdocs.domain.interfaces.user_interface import ProgressReporter

logger = logging.getLogger(__name__)

PROGRESS_LOG_INTERVAL_SECONDS = 5.0


@dataclass
class ProgressStats:
    total: int
    successful: int = 0
    failed: int = 0
    processed: int = 0
    rate: float = 0.0  # files per minute
    eta: int = 0  # seconds remaining


def format_eta(eta_seconds: float) -> str:
    if eta_seconds <= 0:
        return "0s"
    minutes, seconds = divmod(int(eta_seconds), 60)
    return f"{minutes}m {seconds}s" if minutes else f"{seconds}s"


class ProgressTracker(ProgressReporter):
    """Shows a live progress bar and logs a progress line every few seconds."""

    def __init__(self, total: int, environment: str, category: str,
                 console: Optional[Console] = None, clock: Callable[[], float] = time.monotonic):
        self.clock = clock
        self.stats = ProgressStats(total=total)
        self._start_time = clock()
        self._last_log_time = 0.0
        self._started = False
        self._progress = Progress(
            TextColumn("[bold blue]{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            MofNCompleteColumn(),
            TextColumn("[green]Success: {task.fields[successful]}[/green]"),
            TextColumn("[red]Failed: {task.fields[failed]}[/red]"),
            TimeRemainingColumn(),
            console=console,
            transient=False,
        )
        self._task_id = self._progress.add_task(
            f"{environment} / {category}", total=total, start=False, successful=0, failed=0
        )
        logger.info("Progress tracker initialized", extra={"total": total, "environment": environment,
                                                           "category": category})

    def start(self) -> None:
        if not self._started:
            self._progress.start()
            self._progress.start_task(self._task_id)
            self._started = True

    def update_success(self, filename: str) -> None:
        self.stats.successful += 1
        self._advance()

    def update_failure(self, filename: str) -> None:
        self.stats.failed += 1
        self._advance()

    def complete(self) -> None:
        if not self._started:
            return
        self._calculate_stats()
        self._progress.update(self._task_id, completed=self.stats.processed)
        self._progress.stop()
        self._started = False
        logger.info(
            "Progress tracking completed",
            extra={
                "total": self.stats.total,
                "successful": self.stats.successful,
                "failed": self.stats.failed,
                "duration": f"{self.clock() - self._start_time:.1f}s",
            },
        )

    def get_stats(self) -> ProgressStats:
        return replace(self.stats)

    def _advance(self) -> None:
        self.stats.processed += 1
        self._calculate_stats()
        self._progress.update(
            self._task_id,
            completed=self.stats.processed,
            successful=self.stats.successful,
            failed=self.stats.failed,
        )

        now = self.clock()
        if now - self._last_log_time > PROGRESS_LOG_INTERVAL_SECONDS:
            logger.info(
                "Progress update",
                extra={
                    "processed": self.stats.processed,
                    "total": self.stats.total,
                    "successful": self.stats.successful,
                    "failed": self.stats.failed,
                    "rate": self.stats.rate,
                    "eta": format_eta(self.stats.eta),
                },
            )
            self._last_log_time = now

    def _calculate_stats(self) -> None:
        elapsed_minutes = (self.clock() - self._start_time) / 60
        self.stats.rate = round(self.stats.processed / elapsed_minutes, 1) if elapsed_minutes > 0 else 0.0

        remaining = self.stats.total - self.stats.processed
        if remaining > 0 and self.stats.rate > 0:
            self.stats.eta = max(1, round(remaining / self.stats.rate * 60))
        else:
            self.stats.eta = 0
