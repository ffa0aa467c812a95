# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
"""
Progress reporters for appliance extraction and disk uploads.

Strategy pattern:
- RichProgressReporter: animated rich progress bar (TTY only)
- SimpleProgressReporter: single rewritten line (TTY only)
- LoggingProgressReporter: periodic log lines (works everywhere)
- NoopProgressReporter: silent
"""

from __future__ import annotations

import logging
import sys
from abc import ABC, abstractmethod
from typing import Any, Optional

from rich.console import Console
from rich.progress import (
    BarColumn,
    DownloadColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
    TimeRemainingColumn,
    TransferSpeedColumn,
)

from ..core.utils import U


def _is_tty() -> bool:
    try:
        return sys.stdout.isatty()
    except Exception:
        return False


class ProgressReporter(ABC):
    """Abstract base class for progress reporters."""

    @abstractmethod
    def start(self, description: str, total: Optional[int] = None) -> None:
        ...

    @abstractmethod
    def update(self, delta: int) -> None:
        """Advance by `delta` bytes."""
        ...

    @abstractmethod
    def finish(self) -> None:
        ...


class RichProgressReporter(ProgressReporter):
    def __init__(self, console: Console, refresh_hz: float = 10.0):
        self.console = console
        self.refresh_hz = refresh_hz
        self.progress: Optional[Progress] = None
        self.task_id: Optional[Any] = None

    def start(self, description: str, total: Optional[int] = None) -> None:
        self.progress = Progress(
            SpinnerColumn(style="bright_green"),
            TextColumn("[progress.description]{task.description}", style="bold cyan"),
            BarColumn(complete_style="bright_blue", finished_style="bright_green"),
            DownloadColumn(),
            TransferSpeedColumn(),
            TimeRemainingColumn(),
            TimeElapsedColumn(),
            console=self.console,
            transient=False,
            refresh_per_second=max(1, int(self.refresh_hz)),
        )
        self.progress.start()
        self.task_id = self.progress.add_task(description, total=total if total and total > 0 else None)

    def update(self, delta: int) -> None:
        if self.progress is not None and self.task_id is not None:
            self.progress.update(self.task_id, advance=delta)

    def finish(self) -> None:
        if self.progress is not None:
            self.progress.stop()
            self.progress = None


class SimpleProgressReporter(ProgressReporter):
    """Single-line progress for a TTY without rich rendering."""

    def __init__(self, file_name: str, verb: str = "Uploading"):
        self.file_name = file_name
        self.verb = verb
        self.done = 0
        self.total: Optional[int] = None

    def start(self, description: str, total: Optional[int] = None) -> None:
        self.total = total
        self._render()

    def update(self, delta: int) -> None:
        self.done += delta
        self._render()

    def _render(self) -> None:
        if self.total and self.total > 0:
            pct = (self.done / self.total) * 100.0
            s = f"{pct:.1f}% ({U.human_bytes(self.done)}/{U.human_bytes(self.total)})"
        else:
            s = f"{U.human_bytes(self.done)} (size unknown)"
        sys.stdout.write(f"{self.verb} {self.file_name}: {s}   \r")
        sys.stdout.flush()

    def finish(self) -> None:
        sys.stdout.write("\n")
        sys.stdout.flush()


class LoggingProgressReporter(ProgressReporter):
    def __init__(self, logger: logging.Logger, log_every_bytes: int = 128 * 1024 * 1024):
        self.logger = logger
        self.log_every_bytes = log_every_bytes
        self.description = ""
        self.done = 0
        self.total: Optional[int] = None
        self.last_log_mark = 0

    def start(self, description: str, total: Optional[int] = None) -> None:
        self.description = description
        self.total = total
        self.logger.info("Starting: %s", description)

    def update(self, delta: int) -> None:
        self.done += delta
        if self.done - self.last_log_mark < self.log_every_bytes:
            return
        self.last_log_mark = self.done
        if self.total and self.total > 0:
            self.logger.info(
                "%s: %s / %s (%.1f%%)",
                self.description,
                U.human_bytes(self.done),
                U.human_bytes(self.total),
                (self.done / self.total) * 100.0,
            )
        else:
            self.logger.info("%s: %s", self.description, U.human_bytes(self.done))

    def finish(self) -> None:
        self.logger.info("Finished: %s (%s)", self.description, U.human_bytes(self.done))


class NoopProgressReporter(ProgressReporter):
    def start(self, description: str, total: Optional[int] = None) -> None:
        pass

    def update(self, delta: int) -> None:
        pass

    def finish(self) -> None:
        pass


def create_progress_reporter(
    options: Any,
    file_name: str,
    logger: logging.Logger,
) -> ProgressReporter:
    """
    Pick a reporter for `options` (HTTPTransferOptions or anything with the
    same progress fields):

    1. show_progress=False -> NoopProgressReporter
    2. TTY -> RichProgressReporter
    3. TTY + simple_progress -> SimpleProgressReporter
    4. otherwise -> LoggingProgressReporter
    """
    if not options.show_progress:
        return NoopProgressReporter()

    if _is_tty():
        if options.simple_progress:
            return SimpleProgressReporter(file_name)
        return RichProgressReporter(Console(stderr=False), options.progress_refresh_hz)

    return LoggingProgressReporter(logger, options.log_every_bytes)
