"""Stage progress over a named pipe.

The pipeline writes `percent<TAB>message` lines into a FIFO; a consumer thread
reads them in order and hands each to a renderer. Closing the channel closes the
write end, which ends the consumer loop, and then joins the thread.
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
import threading
from typing import Callable, Optional, TextIO

from rich.console import Console
from rich.progress import BarColumn, Progress, TaskID, TextColumn

logger = logging.getLogger(__name__)

Renderer = Callable[[int, str], None]


def encode_update(percent: int, message: str) -> str:
    clean = " ".join(message.split())
    return f"{max(0, min(100, int(percent)))}\t{clean}\n"


def decode_update(line: str) -> Optional[tuple[int, str]]:
    head, sep, message = line.rstrip("\n").partition("\t")
    if not sep:
        return None
    try:
        return int(head), message
    except ValueError:
        return None


class ProgressChannel:
    def __init__(self, render: Renderer):
        self._render = render
        self._dir: Optional[str] = None
        self._writer: Optional[TextIO] = None
        self._thread: Optional[threading.Thread] = None
        self.path: Optional[str] = None

    def open(self) -> "ProgressChannel":
        self._dir = tempfile.mkdtemp(prefix="zfsroot-progress-")
        self.path = os.path.join(self._dir, "progress.fifo")
        os.mkfifo(self.path, 0o600)

        self._thread = threading.Thread(target=self._consume, name="progress-consumer", daemon=True)
        self._thread.start()
        # Blocks until the consumer has the read end open.
        self._writer = open(self.path, "w", encoding="utf-8")
        return self

    def send(self, percent: int, message: str) -> None:
        if self._writer is None:
            raise RuntimeError("Progress channel is not open")
        self._writer.write(encode_update(percent, message))
        self._writer.flush()

    def close(self) -> None:
        if self._writer is not None:
            self._writer.close()
            self._writer = None
        if self._thread is not None:
            self._thread.join()
            self._thread = None
        if self._dir is not None:
            shutil.rmtree(self._dir, ignore_errors=True)
            self._dir = None

    def _consume(self) -> None:
        with open(self.path, "r", encoding="utf-8") as f:
            for line in f:
                update = decode_update(line)
                if update is None:
                    logger.warning("Ignoring malformed progress update: %r", line)
                    continue
                try:
                    self._render(*update)
                except Exception:
                    logger.exception("Progress renderer failed")

    def __enter__(self) -> "ProgressChannel":
        return self.open()

    def __exit__(self, *exc) -> None:
        self.close()


class RichGauge:
    """Single bar from 0 to 100 with the current stage message."""

    def __init__(self, console: Optional[Console] = None):
        self._progress = Progress(
            TextColumn("[bold blue]{task.description}"),
            BarColumn(),
            TextColumn("{task.percentage:>3.0f}%"),
            console=console,
        )
        self._task: Optional[TaskID] = None

    def start(self, title: str = "Installing") -> None:
        self._progress.start()
        self._task = self._progress.add_task(title, total=100)

    def update(self, percent: int, message: str) -> None:
        if self._task is None:
            return
        self._progress.update(self._task, completed=percent, description=message)

    def stop(self) -> None:
        self._progress.stop()
        self._task = None
