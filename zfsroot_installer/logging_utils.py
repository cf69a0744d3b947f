from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

from .lib.env import PATHS

DEFAULT_LOG_PATH = PATHS.log_default


def _formatter() -> logging.Formatter:
    return logging.Formatter(
        fmt="[%(asctime)s] %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def add_console_handler(level: int = logging.DEBUG) -> logging.Handler:
    """Mirror log records to stderr (used by the debug toggle)."""

    console = logging.StreamHandler()
    console.setFormatter(_formatter())
    console.setLevel(level)
    logging.getLogger().addHandler(console)
    return console


def configure_logging(
    log_path: str = DEFAULT_LOG_PATH,
    level: int = logging.INFO,
    also_console: bool = False,
) -> str:
    """Configure logging.

    Every executed command and its output lands in the log file at DEBUG and above;
    `level` only governs the optional console handler (the menu owns the terminal
    otherwise).

    Notes:
    - When the requested path is not writable we fall back to a file in the
      working directory and return that path, so error dialogs point at the real log.

    Returns the actual file path being used.
    """

    logger = logging.getLogger()
    logger.setLevel(logging.DEBUG)

    # Avoid duplicate handlers if configure_logging() is called multiple times.
    if getattr(logger, "_zfsroot_configured", False):
        return getattr(logger, "_zfsroot_log_path", log_path)

    fmt = _formatter()

    chosen_path = log_path
    file_handler: Optional[logging.Handler] = None
    try:
        Path(os.path.dirname(log_path) or ".").mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path)
    except OSError:
        chosen_path = str(Path.cwd() / Path(log_path).name)
        file_handler = logging.FileHandler(chosen_path)
    file_handler.setFormatter(fmt)
    file_handler.setLevel(logging.DEBUG)
    logger.addHandler(file_handler)

    if also_console:
        add_console_handler(level)

    setattr(logger, "_zfsroot_configured", True)
    setattr(logger, "_zfsroot_log_path", chosen_path)

    logging.getLogger(__name__).info(
        "Logging initialized (requested=%s, actual=%s)", log_path, chosen_path
    )
    return chosen_path
