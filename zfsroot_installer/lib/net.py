from __future__ import annotations

import logging

from .command import run_cmd

logger = logging.getLogger(__name__)


def can_resolve(host: str) -> bool:
    """Best-effort name resolution check."""

    r = run_cmd(["getent", "hosts", host], check=False)
    return r.returncode == 0
