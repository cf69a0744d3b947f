from __future__ import annotations

import logging
import os
import shutil
from typing import Callable, List, Optional, Sequence

from .errors import PreflightError
from .lib.env import PATHS, PREFLIGHT_PACKAGES, REQUIRED_TOOLS
from .lib.firmware import is_uefi
from .lib.net import can_resolve
from .lib.pkg import host_apt_install

logger = logging.getLogger(__name__)

MIRROR_HOST = "archive.ubuntu.com"


def missing_tools(tools: Sequence[str], which: Optional[Callable[[str], Optional[str]]] = None) -> List[str]:
    which = which or shutil.which
    return [t for t in tools if which(t) is None]


def run_preflight(*, euid: Optional[int] = None, efi_dir: str = PATHS.efi_firmware) -> List[str]:
    """Check the live environment before anything destructive.

    Only a missing privilege is fatal. Missing tools trigger an install attempt;
    firmware and network problems come back as warnings for the operator.
    """

    if (os.geteuid() if euid is None else euid) != 0:
        raise PreflightError("This installer must be run as root")

    warnings: List[str] = []

    missing = missing_tools(REQUIRED_TOOLS)
    if missing:
        logger.warning("Missing tools: %s; attempting to install prerequisites", " ".join(missing))
        host_apt_install(PREFLIGHT_PACKAGES, check=False)
        still = missing_tools(REQUIRED_TOOLS)
        if still:
            warnings.append(f"Still missing after install attempt: {' '.join(still)}")

    if not is_uefi(efi_dir):
        warnings.append("This installer targets UEFI systems. Please boot in UEFI mode.")

    if not can_resolve(MIRROR_HOST):
        warnings.append(f"Cannot resolve {MIRROR_HOST}. Ensure network is connected before installation.")

    for w in warnings:
        logger.warning("Preflight: %s", w)
    return warnings
