from __future__ import annotations

import logging
from typing import Callable

from ..config import InstallContext
from ..errors import InstallInterrupted
from ..lib.refind import add_menu_entries, install_refind, install_theme
from ..pipeline import PipelineState

logger = logging.getLogger(__name__)


def _optional(what: str, fn: Callable[[str], None], root: str) -> bool:
    """Run one rEFInd piece; a failure is logged and reported, never raised."""

    try:
        fn(root)
    except InstallInterrupted:
        raise
    except Exception:
        logger.warning("%s failed; continuing without it", what, exc_info=True)
        return False
    return True


class RefindStep:
    """Secondary boot menu. ZFSBootMenu is already registered, so nothing here is fatal."""

    step_id = "55_refind"
    state = PipelineState.BOOTLOADER_SECONDARY
    percent = 80

    def describe(self, ctx: InstallContext) -> str:
        return "Installing rEFInd boot menu"

    def enabled(self, ctx: InstallContext) -> bool:
        return ctx.config.install_refind

    def run(self, ctx: InstallContext) -> None:
        root = ctx.target
        if not _optional("rEFInd install", install_refind, root):
            return
        _optional("rEFInd theme install", install_theme, root)
        _optional("rEFInd menu entries", add_menu_entries, root)
