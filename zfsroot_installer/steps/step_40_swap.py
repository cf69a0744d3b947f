from __future__ import annotations

import logging
from pathlib import Path

from ..config import InstallContext
from ..lib.fstab import append_entries, swap_entries
from ..pipeline import PipelineState

logger = logging.getLogger(__name__)


class SwapStep:
    step_id = "40_swap"
    state = PipelineState.SWAP
    percent = 50

    def describe(self, ctx: InstallContext) -> str:
        return "Configuring encrypted swap"

    def enabled(self, ctx: InstallContext) -> bool:
        return True

    def run(self, ctx: InstallContext) -> None:
        logger.debug("Swap device %s", ctx.layout.swap_device)
        crypttab, fstab = swap_entries(ctx.layout.swap_device)
        etc = Path(ctx.target) / "etc"
        append_entries(etc / "crypttab", [crypttab])
        append_entries(etc / "fstab", [fstab])
        logger.info("Swap on %s keyed from /dev/urandom", ctx.layout.swap_device)
