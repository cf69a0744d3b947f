from __future__ import annotations

import logging

from ..config import InstallContext
from ..lib.command import run_cmd, try_cmd
from ..lib.zfs import export_pool
from ..pipeline import PipelineState

logger = logging.getLogger(__name__)


class CleanupStep:
    step_id = "90_cleanup"
    state = PipelineState.CLEANUP
    percent = 100

    def describe(self, ctx: InstallContext) -> str:
        return "Unmounting and exporting pool"

    def enabled(self, ctx: InstallContext) -> bool:
        return True

    def run(self, ctx: InstallContext) -> None:
        try_cmd(["umount", "-n", "-R", ctx.target])
        run_cmd(["sync"], check=False)
        # Late unmounts (efivars, devpts) can hold the first pass open.
        try_cmd(["umount", "-n", "-R", ctx.target])
        export_pool(ctx.pool)
        logger.info("Pool %s exported; installation complete", ctx.pool)
