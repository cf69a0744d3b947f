from __future__ import annotations

import logging

from ..config import InstallContext
from ..errors import StageError
from ..lib.block import probe_disk_state
from ..lib.storage import PartitionPlan, partition_disk, wipe_disk
from ..pipeline import PipelineState

logger = logging.getLogger(__name__)


class DiskPrepStep:
    step_id = "10_disk_prep"
    state = PipelineState.DISK_PREP
    percent = 20

    def describe(self, ctx: InstallContext) -> str:
        return f"Preparing disk {ctx.layout.disk}"

    def enabled(self, ctx: InstallContext) -> bool:
        return True

    def run(self, ctx: InstallContext) -> None:
        layout = ctx.layout
        logger.debug(
            "Disk layout: disk=%s id=%s boot=%s swap=%s pool=%s",
            layout.disk,
            layout.disk_id,
            layout.boot_device,
            layout.swap_device,
            layout.pool_device,
        )

        observed = probe_disk_state(layout.disk)
        if observed.mounted:
            raise StageError(f"{layout.disk} has mounted filesystems; reset the disk first")

        plan = PartitionPlan(layout=layout, swap_size_gb=ctx.swap_size_gb, udev_timeout=ctx.config.udev_timeout)
        wipe_disk(plan)
        partition_disk(plan)
        logger.info("Disk %s partitioned (swap %sG)", layout.disk, ctx.swap_size_gb)
