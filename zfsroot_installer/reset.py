"""Teardown paths.

`release_resources` is what a failed run needs: let go of the target tree and the
pool. `reset_disk` goes further and leaves the device with no recognisable pool
or partition metadata. Every command here is best-effort; the starting state is
unknown by definition.
"""

from __future__ import annotations

import logging

from .config import DiskLayout, InstallContext
from .lib.block import is_block_device
from .lib.command import try_cmd
from .lib.storage import settle
from .lib.zfs import destroy_pool, labelclear

logger = logging.getLogger(__name__)


def release_resources(ctx: InstallContext) -> None:
    logger.warning("Releasing %s and pool %s", ctx.target, ctx.pool)
    try_cmd(["umount", "-n", "-R", ctx.target])
    try_cmd(["zpool", "export", ctx.pool])


def reset_disk(
    layout: DiskLayout,
    *,
    pool: str,
    mountpoint: str,
    udev_timeout: int = 30,
    check_device: bool = True,
) -> None:
    """Unwind the device to 'unpartitioned'. Safe to run any number of times."""

    logger.warning("Force resetting disk %s", layout.disk_id)
    try_cmd(["umount", "-n", "-R", mountpoint])
    try_cmd(["swapoff", "-a"])
    try_cmd(["zpool", "export", pool])
    destroy_pool(pool)

    for dev in (*reversed(layout.partitions), layout.disk_id):
        if check_device and not is_block_device(dev):
            continue
        labelclear(dev)

    try_cmd(["wipefs", "-a", layout.disk_id])
    try_cmd(["sgdisk", "--zap-all", layout.disk_id])
    settle(layout.disk_id, timeout=udev_timeout)
    logger.info("Disk %s reset", layout.disk_id)
