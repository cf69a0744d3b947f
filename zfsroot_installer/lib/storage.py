from __future__ import annotations

import logging
from dataclasses import dataclass

from ..config import BOOT_PART, POOL_PART, SWAP_PART, DiskLayout
from .command import run_cmd, try_cmd

logger = logging.getLogger(__name__)

# gdisk type codes
TYPE_EFI = "EF00"
TYPE_SWAP = "8200"
TYPE_ZFS = "BF00"


@dataclass(frozen=True)
class PartitionPlan:
    layout: DiskLayout
    swap_size_gb: int
    esp_size_mib: int = 512
    tail_gap_mib: int = 10
    udev_timeout: int = 30

    def sgdisk_args(self) -> list[list[str]]:
        return [
            ["-n", f"{BOOT_PART}:1m:+{self.esp_size_mib}m", "-t", f"{BOOT_PART}:{TYPE_EFI}"],
            ["-n", f"{SWAP_PART}:0:+{self.swap_size_gb}G", "-t", f"{SWAP_PART}:{TYPE_SWAP}"],
            ["-n", f"{POOL_PART}:0:-{self.tail_gap_mib}m", "-t", f"{POOL_PART}:{TYPE_ZFS}"],
        ]


def settle(disk: str, *, timeout: int) -> None:
    """Re-read the partition table and wait for udev; both best-effort."""

    run_cmd(["sync"], check=False)
    try_cmd(["partprobe", disk])
    try_cmd(["udevadm", "settle", f"--timeout={timeout}"])


def wipe_disk(plan: PartitionPlan) -> None:
    disk = plan.layout.disk_id
    run_cmd(["wipefs", "-a", disk])
    # Non-SSD media reject discard.
    r = run_cmd(["blkdiscard", "-f", disk], check=False)
    if r.returncode != 0:
        logger.warning("blkdiscard unsupported on %s; continuing", disk)
    run_cmd(["sgdisk", "--zap-all", disk])
    settle(disk, timeout=plan.udev_timeout)


def partition_disk(plan: PartitionPlan) -> DiskLayout:
    """Create boot/swap/pool partitions in fixed order.

    Layout:
    - 1: EFI system partition, 512 MiB
    - 2: swap, sized to physical memory
    - 3: ZFS pool, rest of the disk minus a small trailing gap
    """

    disk = plan.layout.disk_id
    logger.info("Partitioning disk=%s swap=%sG", disk, plan.swap_size_gb)

    for args in plan.sgdisk_args():
        run_cmd(["sgdisk", *args, disk])

    settle(disk, timeout=plan.udev_timeout)
    return plan.layout
