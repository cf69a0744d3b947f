from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List

from ..config import BOOT_PART
from .chroot import chroot_cmd, efivars
from .command import run_cmd

logger = logging.getLogger(__name__)

ZBM_URL = "https://get.zfsbootmenu.org/efi"
ZBM_DIR = "/boot/efi/EFI/ZBM"
ZBM_COMMANDLINE = "quiet loglevel=4 splash"


@dataclass(frozen=True)
class BootEntry:
    label: str
    loader: str


# Backup first: efibootmgr -c prepends, so the primary ends up first in BootOrder.
ZBM_ENTRIES: List[BootEntry] = [
    BootEntry(label="ZFSBootMenu (Backup)", loader="\\EFI\\ZBM\\VMLINUZ-BACKUP.EFI"),
    BootEntry(label="ZFSBootMenu", loader="\\EFI\\ZBM\\VMLINUZ.EFI"),
]


def format_esp(target_root: str, boot_device: str) -> None:
    # The EFI partition must be FAT32.
    chroot_cmd(target_root, ["mkfs.vfat", "-v", "-F32", boot_device])
    run_cmd(["sync"], check=False)
    chroot_cmd(target_root, ["udevadm", "settle"], check=False)


def install_zfsbootmenu(target_root: str) -> None:
    """Download the ZFSBootMenu EFI image plus a backup copy onto the ESP."""

    chroot_cmd(target_root, ["mount", "/boot/efi"])
    chroot_cmd(target_root, ["mkdir", "-p", ZBM_DIR])
    chroot_cmd(target_root, ["curl", "-o", f"{ZBM_DIR}/VMLINUZ.EFI", "-L", ZBM_URL])
    chroot_cmd(target_root, ["cp", f"{ZBM_DIR}/VMLINUZ.EFI", f"{ZBM_DIR}/VMLINUZ-BACKUP.EFI"])
    logger.info("ZFSBootMenu images installed under %s", ZBM_DIR)


def register_boot_entries(target_root: str, disk: str, entries: List[BootEntry]) -> None:
    with efivars(target_root):
        chroot_cmd(target_root, ["apt", "install", "-y", "efibootmgr"])
        for entry in entries:
            chroot_cmd(
                target_root,
                ["efibootmgr", "-c", "-d", disk, "-p", str(BOOT_PART), "-L", entry.label, "-l", entry.loader],
            )
            logger.info("Registered firmware boot entry %r -> %s", entry.label, entry.loader)


def ensure_esp_mountpoint(target_root: str) -> None:
    Path(target_root, "boot/efi").mkdir(parents=True, exist_ok=True)
