from __future__ import annotations

import logging
from pathlib import Path

from ..config import InstallContext
from ..errors import StageError
from ..lib.block import get_uuid
from ..lib.bootloader import (
    ZBM_COMMANDLINE,
    ZBM_ENTRIES,
    ensure_esp_mountpoint,
    format_esp,
    install_zfsbootmenu,
    register_boot_entries,
)
from ..lib.firmware import is_uefi
from ..lib.fstab import append_entries, esp_entry
from ..lib.zfs import set_property
from ..pipeline import PipelineState

logger = logging.getLogger(__name__)


class ZfsBootMenuStep:
    step_id = "50_zfsbootmenu"
    state = PipelineState.BOOTLOADER_PRIMARY
    percent = 70

    def describe(self, ctx: InstallContext) -> str:
        return "Installing ZFSBootMenu"

    def enabled(self, ctx: InstallContext) -> bool:
        return True

    def run(self, ctx: InstallContext) -> None:
        if not is_uefi():
            raise StageError("UEFI firmware not detected; ZFSBootMenu needs a UEFI boot")

        root = ctx.target
        layout = ctx.layout
        logger.debug("Boot device %s on %s", layout.boot_device, layout.disk)

        set_property(f"{ctx.pool}/ROOT", "org.zfsbootmenu:commandline", ZBM_COMMANDLINE)
        set_property(ctx.pool, "org.zfsbootmenu:keysource", ctx.root_fs)

        ensure_esp_mountpoint(root)
        format_esp(root, layout.boot_device)
        # by-id links can shift between boots; the filesystem UUID does not.
        append_entries(Path(root) / "etc/fstab", [esp_entry(get_uuid(layout.boot_device))])

        install_zfsbootmenu(root)
        register_boot_entries(root, layout.disk, ZBM_ENTRIES)
