from __future__ import annotations

import logging
from typing import List

from ..config import InstallContext
from ..errors import InstallInterrupted
from ..lib.drivers import install_rtl8821ce
from ..lib.env import PATHS
from ..lib.pkg import apt_install, apt_update
from ..lib.system import (
    add_system_groups,
    configure_network,
    create_user,
    disable_log_compression,
    ensure_pool_cache,
    lock_root,
    report_versions,
    update_initramfs,
)
from ..pipeline import PipelineState

logger = logging.getLogger(__name__)

EXTRA_PACKAGES = ["cryptsetup-initramfs", "openssh-server"]


def distro_packages(ctx: InstallContext) -> List[str]:
    cfg = ctx.config
    bundle = f"ubuntu-{cfg.distro}"
    if cfg.minimal_install:
        bundle += "-minimal"
    return [bundle, *EXTRA_PACKAGES]


class FinalizeStep:
    step_id = "60_finalize"
    state = PipelineState.FINALIZE
    percent = 90

    def describe(self, ctx: InstallContext) -> str:
        return f"Finalizing {ctx.config.distro} system for {ctx.config.username}"

    def enabled(self, ctx: InstallContext) -> bool:
        return True

    def run(self, ctx: InstallContext) -> None:
        cfg = ctx.config
        root = ctx.target

        add_system_groups(root)
        configure_network(root, cfg.distro)
        create_user(root, cfg.username, ctx.credentials.user_password, passwordless_sudo=cfg.passwordless_sudo)

        apt_update(root)
        apt_install(root, distro_packages(ctx))
        disable_log_compression(root)

        if cfg.rtl8821ce:
            try:
                install_rtl8821ce(root, ctx.pool)
            except InstallInterrupted:
                raise
            except Exception:
                logger.warning("RTL8821CE driver install failed; continuing without it", exc_info=True)

        ensure_pool_cache(root, ctx.pool, PATHS.host_zfs_dir)
        update_initramfs(root)
        lock_root(root)
        report_versions(root)
