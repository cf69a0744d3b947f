from __future__ import annotations

import logging
from pathlib import Path
from typing import List

from ..config import LTS_RELEASES, InstallContext
from ..lib.chroot import mount_chroot_binds
from ..lib.command import run_cmd
from ..lib.env import PATHS
from ..lib.pkg import apt_dist_upgrade, apt_has_package, apt_install, apt_update, debootstrap_rootfs, write_sources_list
from ..lib.system import configure_locale, enable_zfs_services, write_hostname
from ..pipeline import PipelineState

logger = logging.getLogger(__name__)

BASE_TOOLS = ["locales", "keyboard-configuration", "console-setup", "curl", "git"]
ZFS_PACKAGES = ["dosfstools", "zfs-initramfs", "zfsutils-linux"]


def kernel_package(ctx: InstallContext) -> str:
    cfg = ctx.config
    if cfg.hwe_kernel and cfg.release in LTS_RELEASES:
        hwe = f"linux-generic-hwe-{cfg.version}"
        if apt_has_package(ctx.target, hwe):
            return hwe
        logger.warning("%s not available from %s; using linux-generic", hwe, ctx.mirror)
    return "linux-generic"


def meta_packages(ctx: InstallContext) -> List[str]:
    cfg = ctx.config
    if cfg.minimal_install:
        return [f"ubuntu-{cfg.distro}-minimal"]
    return ["ubuntu-standard"]


def seed_host_files(ctx: InstallContext) -> None:
    """Copy host identity into the target so it imports its own pool unattended."""

    target = Path(ctx.target)
    (target / "etc/zfs").mkdir(parents=True, exist_ok=True)
    run_cmd(["cp", "/etc/hostid", str(target / "etc/hostid")])
    run_cmd(["cp", "-L", "/etc/resolv.conf", str(target / "etc/resolv.conf")])

    cache = Path(PATHS.host_zfs_dir, "zpool.cache")
    if cache.exists():
        run_cmd(["cp", str(cache), str(target / "etc/zfs/zpool.cache")])
    else:
        logger.warning("No %s on the host yet; it is regenerated during finalize", cache)


class BaseInstallStep:
    step_id = "30_base_install"
    state = PipelineState.BASE_INSTALL
    percent = 40

    def describe(self, ctx: InstallContext) -> str:
        return f"Installing Ubuntu {ctx.config.version} ({ctx.config.release}) base system"

    def enabled(self, ctx: InstallContext) -> bool:
        return True

    def run(self, ctx: InstallContext) -> None:
        cfg = ctx.config
        root = ctx.target

        debootstrap_rootfs(target_root=root, suite=cfg.release, mirror=ctx.mirror)
        seed_host_files(ctx)
        mount_chroot_binds(root)

        write_hostname(root, cfg.hostname)
        write_sources_list(root, mirror=ctx.mirror, suite=cfg.release)

        # Upgrade before anything else so nothing is fetched twice.
        apt_update(root)
        apt_dist_upgrade(root)

        apt_install(root, [kernel_package(ctx), *BASE_TOOLS], with_recommends=False)
        apt_install(root, meta_packages(ctx))
        configure_locale(root, cfg.locale, cfg.timezone)

        apt_install(root, ZFS_PACKAGES)
        enable_zfs_services(root)
        logger.info("Base system installed into %s", root)
