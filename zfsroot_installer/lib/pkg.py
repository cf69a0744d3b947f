from __future__ import annotations

import logging
from pathlib import Path
from typing import Sequence

from .chroot import chroot_cmd
from .command import run_cmd
from .env import APT_ENV

logger = logging.getLogger(__name__)

COMPONENTS = ("main", "restricted", "universe", "multiverse")
POCKETS = ("", "-updates", "-security", "-backports")


def debootstrap_rootfs(
    *,
    target_root: str,
    suite: str,
    mirror: str,
) -> None:
    run_cmd(
        [
            "debootstrap",
            "--include=ubuntu-keyring,ca-certificates",
            f"--components={','.join(COMPONENTS)}",
            "--variant=minbase",
            suite,
            target_root,
            mirror,
        ]
    )


def host_apt_install(packages: Sequence[str], *, check: bool = True) -> None:
    """Install tooling into the live environment itself."""

    run_cmd(["apt", "update"], env=APT_ENV, check=check)
    run_cmd(["apt", "install", "-y", *packages], env=APT_ENV, check=check)


def apt_update(target_root: str) -> None:
    chroot_cmd(target_root, ["apt", "update"])


def apt_dist_upgrade(target_root: str) -> None:
    chroot_cmd(target_root, ["apt", "dist-upgrade", "-y"])


def apt_install(
    target_root: str,
    packages: Sequence[str],
    *,
    with_recommends: bool = True,
) -> None:
    if not packages:
        return
    argv = ["apt", "install", "-y"]
    if not with_recommends:
        argv.append("--no-install-recommends")
    chroot_cmd(target_root, [*argv, *packages])


def apt_has_package(target_root: str, package: str) -> bool:
    """Return True if apt knows about a package name in the target root.

    HWE kernel metas, for example, only exist on some mirrors/releases.
    """
    r = chroot_cmd(target_root, ["apt-cache", "show", package], check=False)
    return r.returncode == 0


def render_sources_list(mirror: str, suite: str) -> str:
    mirror = mirror.rstrip("/")
    comps = " ".join(COMPONENTS)
    lines = ["# Uncomment the deb-src entries if you need source packages", ""]
    for pocket in POCKETS:
        lines.append(f"deb {mirror} {suite}{pocket} {comps}")
        lines.append(f"# deb-src {mirror} {suite}{pocket} {comps}")
        lines.append("")
    return "\n".join(lines)


def write_sources_list(target_root: str, *, mirror: str, suite: str) -> None:
    p = Path(target_root) / "etc/apt/sources.list"
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(render_sources_list(mirror, suite), encoding="utf-8")
    logger.info("Configured apt sources: %s (%s)", mirror, suite)
