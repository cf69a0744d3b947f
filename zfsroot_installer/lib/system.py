from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, Tuple

import yaml

from .chroot import chroot_cmd, chroot_shell
from .command import run_cmd

logger = logging.getLogger(__name__)

SYSTEM_GROUPS = ("lpadmin", "lxd", "sambashare")
USER_GROUPS = ("adm", "cdrom", "dip", "lpadmin", "lxd", "plugdev", "sambashare", "sudo")
ZFS_SERVICES = ("zfs.target", "zfs-import-cache", "zfs-mount", "zfs-import.target")

_COMPRESS = re.compile(r"(^|[^#y])(compress)", re.MULTILINE)


def write_file(root: str, rel: str, contents: str, *, mode: int | None = None) -> Path:
    p = Path(root) / rel.lstrip("/")
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(contents, encoding="utf-8")
    if mode is not None:
        os.chmod(p, mode)
    logger.info("Wrote %s", str(p))
    return p


def write_hostname(root: str, hostname: str) -> None:
    write_file(root, "/etc/hostname", hostname + "\n")
    hosts = Path(root) / "etc/hosts"
    hosts.parent.mkdir(parents=True, exist_ok=True)
    with hosts.open("a", encoding="utf-8") as f:
        f.write(f"127.0.1.1       {hostname}\n")


def configure_locale(root: str, locale: str, timezone: str) -> None:
    chroot_cmd(root, ["locale-gen", "en_US.UTF-8", locale])
    write_file(root, "/etc/default/locale", f'LANG="{locale}"\n')
    chroot_cmd(root, ["ln", "-fs", f"/usr/share/zoneinfo/{timezone}", "/etc/localtime"])
    chroot_cmd(root, ["dpkg-reconfigure", "-f", "noninteractive", "keyboard-configuration"])


def netplan_config(distro: str) -> Tuple[str, Dict[str, Any]]:
    """Desktop hands interfaces to NetworkManager; server gets networkd + DHCP."""

    if distro == "desktop":
        return "01-network-manager-all.yaml", {"network": {"version": 2, "renderer": "NetworkManager"}}

    ethernets = {
        pattern: {"match": {"name": pattern}, "dhcp4": True}
        for pattern in ("enp*", "eth*")
    }
    return "01-netcfg.yaml", {"network": {"version": 2, "renderer": "networkd", "ethernets": ethernets}}


def configure_network(root: str, distro: str) -> Path:
    name, doc = netplan_config(distro)
    # netplan refuses world-readable configs.
    return write_file(root, f"/etc/netplan/{name}", yaml.safe_dump(doc, sort_keys=False), mode=0o600)


def add_system_groups(root: str) -> None:
    chroot_cmd(root, ["cp", "/usr/share/systemd/tmp.mount", "/etc/systemd/system/"])
    chroot_cmd(root, ["systemctl", "enable", "tmp.mount"])
    for group in SYSTEM_GROUPS:
        chroot_cmd(root, ["addgroup", "--system", group])


def sudoers_line(username: str, passwordless: bool) -> str:
    if passwordless:
        return f"{username} ALL=(ALL) NOPASSWD: ALL\n"
    return f"{username} ALL=(ALL) ALL\n"


def create_user(root: str, username: str, password: str, *, passwordless_sudo: bool) -> None:
    chroot_cmd(root, ["adduser", "--disabled-password", "--gecos", "", username])
    chroot_cmd(root, ["cp", "-a", "/etc/skel/.", f"/home/{username}"])
    chroot_cmd(root, ["chown", "-R", f"{username}:{username}", f"/home/{username}"])
    chroot_cmd(root, ["usermod", "-a", "-G", ",".join(USER_GROUPS), username])

    # Drop-in only; /etc/sudoers itself is never touched.
    write_file(root, f"/etc/sudoers.d/{username}", sudoers_line(username, passwordless_sudo), mode=0o440)
    chroot_cmd(root, ["chown", "root:root", f"/etc/sudoers.d/{username}"])

    # Password goes over stdin, never argv.
    chroot_cmd(root, ["chpasswd"], input_text=f"{username}:{password}\n")
    logger.info("Created user %s (passwordless sudo=%s)", username, passwordless_sudo)


def enable_zfs_services(root: str) -> None:
    for unit in ZFS_SERVICES:
        chroot_cmd(root, ["systemctl", "enable", unit])
    write_file(root, "/etc/initramfs-tools/conf.d/umask.conf", "UMASK=0077\n")
    chroot_cmd(root, ["chmod", "1777", "/tmp", "/var/tmp"], check=False)


def disable_log_compression(root: str) -> int:
    """Comment out `compress` in logrotate configs; the pool already compresses."""

    changed = 0
    d = Path(root) / "etc/logrotate.d"
    if not d.is_dir():
        return changed
    for f in sorted(d.iterdir()):
        if not f.is_file():
            continue
        text = f.read_text(encoding="utf-8")
        new = _COMPRESS.sub(r"\1#\2", text)
        if new != text:
            f.write_text(new, encoding="utf-8")
            changed += 1
    logger.info("Disabled compression in %d logrotate configs", changed)
    return changed


def ensure_pool_cache(root: str, pool: str, host_zfs_dir: str) -> None:
    """In-initramfs import without zpool.cache fails at random; make sure it is there."""

    target_cache = Path(root) / "etc/zfs/zpool.cache"
    if target_cache.exists():
        logger.info("zpool.cache already present in target")
        return
    run_cmd(["zpool", "set", f"cachefile={host_zfs_dir}/zpool.cache", pool])
    target_cache.parent.mkdir(parents=True, exist_ok=True)
    run_cmd(["cp", f"{host_zfs_dir}/zpool.cache", str(target_cache)])


def update_initramfs(root: str) -> None:
    chroot_cmd(root, ["update-initramfs", "-c", "-k", "all"])


def lock_root(root: str) -> bool:
    """Lock root's password once. Returns False when it was already locked."""

    r = chroot_cmd(root, ["passwd", "-S", "root"], check=False)
    fields = r.stdout.split()
    if len(fields) > 1 and fields[1] == "L":
        logger.info("Root account already locked")
        return False
    chroot_cmd(root, ["passwd", "-l", "root"])
    return True


def report_versions(root: str) -> None:
    chroot_cmd(root, ["lsb_release", "-a"], check=False)
    chroot_shell(root, "dpkg -l | grep linux-image | head -5", check=False)
