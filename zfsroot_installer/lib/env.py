from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Paths:
    target_root: str = "/mnt"
    log_default: str = "/tmp/ubuntu-zfs-root-installer.log"
    efi_firmware: str = "/sys/firmware/efi"
    disk_by_id: str = "/dev/disk/by-id"
    sys_block: str = "/sys/block"
    meminfo: str = "/proc/meminfo"
    host_zfs_dir: str = "/etc/zfs"


PATHS = Paths()

# Host tooling the pipeline shells out to.
REQUIRED_TOOLS = ("sgdisk", "lsblk", "zpool", "zfs", "blkid", "wipefs", "partprobe", "udevadm", "debootstrap")
PREFLIGHT_PACKAGES = ("gdisk", "zfsutils-linux", "debootstrap")
HOST_PACKAGES = ("debootstrap", "gdisk", "zfsutils-linux", "curl", "git")

APT_ENV = {"DEBIAN_FRONTEND": "noninteractive"}
