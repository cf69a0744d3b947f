"""Configuration store.

`InstallConfig` is edited by the interaction layer; `InstallContext` is the frozen
snapshot every pipeline stage reads. Partition paths live in `DiskLayout` and are
derived exactly once per device.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, fields, replace
from typing import Any, Dict, Optional

from .errors import ConfigError, DiskAssignmentError
from .lib.env import PATHS

logger = logging.getLogger(__name__)


RELEASE_VERSIONS = {
    "noble": "24.04",
    "mantic": "23.10",
    "jammy": "22.04",
}
NEWEST_VERSION = "24.04"
LTS_RELEASES = frozenset({"jammy", "noble"})
# Pools for these releases are pinned to the feature set their OpenZFS understands.
POOL_COMPATIBILITY = {"jammy": "openzfs-2.1-linux"}

DEFAULT_MIRROR = "http://archive.ubuntu.com/ubuntu"
OLD_RELEASES_MIRROR = "http://old-releases.ubuntu.com/ubuntu/"
EOL_RELEASES = frozenset({"mantic"})

DISTROS = ("desktop", "server")

# OpenZFS refuses keyformat=passphrase keys shorter than this.
MIN_PASSPHRASE_LEN = 8

BOOT_PART = 1
SWAP_PART = 2
POOL_PART = 3


def check_passphrase(passphrase: str) -> None:
    if not passphrase:
        raise ConfigError("Encryption is enabled but no passphrase is set")
    if len(passphrase) < MIN_PASSPHRASE_LEN:
        raise ConfigError(f"Pool passphrase must be at least {MIN_PASSPHRASE_LEN} characters")


def release_version(release: str) -> str:
    return RELEASE_VERSIONS.get(release, NEWEST_VERSION)


def default_mirror(release: str, mirror_url: str) -> str:
    """Keep a user-chosen mirror; otherwise route end-of-life releases to old-releases."""

    if mirror_url and mirror_url.rstrip("/") != DEFAULT_MIRROR:
        return mirror_url
    if release in EOL_RELEASES or "old" in release:
        return OLD_RELEASES_MIRROR
    return DEFAULT_MIRROR + "/"


def partition_path(disk_id: str, n: int) -> str:
    if "/disk/by-" in disk_id:
        return f"{disk_id}-part{n}"
    # nvme/mmcblk devices use p suffix
    if disk_id.endswith(tuple("0123456789")):
        return f"{disk_id}p{n}"
    return f"{disk_id}{n}"


@dataclass(frozen=True)
class DiskLayout:
    disk: str
    disk_id: str
    boot_device: str
    swap_device: str
    pool_device: str

    @classmethod
    def derive(cls, disk: str, disk_id: str) -> "DiskLayout":
        return cls(
            disk=disk,
            disk_id=disk_id,
            boot_device=partition_path(disk_id, BOOT_PART),
            swap_device=partition_path(disk_id, SWAP_PART),
            pool_device=partition_path(disk_id, POOL_PART),
        )

    @property
    def partitions(self) -> tuple[str, str, str]:
        return (self.boot_device, self.swap_device, self.pool_device)


@dataclass
class Credentials:
    user_password: str = field(default="", repr=False)
    passphrase: str = field(default="", repr=False)


@dataclass
class InstallConfig:
    distro: str = "desktop"
    release: str = "noble"
    encryption: bool = True
    hwe_kernel: bool = True
    minimal_install: bool = False
    passwordless_sudo: bool = False
    install_refind: bool = False
    rtl8821ce: bool = False
    hostname: str = "ubuntu-zfs"
    username: str = "ubuntu"
    locale: str = "en_US.UTF-8"
    timezone: str = "America/Chicago"
    mirror_url: str = DEFAULT_MIRROR
    root_dataset: str = "ubuntu"
    pool_name: str = "rpool"
    mountpoint: str = PATHS.target_root
    debug: bool = False
    udev_timeout: int = 30
    pool_create_timeout: int = 180
    swap_size_gb: Optional[int] = None
    disk_layout: Optional[DiskLayout] = None

    @property
    def version(self) -> str:
        return release_version(self.release)

    def assign_disk(self, layout: DiskLayout) -> None:
        """Bind the run to one device. Re-assigning the same device is a no-op."""

        if self.disk_layout is not None:
            if self.disk_layout.disk == layout.disk and self.disk_layout.disk_id == layout.disk_id:
                return
            raise DiskAssignmentError(
                f"{self.disk_layout.disk} is already selected; release it before choosing {layout.disk}"
            )
        self.disk_layout = layout
        logger.info(
            "Disk assigned: %s (id=%s boot=%s swap=%s pool=%s)",
            layout.disk,
            layout.disk_id,
            layout.boot_device,
            layout.swap_device,
            layout.pool_device,
        )

    def release_disk(self) -> None:
        if self.disk_layout is not None:
            logger.info("Disk released: %s", self.disk_layout.disk)
        self.disk_layout = None

    def validate(self) -> None:
        if self.distro not in DISTROS:
            raise ConfigError(f"distro must be one of {DISTROS}, got {self.distro!r}")
        if self.release not in RELEASE_VERSIONS:
            logger.warning("Unknown release %r; package versions fall back to %s", self.release, NEWEST_VERSION)
        for name in ("hostname", "username", "root_dataset", "pool_name", "mountpoint"):
            if not str(getattr(self, name)).strip():
                raise ConfigError(f"{name} must not be empty")

    def summary(self) -> Dict[str, Any]:
        out = {f.name: getattr(self, f.name) for f in fields(self) if f.name != "disk_layout"}
        out["disk"] = self.disk_layout.disk if self.disk_layout else None
        return out


@dataclass(frozen=True)
class InstallContext:
    """Everything a stage may read. Built once, right before the pipeline starts."""

    config: InstallConfig
    layout: DiskLayout
    credentials: Credentials = field(repr=False)
    swap_size_gb: int
    log_path: str = PATHS.log_default

    @property
    def target(self) -> str:
        return self.config.mountpoint

    @property
    def pool(self) -> str:
        return self.config.pool_name

    @property
    def root_fs(self) -> str:
        return f"{self.config.pool_name}/ROOT/{self.config.root_dataset}"

    @property
    def mirror(self) -> str:
        return default_mirror(self.config.release, self.config.mirror_url)


def freeze(
    config: InstallConfig,
    credentials: Credentials,
    *,
    memory_gb: int,
    log_path: str = PATHS.log_default,
) -> InstallContext:
    """Snapshot the config for the pipeline; later menu edits cannot leak in."""

    config.validate()
    if config.disk_layout is None:
        raise ConfigError("No installation disk selected")
    if not credentials.user_password:
        raise ConfigError("User password is not set")
    if config.encryption:
        check_passphrase(credentials.passphrase)

    snapshot = replace(config)
    return InstallContext(
        config=snapshot,
        layout=config.disk_layout,
        credentials=replace(credentials),
        swap_size_gb=config.swap_size_gb or memory_gb,
        log_path=log_path,
    )
