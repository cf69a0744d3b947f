import dataclasses

import pytest

from zfsroot_installer.config import (
    NEWEST_VERSION,
    OLD_RELEASES_MIRROR,
    RELEASE_VERSIONS,
    Credentials,
    DiskLayout,
    InstallConfig,
    default_mirror,
    freeze,
    partition_path,
    release_version,
)
from zfsroot_installer.errors import ConfigError, DiskAssignmentError


@pytest.mark.parametrize("release", sorted(RELEASE_VERSIONS))
def test_release_version_known(release):
    assert release_version(release) == RELEASE_VERSIONS[release]
    assert release_version(release)


def test_release_version_unknown_falls_back_to_newest():
    assert release_version("plucky") == NEWEST_VERSION


def test_default_mirror_routes_eol_release_to_old_releases():
    assert default_mirror("mantic", "http://archive.ubuntu.com/ubuntu") == OLD_RELEASES_MIRROR
    assert default_mirror("noble", "http://archive.ubuntu.com/ubuntu/").startswith("http://archive.ubuntu.com")


def test_default_mirror_keeps_user_choice():
    assert default_mirror("mantic", "http://mirror.example/ubuntu") == "http://mirror.example/ubuntu"


@pytest.mark.parametrize(
    "disk_id,expected",
    [
        ("/dev/disk/by-id/ata-X", "/dev/disk/by-id/ata-X-part3"),
        ("/dev/nvme0n1", "/dev/nvme0n1p3"),
        ("/dev/sda", "/dev/sda3"),
    ],
)
def test_partition_path(disk_id, expected):
    assert partition_path(disk_id, 3) == expected


def test_layout_partitions_distinct_and_from_same_id(layout):
    parts = layout.partitions
    assert len(set(parts)) == 3
    assert all(p.startswith(layout.disk_id) for p in parts)
    assert layout.boot_device.endswith("-part1")
    assert layout.swap_device.endswith("-part2")
    assert layout.pool_device.endswith("-part3")


def test_assign_disk_is_assign_once(layout):
    cfg = InstallConfig()
    cfg.assign_disk(layout)
    cfg.assign_disk(DiskLayout.derive(layout.disk, layout.disk_id))
    assert cfg.disk_layout is layout

    other = DiskLayout.derive("/dev/sdy", "/dev/disk/by-id/ata-OTHER")
    with pytest.raises(DiskAssignmentError):
        cfg.assign_disk(other)
    assert cfg.disk_layout is layout

    cfg.release_disk()
    cfg.assign_disk(other)
    assert cfg.disk_layout is other


def test_freeze_requires_disk_and_secrets(layout):
    cfg = InstallConfig()
    with pytest.raises(ConfigError, match="disk"):
        freeze(cfg, Credentials(user_password="x", passphrase="y"), memory_gb=4)

    cfg.assign_disk(layout)
    with pytest.raises(ConfigError, match="password"):
        freeze(cfg, Credentials(passphrase="y"), memory_gb=4)
    with pytest.raises(ConfigError, match="passphrase"):
        freeze(cfg, Credentials(user_password="x"), memory_gb=4)

    cfg.encryption = False
    ctx = freeze(cfg, Credentials(user_password="x"), memory_gb=4)
    assert ctx.swap_size_gb == 4


def test_freeze_rejects_short_passphrase(layout):
    cfg = InstallConfig()
    cfg.assign_disk(layout)
    with pytest.raises(ConfigError, match="at least 8"):
        freeze(cfg, Credentials(user_password="x", passphrase="abc"), memory_gb=4)

    ctx = freeze(cfg, Credentials(user_password="x", passphrase="12345678"), memory_gb=4)
    assert ctx.credentials.passphrase == "12345678"

    cfg.encryption = False
    freeze(cfg, Credentials(user_password="x", passphrase="abc"), memory_gb=4)


def test_context_is_a_snapshot(context_factory):
    ctx = context_factory(hostname="first")
    with pytest.raises(dataclasses.FrozenInstanceError):
        ctx.layout = None
    assert ctx.config.hostname == "first"
    assert ctx.root_fs == "rpool/ROOT/ubuntu"


def test_context_snapshot_ignores_later_edits(layout):
    cfg = InstallConfig()
    cfg.assign_disk(layout)
    ctx = freeze(cfg, Credentials(user_password="x", passphrase="pool-passphrase"), memory_gb=4)
    cfg.hostname = "changed"
    assert ctx.config.hostname == "ubuntu-zfs"


def test_swap_size_override_wins(layout):
    cfg = InstallConfig(swap_size_gb=2)
    cfg.assign_disk(layout)
    ctx = freeze(cfg, Credentials(user_password="x", passphrase="pool-passphrase"), memory_gb=32)
    assert ctx.swap_size_gb == 2


def test_credentials_not_in_repr():
    creds = Credentials(user_password="secret-a", passphrase="secret-b")
    assert "secret" not in repr(creds)


def test_validate_rejects_unknown_distro():
    with pytest.raises(ConfigError):
        InstallConfig(distro="kubuntu").validate()
