from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from ..errors import CommandError, PoolCreationError
from .command import run_cmd, try_cmd
from .diagnostics import collect_diagnostics

logger = logging.getLogger(__name__)

POOL_PROPERTIES = ["-o", "ashift=12", "-o", "autotrim=on"]
FS_PROPERTIES = [
    "-O", "compression=lz4",
    "-O", "acltype=posixacl",
    "-O", "xattr=sa",
    "-O", "relatime=on",
]
ENCRYPTION_PROPERTIES = [
    "-O", "encryption=aes-256-gcm",
    "-O", "keylocation=prompt",
    "-O", "keyformat=passphrase",
]


@dataclass(frozen=True)
class Dataset:
    name: str
    props: Dict[str, str] = field(default_factory=dict)

    def argv(self, pool: str) -> List[str]:
        argv = ["zfs", "create"]
        for k, v in self.props.items():
            argv += ["-o", f"{k}={v}"]
        return argv + [f"{pool}/{self.name}"]


def root_datasets(root_dataset: str) -> List[Dataset]:
    """Created before the re-import; ROOT is a container that never mounts."""

    return [
        Dataset("ROOT", {"mountpoint": "none", "canmount": "off"}),
        Dataset(f"ROOT/{root_dataset}", {"mountpoint": "/", "canmount": "noauto"}),
        Dataset("home", {"mountpoint": "/home"}),
    ]


SYSTEM_DATASETS = [
    Dataset("var", {"mountpoint": "/var", "atime": "off"}),
    Dataset(
        "var/log",
        {"mountpoint": "/var/log", "recordsize": "8K", "logbias": "throughput", "com.sun:auto-snapshot": "false"},
    ),
    Dataset("var/tmp", {"mountpoint": "/var/tmp", "com.sun:auto-snapshot": "false"}),
    Dataset("tmp", {"mountpoint": "/tmp", "com.sun:auto-snapshot": "false"}),
    Dataset("srv", {"mountpoint": "/srv"}),
]


def pool_create_argv(
    pool: str,
    device: str,
    *,
    encrypted: bool,
    compatibility: Optional[str] = None,
) -> List[str]:
    argv = ["zpool", "create", "-f", *POOL_PROPERTIES, *FS_PROPERTIES]
    if encrypted:
        argv += ENCRYPTION_PROPERTIES
    if compatibility:
        argv += ["-o", f"compatibility={compatibility}"]
    return argv + ["-m", "none", pool, device]


def create_pool(
    pool: str,
    device: str,
    *,
    passphrase: Optional[str] = None,
    compatibility: Optional[str] = None,
    timeout: float = 180,
) -> None:
    """Create the pool, bounded by `timeout`.

    The passphrase (when given) is written to zpool's stdin, matching keylocation=prompt.
    On error or timeout a diagnostics snapshot is captured and PoolCreationError raised.
    """

    argv = pool_create_argv(pool, device, encrypted=passphrase is not None, compatibility=compatibility)
    logger.info("Creating %s pool %s on %s", "encrypted" if passphrase else "unencrypted", pool, device)
    try:
        run_cmd(argv, input_text=(passphrase + "\n") if passphrase is not None else None, timeout=timeout)
    except CommandError as e:
        diagnostics = collect_diagnostics(pool)
        raise PoolCreationError(f"Failed to create ZFS pool {pool} (timeout or error): {e}", diagnostics) from e


def create_datasets(pool: str, datasets: List[Dataset]) -> None:
    for ds in datasets:
        run_cmd(ds.argv(pool))


def set_property(target: str, prop: str, value: str) -> None:
    run_cmd(["zfs", "set", f"{prop}={value}", target])


def set_pool_property(pool: str, prop: str, value: str, *, check: bool = True) -> None:
    run_cmd(["zpool", "set", f"{prop}={value}", pool], check=check)


def export_pool(pool: str, *, check: bool = True) -> None:
    run_cmd(["zpool", "export", pool], check=check)


def import_pool(pool: str, *, altroot: str) -> None:
    """Import without mounting, rooted at altroot instead of the live system's /."""

    run_cmd(["zpool", "import", "-N", "-R", altroot, pool])


def load_key(pool: str, passphrase: str) -> None:
    run_cmd(["zfs", "load-key", "-L", "prompt", pool], input_text=passphrase + "\n")


def mount_dataset(name: str) -> None:
    run_cmd(["zfs", "mount", name])


def destroy_pool(pool: str) -> None:
    try_cmd(["zpool", "destroy", "-f", pool])


def labelclear(device: str) -> None:
    try_cmd(["zpool", "labelclear", "-f", device])
