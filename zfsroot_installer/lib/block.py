from __future__ import annotations

import json
import logging
import os
import stat
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List

from ..config import DiskLayout
from ..errors import ConfigError
from .command import run_cmd
from .env import PATHS

logger = logging.getLogger(__name__)

MIN_DISK_BYTES = 20 * 1000**3


@dataclass(frozen=True)
class DiskInfo:
    name: str
    size_bytes: int
    model: str
    mounted: bool
    removable: bool

    @property
    def status(self) -> str:
        if self.mounted:
            return "MOUNTED"
        if self.removable:
            return "USB/Removable"
        return "AVAILABLE"

    @property
    def size_label(self) -> str:
        return f"{self.size_bytes / 1000**3:.0f}G"


@dataclass(frozen=True)
class DiskState:
    """Observed (not owned) state of the target device."""

    has_partitions: bool = False
    has_pool_labels: bool = False
    mounted: bool = False

    @property
    def needs_reset(self) -> bool:
        return self.has_pool_labels or self.mounted


def get_uuid(dev: str) -> str:
    """Return filesystem UUID for a block device."""

    r = run_cmd(["blkid", "-s", "UUID", "-o", "value", dev])
    uuid = (r.stdout or "").strip()
    if not uuid:
        raise RuntimeError(f"Unable to determine UUID for {dev}")
    return uuid


def is_block_device(path: str) -> bool:
    try:
        return stat.S_ISBLK(os.stat(path).st_mode)
    except OSError:
        return False


def resolve_disk_id(name: str, by_id_dir: str = PATHS.disk_by_id) -> str:
    """Prefer a /dev/disk/by-id link that resolves to exactly /dev/<name>."""

    dev = f"/dev/{name}"
    d = Path(by_id_dir)
    if d.is_dir():
        for link in sorted(d.iterdir()):
            if "-part" in link.name or not link.is_symlink():
                continue
            if os.path.realpath(link) == dev:
                return str(link)
    logger.info("No by-id link for %s; using the kernel name", dev)
    return dev


def resolve_disk_layout(name: str, *, by_id_dir: str = PATHS.disk_by_id) -> DiskLayout:
    name = name.removeprefix("/dev/")
    dev = f"/dev/{name}"
    if not is_block_device(dev):
        raise ConfigError(f"{dev} is not a valid block device")
    return DiskLayout.derive(dev, resolve_disk_id(name, by_id_dir))


def is_removable(name: str, sys_block: str = PATHS.sys_block) -> bool:
    try:
        return Path(sys_block, name, "removable").read_text(encoding="utf-8").strip() == "1"
    except OSError:
        return False


def _lsblk_json(argv: List[str]) -> List[Dict[str, Any]]:
    r = run_cmd(argv, check=False)
    if r.returncode != 0 or not r.stdout.strip():
        return []
    try:
        return list(json.loads(r.stdout).get("blockdevices") or [])
    except json.JSONDecodeError:
        logger.warning("Unparseable lsblk output")
        return []


def list_disks(*, min_bytes: int = MIN_DISK_BYTES, sys_block: str = PATHS.sys_block) -> List[DiskInfo]:
    out: List[DiskInfo] = []
    for dev in _lsblk_json(["lsblk", "-d", "-J", "-b", "-o", "NAME,TYPE,SIZE,MODEL,MOUNTPOINT"]):
        if dev.get("type") != "disk":
            continue
        size = int(dev.get("size") or 0)
        if size < min_bytes:
            continue
        name = str(dev.get("name"))
        out.append(
            DiskInfo(
                name=name,
                size_bytes=size,
                model=str(dev.get("model") or "").strip(),
                mounted=bool(dev.get("mountpoint")),
                removable=is_removable(name, sys_block),
            )
        )
    return out


def probe_disk_state(disk: str) -> DiskState:
    devices = _lsblk_json(["lsblk", "-J", "-o", "NAME,FSTYPE,MOUNTPOINT", disk])

    def walk(nodes: List[Dict[str, Any]]):
        for n in nodes:
            yield n
            yield from walk(n.get("children") or [])

    nodes = list(walk(devices))
    return DiskState(
        has_partitions=any(n.get("children") for n in devices),
        has_pool_labels=any(n.get("fstype") == "zfs_member" for n in nodes),
        mounted=any(n.get("mountpoint") for n in nodes),
    )


def detect_memory_gb(meminfo: str = PATHS.meminfo) -> int:
    """Physical memory in decimal gigabytes, rounded like `free --giga`."""

    for line in Path(meminfo).read_text(encoding="utf-8").splitlines():
        if line.startswith("MemTotal:"):
            kib = int(line.split()[1])
            return max(1, round(kib * 1024 / 1000**3))
    raise RuntimeError(f"MemTotal missing from {meminfo}")
