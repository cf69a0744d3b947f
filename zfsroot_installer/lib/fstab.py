from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable


@dataclass(frozen=True)
class FstabEntry:
    spec: str
    mountpoint: str
    fstype: str
    options: str = "defaults"
    dump: int = 0
    passno: int = 0

    def render(self) -> str:
        return f"{self.spec} {self.mountpoint} {self.fstype} {self.options} {self.dump} {self.passno}"


@dataclass(frozen=True)
class CrypttabEntry:
    name: str
    device: str
    key: str
    options: str

    def render(self) -> str:
        return f"{self.name} {self.device} {self.key} {self.options}"


def render_lines(entries: Iterable[FstabEntry | CrypttabEntry]) -> str:
    return "".join(e.render() + "\n" for e in entries)


def append_entries(path: Path, entries: Iterable[FstabEntry | CrypttabEntry]) -> None:
    """Append to a table file, creating it if debootstrap did not."""

    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("a", encoding="utf-8") as f:
        f.write(render_lines(entries))


def esp_entry(uuid: str) -> FstabEntry:
    return FstabEntry(spec=f"UUID={uuid}", mountpoint="/boot/efi", fstype="vfat", options="umask=0077,shortname=mixed")


def swap_entries(swap_device: str) -> tuple[CrypttabEntry, FstabEntry]:
    """Swap keyed from /dev/urandom on every boot: never recoverable, no hibernation."""

    return (
        CrypttabEntry(
            name="swap",
            device=swap_device,
            key="/dev/urandom",
            options="plain,swap,cipher=aes-xts-plain64,hash=sha256,size=512",
        ),
        FstabEntry(spec="/dev/mapper/swap", mountpoint="none", fstype="swap"),
    )
