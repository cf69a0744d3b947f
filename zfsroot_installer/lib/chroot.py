from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator, Sequence

from .command import CmdResult, run_cmd, try_cmd
from .env import APT_ENV

logger = logging.getLogger(__name__)

EFIVARS = "/sys/firmware/efi/efivars"


def chroot_cmd(
    target_root: str,
    argv: Sequence[str],
    *,
    check: bool = True,
    input_text: str | None = None,
) -> CmdResult:
    """Run a command inside target root."""

    return run_cmd(["chroot", target_root, *argv], check=check, env=APT_ENV, input_text=input_text)


def chroot_shell(target_root: str, script: str, *, check: bool = True) -> CmdResult:
    """Run a short bash snippet inside target root (globs, pipes, cd)."""

    return chroot_cmd(target_root, ["/bin/bash", "-c", script], check=check)


def mount_chroot_binds(target_root: str) -> None:
    # proc/sys/dev/devpts: enough for apt, initramfs tooling and efibootmgr
    run_cmd(["mount", "-t", "proc", "proc", f"{target_root}/proc"])
    run_cmd(["mount", "-t", "sysfs", "sys", f"{target_root}/sys"])
    run_cmd(["mount", "-B", "/dev", f"{target_root}/dev"])
    run_cmd(["mount", "-t", "devpts", "pts", f"{target_root}/dev/pts"])


@contextmanager
def efivars(target_root: str) -> Iterator[None]:
    """Mount efivarfs inside the target for the duration of the block."""

    try_cmd(["chroot", target_root, "mount", "-t", "efivarfs", "efivarfs", EFIVARS])
    try:
        yield
    finally:
        run_cmd(["sync"], check=False)
        try_cmd(["chroot", target_root, "umount", EFIVARS])
