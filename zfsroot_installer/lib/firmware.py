from __future__ import annotations

from pathlib import Path

from .env import PATHS


def is_uefi(efi_dir: str = PATHS.efi_firmware) -> bool:
    """True when the *currently running* environment booted through UEFI."""

    return Path(efi_dir).is_dir()
