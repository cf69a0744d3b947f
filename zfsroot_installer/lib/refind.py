"""rEFInd as an optional second boot menu in front of ZFSBootMenu."""

from __future__ import annotations

import logging
import re
import shutil
import tempfile
from pathlib import Path

from .assets import copy_tree, remove_paths
from .chroot import chroot_cmd
from .command import run_cmd
from .pkg import host_apt_install

logger = logging.getLogger(__name__)

THEME_REPO = "https://github.com/bobafetthotmail/refind-theme-regular.git"
THEME_NAME = "refind-theme-regular"
REFIND_DIR = "boot/efi/EFI/refind"
# Stale copies from earlier runs, both layouts.
OLD_THEME_DIRS = ("regular-theme", THEME_NAME, "themes/regular-theme", f"themes/{THEME_NAME}")

# Same edits, same order, as the upstream instructions: 256px icons, dark variant.
_THEME_EDITS = [
    (re.compile(r"128"), "comment"),
    (re.compile(r"48"), "comment"),
    (re.compile(r" 96"), "uncomment"),
    (re.compile(r" 256"), "uncomment"),
    (re.compile(r"256-96.*dark"), "uncomment"),
    (re.compile(r"icons_dir.*256"), "uncomment"),
]

MENU_ENTRIES = f"""
menuentry "Ubuntu (ZBM)" {{
    loader /EFI/ZBM/VMLINUZ.EFI
    icon /EFI/refind/themes/{THEME_NAME}/icons/256-96/os_ubuntu.png
    options "quit loglevel=0 zbm.skip"
}}

menuentry "Ubuntu (ZBM Menu)" {{
    loader /EFI/ZBM/VMLINUZ.EFI
    icon /EFI/refind/themes/{THEME_NAME}/icons/256-96/os_ubuntu.png
    options "quit loglevel=0 zbm.show"
}}

include themes/{THEME_NAME}/theme.conf
"""


def install_refind(target_root: str) -> None:
    chroot_cmd(target_root, ["apt", "install", "-y", "curl", "refind"])
    chroot_cmd(target_root, ["refind-install"])
    # refind-install generates this and it shadows the ZBM entries.
    remove_paths([Path(target_root, "boot/refind_linux.conf")])


def tune_theme_conf(text: str) -> str:
    out = []
    for line in text.splitlines():
        for pattern, action in _THEME_EDITS:
            if not pattern.search(line):
                continue
            if action == "comment":
                line = "#" + line
            elif line.startswith("#"):
                line = line[1:]
        out.append(line)
    return "\n".join(out) + "\n"


def install_theme(target_root: str) -> None:
    if shutil.which("git") is None:
        host_apt_install(["git"])

    refind_dir = Path(target_root, REFIND_DIR)
    with tempfile.TemporaryDirectory(prefix="refind-theme-") as tmp:
        clone = Path(tmp, THEME_NAME)
        run_cmd(["git", "clone", THEME_REPO, str(clone)])

        remove_paths(refind_dir / d for d in OLD_THEME_DIRS)
        dst = refind_dir / "themes" / THEME_NAME
        copy_tree(str(clone), str(dst), exclude={"src", ".git", "install.sh"})

        conf = clone / "theme.conf"
        (dst / "theme.conf").write_text(tune_theme_conf(conf.read_text(encoding="utf-8")), encoding="utf-8")
    logger.info("rEFInd theme installed at %s", dst)


def add_menu_entries(target_root: str) -> None:
    conf = Path(target_root, REFIND_DIR, "refind.conf")
    conf.parent.mkdir(parents=True, exist_ok=True)
    with conf.open("a", encoding="utf-8") as f:
        f.write(MENU_ENTRIES)
    logger.info("Appended ZBM chain-load entries to %s", conf)
