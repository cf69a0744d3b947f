from __future__ import annotations

import logging
from pathlib import Path

from .chroot import chroot_cmd, chroot_shell
from .pkg import apt_install
from .zfs import set_property

logger = logging.getLogger(__name__)

RTL8821CE_REPO = "https://github.com/tomaspinho/rtl8821ce.git"
# The in-tree driver grabs the card first unless blacklisted.
RTL8821CE_BLACKLIST = "blacklist rtw88_8821ce\n"
# Card drops off the bus with ASPM enabled.
RTL8821CE_COMMANDLINE = "quiet loglevel=4 splash pcie_aspm=off"


def install_rtl8821ce(target_root: str, pool: str) -> None:
    apt_install(target_root, ["bc", "module-assistant", "build-essential", "dkms", "git"])
    chroot_cmd(target_root, ["m-a", "prepare"])
    chroot_cmd(target_root, ["rm", "-rf", "/root/rtl8821ce"])
    chroot_cmd(target_root, ["git", "clone", RTL8821CE_REPO, "/root/rtl8821ce"])
    chroot_shell(target_root, "cd /root/rtl8821ce && ./dkms-install.sh")
    set_property(f"{pool}/ROOT", "org.zfsbootmenu:commandline", RTL8821CE_COMMANDLINE)

    blacklist = Path(target_root) / "etc/modprobe.d/blacklist.conf"
    blacklist.parent.mkdir(parents=True, exist_ok=True)
    with blacklist.open("a", encoding="utf-8") as f:
        f.write(RTL8821CE_BLACKLIST)
    logger.info("RTL8821CE DKMS driver installed")
