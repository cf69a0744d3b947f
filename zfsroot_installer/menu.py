"""Main menu.

A closed set of actions; each handler returns a MenuResult so the caller only
has to decide between looping, starting the pipeline, and leaving.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from enum import Enum
from typing import Callable, List, Optional

from .config import (
    DISTROS,
    MIN_PASSPHRASE_LEN,
    RELEASE_VERSIONS,
    Credentials,
    DiskLayout,
    InstallConfig,
    check_passphrase,
)
from .dialogs import Dialogs
from .errors import ConfigError, DiskAssignmentError
from .lib.block import DiskInfo, DiskState, list_disks, probe_disk_state, resolve_disk_layout
from .reset import reset_disk

logger = logging.getLogger(__name__)


class MenuAction(str, Enum):
    CONFIGURE = "configure"
    SELECT_DISK = "disk"
    PASSWORDS = "passwords"
    REVIEW = "review"
    START = "start"
    RESET = "reset"
    EXIT = "exit"


class MenuResult(Enum):
    CONTINUE = "continue"
    PROCEED = "proceed"
    EXIT = "exit"


ACTION_LABELS = {
    MenuAction.CONFIGURE: "Edit installation settings",
    MenuAction.SELECT_DISK: "Select installation disk",
    MenuAction.PASSWORDS: "Set user password and pool passphrase",
    MenuAction.REVIEW: "Review configuration",
    MenuAction.START: "Start installation",
    MenuAction.RESET: "Reset target disk",
    MenuAction.EXIT: "Exit",
}

OPTION_LABELS = {
    "encryption": "Encrypt the pool (passphrase at boot)",
    "hwe_kernel": "Hardware-enablement kernel (LTS releases)",
    "minimal_install": "Minimal install",
    "passwordless_sudo": "Passwordless sudo",
    "rtl8821ce": "RTL8821CE Wi-Fi driver",
    "install_refind": "rEFInd boot menu",
}


class Menu:
    def __init__(
        self,
        config: InstallConfig,
        credentials: Credentials,
        dialogs: Dialogs,
        *,
        disks: Callable[[], List[DiskInfo]] = list_disks,
        resolve_layout: Callable[[str], DiskLayout] = resolve_disk_layout,
        probe: Callable[[str], DiskState] = probe_disk_state,
        reset: Callable[..., None] = reset_disk,
    ):
        self.config = config
        self.credentials = credentials
        self.dialogs = dialogs
        self._disks = disks
        self._resolve_layout = resolve_layout
        self._probe = probe
        self._reset = reset
        self._handlers = {
            MenuAction.CONFIGURE: self.configure,
            MenuAction.SELECT_DISK: self.select_disk,
            MenuAction.PASSWORDS: self.set_passwords,
            MenuAction.REVIEW: self.review,
            MenuAction.START: self.start,
            MenuAction.RESET: self.reset_target,
            MenuAction.EXIT: lambda: MenuResult.EXIT,
        }

    def choose(self) -> MenuAction:
        disk = self.config.disk_layout.disk if self.config.disk_layout else "none"
        key = self.dialogs.radiolist(
            f"Ubuntu ZFS-root installer (disk: {disk})",
            [(a.value, label) for a, label in ACTION_LABELS.items()],
            default=MenuAction.START.value if self.ready() else MenuAction.CONFIGURE.value,
        )
        return MenuAction(key)

    def handle(self, action: MenuAction) -> MenuResult:
        logger.debug("Menu action: %s", action.value)
        return self._handlers[action]()

    def loop(self) -> MenuResult:
        while True:
            result = self.handle(self.choose())
            if result is not MenuResult.CONTINUE:
                return result

    def ready(self) -> bool:
        return self.missing() is None

    def missing(self) -> Optional[str]:
        if self.config.disk_layout is None:
            return "No installation disk selected."
        if not self.credentials.user_password:
            return "User password is not set."
        if self.config.encryption:
            try:
                check_passphrase(self.credentials.passphrase)
            except ConfigError as e:
                return f"{e}."
        return None

    def configure(self) -> MenuResult:
        cfg = self.config
        values = self.dialogs.form(
            "System settings",
            [
                ("hostname", "Hostname", cfg.hostname),
                ("username", "Username", cfg.username),
                ("locale", "Locale", cfg.locale),
                ("timezone", "Timezone", cfg.timezone),
            ],
        )
        distro = self.dialogs.radiolist(
            "Installation type", [(d, f"Ubuntu {d}") for d in DISTROS], default=cfg.distro
        )
        release = self.dialogs.radiolist(
            "Release", [(r, f"Ubuntu {v}") for r, v in RELEASE_VERSIONS.items()], default=cfg.release
        )
        enabled = self.dialogs.checklist(
            "Options", [(k, label, bool(getattr(cfg, k))) for k, label in OPTION_LABELS.items()]
        )

        candidate = replace(cfg, distro=distro, release=release, **values)
        for key in OPTION_LABELS:
            setattr(candidate, key, key in enabled)
        try:
            candidate.validate()
        except ConfigError as e:
            self.dialogs.message("Invalid settings", str(e))
            return MenuResult.CONTINUE

        self.dialogs.summary("New settings", candidate.summary())
        if not self.dialogs.yesno("Apply these settings?", default=True):
            return MenuResult.CONTINUE

        for key in [*values, "distro", "release", *OPTION_LABELS]:
            setattr(cfg, key, getattr(candidate, key))
        if not cfg.encryption:
            self.credentials.passphrase = ""
        logger.info("Configuration updated: %s", cfg.summary())
        return MenuResult.CONTINUE

    def select_disk(self) -> MenuResult:
        disks = self._disks()
        if not disks:
            self.dialogs.message("No disks", "No whole disks of 20 GB or more were found.")
            return MenuResult.CONTINUE

        by_name = {d.name: d for d in disks}
        name = self.dialogs.radiolist(
            "Installation disk",
            [(d.name, f"{d.size_label} {d.model or '-'} [{d.status}]") for d in disks],
        )
        disk = by_name[name]

        if disk.removable and not self.dialogs.yesno(
            "Removable device", f"/dev/{name} looks like a USB or removable device. Install to it anyway?"
        ):
            return MenuResult.CONTINUE

        current = self.config.disk_layout
        replacing = current is not None and current.disk != f"/dev/{name}"
        if replacing and not self.dialogs.yesno(f"Replace {current.disk} with /dev/{name}?"):
            return MenuResult.CONTINUE

        try:
            layout = self._resolve_layout(name)
        except ConfigError as e:
            self.dialogs.message("Invalid disk", str(e))
            return MenuResult.CONTINUE

        if not self.dialogs.yesno(
            "Confirm disk",
            f"ALL DATA on {layout.disk} ({layout.disk_id}) will be destroyed when installation starts.",
        ):
            return MenuResult.CONTINUE

        # The previous disk stays selected until the new one is confirmed.
        if replacing:
            self.config.release_disk()
        try:
            self.config.assign_disk(layout)
        except DiskAssignmentError as e:
            self.dialogs.message("Disk already selected", str(e))
        return MenuResult.CONTINUE

    def set_passwords(self) -> MenuResult:
        self.credentials.user_password = self.dialogs.password(f"Password for {self.config.username}")
        if self.config.encryption:
            while True:
                passphrase = self.dialogs.password(
                    f"Pool encryption passphrase (min. {MIN_PASSPHRASE_LEN} characters)"
                )
                try:
                    check_passphrase(passphrase)
                except ConfigError as e:
                    self.dialogs.message("Passphrase too short", str(e))
                    continue
                self.credentials.passphrase = passphrase
                break
        return MenuResult.CONTINUE

    def review(self) -> MenuResult:
        rows = self.config.summary()
        rows["user password"] = "set" if self.credentials.user_password else "not set"
        if self.config.encryption:
            rows["passphrase"] = "set" if self.credentials.passphrase else "not set"
        self.dialogs.summary("Current configuration", rows)
        return MenuResult.CONTINUE

    def reset_target(self) -> MenuResult:
        layout = self.config.disk_layout
        if layout is None:
            self.dialogs.message("No disk", "Select a disk first.")
            return MenuResult.CONTINUE
        if self.dialogs.yesno("Reset disk", f"Unmount, destroy pool {self.config.pool_name} and wipe {layout.disk}?"):
            self._reset_layout(layout)
        return MenuResult.CONTINUE

    def start(self) -> MenuResult:
        problem = self.missing()
        if problem:
            self.dialogs.message("Not ready", problem)
            return MenuResult.CONTINUE

        layout = self.config.disk_layout
        observed = self._probe(layout.disk)
        if observed.needs_reset:
            if not self.dialogs.yesno(
                "Disk in use",
                f"{layout.disk} carries ZFS labels or mounted filesystems. Reset it before installing?",
            ):
                return MenuResult.CONTINUE
            self._reset_layout(layout)

        if not self.dialogs.yesno("Start installation", f"Erase {layout.disk} and install now?"):
            return MenuResult.CONTINUE
        return MenuResult.PROCEED

    def _reset_layout(self, layout: DiskLayout) -> None:
        self._reset(
            layout,
            pool=self.config.pool_name,
            mountpoint=self.config.mountpoint,
            udev_timeout=self.config.udev_timeout,
        )
