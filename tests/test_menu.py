import pytest

from zfsroot_installer.config import Credentials, DiskLayout, InstallConfig
from zfsroot_installer.errors import ConfigError
from zfsroot_installer.lib.block import DiskInfo, DiskState
from zfsroot_installer.menu import Menu, MenuAction, MenuResult


class ScriptedDialogs:
    """Answers prompts from queues; records every message shown."""

    def __init__(self, *, choices=(), answers=(), passwords=(), forms=(), checks=()):
        self.choices = list(choices)
        self.answers = list(answers)
        self.passwords = list(passwords)
        self.forms = list(forms)
        self.checks = list(checks)
        self.messages = []

    def message(self, title, text):
        self.messages.append((title, text))

    def summary(self, title, rows):
        self.messages.append((title, rows))

    def radiolist(self, title, choices, default=None):
        key = self.choices.pop(0)
        assert key in [k for k, _ in choices]
        return key

    def yesno(self, title, text="", *, default=False):
        return self.answers.pop(0)

    def password(self, title, *, confirm=True):
        return self.passwords.pop(0)

    def form(self, title, fields):
        return self.forms.pop(0)

    def checklist(self, title, items):
        return self.checks.pop(0)


DISKS = [
    DiskInfo(name="sdx", size_bytes=500 * 1000**3, model="SSD", mounted=False, removable=False),
    DiskInfo(name="sdy", size_bytes=64 * 1000**3, model="Stick", mounted=False, removable=True),
]


def resolve(name):
    return DiskLayout.derive(f"/dev/{name}", f"/dev/disk/by-id/ata-{name.upper()}")


class Recorder:
    def __init__(self, state=DiskState()):
        self.state = state
        self.resets = []

    def probe(self, disk):
        return self.state

    def reset(self, layout, **kw):
        self.resets.append((layout, kw))


def make_menu(dialogs, *, state=DiskState(), config=None, credentials=None):
    rec = Recorder(state)
    menu = Menu(
        config or InstallConfig(),
        credentials or Credentials(),
        dialogs,
        disks=lambda: DISKS,
        resolve_layout=resolve,
        probe=rec.probe,
        reset=rec.reset,
    )
    return menu, rec


def test_exit_action():
    menu, _ = make_menu(ScriptedDialogs())
    assert menu.handle(MenuAction.EXIT) is MenuResult.EXIT


def test_loop_dispatches_until_exit():
    dialogs = ScriptedDialogs(choices=["review", "exit"])
    menu, _ = make_menu(dialogs)
    assert menu.loop() is MenuResult.EXIT
    assert dialogs.messages[0][0] == "Current configuration"


def test_start_refused_until_ready():
    dialogs = ScriptedDialogs()
    menu, _ = make_menu(dialogs)
    assert menu.handle(MenuAction.START) is MenuResult.CONTINUE
    assert dialogs.messages[-1] == ("Not ready", "No installation disk selected.")


def test_select_disk_assigns_layout():
    dialogs = ScriptedDialogs(choices=["sdx"], answers=[True])
    menu, _ = make_menu(dialogs)
    assert menu.handle(MenuAction.SELECT_DISK) is MenuResult.CONTINUE
    assert menu.config.disk_layout == resolve("sdx")


def test_removable_disk_needs_extra_confirmation():
    dialogs = ScriptedDialogs(choices=["sdy"], answers=[False])
    menu, _ = make_menu(dialogs)
    menu.handle(MenuAction.SELECT_DISK)
    assert menu.config.disk_layout is None


def test_declined_destroy_confirmation_assigns_nothing():
    dialogs = ScriptedDialogs(choices=["sdx"], answers=[False])
    menu, _ = make_menu(dialogs)
    menu.handle(MenuAction.SELECT_DISK)
    assert menu.config.disk_layout is None


def test_switching_disk_releases_previous():
    config = InstallConfig()
    config.assign_disk(resolve("sdx"))
    dialogs = ScriptedDialogs(choices=["sdy"], answers=[True, True, True])
    menu, _ = make_menu(dialogs, config=config)
    menu.handle(MenuAction.SELECT_DISK)
    assert config.disk_layout == resolve("sdy")


def test_switching_disk_declined_keeps_previous():
    config = InstallConfig()
    config.assign_disk(resolve("sdx"))
    dialogs = ScriptedDialogs(choices=["sdy"], answers=[True, False])
    menu, _ = make_menu(dialogs, config=config)
    menu.handle(MenuAction.SELECT_DISK)
    assert config.disk_layout == resolve("sdx")


def test_switching_disk_declined_at_final_confirmation_keeps_previous():
    config = InstallConfig()
    config.assign_disk(resolve("sdx"))
    dialogs = ScriptedDialogs(choices=["sdy"], answers=[True, True, False])
    menu, _ = make_menu(dialogs, config=config)
    menu.handle(MenuAction.SELECT_DISK)
    assert config.disk_layout == resolve("sdx")


def test_invalid_disk_reported():
    def bad(name):
        raise ConfigError(f"/dev/{name} is not a valid block device")

    dialogs = ScriptedDialogs(choices=["sdx"])
    menu = Menu(InstallConfig(), Credentials(), dialogs, disks=lambda: DISKS, resolve_layout=bad)
    menu.handle(MenuAction.SELECT_DISK)
    assert dialogs.messages[-1][0] == "Invalid disk"


def test_passwords_collects_passphrase_only_with_encryption():
    dialogs = ScriptedDialogs(passwords=["userpw", "pool-passphrase"])
    menu, _ = make_menu(dialogs)
    menu.handle(MenuAction.PASSWORDS)
    assert (menu.credentials.user_password, menu.credentials.passphrase) == ("userpw", "pool-passphrase")

    config = InstallConfig(encryption=False)
    dialogs = ScriptedDialogs(passwords=["userpw"])
    menu, _ = make_menu(dialogs, config=config)
    menu.handle(MenuAction.PASSWORDS)
    assert menu.credentials.passphrase == ""


def test_short_passphrase_is_asked_again():
    dialogs = ScriptedDialogs(passwords=["userpw", "abc", "long-enough"])
    menu, _ = make_menu(dialogs)
    menu.handle(MenuAction.PASSWORDS)
    assert menu.credentials.passphrase == "long-enough"
    assert dialogs.messages[0][0] == "Passphrase too short"


def test_start_refuses_short_passphrase():
    config = InstallConfig()
    config.assign_disk(resolve("sdx"))
    dialogs = ScriptedDialogs()
    menu, _ = make_menu(dialogs, config=config, credentials=Credentials("u", "short"))
    assert menu.handle(MenuAction.START) is MenuResult.CONTINUE
    assert dialogs.messages[-1] == ("Not ready", "Pool passphrase must be at least 8 characters.")


def _ready_menu(dialogs, state=DiskState()):
    config = InstallConfig()
    config.assign_disk(resolve("sdx"))
    return make_menu(dialogs, state=state, config=config, credentials=Credentials("u", "pool-passphrase"))


def test_start_proceeds_after_confirmation():
    menu, rec = _ready_menu(ScriptedDialogs(answers=[True]))
    assert menu.handle(MenuAction.START) is MenuResult.PROCEED
    assert rec.resets == []


def test_start_offers_reset_for_dirty_disk():
    menu, rec = _ready_menu(ScriptedDialogs(answers=[True, True]), state=DiskState(has_pool_labels=True))
    assert menu.handle(MenuAction.START) is MenuResult.PROCEED
    layout, kw = rec.resets[0]
    assert layout == resolve("sdx")
    assert kw["pool"] == "rpool"


def test_start_declining_reset_stays_in_menu():
    menu, rec = _ready_menu(ScriptedDialogs(answers=[False]), state=DiskState(mounted=True))
    assert menu.handle(MenuAction.START) is MenuResult.CONTINUE
    assert rec.resets == []


def test_reset_action_requires_disk():
    dialogs = ScriptedDialogs()
    menu, rec = make_menu(dialogs)
    menu.handle(MenuAction.RESET)
    assert rec.resets == []
    assert dialogs.messages[-1][0] == "No disk"


def test_configure_applies_after_confirmation():
    dialogs = ScriptedDialogs(
        forms=[{"hostname": "box", "username": "alice", "locale": "de_DE.UTF-8", "timezone": "Europe/Berlin"}],
        choices=["server", "jammy"],
        checks=[{"install_refind", "minimal_install"}],
        answers=[True],
    )
    credentials = Credentials("u", "p")
    menu, _ = make_menu(dialogs, credentials=credentials)
    menu.handle(MenuAction.CONFIGURE)

    cfg = menu.config
    assert (cfg.hostname, cfg.username, cfg.distro, cfg.release) == ("box", "alice", "server", "jammy")
    assert cfg.install_refind and cfg.minimal_install
    assert not cfg.encryption
    assert credentials.passphrase == ""


def test_configure_declined_changes_nothing():
    dialogs = ScriptedDialogs(
        forms=[{"hostname": "box", "username": "alice", "locale": "C.UTF-8", "timezone": "UTC"}],
        choices=["server", "jammy"],
        checks=[set()],
        answers=[False],
    )
    menu, _ = make_menu(dialogs)
    menu.handle(MenuAction.CONFIGURE)
    assert menu.config.hostname == "ubuntu-zfs"
    assert menu.config.encryption is True


@pytest.mark.parametrize("action", list(MenuAction))
def test_every_action_has_a_handler(action):
    menu, _ = make_menu(ScriptedDialogs())
    assert action in menu._handlers
