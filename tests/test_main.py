import logging

import pytest

from zfsroot_installer import main as main_mod
from zfsroot_installer.errors import PreflightError
from zfsroot_installer.menu import Menu, MenuResult


@pytest.fixture(autouse=True)
def isolated_logging():
    root = logging.getLogger()
    handlers = list(root.handlers)
    yield
    for h in list(root.handlers):
        if h not in handlers:
            root.removeHandler(h)
            h.close()
    for attr in ("_zfsroot_configured", "_zfsroot_log_path"):
        if hasattr(root, attr):
            delattr(root, attr)


@pytest.fixture
def log_arg(tmp_path):
    return ["--log", str(tmp_path / "install.log")]


def test_bad_override_exits_1(log_arg):
    assert main_mod.main([*log_arg, "--set", "encryption=maybe"]) == 1


def test_preflight_failure_exits_1(log_arg, monkeypatch):
    def not_root():
        raise PreflightError("This installer must be run as root")

    monkeypatch.setattr(main_mod, "run_preflight", not_root)
    assert main_mod.main(log_arg) == 1


def test_menu_exit_is_success(log_arg, monkeypatch, tmp_path):
    monkeypatch.setattr(main_mod, "run_preflight", lambda: [])
    monkeypatch.setattr(Menu, "loop", lambda self: MenuResult.EXIT)
    assert main_mod.main(log_arg) == 0
    assert "Logging initialized" in (tmp_path / "install.log").read_text()


def test_proceed_without_disk_exits_1(log_arg, monkeypatch):
    monkeypatch.setattr(main_mod, "run_preflight", lambda: [])
    monkeypatch.setattr(Menu, "loop", lambda self: MenuResult.PROCEED)
    monkeypatch.setattr(main_mod, "detect_memory_gb", lambda: 8)
    assert main_mod.main(log_arg) == 1
