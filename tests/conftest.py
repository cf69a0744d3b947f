from __future__ import annotations

import subprocess
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

import pytest

from zfsroot_installer.config import Credentials, DiskLayout, InstallConfig, freeze


@dataclass
class Rule:
    prefix: List[str]
    returncode: int = 0
    stdout: str = ""
    stderr: str = ""
    hang: bool = False
    missing: bool = False
    effect: Optional[Callable[[List[str]], None]] = None
    raises: Optional[BaseException] = None


@dataclass
class Call:
    argv: List[str]
    input: Optional[str] = None
    env: Dict[str, str] = field(default_factory=dict)

    @property
    def command(self) -> List[str]:
        """argv with any `chroot <root>` prefix removed."""

        if self.argv[:1] == ["chroot"]:
            return self.argv[2:]
        return self.argv

    def __getitem__(self, index):
        return self.command[index]


class FakeProc:
    def __init__(self, call: Call, rule: Rule):
        self.call = call
        self.rule = rule
        self.returncode: Optional[int] = None
        self.terminated = False
        self.killed = False

    def communicate(self, input=None, timeout=None):
        if input is not None:
            self.call.input = input
        if self.rule.hang and not self.terminated:
            raise subprocess.TimeoutExpired(self.call.argv, timeout)
        if self.rule.raises is not None and not self.terminated:
            raise self.rule.raises
        if self.rule.effect is not None:
            self.rule.effect(self.call.argv)
        self.returncode = -15 if self.terminated else self.rule.returncode
        return self.rule.stdout, self.rule.stderr

    def terminate(self):
        self.terminated = True

    def kill(self):
        self.killed = True


class FakeShell:
    """Stands in for subprocess.Popen inside the command runner."""

    def __init__(self):
        self.rules: List[Rule] = []
        self.calls: List[Call] = []
        self.procs: List[FakeProc] = []

    def on(self, *prefix: str, **kw) -> Rule:
        rule = Rule(prefix=list(prefix), **kw)
        self.rules.append(rule)
        return rule

    def _match(self, call: Call) -> Rule:
        for rule in reversed(self.rules):
            n = len(rule.prefix)
            if call.argv[:n] == rule.prefix or call.command[:n] == rule.prefix:
                return rule
        return Rule(prefix=[])

    def __call__(self, argv, **kwargs):
        call = Call(argv=list(argv), env=dict(kwargs.get("env") or {}))
        rule = self._match(call)
        if rule.missing:
            raise FileNotFoundError(2, "No such file or directory", argv[0])
        self.calls.append(call)
        proc = FakeProc(call, rule)
        self.procs.append(proc)
        return proc

    def find(self, *prefix: str) -> List[Call]:
        n = len(prefix)
        return [c for c in self.calls if c.command[:n] == list(prefix)]

    def ran(self, *prefix: str) -> bool:
        return bool(self.find(*prefix))

    def commands(self) -> List[List[str]]:
        return [c.command for c in self.calls]


@pytest.fixture
def shell(monkeypatch) -> FakeShell:
    fake = FakeShell()
    monkeypatch.setattr("zfsroot_installer.lib.command.subprocess.Popen", fake)
    return fake


@pytest.fixture
def layout() -> DiskLayout:
    return DiskLayout.derive("/dev/sdx", "/dev/disk/by-id/ata-TESTDISK_0001")


def make_context(tmp_path, layout: DiskLayout, **overrides):
    cfg = InstallConfig(mountpoint=str(tmp_path / "mnt"))
    for key, value in overrides.items():
        setattr(cfg, key, value)
    cfg.assign_disk(layout)
    creds = Credentials(user_password="hunter2-user", passphrase="correct horse battery")
    return freeze(cfg, creds, memory_gb=8, log_path=str(tmp_path / "install.log"))


@pytest.fixture
def context_factory(tmp_path, layout):
    def factory(**overrides):
        return make_context(tmp_path, layout, **overrides)

    return factory
