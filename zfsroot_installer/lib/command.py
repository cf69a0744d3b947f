from __future__ import annotations

import logging
import os
import shlex
import subprocess
from dataclasses import dataclass
from typing import Mapping, Sequence

from ..errors import CommandError, CommandTimeout

logger = logging.getLogger(__name__)

# Seconds between SIGTERM and SIGKILL once a timeout fires.
KILL_GRACE = 10.0


@dataclass(frozen=True)
class CmdResult:
    argv: list[str]
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


def _fmt_argv(argv: Sequence[str]) -> str:
    return " ".join(shlex.quote(a) for a in argv)


def _stop(p: subprocess.Popen) -> None:
    p.terminate()
    try:
        p.communicate(timeout=KILL_GRACE)
    except subprocess.TimeoutExpired:
        p.kill()
        p.communicate()


def run_cmd(
    argv: Sequence[str],
    *,
    check: bool = True,
    env: Mapping[str, str] | None = None,
    cwd: str | None = None,
    input_text: str | None = None,
    timeout: float | None = None,
) -> CmdResult:
    """Run a command with consistent logging.

    - Always logs the command and whatever it printed.
    - input_text goes to stdin and is never logged (passphrases travel this way).
    - With timeout, the process gets SIGTERM, then SIGKILL after KILL_GRACE, and
      CommandTimeout is raised regardless of `check`.
    - An exception while waiting (a signal turned into InstallInterrupted, say)
      stops the child the same way before it propagates.
    """

    argv_list = list(argv)
    logger.info("CMD %s", _fmt_argv(argv_list))

    try:
        p = subprocess.Popen(
            argv_list,
            stdin=subprocess.PIPE if input_text is not None else subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            cwd=cwd,
            env=dict(os.environ, **(env or {})),
        )
    except FileNotFoundError as e:
        if check:
            raise CommandError(argv_list, 127, str(e)) from e
        logger.warning("Command not found: %s", argv_list[0])
        return CmdResult(argv=argv_list, returncode=127, stdout="", stderr=str(e))

    try:
        stdout, stderr = p.communicate(input=input_text, timeout=timeout)
    except subprocess.TimeoutExpired:
        logger.error("Timeout after %ss, terminating: %s", timeout, _fmt_argv(argv_list))
        _stop(p)
        raise CommandTimeout(argv_list, timeout or 0)
    except BaseException:
        # Signals surface here as exceptions; the child must not outlive them.
        logger.error("Interrupted, terminating: %s", _fmt_argv(argv_list))
        _stop(p)
        raise

    if stdout:
        logger.info("STDOUT %s", stdout.strip())
    if stderr:
        logger.info("STDERR %s", stderr.strip())

    if check and p.returncode != 0:
        raise CommandError(argv_list, p.returncode, stderr or "")

    return CmdResult(argv=argv_list, returncode=p.returncode, stdout=stdout or "", stderr=stderr or "")


def try_cmd(argv: Sequence[str], **kwargs) -> CmdResult | None:
    """Best-effort variant: any failure is logged and swallowed."""

    try:
        return run_cmd(argv, check=False, **kwargs)
    except CommandError as e:
        logger.warning("Ignoring failure of %s: %s", _fmt_argv(argv), e)
        return None
