from __future__ import annotations

from typing import Sequence


class InstallerError(RuntimeError):
    """Base class for every error the installer raises on purpose."""


class ConfigError(InstallerError):
    pass


class PreflightError(InstallerError):
    pass


class DiskAssignmentError(InstallerError):
    pass


class StageError(InstallerError):
    pass


class CommandError(InstallerError):
    def __init__(self, argv: Sequence[str], returncode: int, stderr: str = "", message: str | None = None):
        self.argv = list(argv)
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(message or f"Command failed ({returncode}): {' '.join(self.argv)}\n{stderr}")


class CommandTimeout(CommandError):
    def __init__(self, argv: Sequence[str], timeout: float):
        self.timeout = timeout
        super().__init__(argv, -1, message=f"Command timed out after {timeout:g}s: {' '.join(argv)}")


class PoolCreationError(InstallerError):
    """Pool creation failed or hung; `diagnostics` holds the captured snapshot."""

    def __init__(self, message: str, diagnostics: str):
        self.diagnostics = diagnostics
        super().__init__(message)


class InstallInterrupted(InstallerError):
    def __init__(self, signum: int):
        self.signum = signum
        super().__init__(f"Installation interrupted by signal {signum}")
