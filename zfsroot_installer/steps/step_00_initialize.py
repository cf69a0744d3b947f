from __future__ import annotations

import logging

from ..config import InstallContext
from ..lib.command import run_cmd
from ..lib.env import HOST_PACKAGES
from ..lib.pkg import host_apt_install
from ..pipeline import PipelineState

logger = logging.getLogger(__name__)


class InitializeStep:
    step_id = "00_initialize"
    state = PipelineState.PREFLIGHT
    percent = 10

    def describe(self, ctx: InstallContext) -> str:
        return "Initializing installer environment"

    def enabled(self, ctx: InstallContext) -> bool:
        return True

    def run(self, ctx: InstallContext) -> None:
        host_apt_install(HOST_PACKAGES)
        # Fresh host id; it is copied into the target later so the pool imports at boot.
        run_cmd(["zgenhostid", "-f"])
        logger.info("Host tooling ready")
