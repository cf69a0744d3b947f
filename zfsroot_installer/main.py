from __future__ import annotations

import argparse
import logging
import os
from typing import List, Optional

from .config import Credentials, InstallContext, freeze
from .config_store import build_config
from .dialogs import Dialogs
from .errors import ConfigError, PoolCreationError, PreflightError
from .lib.block import detect_memory_gb
from .lib.command import run_cmd
from .logging_utils import DEFAULT_LOG_PATH, add_console_handler, configure_logging
from .menu import Menu, MenuResult
from .pipeline import PipelineResult, run_pipeline
from .preflight import run_preflight
from .progress import ProgressChannel, RichGauge
from .reset import release_resources
from .steps import build_steps

logger = logging.getLogger(__name__)


def run_install(ctx: InstallContext, gauge: Optional[RichGauge] = None) -> PipelineResult:
    """Run every stage against a frozen context, streaming progress to the gauge."""

    gauge = gauge or RichGauge()
    gauge.start()
    try:
        with ProgressChannel(gauge.update) as channel:
            return run_pipeline(ctx=ctx, steps=build_steps(), release=release_resources, progress=channel.send)
    finally:
        gauge.stop()


def report_failure(dialogs: Dialogs, result: PipelineResult, log_path: str) -> None:
    failed = result.failed
    error = failed.error if failed else None
    text = f"Stage {failed.step_id if failed else '?'} failed: {error}\n\nSee the log: {log_path}"
    if isinstance(error, PoolCreationError):
        text += "\n\nDiagnostics were captured in the log."
    dialogs.message("Installation failed", text)


def main(argv: Optional[List[str]] = None) -> int:
    p = argparse.ArgumentParser(prog="zfsroot-installer", description="Install Ubuntu on a ZFS root pool.")
    p.add_argument("--config", default=None, help="Overrides file (yaml|json)")
    p.add_argument("--log", default=DEFAULT_LOG_PATH, help="Path to installer log")
    p.add_argument("--debug", action="store_true", help="Mirror the log to the console at DEBUG")
    p.add_argument(
        "--set",
        dest="pairs",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Override one setting (repeatable)",
    )
    args = p.parse_args(argv)

    log_path = configure_logging(log_path=args.log, level=logging.DEBUG, also_console=args.debug)
    dialogs = Dialogs()

    try:
        config = build_config(config_path=args.config, environ=os.environ, pairs=args.pairs)
    except ConfigError as e:
        logger.error("Configuration error: %s", e)
        dialogs.message("Configuration error", str(e))
        return 1
    if config.debug and not args.debug:
        add_console_handler(logging.DEBUG)
    config.debug = config.debug or args.debug

    try:
        warnings = run_preflight()
    except PreflightError as e:
        logger.error("Preflight failed: %s", e)
        dialogs.message("Preflight failed", str(e))
        return 1
    if warnings:
        dialogs.message("Preflight warnings", "\n".join(warnings))

    credentials = Credentials()
    if Menu(config, credentials, dialogs).loop() is MenuResult.EXIT:
        logger.info("Exited from menu")
        return 0

    try:
        ctx = freeze(config, credentials, memory_gb=detect_memory_gb(), log_path=log_path)
    except ConfigError as e:
        logger.error("Cannot start installation: %s", e)
        dialogs.message("Cannot start installation", str(e))
        return 1

    result = run_install(ctx)
    if not result.ok:
        report_failure(dialogs, result, log_path)
        return 1

    dialogs.summary(
        "Installation complete",
        {
            "disk": ctx.layout.disk,
            "pool": ctx.pool,
            "root dataset": ctx.root_fs,
            "release": f"{ctx.config.release} ({ctx.config.version})",
            "log": log_path,
        },
    )
    if dialogs.yesno("Reboot now?", default=False):
        run_cmd(["reboot"], check=False)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
