from __future__ import annotations

import logging
import signal
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Callable, Iterator, List, Optional, Protocol, Sequence

from .config import InstallContext
from .errors import InstallInterrupted

logger = logging.getLogger(__name__)


class PipelineState(IntEnum):
    """Fixed stage order. A stage runs only after every lower one succeeded."""

    PREFLIGHT = 0
    DISK_PREP = 1
    POOL_CREATE = 2
    BASE_INSTALL = 3
    SWAP = 4
    BOOTLOADER_PRIMARY = 5
    BOOTLOADER_SECONDARY = 6
    FINALIZE = 7
    CLEANUP = 8


class Step(Protocol):
    """A single pipeline stage."""

    step_id: str
    state: PipelineState
    percent: int

    def describe(self, ctx: InstallContext) -> str:
        ...

    def enabled(self, ctx: InstallContext) -> bool:
        ...

    def run(self, ctx: InstallContext) -> None:
        ...


@dataclass(frozen=True)
class StageResult:
    step_id: str
    ok: bool
    error: Optional[BaseException] = None


@dataclass
class PipelineResult:
    results: List[StageResult] = field(default_factory=list)
    skipped_steps: List[str] = field(default_factory=list)
    reached: Optional[PipelineState] = None

    @property
    def ok(self) -> bool:
        return all(r.ok for r in self.results)

    @property
    def ran_steps(self) -> List[str]:
        return [r.step_id for r in self.results if r.ok]

    @property
    def failed(self) -> Optional[StageResult]:
        return next((r for r in self.results if not r.ok), None)


ProgressFn = Callable[[int, str], None]
ReleaseFn = Callable[[InstallContext], None]


def check_order(steps: Sequence[Step]) -> None:
    states = [s.state for s in steps]
    if states != sorted(states) or len(set(states)) != len(states):
        raise ValueError(f"Stages out of order: {[s.step_id for s in steps]}")


def run_stage(step: Step, ctx: InstallContext) -> StageResult:
    try:
        step.run(ctx)
    except Exception as e:
        logger.exception("Stage %s failed", step.step_id)
        return StageResult(step_id=step.step_id, ok=False, error=e)
    return StageResult(step_id=step.step_id, ok=True)


@contextmanager
def interrupt_guard(signals: Sequence[int] = (signal.SIGINT, signal.SIGTERM)) -> Iterator[None]:
    """Turn SIGINT/SIGTERM into InstallInterrupted for the duration of the block."""

    def _raise(signum, _frame):
        raise InstallInterrupted(signum)

    previous = {s: signal.signal(s, _raise) for s in signals}
    try:
        yield
    finally:
        for s, handler in previous.items():
            signal.signal(s, handler)


def run_pipeline(
    *,
    ctx: InstallContext,
    steps: Sequence[Step],
    release: ReleaseFn,
    progress: Optional[ProgressFn] = None,
) -> PipelineResult:
    """Run stages strictly in order; stop at the first failure and release resources.

    `release` is the single cleanup point for anything acquired since disk
    provisioning; it runs after a failure or interruption, never after success
    (the final stage already released everything).
    """

    check_order(steps)
    result = PipelineResult()

    try:
        with interrupt_guard():
            for step in steps:
                if not step.enabled(ctx):
                    logger.info("Skipping stage %s (not requested)", step.step_id)
                    result.skipped_steps.append(step.step_id)
                    continue

                message = step.describe(ctx)
                logger.info("Running stage %s: %s", step.step_id, message)
                if progress is not None:
                    progress(step.percent, message)

                stage = run_stage(step, ctx)
                result.results.append(stage)
                if not stage.ok:
                    break
                result.reached = step.state
    except InstallInterrupted as e:
        logger.error("%s", e)
        result.results.append(StageResult(step_id="interrupted", ok=False, error=e))

    if not result.ok:
        failed = result.failed
        logger.error("Installation failed at %s; releasing resources", failed.step_id if failed else "?")
        release(ctx)
    return result
