from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Protocol, Sequence, Tuple

from .config_store import SatelliteConfig
from .errors import InstallerError, RebootPending, StepExecutionError
from .lib import manifests
from .lib.env import PATHS, Paths
from .progress import ProgressLedger
from .reboot import RebootHandOff

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Context:
    """Everything a step may look at. Steps never read os.environ or the cwd."""

    config: SatelliteConfig
    working_root: Path
    username: str
    paths: Paths = PATHS
    dry_run: bool = False
    resume_command: str = ""

    def home_path(self, *parts: str) -> Path:
        return Path(self.working_root).joinpath(*parts)

    def repo_dir(self, name: str) -> Path:
        return self.home_path(manifests.repository(name)["dir"])


class Step(Protocol):
    """A single idempotent step.

    ``already_applied`` inspects the host and must not change anything;
    ``apply`` must tolerate partial effects of an earlier interrupted run.
    """

    step_id: str
    label: str
    requires_reboot: bool
    after: Tuple[str, ...]

    def already_applied(self, ctx: Context) -> bool:
        ...

    def apply(self, ctx: Context) -> None:
        ...


class StepRegistry:
    """Static, totally ordered list of steps. Ordinals start at 1."""

    def __init__(self, steps: Sequence[Step]) -> None:
        self._steps: List[Step] = list(steps)
        self._ordinals: Dict[str, int] = {}
        for i, step in enumerate(self._steps, start=1):
            if step.step_id in self._ordinals:
                raise ValueError(f"Duplicate step id: {step.step_id}")
            for dep in getattr(step, "after", ()):
                if dep not in self._ordinals:
                    raise ValueError(f"Step {step.step_id} must come after {dep}, which is not registered before it")
            self._ordinals[step.step_id] = i

    def __iter__(self) -> Iterator[Step]:
        return iter(self._steps)

    def __len__(self) -> int:
        return len(self._steps)

    def ordinal(self, step_id: str) -> int:
        try:
            return self._ordinals[step_id]
        except KeyError:
            raise KeyError(f"Unknown step: {step_id}") from None

    def get(self, step_id: str) -> Step:
        return self._steps[self.ordinal(step_id) - 1]

    def advance(self, current: int) -> Optional[Step]:
        """Step that follows ordinal ``current`` (0 = not started), or None when done."""
        if current < 0:
            raise ValueError(f"Invalid step ordinal: {current}")
        if current >= len(self._steps):
            return None
        return self._steps[current]

    def remaining(self, current: int) -> List[Step]:
        if current < 0:
            raise ValueError(f"Invalid step ordinal: {current}")
        return self._steps[current:]


@dataclass(frozen=True)
class PipelineResult:
    ran_steps: List[str] = field(default_factory=list)
    skipped_steps: List[str] = field(default_factory=list)
    completed: bool = False
    resumed: bool = False


def run_pipeline(
    *,
    ctx: Context,
    registry: StepRegistry,
    ledger: ProgressLedger,
    handoff: Optional[RebootHandOff] = None,
    stop_after: Optional[str] = None,
) -> PipelineResult:
    """Run the remaining steps in order with resume/idempotency semantics.

    Raises RebootPending after a reboot hand-off, StepExecutionError (or
    another InstallerError carrying the step id) when a step fails. The ledger
    only ever moves forward, and only after a step succeeded.
    """

    handoff = handoff or RebootHandOff()
    if stop_after is not None:
        registry.ordinal(stop_after)

    mark = ledger.read()
    if mark is not None and mark.completed:
        logger.info("All %d steps already completed; nothing to do", len(registry))
        handoff.finish(ctx)
        return PipelineResult(completed=True)

    current = mark.step if mark is not None else 0
    resumed = bool(mark is not None and mark.reboot_pending)
    if resumed:
        logger.info("Resuming after reboot requested by step %d", current)
        if not ctx.dry_run:
            ledger.write(current)
    elif current:
        logger.info("Resuming after step %d", current)

    ran: List[str] = []
    skipped: List[str] = []

    step = registry.advance(current)
    while step is not None:
        ordinal = registry.ordinal(step.step_id)
        logger.info("[%d/%d] %s", ordinal, len(registry), step.label)

        try:
            if step.already_applied(ctx):
                logger.info("Skipping step %s (already applied)", step.step_id)
                skipped.append(step.step_id)
            else:
                logger.info("Running step %s", step.step_id)
                step.apply(ctx)
                ran.append(step.step_id)
        except InstallerError as e:
            if e.step_id is None:
                e.step_id = step.step_id
            raise
        except Exception as e:
            raise StepExecutionError(f"Step {step.step_id} failed: {e}", step_id=step.step_id) from e

        if ctx.dry_run:
            logger.info("Would record step %d (%s) as done", ordinal, step.step_id)
            if step.requires_reboot:
                logger.info("Would reboot after %s", step.step_id)
        else:
            ledger.write(ordinal, reboot_pending=step.requires_reboot)
            if step.requires_reboot:
                try:
                    handoff.request_reboot(ctx, step)
                except Exception as e:
                    # No reboot happened: the step must run (and reboot) again next time.
                    ledger.write(ordinal - 1)
                    raise StepExecutionError(
                        f"Reboot after step {step.step_id} could not be requested: {e}", step_id=step.step_id
                    ) from e
                raise RebootPending(step.step_id, ordinal)

        if stop_after is not None and step.step_id == stop_after:
            logger.info("Stopping after %s", stop_after)
            return PipelineResult(ran_steps=ran, skipped_steps=skipped, resumed=resumed)

        step = registry.advance(ordinal)

    if not ctx.dry_run:
        ledger.write_completed()
    handoff.finish(ctx)
    logger.info("All %d steps completed (ran=%s skipped=%s)", len(registry), ran, skipped)
    return PipelineResult(ran_steps=ran, skipped_steps=skipped, completed=True, resumed=resumed)
