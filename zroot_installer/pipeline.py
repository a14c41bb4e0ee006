from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol, Sequence

from .errors import StageFailed
from .install_config import InstallConfig
from .plan import InstallPlan
from .state_store import is_step_completed, mark_step_completed

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InstallContext:
    """Read-only inputs shared by every step."""

    plan: InstallPlan
    config: InstallConfig
    dry_run: bool = False

    @property
    def target_root(self) -> str:
        return self.config.target_root


class Step(Protocol):
    """A single pipeline stage."""

    step_id: str

    def run(self, ctx: InstallContext, state: Dict[str, Any]) -> Dict[str, Any]:
        ...


@dataclass(frozen=True)
class PipelineResult:
    state: Dict[str, Any]
    ran_steps: List[str]
    skipped_steps: List[str]


def run_pipeline(
    *,
    ctx: InstallContext,
    state: Dict[str, Any],
    steps: Sequence[Step],
    start_at: Optional[str] = None,
    stop_after: Optional[str] = None,
    resume: bool = False,
) -> PipelineResult:
    """Run steps in order; the first failure stops everything.

    The failing step is left as execution.current_step and the error is
    re-raised as StageFailed. Completed steps are never undone.
    """

    ran: List[str] = []
    skipped: List[str] = []

    if start_at is not None and start_at not in {s.step_id for s in steps}:
        raise ValueError(f"Unknown step: {start_at}")

    started = start_at is None

    for step in steps:
        if not started:
            if step.step_id == start_at:
                started = True
            else:
                continue

        state.setdefault("execution", {})["current_step"] = step.step_id

        if resume and is_step_completed(state, step.step_id):
            logger.info("Skipping step %s (already completed)", step.step_id)
            skipped.append(step.step_id)
        else:
            logger.info("Running step %s", step.step_id)
            try:
                state = step.run(ctx, state)
            except Exception as e:
                raise StageFailed(step.step_id, e) from e
            mark_step_completed(state, step.step_id)
            ran.append(step.step_id)

        if stop_after is not None and step.step_id == stop_after:
            logger.info("Stopping after %s", stop_after)
            break

    state.setdefault("execution", {})["current_step"] = None
    return PipelineResult(state=state, ran_steps=ran, skipped_steps=skipped)
