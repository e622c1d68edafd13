from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, Optional

from tqdm import tqdm

from appwrite_setup.models.schema_plan import SchemaPlan
from appwrite_setup.services.mutation_executor import MutationOutcome
from appwrite_setup.services.setup.plan_applier import ApplyReport, PlanApplier, StepKind, StepResult


logger = logging.getLogger(__name__)


class RunState(str, Enum):
    NOT_STARTED = "not_started"
    RUNNING = "running"
    COMPLETED = "completed"
    ABORTED = "aborted"


@dataclass
class RunReport:
    state: RunState = RunState.NOT_STARTED
    reports: list[ApplyReport] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    failure: Optional[StepResult] = None

    @property
    def succeeded(self) -> bool:
        return self.state is RunState.COMPLETED

    @property
    def exit_code(self) -> int:
        return 0 if self.succeeded else 1

    @property
    def cause(self) -> Optional[BaseException]:
        return self.failure.result.cause if self.failure is not None else None

    def count(self, outcome: MutationOutcome) -> int:
        return sum(r.count(outcome) for r in self.reports)


@dataclass(frozen=True)
class _Target:
    label: str
    apply: Callable[[], Awaitable[ApplyReport]]
    is_bucket: bool = False


class SetupOrchestrator:
    """Applies a whole schema plan, one target at a time, stopping at the first fatal result.

    Order: collections, then attribute additions to existing collections, then the bucket.
    Nothing is persisted between runs; re-running relies on every create call being
    idempotent (conflicts count as success).
    """

    def __init__(self, *, applier: PlanApplier, show_progress: bool = True) -> None:
        self._applier = applier
        self._show_progress = show_progress

    def _targets(self, plan: SchemaPlan) -> list[_Target]:
        targets = [
            _Target(label=f"collection {c.id}", apply=lambda c=c: self._applier.apply_collection(c))
            for c in plan.collections
        ]
        targets.extend(
            _Target(label=f"addition to {a.collection_id}", apply=lambda a=a: self._applier.apply_addition(a))
            for a in plan.attribute_additions
        )
        if plan.bucket is not None:
            bucket = plan.bucket
            targets.append(
                _Target(label=f"bucket {bucket.id}", apply=lambda: self._applier.apply_bucket(bucket), is_bucket=True)
            )
        return targets

    async def run(self, plan: SchemaPlan) -> RunReport:
        run = RunReport()
        targets = self._targets(plan)
        run.state = RunState.RUNNING

        for target in tqdm(targets, desc="Applying schema plan", unit="target", disable=not self._show_progress):
            report = await target.apply()
            run.reports.append(report)

            failure = report.failure
            if failure is None:
                continue

            if target.is_bucket and failure.kind is StepKind.BUCKET and (
                failure.outcome is MutationOutcome.RESOURCE_LIMIT_REACHED
            ):
                message = (
                    f"Storage bucket limit reached ({failure.name}). "
                    "Use an existing bucket or upgrade the plan; continuing without creating it."
                )
                logger.warning(message)
                run.warnings.append(message)
                continue

            run.failure = failure
            run.state = RunState.ABORTED
            logger.error("Setup aborted at %s: %s", target.label, failure.result.cause)
            return run

        run.state = RunState.COMPLETED
        logger.info(
            "Setup completed: applied=%d, already_present=%d, warnings=%d",
            run.count(MutationOutcome.APPLIED),
            run.count(MutationOutcome.ALREADY_PRESENT),
            len(run.warnings),
        )
        return run
