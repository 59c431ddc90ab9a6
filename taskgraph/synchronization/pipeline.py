"""Ordered, independently reported steps for best-effort writes across two stores.

The similarity store and the graph store share no transaction, so a task
mutation is modeled as a list of named steps. Every step runs even when an
earlier one failed, and each reports its own failures.
"""

from typing import Callable

from loguru import logger
from pydantic import BaseModel, computed_field

from taskgraph.synchronization.relationship_extraction.edge_synchronizer import EdgeWriteResult


class StepFailure(BaseModel):
    step: str
    error_type: str
    error: str
    detail: str | None = None

    @classmethod
    def from_exception(cls, step: str, exc: Exception, detail: str | None = None) -> "StepFailure":
        return cls(step=step, error_type=type(exc).__name__, error=str(exc), detail=detail)

    @classmethod
    def from_edge(cls, step: str, result: EdgeWriteResult) -> "StepFailure":
        return cls(
            step=step,
            error_type=result.error_type or "ExternalStoreError",
            error=result.error or "Edge write failed",
            detail=f"{result.source_task_id} -[{result.type.value}]-> {result.target_task_id}",
        )


class StepResult(BaseModel):
    step: str
    success: bool
    failures: list[StepFailure] = []


class SyncOutcome(BaseModel):
    """What happened during one synchronizer invocation."""

    operation: str
    subject_id: str
    success: bool = True
    steps: list[StepResult] = []

    @computed_field  # type: ignore[misc]
    @property
    def failures(self) -> list[StepFailure]:
        return [failure for step in self.steps for failure in step.failures]

    def merge(self, other: "SyncOutcome") -> None:
        """Fold the steps of a nested invocation into this outcome."""
        self.steps.extend(other.steps)


# A step returns the partial failures it isolated, or None when everything succeeded.
StepFunc = Callable[[], list[StepFailure] | None]


class SyncPipeline:
    """Runs named steps in order, isolating the failure of each one."""

    def __init__(self, operation: str, subject_id: str) -> None:
        self.operation = operation
        self.subject_id = subject_id
        self._steps: list[tuple[str, StepFunc]] = []

    def add_step(self, name: str, func: StepFunc) -> "SyncPipeline":
        self._steps.append((name, func))
        return self

    def run(self) -> SyncOutcome:
        outcome = SyncOutcome(operation=self.operation, subject_id=self.subject_id)

        for name, func in self._steps:
            logger.debug(f"[{self.operation}] {self.subject_id}: running {name}")
            try:
                failures = func() or []
            except Exception as e:
                logger.error(f"[{self.operation}] {self.subject_id}: step {name} failed: {e}")
                outcome.steps.append(
                    StepResult(
                        step=name, success=False, failures=[StepFailure.from_exception(name, e)]
                    )
                )
                continue

            if failures:
                logger.warning(
                    f"[{self.operation}] {self.subject_id}: step {name} finished with "
                    f"{len(failures)} failure(s)"
                )
            outcome.steps.append(StepResult(step=name, success=not failures, failures=failures))

        return outcome
