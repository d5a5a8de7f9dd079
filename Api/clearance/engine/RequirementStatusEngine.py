import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from typing import Awaitable, Callable, Sequence

from clearance.core.log import get_logger
from clearance.engine.ClearanceWindowEvaluator import ClearanceWindowEvaluator
from clearance.engine.errors import InvalidTransition, SignatureLocked
from clearance.models.StudentRequirement import RequirementStatus, StudentRequirementRead

logger = get_logger(__name__)

Persist = Callable[[StudentRequirementRead, RequirementStatus], Awaitable[StudentRequirementRead]]


@dataclass
class SweepResult:
    updated: list[StudentRequirementRead]
    count: int
    applied: bool = False
    changed: list[StudentRequirementRead] = field(default_factory=list)


@dataclass
class BatchResult:
    records: list[StudentRequirementRead]
    updated: int = 0
    failed: int = 0
    failed_ids: list[int] = field(default_factory=list)


def _with_status(record: StudentRequirementRead, status: RequirementStatus) -> StudentRequirementRead:
    return record.model_copy(update={"status": status})


class RequirementStatusEngine:
    """Status rules for student-requirement records.

    Every method here is pure apart from `run_batch`, which only awaits the
    persistence callable it is handed.
    """

    def __init__(self, evaluator: ClearanceWindowEvaluator | None = None):
        self.evaluator = evaluator or ClearanceWindowEvaluator()

    def should_auto_mark_missing(self, period, now: datetime | None = None) -> bool:
        # stopping a period and passing its deadline are separate triggers
        if period is None or not period.is_active:
            return False
        return self.evaluator.evaluate(period, now).is_overdue

    def select_for_sweep(self, records: Sequence[StudentRequirementRead]) -> list[StudentRequirementRead]:
        return [r for r in records if r.status == RequirementStatus.INCOMPLETE]

    def apply_automatic_sweep(
        self,
        records: Sequence[StudentRequirementRead],
        period,
        now: datetime | None = None,
    ) -> SweepResult:
        if not self.should_auto_mark_missing(period, now):
            return SweepResult(updated=list(records), count=0)

        changed = [_with_status(r, RequirementStatus.MISSING) for r in self.select_for_sweep(records)]
        by_id = {r.id: r for r in changed}
        return SweepResult(
            updated=[by_id.get(r.id, r) for r in records],
            count=len(changed),
            applied=True,
            changed=changed,
        )

    def sign(self, record: StudentRequirementRead) -> StudentRequirementRead:
        return _with_status(record, RequirementStatus.SIGNED)

    def undo(self, record: StudentRequirementRead, has_active_permit: bool) -> StudentRequirementRead:
        if has_active_permit:
            raise SignatureLocked(record.student_id)
        if record.status != RequirementStatus.SIGNED:
            raise InvalidTransition(record.id, record.status.value, RequirementStatus.INCOMPLETE.value)
        return _with_status(record, RequirementStatus.INCOMPLETE)

    def mark_missing(self, record: StudentRequirementRead) -> StudentRequirementRead:
        if record.status != RequirementStatus.INCOMPLETE:
            raise InvalidTransition(record.id, record.status.value, RequirementStatus.MISSING.value)
        return _with_status(record, RequirementStatus.MISSING)

    async def run_batch(
        self,
        records: Sequence[StudentRequirementRead],
        target: RequirementStatus,
        persist: Persist,
    ) -> BatchResult:
        """Move every record to `target`, one independent persist call each.

        All calls are awaited together and every outcome is collected; a
        failure leaves that record at its prior status and does not undo the
        others.
        """
        records = list(records)
        if not records:
            return BatchResult(records=[])

        outcomes = await asyncio.gather(
            *(persist(record, target) for record in records),
            return_exceptions=True,
        )

        result = BatchResult(records=[])
        for record, outcome in zip(records, outcomes):
            if isinstance(outcome, BaseException):
                if not isinstance(outcome, Exception):
                    raise outcome
                logger.warning(
                    "Failed to move requirement %s to %s: %s", record.id, target.value, outcome
                )
                result.failed += 1
                result.failed_ids.append(record.id)
                result.records.append(record)
            else:
                result.updated += 1
                result.records.append(outcome)
        return result
