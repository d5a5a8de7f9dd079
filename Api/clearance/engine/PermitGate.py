from typing import Protocol, Sequence

from clearance.engine.RequirementStatusEngine import BatchResult, Persist, RequirementStatusEngine
from clearance.engine.errors import NotFullyCleared
from clearance.models.Permit import Permit
from clearance.models.StudentRequirement import RequirementStatus, StudentRequirementRead


class DisplayStatus:
    CLEARED = "Cleared"
    SIGNED = "Signed"
    MISSING = "Missing"
    INCOMPLETE = "Incomplete"


class PermitIssuer(Protocol):
    async def issue(self, student_id: str, issued_by: str) -> Permit: ...

    async def revoke(self, permit_id: str) -> Permit: ...


class PermitGate:

    def __init__(self, engine: RequirementStatusEngine | None = None):
        self.engine = engine or RequirementStatusEngine()

    def is_fully_cleared(self, records: Sequence[StudentRequirementRead]) -> bool:
        # a student with nothing assigned is not cleared
        return bool(records) and all(r.status == RequirementStatus.SIGNED for r in records)

    def pending(self, records: Sequence[StudentRequirementRead]) -> list[int]:
        return [r.requirement_id for r in records if r.status != RequirementStatus.SIGNED]

    def project_status(self, records: Sequence[StudentRequirementRead], has_active_permit: bool) -> str:
        """Read-time display status; "Cleared" only ever comes from the permit."""
        if has_active_permit:
            return DisplayStatus.CLEARED
        if not records:
            return DisplayStatus.INCOMPLETE
        statuses = {r.status for r in records}
        if RequirementStatus.MISSING in statuses:
            return DisplayStatus.MISSING
        if statuses == {RequirementStatus.SIGNED}:
            return DisplayStatus.SIGNED
        return DisplayStatus.INCOMPLETE

    async def on_all_signed(
        self,
        student_id: str,
        records: Sequence[StudentRequirementRead],
        issuer: PermitIssuer,
        issued_by: str,
    ) -> Permit:
        if not self.is_fully_cleared(records):
            raise NotFullyCleared(student_id, self.pending(records))
        return await issuer.issue(student_id, issued_by)

    async def on_revoke(
        self,
        permit: Permit,
        gated_records: Sequence[StudentRequirementRead],
        issuer: PermitIssuer,
        persist: Persist,
    ) -> tuple[Permit, BatchResult]:
        """Revoke a permit, then put exactly the records that gated it back to signed.

        Revocation is not an undo: the records end up `signed`, never
        `incomplete`.
        """
        revoked = await issuer.revoke(permit.id)
        result = await self.engine.run_batch(gated_records, RequirementStatus.SIGNED, persist)
        return revoked, result
