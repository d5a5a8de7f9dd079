import asyncio
from datetime import datetime, timezone

from sqlmodel import Session, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from fastapi import HTTPException

from clearance.clients.PermitClient import PermitClient
from clearance.clients.errors import CollaboratorError
from clearance.core.errors import collaborator_http_error, rule_http_error
from clearance.core.log import get_logger
from clearance.engine.PermitGate import PermitGate
from clearance.engine.RequirementStatusEngine import BatchResult, Persist, RequirementStatusEngine
from clearance.engine.errors import InvalidTransition, RuleViolation
from clearance.models.ClearancePeriod import ClearancePeriod
from clearance.models.RequirementDefinition import RequirementDefinition
from clearance.models.Role import Officer
from clearance.models.StudentRequirement import (
    BatchResponse,
    RequirementStatus,
    StudentRequirement,
    StudentRequirementCreate,
    StudentRequirementRead,
    SweepResponse,
)
from clearance.services.ClearancePeriodService import ClearancePeriodService
from clearance.services.LogService import LogService

logger = get_logger(__name__)

SYSTEM_ACTOR = "system"


def to_read(row: StudentRequirement) -> StudentRequirementRead:
    return StudentRequirementRead.model_validate(row)


class StudentRequirementService:

    log_service = LogService()
    period_service = ClearancePeriodService()
    engine = RequirementStatusEngine()
    gate = PermitGate(engine)

    # --- persistence -----------------------------------------------------

    def _insert(self, session: Session, data: StudentRequirementCreate, actor_id: str) -> StudentRequirement:
        record = StudentRequirement(
            student_id=data.student_id,
            co_id=data.co_id,
            requirement_id=data.requirement_id,
            signed_by=data.signed_by,
            status=data.status.value,
            updated_by=actor_id,
        )
        session.add(record)
        try:
            session.commit()
        except IntegrityError:
            session.rollback()
            raise
        session.refresh(record)
        return record

    def _check_requirement(self, session: Session, requirement_id: int) -> RequirementDefinition:
        requirement = session.get(RequirementDefinition, requirement_id)
        if not requirement:
            raise HTTPException(status_code=404, detail="Requirement not found")
        return requirement

    def _check_owner(self, row: StudentRequirement, officer: Officer) -> None:
        # a record belongs to the officer and role it was assigned under
        if row.co_id != officer.id or row.signed_by != officer.role:
            raise HTTPException(status_code=403, detail="Only the assigned officer can change this requirement")

    def create(self, *, session: Session, data: StudentRequirementCreate, actor_id: str) -> StudentRequirement:
        self._check_requirement(session, data.requirement_id)
        try:
            record = self._insert(session, data, actor_id)
        except IntegrityError:
            raise HTTPException(
                status_code=409,
                detail="Student already has this requirement for that officer role",
            )

        self.log_service.create_log_entry(
            session=session,
            action="STUDENT_REQUIREMENT_CREATED",
            description=f"User {actor_id} created requirement record {record.id} for student {record.student_id} as {record.status}",
            actor_id=actor_id,
        )
        return record

    async def bulk_create(
        self,
        *,
        session: Session,
        items: list[StudentRequirementCreate],
        actor_id: str,
    ) -> tuple[list[StudentRequirementRead], int]:
        """Create many records independently; one failing does not stop the rest."""

        async def create_one(item: StudentRequirementCreate) -> StudentRequirementRead:
            return to_read(self._insert(session, item, actor_id))

        outcomes = await asyncio.gather(*(create_one(item) for item in items), return_exceptions=True)

        created = []
        failed = 0
        for item, outcome in zip(items, outcomes):
            if isinstance(outcome, Exception):
                logger.warning("Failed to create requirement for student %s: %s", item.student_id, outcome)
                failed += 1
            else:
                created.append(outcome)
        return created, failed

    def list_all(
        self,
        *,
        session: Session,
        requirement_id: int | None = None,
        co_id: str | None = None,
        status: RequirementStatus | None = None,
    ) -> list[StudentRequirement]:
        query = select(StudentRequirement).order_by(StudentRequirement.id)
        if requirement_id is not None:
            query = query.where(StudentRequirement.requirement_id == requirement_id)
        if co_id:
            query = query.where(StudentRequirement.co_id == co_id)
        if status:
            query = query.where(StudentRequirement.status == status.value)
        return list(session.exec(query).all())

    def list_by_school_id(self, *, session: Session, school_id: str) -> list[StudentRequirement]:
        return list(session.exec(
            select(StudentRequirement)
            .where(StudentRequirement.student_id == school_id)
            .order_by(StudentRequirement.id)
        ).all())

    def find_by_role_key(
        self,
        *,
        session: Session,
        student_id: str,
        co_id: str,
        requirement_id: int,
        signed_by: str,
    ) -> StudentRequirement | None:
        return session.exec(
            select(StudentRequirement).where(
                StudentRequirement.student_id == student_id,
                StudentRequirement.co_id == co_id,
                StudentRequirement.requirement_id == requirement_id,
                StudentRequirement.signed_by == signed_by,
            )
        ).first()

    def persist_for(self, session: Session, actor_id: str) -> Persist:
        """Build the per-record write used by batch transitions.

        Each call commits on its own. A sweep write re-checks the stored
        status so it never overwrites a record that changed since it was read.
        """

        async def persist(record: StudentRequirementRead, target: RequirementStatus) -> StudentRequirementRead:
            row = session.get(StudentRequirement, record.id)
            if row is None:
                raise LookupError(f"Requirement record {record.id} no longer exists")
            session.refresh(row)
            if target == RequirementStatus.MISSING and row.status != RequirementStatus.INCOMPLETE.value:
                raise InvalidTransition(row.id, row.status, target.value)

            row.status = target.value
            row.updated_by = actor_id
            row.updated_at = datetime.now(timezone.utc)
            session.add(row)
            try:
                session.commit()
            except SQLAlchemyError:
                session.rollback()
                raise
            session.refresh(row)
            return to_read(row)

        return persist

    # --- manual transitions ----------------------------------------------

    async def has_active_permit(self, permit_client: PermitClient, school_id: str) -> bool:
        return await permit_client.check_by_school_id(school_id) is not None

    async def update_status(
        self,
        *,
        session: Session,
        record_id: int,
        status: RequirementStatus,
        officer: Officer,
        permit_client: PermitClient,
    ) -> StudentRequirement:
        row = session.get(StudentRequirement, record_id)
        if not row:
            raise HTTPException(status_code=404, detail="Student requirement not found")
        self._check_owner(row, officer)
        record = to_read(row)

        try:
            if status == RequirementStatus.SIGNED:
                self.engine.sign(record)
            elif status == RequirementStatus.INCOMPLETE:
                try:
                    locked = await self.has_active_permit(permit_client, record.student_id)
                except CollaboratorError as e:
                    raise collaborator_http_error(e)
                self.engine.undo(record, locked)
            else:
                self.engine.mark_missing(record)
        except RuleViolation as e:
            raise rule_http_error(e)

        persisted = await self.persist_for(session, officer.id)(record, status)

        self.log_service.create_log_entry(
            session=session,
            action="STUDENT_REQUIREMENT_UPDATED",
            description=f"User {officer.id} moved record {record.id} from {record.status.value} to {persisted.status.value}",
            actor_id=officer.id,
        )
        return session.get(StudentRequirement, record_id)

    async def sign_students(
        self,
        *,
        session: Session,
        officer: Officer,
        requirement_id: int,
        student_ids: list[str],
    ) -> BatchResponse:
        """Sign a requirement for each student under the officer's role.

        Students without a record for this officer role get one created
        directly as signed.
        """
        self._check_requirement(session, requirement_id)

        existing = []
        to_create = []
        for student_id in dict.fromkeys(student_ids):
            row = self.find_by_role_key(
                session=session,
                student_id=student_id,
                co_id=officer.id,
                requirement_id=requirement_id,
                signed_by=officer.role,
            )
            if row:
                existing.append(to_read(row))
            else:
                to_create.append(StudentRequirementCreate(
                    student_id=student_id,
                    co_id=officer.id,
                    requirement_id=requirement_id,
                    signed_by=officer.role,
                    status=RequirementStatus.SIGNED,
                ))

        result: BatchResult = await self.engine.run_batch(
            existing,
            RequirementStatus.SIGNED,
            self.persist_for(session, officer.id),
        )
        created, create_failed = await self.bulk_create(session=session, items=to_create, actor_id=officer.id)

        response = BatchResponse(
            updated=result.updated + len(created),
            failed=result.failed + create_failed,
            failed_ids=result.failed_ids,
            records=result.records + created,
        )
        self.log_service.create_log_entry(
            session=session,
            action="STUDENT_REQUIREMENTS_SIGNED",
            description=(
                f"User {officer.id} ({officer.role}) signed requirement {requirement_id}: "
                f"{response.updated} signed, {response.failed} failed"
            ),
            actor_id=officer.id,
        )
        return response

    async def undo_students(
        self,
        *,
        session: Session,
        officer: Officer,
        requirement_id: int,
        student_ids: list[str],
        permit_client: PermitClient,
    ) -> BatchResponse:
        """Undo the officer's signature for each student.

        Students holding an active permit, or whose permit state cannot be
        confirmed, are reported as blocked. Students with no signed record
        under this role are reported as skipped.
        """
        self._check_requirement(session, requirement_id)

        candidates = []
        skipped = []
        for student_id in dict.fromkeys(student_ids):
            row = self.find_by_role_key(
                session=session,
                student_id=student_id,
                co_id=officer.id,
                requirement_id=requirement_id,
                signed_by=officer.role,
            )
            if row is None:
                skipped.append(student_id)
            else:
                candidates.append(to_read(row))

        permit_checks = await asyncio.gather(
            *(self.has_active_permit(permit_client, record.student_id) for record in candidates),
            return_exceptions=True,
        )

        eligible = []
        blocked = []
        for record, locked in zip(candidates, permit_checks):
            if isinstance(locked, Exception):
                logger.warning("Permit state unknown for student %s, refusing undo: %s", record.student_id, locked)
                locked = True
            try:
                self.engine.undo(record, locked)
            except InvalidTransition:
                skipped.append(record.student_id)
                continue
            except RuleViolation:
                blocked.append(record.student_id)
                continue
            eligible.append(record)

        result = await self.engine.run_batch(
            eligible, RequirementStatus.INCOMPLETE, self.persist_for(session, officer.id)
        )

        self.log_service.create_log_entry(
            session=session,
            action="STUDENT_REQUIREMENTS_UNDONE",
            description=(
                f"User {officer.id} ({officer.role}) undid requirement {requirement_id}: "
                f"{result.updated} undone, {result.failed} failed, {len(blocked)} blocked by permits"
            ),
            actor_id=officer.id,
        )
        return BatchResponse(
            updated=result.updated,
            failed=result.failed,
            failed_ids=result.failed_ids,
            blocked=blocked,
            skipped=skipped,
            records=result.records,
        )

    # --- deadline sweep --------------------------------------------------

    async def run_automatic_sweep(
        self,
        *,
        session: Session,
        period: ClearancePeriod | None = None,
        requirement_id: int | None = None,
        actor_id: str = SYSTEM_ACTOR,
        now: datetime | None = None,
    ) -> SweepResponse:
        """Persist the engine's deadline sweep over the stored records.

        Only the records the engine changed are written, one at a time.
        """
        if period is None:
            period = self.period_service.get_current(session=session)

        rows = self.list_all(session=session, requirement_id=requirement_id)
        sweep = self.engine.apply_automatic_sweep([to_read(row) for row in rows], period, now)
        if not sweep.applied:
            return SweepResponse(applied=False)
        if not sweep.changed:
            return SweepResponse(applied=True)

        result = await self.engine.run_batch(
            sweep.changed, RequirementStatus.MISSING, self.persist_for(session, actor_id)
        )

        self.log_service.create_log_entry(
            session=session,
            action="DEADLINE_SWEEP",
            description=(
                f"Deadline of clearance {period.id} passed: {result.updated} record(s) marked missing, "
                f"{result.failed} failed"
            ),
            actor_id=actor_id,
        )
        return SweepResponse(applied=True, updated=result.updated, failed=result.failed)

    async def sweep_quietly(self, *, session: Session, requirement_id: int | None = None) -> SweepResponse | None:
        """Background sweep run before listings; errors are logged, never raised."""
        try:
            return await self.run_automatic_sweep(session=session, requirement_id=requirement_id)
        except Exception:
            session.rollback()
            logger.exception("Automatic deadline sweep failed")
            return None

    # --- projection ------------------------------------------------------

    async def student_status(
        self,
        *,
        session: Session,
        school_id: str,
        permit_client: PermitClient,
    ) -> tuple[str, bool, list[StudentRequirementRead]]:
        records = [to_read(row) for row in self.list_by_school_id(session=session, school_id=school_id)]
        has_permit = await self.has_active_permit(permit_client, school_id)
        return self.gate.project_status(records, has_permit), has_permit, records
