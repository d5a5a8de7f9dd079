from sqlmodel import Session, select
from sqlalchemy.exc import SQLAlchemyError
from fastapi import HTTPException
from datetime import datetime, timezone

from clearance.clients.PermitClient import PermitClient
from clearance.clients.errors import CollaboratorError
from clearance.core.errors import collaborator_http_error, rule_http_error
from clearance.core.log import get_logger
from clearance.engine.PermitGate import PermitGate
from clearance.engine.RequirementStatusEngine import RequirementStatusEngine
from clearance.engine.errors import NotFullyCleared
from clearance.models.Permit import (
    Permit,
    PermitGrant,
    PermitGrantRead,
    PermitGrantRequirement,
    PermitRevokeResponse,
    PermitStatus,
)
from clearance.models.Role import Officer
from clearance.models.StudentRequirement import StudentRequirement
from clearance.services.LogService import LogService
from clearance.services.StudentRequirementService import StudentRequirementService, to_read

logger = get_logger(__name__)


class PermitService:

    log_service = LogService()
    student_requirement_service = StudentRequirementService()
    gate = PermitGate(RequirementStatusEngine())

    def _requirement_ids(self, session: Session, grant: PermitGrant) -> list[int]:
        links = session.exec(
            select(PermitGrantRequirement).where(PermitGrantRequirement.permit_grant_id == grant.id)
        ).all()
        return sorted(link.student_requirement_id for link in links)

    def to_read(self, session: Session, grant: PermitGrant) -> PermitGrantRead:
        return PermitGrantRead.model_validate(
            grant, update={"requirement_ids": self._requirement_ids(session, grant)}
        )

    async def check(self, *, client: PermitClient, school_id: str) -> Permit | None:
        try:
            return await client.check_by_school_id(school_id)
        except CollaboratorError as e:
            raise collaborator_http_error(e)

    def get_grant(self, *, session: Session, permit_id: str) -> PermitGrant | None:
        return session.exec(select(PermitGrant).where(PermitGrant.permit_id == permit_id)).first()

    async def issue(
        self,
        *,
        session: Session,
        client: PermitClient,
        student_id: str,
        actor: Officer,
    ) -> PermitGrant:
        """Issue a permit for a fully cleared student and record the records that gated it."""
        rows = self.student_requirement_service.list_by_school_id(session=session, school_id=student_id)
        records = [to_read(row) for row in rows]

        existing = await self.check(client=client, school_id=student_id)
        if existing is not None:
            raise HTTPException(status_code=409, detail=f"Student {student_id} already holds an active permit")

        try:
            permit = await self.gate.on_all_signed(student_id, records, client, actor.id)
        except NotFullyCleared as e:
            raise rule_http_error(e)
        except CollaboratorError as e:
            raise collaborator_http_error(e)

        grant = PermitGrant(
            permit_id=permit.id,
            student_id=student_id,
            permit_code=permit.permit_code,
            status=permit.status.value,
            expires_at=permit.expires_at,
            issued_by=actor.id,
        )
        try:
            session.add(grant)
            session.flush()
            for record in records:
                session.add(PermitGrantRequirement(permit_grant_id=grant.id, student_requirement_id=record.id))
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            # the external permit exists but its gating set is not recorded
            logger.error(
                "Permit %s issued to student %s but could not be recorded: %s", permit.id, student_id, e
            )
            raise HTTPException(
                status_code=500,
                detail=f"Permit {permit.id} was issued but could not be recorded; revoke it with the permit service",
            )
        session.refresh(grant)

        self.log_service.create_log_entry(
            session=session,
            action="PERMIT_ISSUED",
            description=f"User {actor.id} issued permit {permit.id} to student {student_id} over {len(records)} requirement(s)",
            actor_id=actor.id,
        )
        return grant

    async def auto_issue(self, *, session: Session, client: PermitClient, student_ids: list[str], actor: Officer) -> int:
        """Issue permits for any of the students that became fully cleared; errors are only logged."""
        issued = 0
        for student_id in dict.fromkeys(student_ids):
            records = [
                to_read(row)
                for row in self.student_requirement_service.list_by_school_id(session=session, school_id=student_id)
            ]
            if not self.gate.is_fully_cleared(records):
                continue
            try:
                await self.issue(session=session, client=client, student_id=student_id, actor=actor)
            except (HTTPException, SQLAlchemyError) as e:
                session.rollback()
                logger.warning("Automatic permit issue for student %s failed: %s", student_id, e)
                continue
            issued += 1
        return issued

    async def revoke(
        self,
        *,
        session: Session,
        client: PermitClient,
        permit_id: str,
        actor: Officer,
    ) -> PermitRevokeResponse:
        """Revoke a permit and put the records that gated it back to signed."""
        grant = self.get_grant(session=session, permit_id=permit_id)
        if not grant:
            raise HTTPException(status_code=404, detail="Permit not found")
        if grant.status == PermitStatus.REVOKED.value:
            raise HTTPException(status_code=409, detail="Permit already revoked")

        gated = []
        for record_id in self._requirement_ids(session, grant):
            row = session.get(StudentRequirement, record_id)
            if row is not None:
                gated.append(to_read(row))

        permit = Permit(
            id=grant.permit_id,
            student_id=grant.student_id,
            permit_code=grant.permit_code,
            status=grant.status,
            expires_at=grant.expires_at,
        )
        try:
            _revoked, result = await self.gate.on_revoke(
                permit, gated, client, self.student_requirement_service.persist_for(session, actor.id)
            )
        except CollaboratorError as e:
            raise collaborator_http_error(e)

        grant.status = PermitStatus.REVOKED.value
        grant.revoked_by = actor.id
        grant.revoked_at = datetime.now(timezone.utc)
        session.add(grant)
        session.commit()
        session.refresh(grant)

        self.log_service.create_log_entry(
            session=session,
            action="PERMIT_REVOKED",
            description=(
                f"User {actor.id} revoked permit {permit_id} of student {grant.student_id}: "
                f"{result.updated} requirement(s) kept signed, {result.failed} failed"
            ),
            actor_id=actor.id,
        )
        return PermitRevokeResponse(
            permit=self.to_read(session, grant),
            reverted=result.updated,
            failed=result.failed,
        )
