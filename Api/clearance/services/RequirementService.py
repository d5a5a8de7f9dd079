from sqlmodel import Session, select
from fastapi import HTTPException
from datetime import datetime, timezone

from clearance.core.log import get_logger
from clearance.models.Permit import PermitGrantRequirement
from clearance.models.RequirementDefinition import (
    RequirementDefinition,
    RequirementDefinitionCreate,
    RequirementDefinitionUpdate,
    RequirementScope,
)
from clearance.models.Role import Officer
from clearance.models.Student import Student
from clearance.models.StudentRequirement import RequirementStatus, StudentRequirement, StudentRequirementCreate
from clearance.services.LogService import LogService
from clearance.services.StudentRequirementService import StudentRequirementService
from clearance.services.StudentService import StudentService

logger = get_logger(__name__)


class RequirementService:

    log_service = LogService()
    student_service = StudentService()
    student_requirement_service = StudentRequirementService()

    def _get_or_404(self, session: Session, requirement_id: int) -> RequirementDefinition:
        requirement = session.get(RequirementDefinition, requirement_id)
        if not requirement:
            raise HTTPException(status_code=404, detail="Requirement not found")
        return requirement

    def _check_owner(self, requirement: RequirementDefinition, officer: Officer) -> None:
        if requirement.user_id != officer.id:
            raise HTTPException(status_code=403, detail="Only the owning officer can change this requirement")

    async def create_requirement(
        self,
        *,
        session: Session,
        data: RequirementDefinitionCreate,
        officer: Officer,
    ) -> tuple[RequirementDefinition, int, int, list[Student]]:
        """Create a definition and give every matching student an incomplete record.

        Returns the definition, the assigned and failed counts, and the
        students that were assigned (for notifications).
        """
        if data.scope == RequirementScope.COURSE and not data.course_code:
            raise HTTPException(status_code=400, detail="Course requirements need a course code")
        if data.scope == RequirementScope.INSTITUTIONAL and not data.institutional_name:
            raise HTTPException(status_code=400, detail="Institutional requirements need a name")
        if data.scope == RequirementScope.DEPARTMENT and not data.department:
            raise HTTPException(status_code=400, detail="Department requirements need a department")

        requirement = RequirementDefinition(
            **data.model_dump(exclude={"scope"}),
            scope=data.scope.value,
            user_id=officer.id,
            owner_role=officer.role,
        )
        session.add(requirement)
        session.commit()
        session.refresh(requirement)

        students = self.student_service.match_requirement(session=session, requirement=requirement)
        items = [
            StudentRequirementCreate(
                student_id=student.school_id,
                co_id=officer.id,
                requirement_id=requirement.id,
                signed_by=officer.role,
                status=RequirementStatus.INCOMPLETE,
            )
            for student in students
        ]
        created, failed = await self.student_requirement_service.bulk_create(
            session=session, items=items, actor_id=officer.id
        )

        self.log_service.create_log_entry(
            session=session,
            action="REQUIREMENT_CREATED",
            description=(
                f"User {officer.id} created requirement {requirement.id} "
                f"assigned to {len(created)} student(s), {failed} failed"
            ),
            actor_id=officer.id,
        )
        assigned_ids = {record.student_id for record in created}
        assigned = [s for s in students if s.school_id in assigned_ids]
        return requirement, len(created), failed, assigned

    def get_requirements(
        self,
        *,
        session: Session,
        owner_id: str | None = None,
        department: str | None = None,
    ) -> list[RequirementDefinition]:
        query = select(RequirementDefinition).order_by(RequirementDefinition.created_at.desc())
        if owner_id:
            query = query.where(RequirementDefinition.user_id == owner_id)
        if department:
            query = query.where(RequirementDefinition.department == department)
        return list(session.exec(query).all())

    def get_requirement(self, *, session: Session, requirement_id: int) -> RequirementDefinition:
        return self._get_or_404(session, requirement_id)

    def update_requirement(
        self,
        *,
        session: Session,
        requirement_id: int,
        data: RequirementDefinitionUpdate,
        officer: Officer,
    ) -> RequirementDefinition:
        requirement = self._get_or_404(session, requirement_id)
        self._check_owner(requirement, officer)

        changes = data.model_dump(exclude_unset=True)
        if "requirements" in changes and not changes["requirements"]:
            raise HTTPException(status_code=400, detail="A requirement needs at least one item")
        for key, value in changes.items():
            setattr(requirement, key, value)
        requirement.updated_at = datetime.now(timezone.utc)

        session.add(requirement)
        session.commit()
        session.refresh(requirement)

        self.log_service.create_log_entry(
            session=session,
            action="REQUIREMENT_UPDATED",
            description=f"User {officer.id} updated requirement {requirement.id}: {sorted(changes)}",
            actor_id=officer.id,
        )
        return requirement

    def delete_requirement(self, *, session: Session, requirement_id: int, officer: Officer) -> int:
        """Delete a definition and every student record hanging off it."""
        requirement = self._get_or_404(session, requirement_id)
        self._check_owner(requirement, officer)

        records = session.exec(
            select(StudentRequirement).where(StudentRequirement.requirement_id == requirement_id)
        ).all()
        record_ids = [record.id for record in records]
        if record_ids:
            links = session.exec(
                select(PermitGrantRequirement).where(PermitGrantRequirement.student_requirement_id.in_(record_ids))
            ).all()
            for link in links:
                session.delete(link)
        for record in records:
            session.delete(record)
        session.delete(requirement)
        session.commit()

        self.log_service.create_log_entry(
            session=session,
            action="REQUIREMENT_DELETED",
            description=f"User {officer.id} deleted requirement {requirement_id} and {len(record_ids)} student record(s)",
            actor_id=officer.id,
        )
        return len(record_ids)
