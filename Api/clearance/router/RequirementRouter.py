from fastapi import APIRouter, BackgroundTasks

from clearance.core.deps import CurrentUser, SessionDep, SigningOfficer, SmsClientDep
from clearance.models.RequirementDefinition import (
    RequirementCreatedResponse,
    RequirementDefinitionCreate,
    RequirementDefinitionRead,
    RequirementDefinitionUpdate,
)
from clearance.services.NotificationService import NotificationService
from clearance.services.RequirementService import RequirementService

router = APIRouter()
requirement_service = RequirementService()
notification_service = NotificationService()


@router.post("/", status_code=201)
async def create_requirement(
    data: RequirementDefinitionCreate,
    session: SessionDep,
    current_user: SigningOfficer,
    background_tasks: BackgroundTasks,
    sms_client: SmsClientDep,
) -> RequirementCreatedResponse:
    requirement, assigned, failed, students = await requirement_service.create_requirement(
        session=session, data=data, officer=current_user
    )

    label = requirement.course_code or requirement.institutional_name or requirement.department
    phones = [s.phone_number for s in students if s.phone_number]
    background_tasks.add_task(
        notification_service.send_sms,
        sms_client,
        phones,
        f"A new clearance requirement ({label}) was assigned to you by the {requirement.owner_role}: "
        f"{', '.join(requirement.requirements)}.",
    )

    return RequirementCreatedResponse.model_validate(
        requirement, update={"students_assigned": assigned, "students_failed": failed}
    )


@router.get("/")
async def get_requirements(
    session: SessionDep,
    current_user: CurrentUser,
    mine: bool = False,
    department: str | None = None,
) -> list[RequirementDefinitionRead]:
    return requirement_service.get_requirements(
        session=session,
        owner_id=current_user.id if mine else None,
        department=department,
    )


@router.get("/{requirement_id}")
async def get_requirement(requirement_id: int, session: SessionDep, current_user: CurrentUser) -> RequirementDefinitionRead:
    return requirement_service.get_requirement(session=session, requirement_id=requirement_id)


@router.put("/{requirement_id}")
async def update_requirement(
    requirement_id: int,
    data: RequirementDefinitionUpdate,
    session: SessionDep,
    current_user: SigningOfficer,
) -> RequirementDefinitionRead:
    return requirement_service.update_requirement(
        session=session, requirement_id=requirement_id, data=data, officer=current_user
    )


@router.delete("/{requirement_id}")
async def delete_requirement(requirement_id: int, session: SessionDep, current_user: SigningOfficer):
    removed = requirement_service.delete_requirement(
        session=session, requirement_id=requirement_id, officer=current_user
    )
    return {"message": "Requirement deleted", "student_records_removed": removed}
