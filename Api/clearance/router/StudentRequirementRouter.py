from fastapi import APIRouter, HTTPException

from clearance.clients.errors import CollaboratorError
from clearance.core.deps import AdminUser, CurrentUser, PermitClientDep, SessionDep, SigningOfficer
from clearance.core.errors import collaborator_http_error
from clearance.core.settings import settings
from clearance.models.Role import OfficerRole
from clearance.models.StudentRequirement import (
    BatchResponse,
    BulkCreateResponse,
    RequirementStatus,
    SignRequest,
    StudentClearanceStatus,
    StudentRequirementCreate,
    StudentRequirementRead,
    StudentRequirementStatusUpdate,
    SweepResponse,
)
from clearance.services.PermitService import PermitService
from clearance.services.StudentRequirementService import StudentRequirementService

router = APIRouter()
student_requirement_service = StudentRequirementService()
permit_service = PermitService()


def _check_own_records(current_user, school_id: str) -> None:
    if current_user.role == OfficerRole.STUDENT.value and current_user.school_id != school_id:
        raise HTTPException(status_code=403, detail="Students can only view their own requirements")


@router.post("/", status_code=201)
async def create(data: StudentRequirementCreate, session: SessionDep, current_user: SigningOfficer) -> StudentRequirementRead:
    return student_requirement_service.create(session=session, data=data, actor_id=current_user.id)


@router.post("/bulk", status_code=201)
async def bulk_create(
    items: list[StudentRequirementCreate],
    session: SessionDep,
    current_user: SigningOfficer,
) -> BulkCreateResponse:
    created, failed = await student_requirement_service.bulk_create(
        session=session, items=items, actor_id=current_user.id
    )
    return BulkCreateResponse(created=created, failed=failed)


@router.get("/")
async def list_all(
    session: SessionDep,
    current_user: SigningOfficer,
    requirement_id: int | None = None,
    mine: bool = False,
) -> list[StudentRequirementRead]:
    if settings.SWEEP_ON_READ:
        await student_requirement_service.sweep_quietly(session=session, requirement_id=requirement_id)
    # always re-read after the sweep
    return student_requirement_service.list_all(
        session=session,
        requirement_id=requirement_id,
        co_id=current_user.id if mine else None,
    )


@router.get("/student/{school_id}")
async def list_for_student(school_id: str, session: SessionDep, current_user: CurrentUser) -> list[StudentRequirementRead]:
    _check_own_records(current_user, school_id)
    if settings.SWEEP_ON_READ:
        await student_requirement_service.sweep_quietly(session=session)
    return student_requirement_service.list_by_school_id(session=session, school_id=school_id)


@router.get("/student/{school_id}/status")
async def student_status(
    school_id: str,
    session: SessionDep,
    current_user: CurrentUser,
    permit_client: PermitClientDep,
) -> StudentClearanceStatus:
    _check_own_records(current_user, school_id)
    if settings.SWEEP_ON_READ:
        await student_requirement_service.sweep_quietly(session=session)
    try:
        status, has_permit, records = await student_requirement_service.student_status(
            session=session, school_id=school_id, permit_client=permit_client
        )
    except CollaboratorError as e:
        raise collaborator_http_error(e)
    return StudentClearanceStatus(
        student_id=school_id, status=status, has_active_permit=has_permit, requirements=records
    )


@router.put("/{record_id}")
async def update_status(
    record_id: int,
    data: StudentRequirementStatusUpdate,
    session: SessionDep,
    current_user: SigningOfficer,
    permit_client: PermitClientDep,
) -> StudentRequirementRead:
    record = await student_requirement_service.update_status(
        session=session,
        record_id=record_id,
        status=data.status,
        officer=current_user,
        permit_client=permit_client,
    )
    if settings.AUTO_ISSUE_PERMITS and data.status == RequirementStatus.SIGNED:
        await permit_service.auto_issue(
            session=session, client=permit_client, student_ids=[record.student_id], actor=current_user
        )
    return record


@router.post("/sign")
async def sign(
    data: SignRequest,
    session: SessionDep,
    current_user: SigningOfficer,
    permit_client: PermitClientDep,
) -> BatchResponse:
    result = await student_requirement_service.sign_students(
        session=session,
        officer=current_user,
        requirement_id=data.requirement_id,
        student_ids=data.student_ids,
    )
    if settings.AUTO_ISSUE_PERMITS and result.updated:
        await permit_service.auto_issue(
            session=session,
            client=permit_client,
            student_ids=[r.student_id for r in result.records if r.status == RequirementStatus.SIGNED],
            actor=current_user,
        )
    return result


@router.post("/undo")
async def undo(
    data: SignRequest,
    session: SessionDep,
    current_user: SigningOfficer,
    permit_client: PermitClientDep,
) -> BatchResponse:
    return await student_requirement_service.undo_students(
        session=session,
        officer=current_user,
        requirement_id=data.requirement_id,
        student_ids=data.student_ids,
        permit_client=permit_client,
    )


@router.post("/sweep")
async def sweep(session: SessionDep, current_user: AdminUser) -> SweepResponse:
    return await student_requirement_service.run_automatic_sweep(session=session, actor_id=current_user.id)
