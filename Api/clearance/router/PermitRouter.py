from fastapi import APIRouter, HTTPException

from clearance.core.deps import CashierUser, CurrentUser, PermitClientDep, SessionDep
from clearance.models.Permit import Permit, PermitGrantRead, PermitIssueRequest, PermitRevokeResponse
from clearance.models.Role import OfficerRole
from clearance.services.PermitService import PermitService

router = APIRouter()
permit_service = PermitService()


@router.get("/student/{school_id}")
async def check_permit(
    school_id: str,
    current_user: CurrentUser,
    permit_client: PermitClientDep,
) -> Permit | None:
    if current_user.role == OfficerRole.STUDENT.value and current_user.school_id != school_id:
        raise HTTPException(status_code=403, detail="Students can only view their own permit")
    return await permit_service.check(client=permit_client, school_id=school_id)


@router.post("/issue", status_code=201)
async def issue_permit(
    data: PermitIssueRequest,
    session: SessionDep,
    current_user: CashierUser,
    permit_client: PermitClientDep,
) -> PermitGrantRead:
    grant = await permit_service.issue(
        session=session, client=permit_client, student_id=data.student_id, actor=current_user
    )
    return permit_service.to_read(session, grant)


@router.post("/{permit_id}/revoke")
async def revoke_permit(
    permit_id: str,
    session: SessionDep,
    current_user: CashierUser,
    permit_client: PermitClientDep,
) -> PermitRevokeResponse:
    return await permit_service.revoke(
        session=session, client=permit_client, permit_id=permit_id, actor=current_user
    )
