from fastapi import APIRouter, BackgroundTasks
from sqlmodel import Session, select

from clearance.core.deps import AdminUser, CurrentUser, SessionDep, SmsClientDep
from clearance.models.ClearancePeriod import (
    ClearancePeriodCreate,
    ClearancePeriodExtend,
    ClearancePeriodRead,
    ClearanceWindowRead,
)
from clearance.models.Student import Student
from clearance.services.ClearancePeriodService import ClearancePeriodService
from clearance.services.NotificationService import NotificationService

router = APIRouter()
clearance_service = ClearancePeriodService()
notification_service = NotificationService()


def _roster_phones(session: Session) -> list[str]:
    return [
        phone for phone in session.exec(select(Student.phone_number)).all() if phone
    ]


@router.get("/current")
async def get_current(session: SessionDep, current_user: CurrentUser) -> ClearancePeriodRead | None:
    # nothing configured yet is a normal answer, not a 404
    return clearance_service.get_current(session=session)


@router.get("/")
async def list_periods(session: SessionDep, current_user: CurrentUser) -> list[ClearancePeriodRead]:
    return clearance_service.list_periods(session=session)


@router.get("/window")
async def get_window(session: SessionDep, current_user: CurrentUser) -> ClearanceWindowRead:
    period, window = clearance_service.get_window(session=session)
    return ClearanceWindowRead(
        period_id=period.id if period else None,
        is_configured=window.is_configured,
        is_open=window.is_open,
        is_overdue=window.is_overdue,
        effective_deadline=window.effective_deadline,
        days_remaining=window.days_remaining,
    )


@router.post("/setup", status_code=201)
async def setup(session: SessionDep, current_user: AdminUser, data: ClearancePeriodCreate) -> ClearancePeriodRead:
    return clearance_service.setup(session=session, data=data, actor_id=current_user.id)


@router.put("/{period_id}/start")
async def start(
    period_id: int,
    session: SessionDep,
    current_user: AdminUser,
    background_tasks: BackgroundTasks,
    sms_client: SmsClientDep,
) -> ClearancePeriodRead:
    period = clearance_service.start(session=session, period_id=period_id, actor_id=current_user.id)
    notification = notification_service.clearance_started(session, period)
    if notification:
        background_tasks.add_task(
            notification_service.send_sms, sms_client, _roster_phones(session), notification.message
        )
    return period


@router.put("/{period_id}/stop")
async def stop(
    period_id: int,
    session: SessionDep,
    current_user: AdminUser,
    background_tasks: BackgroundTasks,
    sms_client: SmsClientDep,
) -> ClearancePeriodRead:
    period = clearance_service.stop(session=session, period_id=period_id, actor_id=current_user.id)
    notification = notification_service.clearance_stopped(session, period)
    if notification:
        background_tasks.add_task(
            notification_service.send_sms, sms_client, _roster_phones(session), notification.message
        )
    return period


@router.put("/{period_id}/extend")
async def extend(
    period_id: int,
    data: ClearancePeriodExtend,
    session: SessionDep,
    current_user: AdminUser,
    background_tasks: BackgroundTasks,
    sms_client: SmsClientDep,
) -> ClearancePeriodRead:
    period = clearance_service.extend(
        session=session, period_id=period_id, new_deadline=data.new_deadline, actor_id=current_user.id
    )
    notification = notification_service.deadline_extended(session, period)
    if notification:
        background_tasks.add_task(
            notification_service.send_sms, sms_client, _roster_phones(session), notification.message
        )
    return period


@router.delete("/{period_id}")
async def delete(period_id: int, session: SessionDep, current_user: AdminUser) -> ClearancePeriodRead:
    return clearance_service.delete(session=session, period_id=period_id, actor_id=current_user.id)
