from fastapi import APIRouter, HTTPException

from clearance.core.deps import CurrentUser, SessionDep
from clearance.models.Notification import NotificationRead
from clearance.services.NotificationService import NotificationService

router = APIRouter()
notification_service = NotificationService()


@router.get("/me")
async def my_notifications(session: SessionDep, current_user: CurrentUser) -> list[NotificationRead]:
    return notification_service.list_for_user(session, current_user.id)


@router.put("/{notification_id}/read")
async def mark_read(notification_id: int, session: SessionDep, current_user: CurrentUser) -> NotificationRead:
    notification = notification_service.mark_read(session, notification_id, current_user.id)
    if not notification:
        raise HTTPException(status_code=404, detail="Notification not found")
    return notification
