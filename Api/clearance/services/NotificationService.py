from sqlmodel import Session, select, or_
from sqlalchemy.exc import SQLAlchemyError
from datetime import datetime

from clearance.clients.SmsClient import SmsClient
from clearance.core.log import get_logger
from clearance.models.Notification import Notification

logger = get_logger(__name__)


def format_date(value: datetime | None) -> str:
    if value is None:
        return "N/A"
    return value.strftime("%b %d, %Y")


class NotificationService:
    """In-app notifications and SMS blasts that ride along with state changes.

    Nothing here may fail the transition that triggered it: errors are logged
    and swallowed.
    """

    def notify(self, session: Session, *, title: str, message: str, user_id: str | None = None) -> Notification | None:
        notification = Notification(user_id=user_id, title=title, message=message)
        session.add(notification)
        try:
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            logger.error("Could not store notification '%s': %s", title, e)
            return None
        session.refresh(notification)
        return notification

    def clearance_started(self, session: Session, period) -> Notification | None:
        return self.notify(
            session,
            title="Clearance Started",
            message=(
                f"The clearance process has officially started for the {period.semester_type}, "
                f"Academic Year {period.academic_year}. Start Date: {format_date(period.start_date)}. "
                f"Deadline: {format_date(period.deadline)}."
            ),
        )

    def clearance_stopped(self, session: Session, period) -> Notification | None:
        return self.notify(
            session,
            title="Clearance Stopped",
            message=(
                f"The clearance process for the {period.semester_type}, Academic Year "
                f"{period.academic_year} has been stopped. Please wait for further "
                f"instructions from the administration."
            ),
        )

    def deadline_extended(self, session: Session, period) -> Notification | None:
        return self.notify(
            session,
            title="Clearance Deadline Extended",
            message=(
                f"The clearance deadline for the {period.semester_type}, Academic Year "
                f"{period.academic_year} has been extended. Your new deadline is "
                f"{format_date(period.extended_deadline)}."
            ),
        )

    def list_for_user(self, session: Session, user_id: str) -> list[Notification]:
        return list(session.exec(
            select(Notification)
            .where(or_(Notification.user_id == user_id, Notification.user_id == None))  # noqa: E711
            .order_by(Notification.created_at.desc())
        ).all())

    def mark_read(self, session: Session, notification_id: int, user_id: str) -> Notification | None:
        notification = session.get(Notification, notification_id)
        if not notification or notification.user_id not in (None, user_id):
            return None
        notification.is_read = True
        session.add(notification)
        session.commit()
        session.refresh(notification)
        return notification

    async def send_sms(self, sms_client: SmsClient, phone_numbers: list[str], message: str) -> None:
        """Background task body; never raises."""
        if not phone_numbers:
            return
        try:
            await sms_client.send_bulk(phone_numbers, message)
        except Exception:
            logger.exception("SMS blast failed")
