import math
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone

ONE_DAY = timedelta(days=1)


def as_utc(value: datetime | date | None) -> datetime | None:
    """Normalise a deadline value to an aware UTC datetime.

    A bare date means midnight UTC of that day. Naive datetimes come back from
    SQLite without tzinfo and are taken to be UTC.
    """
    if value is None:
        return None
    if not isinstance(value, datetime):
        return datetime.combine(value, time.min, tzinfo=timezone.utc)
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass(frozen=True)
class ClearanceWindow:
    is_configured: bool
    is_open: bool
    is_overdue: bool
    effective_deadline: datetime | None
    days_remaining: int


NOT_CONFIGURED = ClearanceWindow(
    is_configured=False,
    is_open=False,
    is_overdue=False,
    effective_deadline=None,
    days_remaining=0,
)


def effective_deadline(period) -> datetime | None:
    if period is None:
        return None
    return as_utc(period.extended_deadline or period.deadline)


class ClearanceWindowEvaluator:

    def evaluate(self, period, now: datetime | None = None) -> ClearanceWindow:
        """Work out whether a clearance period is open and how far its deadline is.

        `period` is anything carrying `is_active`, `deadline` and
        `extended_deadline`. No period at all is reported as not configured
        rather than as an error.
        """
        if period is None:
            return NOT_CONFIGURED

        now = as_utc(now) if now else datetime.now(timezone.utc)
        deadline = effective_deadline(period)
        remaining = deadline - now

        if remaining < timedelta(0):
            return ClearanceWindow(
                is_configured=True,
                is_open=False,
                is_overdue=True,
                effective_deadline=deadline,
                days_remaining=math.floor(-remaining / ONE_DAY),
            )

        return ClearanceWindow(
            is_configured=True,
            is_open=bool(period.is_active),
            is_overdue=False,
            effective_deadline=deadline,
            days_remaining=math.ceil(remaining / ONE_DAY),
        )
