from sqlmodel import SQLModel, Field
from datetime import datetime, timezone


class ClearancePeriod(SQLModel, table=True):
    __tablename__ = "clearance_period"
    id: int | None = Field(default=None, primary_key=True)
    is_active: bool = Field(default=False, index=True)
    start_date: datetime | None = Field(default=None)
    deadline: datetime
    extended_deadline: datetime | None = Field(default=None)
    academic_year: str
    semester_type: str
    created_by: str | None = Field(default=None)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class ClearancePeriodCreate(SQLModel):
    academic_year: str = Field(min_length=1)
    semester_type: str = Field(min_length=1)
    deadline: datetime


class ClearancePeriodExtend(SQLModel):
    new_deadline: datetime


class ClearancePeriodRead(SQLModel):
    id: int
    is_active: bool
    start_date: datetime | None
    deadline: datetime
    extended_deadline: datetime | None
    academic_year: str
    semester_type: str
    created_at: datetime
    updated_at: datetime


class ClearanceWindowRead(SQLModel):
    period_id: int | None = None
    is_configured: bool
    is_open: bool
    is_overdue: bool
    effective_deadline: datetime | None
    days_remaining: int
