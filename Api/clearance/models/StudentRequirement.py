from sqlmodel import SQLModel, Field, UniqueConstraint
from datetime import datetime, timezone
from enum import Enum


class RequirementStatus(str, Enum):
    INCOMPLETE = "incomplete"
    SIGNED = "signed"
    MISSING = "missing"


class StudentRequirement(SQLModel, table=True):
    __tablename__ = "student_requirement"
    __table_args__ = (
        UniqueConstraint("student_id", "co_id", "requirement_id", "signed_by", name="uq_student_requirement_role"),
    )

    id: int | None = Field(default=None, primary_key=True)
    student_id: str = Field(index=True)
    co_id: str = Field(index=True)
    requirement_id: int = Field(foreign_key="requirement_definition.id", index=True)
    signed_by: str
    status: str = Field(default=RequirementStatus.INCOMPLETE.value, max_length=20)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_by: str | None = Field(default=None)


class StudentRequirementCreate(SQLModel):
    student_id: str = Field(min_length=1)
    co_id: str = Field(min_length=1)
    requirement_id: int
    signed_by: str = Field(min_length=1)
    status: RequirementStatus = RequirementStatus.INCOMPLETE


class StudentRequirementRead(SQLModel):
    id: int
    student_id: str
    co_id: str
    requirement_id: int
    signed_by: str
    status: RequirementStatus
    updated_at: datetime | None = None
    updated_by: str | None = None


class StudentRequirementStatusUpdate(SQLModel):
    status: RequirementStatus


class BulkCreateResponse(SQLModel):
    created: list[StudentRequirementRead] = []
    failed: int = 0


class SignRequest(SQLModel):
    requirement_id: int
    student_ids: list[str] = Field(min_length=1)


class BatchResponse(SQLModel):
    updated: int
    failed: int
    failed_ids: list[int] = []
    blocked: list[str] = []
    skipped: list[str] = []
    records: list[StudentRequirementRead] = []


class SweepResponse(SQLModel):
    applied: bool
    updated: int = 0
    failed: int = 0


class StudentClearanceStatus(SQLModel):
    student_id: str
    status: str
    has_active_permit: bool
    requirements: list[StudentRequirementRead] = []
