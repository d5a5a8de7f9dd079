from sqlmodel import SQLModel, Field
from datetime import datetime, timezone
from enum import Enum


class PermitStatus(str, Enum):
    ACTIVE = "active"
    EXPIRED = "expired"
    REVOKED = "revoked"


class Permit(SQLModel):
    """Permit as returned by the external permit/QR issuance service."""
    id: str
    student_id: str
    permit_code: str
    status: PermitStatus
    expires_at: datetime | None = None

    @property
    def is_active(self) -> bool:
        return self.status == PermitStatus.ACTIVE


class PermitGrant(SQLModel, table=True):
    __tablename__ = "permit_grant"

    id: int | None = Field(default=None, primary_key=True)
    permit_id: str = Field(sa_column_kwargs={"unique": True}, index=True)
    student_id: str = Field(index=True)
    permit_code: str
    status: str = Field(default=PermitStatus.ACTIVE.value, max_length=20)
    expires_at: datetime | None = Field(default=None)
    issued_by: str
    issued_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    revoked_by: str | None = Field(default=None)
    revoked_at: datetime | None = Field(default=None)


class PermitGrantRequirement(SQLModel, table=True):
    __tablename__ = "permit_grant_requirement"

    permit_grant_id: int = Field(foreign_key="permit_grant.id", primary_key=True)
    student_requirement_id: int = Field(foreign_key="student_requirement.id", primary_key=True)


class PermitIssueRequest(SQLModel):
    student_id: str = Field(min_length=1)


class PermitGrantRead(SQLModel):
    id: int
    permit_id: str
    student_id: str
    permit_code: str
    status: PermitStatus
    expires_at: datetime | None
    issued_by: str
    issued_at: datetime
    revoked_by: str | None
    revoked_at: datetime | None
    requirement_ids: list[int] = []


class PermitRevokeResponse(SQLModel):
    permit: PermitGrantRead
    reverted: int
    failed: int
