from sqlmodel import Field, SQLModel
from datetime import datetime


class AuditLog(SQLModel, table=True):
    __tablename__ = "audit_log"
    id: int | None = Field(default=None, primary_key=True)
    action: str = Field(index=True)
    time_stamp: datetime
    description: str
    actor_id: str
    previous_hash: str
    current_hash: str


class AuditLogRead(SQLModel):
    id: int
    action: str
    time_stamp: datetime
    description: str
    actor_id: str
    previous_hash: str
    current_hash: str


class AuditLogListing(SQLModel):
    logs: list[AuditLogRead]
    tampered: list[int] = []
