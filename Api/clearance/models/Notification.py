from sqlmodel import SQLModel, Field
from datetime import datetime, timezone


class Notification(SQLModel, table=True):
    __tablename__ = "notification"
    id: int | None = Field(default=None, primary_key=True)
    user_id: str | None = Field(default=None, index=True)
    title: str
    message: str
    is_read: bool = Field(default=False)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class NotificationRead(SQLModel):
    id: int
    user_id: str | None
    title: str
    message: str
    is_read: bool
    created_at: datetime
