from sqlmodel import SQLModel, Field, Column, JSON
from datetime import datetime, timezone
import re

from pydantic import field_validator

PHONE_PATTERN = re.compile(r"^\+?\d{10,13}$")
EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class Student(SQLModel, table=True):
    __tablename__ = "student"
    id: int | None = Field(default=None, primary_key=True)
    school_id: str = Field(sa_column_kwargs={"unique": True}, index=True)
    first_name: str
    last_name: str
    department: str = Field(index=True)
    year_level: str | None = Field(default=None)
    course_codes: list[str] = Field(default_factory=list, sa_column=Column(JSON))
    phone_number: str | None = Field(default=None)
    email: str | None = Field(default=None)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class StudentCreate(SQLModel):
    school_id: str = Field(min_length=1)
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    department: str = Field(min_length=1)
    year_level: str | None = None
    course_codes: list[str] = []
    phone_number: str | None = None
    email: str | None = None

    @field_validator("phone_number")
    @classmethod
    def check_phone(cls, value: str | None) -> str | None:
        if value is not None and not PHONE_PATTERN.match(value):
            raise ValueError("phone number must be 10 to 13 digits")
        return value

    @field_validator("email")
    @classmethod
    def check_email(cls, value: str | None) -> str | None:
        if value is not None and not EMAIL_PATTERN.match(value):
            raise ValueError("malformed email address")
        return value


class StudentRead(SQLModel):
    id: int
    school_id: str
    first_name: str
    last_name: str
    department: str
    year_level: str | None
    course_codes: list[str]
    phone_number: str | None
    email: str | None
