from sqlmodel import SQLModel, Field, Column, JSON
from datetime import datetime, timezone
from enum import Enum


class RequirementScope(str, Enum):
    COURSE = "course"
    INSTITUTIONAL = "institutional"
    DEPARTMENT = "department"


class RequirementDefinition(SQLModel, table=True):
    __tablename__ = "requirement_definition"
    id: int | None = Field(default=None, primary_key=True)
    user_id: str = Field(index=True)
    owner_role: str
    scope: str = Field(default=RequirementScope.COURSE.value, max_length=20)
    course_code: str | None = Field(default=None)
    course_name: str | None = Field(default=None)
    institutional_name: str | None = Field(default=None)
    department: str | None = Field(default=None, index=True)
    semester: str
    year_level: str | None = Field(default=None)
    requirements: list[str] = Field(default_factory=list, sa_column=Column(JSON))
    description: str | None = Field(default=None)
    due_date: datetime | None = Field(default=None)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class RequirementDefinitionCreate(SQLModel):
    scope: RequirementScope = RequirementScope.COURSE
    course_code: str | None = None
    course_name: str | None = None
    institutional_name: str | None = None
    department: str | None = None
    semester: str = Field(min_length=1)
    year_level: str | None = None
    requirements: list[str] = Field(min_length=1)
    description: str | None = None
    due_date: datetime | None = None


class RequirementDefinitionUpdate(SQLModel):
    course_code: str | None = None
    course_name: str | None = None
    institutional_name: str | None = None
    department: str | None = None
    semester: str | None = None
    year_level: str | None = None
    requirements: list[str] | None = None
    description: str | None = None
    due_date: datetime | None = None


class RequirementDefinitionRead(SQLModel):
    id: int
    user_id: str
    owner_role: str
    scope: RequirementScope
    course_code: str | None
    course_name: str | None
    institutional_name: str | None
    department: str | None
    semester: str
    year_level: str | None
    requirements: list[str]
    description: str | None
    due_date: datetime | None
    created_at: datetime
    updated_at: datetime


class RequirementCreatedResponse(RequirementDefinitionRead):
    students_assigned: int = 0
    students_failed: int = 0
