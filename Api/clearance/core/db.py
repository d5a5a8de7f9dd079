from sqlmodel import create_engine, SQLModel
from datetime import datetime
import sqlite3

from clearance.core.log import get_logger
from clearance.core.settings import settings

from clearance.models.ClearancePeriod import ClearancePeriod
from clearance.models.Logs import AuditLog
from clearance.models.Notification import Notification
from clearance.models.Permit import PermitGrant, PermitGrantRequirement
from clearance.models.RequirementDefinition import RequirementDefinition
from clearance.models.Student import Student
from clearance.models.StudentRequirement import StudentRequirement

logger = get_logger(__name__)


def adapt_datetime(val):
    return val.isoformat(" ")


sqlite3.register_adapter(datetime, adapt_datetime)


engine = create_engine(
    str(settings.DATABASE_URI),
    echo=settings.DB_ECHO,
    connect_args={"check_same_thread": False},
)


def init_db():
    SQLModel.metadata.create_all(engine)
    logger.info("Database ready at %s", settings.DATABASE_URI)
