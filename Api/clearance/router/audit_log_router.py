from fastapi import APIRouter

from clearance.core.deps import AdminUser, SessionDep
from clearance.core.log import get_logger
from clearance.models.Logs import AuditLogListing
from clearance.services.LogService import LogService

router = APIRouter()
log_service = LogService()
logger = get_logger(__name__)


@router.get("/audit/log")
async def get_logs(session: SessionDep, current_user: AdminUser) -> AuditLogListing:
    logs, tampered = log_service.get_logs(session=session, actor_id=current_user.id)
    if tampered:
        logger.warning("Audit log read by %s with %d tampered entries", current_user.id, len(tampered))
    return AuditLogListing(logs=logs, tampered=tampered)
