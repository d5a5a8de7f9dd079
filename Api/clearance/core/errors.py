from fastapi import HTTPException

from clearance.clients.errors import CollaboratorError
from clearance.engine.errors import InvalidTransition, NotFullyCleared, RuleViolation, SignatureLocked


def rule_http_error(error: RuleViolation) -> HTTPException:
    if isinstance(error, SignatureLocked):
        return HTTPException(status_code=409, detail=str(error))
    if isinstance(error, NotFullyCleared):
        return HTTPException(
            status_code=409,
            detail={"message": str(error), "pending_requirement_ids": error.pending_requirement_ids},
        )
    if isinstance(error, InvalidTransition):
        return HTTPException(status_code=400, detail=str(error))
    return HTTPException(status_code=400, detail=str(error))


def collaborator_http_error(error: CollaboratorError) -> HTTPException:
    return HTTPException(status_code=502, detail=error.message)
