from collections.abc import Generator
from typing import Annotated

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlmodel import Session

from clearance.clients.PermitClient import PermitClient
from clearance.clients.SmsClient import SmsClient
from clearance.core.db import engine
from clearance.core.security import decode_access_token
from clearance.models.Role import Officer, OfficerRole, SIGNING_ROLES


def get_db() -> Generator[Session, None, None]:
    with Session(engine) as session:
        yield session


SessionDep = Annotated[Session, Depends(get_db)]

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="api/auth/login")


async def get_current_user(token: Annotated[str, Depends(oauth2_scheme)]) -> Officer:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        payload = decode_access_token(token)
    except jwt.PyJWTError:
        raise credentials_exception

    user_id = payload.get("sub")
    role = payload.get("role")
    if user_id is None or role is None:
        raise credentials_exception

    return Officer(id=str(user_id), role=role, school_id=payload.get("school_id"))


CurrentUser = Annotated[Officer, Depends(get_current_user)]


def require_roles(*roles: str):
    allowed = {str(getattr(r, "value", r)) for r in roles}

    async def checker(user: CurrentUser) -> Officer:
        if user.role not in allowed:
            raise HTTPException(status_code=403, detail="Not authorized for this action")
        return user

    return checker


AdminUser = Annotated[Officer, Depends(require_roles(OfficerRole.ADMIN))]
SigningOfficer = Annotated[Officer, Depends(require_roles(*SIGNING_ROLES))]
CashierUser = Annotated[Officer, Depends(require_roles(OfficerRole.CASHIER))]

_permit_client = PermitClient()
_sms_client = SmsClient()


def get_permit_client() -> PermitClient:
    return _permit_client


def get_sms_client() -> SmsClient:
    return _sms_client


PermitClientDep = Annotated[PermitClient, Depends(get_permit_client)]
SmsClientDep = Annotated[SmsClient, Depends(get_sms_client)]
