import uuid
from datetime import datetime, timedelta, timezone

import jwt

from clearance.core.settings import settings

ALGORITHM = "RS256"
ACCESS_TOKEN_EXPIRE_MINUTES = 60


def create_access_token(data: dict, expires_delta: timedelta | None = None) -> str:
    """Sign a bearer token with the server key.

    Officer sessions are issued by the authentication service; this is used
    for service-to-service calls and local tooling.
    """
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode.update({"exp": expire, "jti": str(uuid.uuid4())})

    return jwt.encode(to_encode, settings.PRIVATE_KEY.encode(), algorithm=ALGORITHM)


def decode_access_token(token: str, key: str | None = None) -> dict:
    return jwt.decode(token, (key or settings.PUBLIC_KEY).encode(), algorithms=[ALGORITHM])
