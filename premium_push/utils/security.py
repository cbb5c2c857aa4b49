"""
Bearer-token authentication for the HTTP surface.

Access tokens are HS256 JWTs issued by the account service. The ``sub``
claim carries the user id; ``exp`` is honoured when present.
"""
import logging
from typing import Optional

import jwt
from fastapi import Depends, Header, HTTPException

from premium_push.config import Settings, get_settings


log = logging.getLogger(__name__)


def decode_access_token(token: str, secret: str, algorithm: str = "HS256") -> str:
    payload = jwt.decode(token, secret, algorithms=[algorithm], options={"require": ["sub"]})
    user_id = payload.get("sub")
    if not user_id:
        raise jwt.InvalidTokenError("empty 'sub' claim")
    return str(user_id)


def get_current_user_id(
    authorization: Optional[str] = Header(None),
    settings: Settings = Depends(get_settings),
) -> str:
    scheme, _, token = (authorization or "").partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise HTTPException(status_code=401, detail="Not authenticated", headers={"WWW-Authenticate": "Bearer"})

    if not settings.jwt_secret:
        log.error("JWT_SECRET is not set; rejecting authenticated request")
        raise HTTPException(status_code=503, detail="Authentication is not configured")

    try:
        return decode_access_token(token.strip(), settings.jwt_secret, settings.jwt_algorithm)
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired", headers={"WWW-Authenticate": "Bearer"})
    except jwt.InvalidTokenError as exc:
        log.debug("Rejected bearer token: %s", exc)
        raise HTTPException(status_code=401, detail="Invalid token", headers={"WWW-Authenticate": "Bearer"})
