import logging
from typing import Optional

import bcrypt
from fastapi import Header, HTTPException

from approvals.exceptions import AuthError, InvalidFormat
from approvals.settings import settings
from approvals.tokens import Identity, TokenAuthenticator

logger = logging.getLogger(__name__)

authenticator = TokenAuthenticator(settings.jwt_secret)

ADMIN_FORBIDDEN = "Unauthorized access. Admin privileges required."


def _bearer_token(authorization: Optional[str]) -> str:
    if not authorization:
        raise InvalidFormat("missing authorization header")
    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise InvalidFormat("expected a bearer token")
    return parts[1]


def verify_token(authorization: Optional[str] = Header(None)) -> Identity:
    try:
        identity = authenticator.verify(_bearer_token(authorization))
    except AuthError as exc:
        logger.debug("Rejected token: %s", exc)
        raise HTTPException(status_code=401, detail="Invalid or missing token")
    if identity.subject_id is None:
        raise HTTPException(status_code=401, detail="Invalid or missing token")
    return identity


def require_admin(authorization: Optional[str] = Header(None)) -> Identity:
    try:
        identity = authenticator.verify(_bearer_token(authorization))
    except AuthError as exc:
        logger.debug("Rejected admin token: %s", exc)
        raise HTTPException(status_code=403, detail=ADMIN_FORBIDDEN)
    if identity.role != "admin" or identity.subject_id is None:
        raise HTTPException(status_code=403, detail=ADMIN_FORBIDDEN)
    return identity


def hash_password(plain: str) -> str:
    if not plain:
        raise ValueError("password cannot be empty")
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: Optional[str]) -> bool:
    if not plain or not hashed:
        return False
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        return False
