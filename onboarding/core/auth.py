# =====================================================
# FILE: onboarding/core/auth.py
# Caller identity: bearer token decoding and caller context
# =====================================================

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
import logging

from jose import JWTError, jwt
from sqlalchemy.orm import Session

from onboarding.core.config import settings
from onboarding.core.exceptions import UnauthorizedError
from onboarding.models.organization import Profile

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CallerContext:
    """
    Who is calling and which org gates the request.

    Passed explicitly to every engine operation.
    """
    caller_id: str
    org_id: str
    role: str


def create_access_token(profile_id: str, expires_delta: Optional[timedelta] = None) -> str:
    """Issue a signed token whose subject is the profile id"""
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(hours=1))
    to_encode: Dict[str, Any] = {"sub": profile_id, "exp": expire}
    return jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> str:
    """
    Return the profile id carried by ``token``

    Raises:
        UnauthorizedError: signature, expiry or subject is invalid
    """
    try:
        payload = jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError as e:
        logger.warning(f"Rejected caller token: {str(e)}")
        raise UnauthorizedError("Invalid authentication token") from e

    subject = payload.get("sub")
    if not subject:
        raise UnauthorizedError("Invalid authentication token")
    return subject


def load_caller_context(db: Session, profile_id: str) -> CallerContext:
    """Resolve a profile id into the caller context used by the engine"""
    profile = db.query(Profile).filter(Profile.id == profile_id).first()

    if not profile or profile.active is False:
        raise UnauthorizedError("Unauthorized")
    if not profile.org_id:
        raise UnauthorizedError("Caller has no organization")

    return CallerContext(caller_id=profile.id, org_id=profile.org_id, role=profile.role)
