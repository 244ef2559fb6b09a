# =====================================================
# FILE: onboarding/core/dependencies.py
# FastAPI dependencies
# =====================================================

from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from onboarding.core.auth import CallerContext, decode_access_token, load_caller_context
from onboarding.core.database import get_db
from onboarding.core.exceptions import UnauthorizedError

bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_caller(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db)
) -> CallerContext:
    """
    Authenticate the request and return the caller context
    """
    if credentials is None or not credentials.credentials:
        raise UnauthorizedError("Authentication required")

    profile_id = decode_access_token(credentials.credentials)
    return load_caller_context(db, profile_id)
