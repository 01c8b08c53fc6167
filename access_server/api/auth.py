# access_server/api/auth.py
"""
Session guard
Resolves the caller's identity from the signed session cookie
"""

import logging
import secrets
from typing import Optional

from fastapi import Header, HTTPException, Request, status
from pydantic import ValidationError

from access_server.config import settings
from access_server.schemas.session import AuthSession, Identity

logger = logging.getLogger(__name__)

SESSION_KEY = "auth-session"


def get_session(request: Request) -> Optional[AuthSession]:
    """Read the auth session from the cookie, None when absent or unreadable"""
    data = request.session.get(SESSION_KEY)
    if data is None:
        return None
    try:
        return AuthSession.model_validate(data)
    except ValidationError as e:
        logger.warning(f"Failed to parse session: {e}")
        return None


def set_session(request: Request, auth_session: AuthSession) -> None:
    request.session[SESSION_KEY] = auth_session.model_dump(mode="json")


def clear_session(request: Request) -> None:
    request.session.pop(SESSION_KEY, None)


def current_identity(request: Request) -> Optional[Identity]:
    auth_session = get_session(request)
    if auth_session is None:
        return None
    return auth_session.identity


def require_identity(request: Request) -> Identity:
    """
    FastAPI dependency: the authenticated identity, or 401

    Computed once per request and handed to the endpoint as a parameter.
    """
    identity = current_identity(request)
    if identity is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"error": "Not authenticated", "error_code": "UNAUTHORIZED"}
        )
    return identity


def verify_admin_token(x_admin_token: str = Header(..., alias="X-Admin-Token")) -> bool:
    """Verify admin authentication token"""
    if not secrets.compare_digest(x_admin_token, settings.ADMIN_SECRET):
        logger.warning("Invalid admin token attempt")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"error": "Invalid or missing admin token", "error_code": "UNAUTHORIZED"}
        )
    return True
