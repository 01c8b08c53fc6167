# access_server/api/v1/session.py
"""
Session API Endpoints
Sign in and out of the management API
"""

from fastapi import APIRouter, Depends, Request
import logging
import secrets

from access_server.api.auth import (
    clear_session,
    require_identity,
    set_session,
    verify_admin_token,
)
from access_server.schemas.base import BaseResponse
from access_server.schemas.session import AuthSession, Identity

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "",
    response_model=Identity,
    summary="Sign in",
    description="Exchange the admin token for a session cookie"
)
def sign_in(request: Request, _: bool = Depends(verify_admin_token)):
    identity = Identity(subject="admin")
    set_session(request, AuthSession(nonce=secrets.token_urlsafe(16), identity=identity))
    logger.info(f"Session started for {identity.subject}")
    return identity


@router.get(
    "",
    response_model=Identity,
    summary="Current identity"
)
def whoami(identity: Identity = Depends(require_identity)):
    return identity


@router.delete(
    "",
    response_model=BaseResponse,
    summary="Sign out"
)
def sign_out(request: Request):
    clear_session(request)
    return BaseResponse(success=True, message="Signed out")
