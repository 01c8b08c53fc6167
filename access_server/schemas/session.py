# access_server/schemas/session.py
"""
Session schemas
"""

from pydantic import BaseModel
from typing import Optional


class Identity(BaseModel):
    """Authenticated caller"""
    subject: str


class AuthSession(BaseModel):
    """Contents of the signed session cookie"""
    nonce: Optional[str] = None
    identity: Optional[Identity] = None
