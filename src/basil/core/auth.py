# src/basil/core/auth.py
"""
CALLER CREDENTIALS
Tokens are issued and verified by the backend; this service only forwards
them and reads the subject for the audit trail.
"""

from typing import Optional
import logging

from fastapi import Header
from jose import jwt
from jose.exceptions import JWTError

logger = logging.getLogger(__name__)


def bearer_token(authorization: Optional[str] = Header(None)) -> Optional[str]:
    """Bearer token from the Authorization header, if any."""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def token_subject(token: Optional[str]) -> Optional[str]:
    """
    Caller identity from the token claims, read without verification.
    """
    if not token:
        return None
    try:
        claims = jwt.get_unverified_claims(token)
    except JWTError as e:
        logger.debug(f"Unreadable token claims: {e}")
        return None
    return claims.get("email") or claims.get("sub") or claims.get("userId")
