"""Caller identity.

Sign-in lives with the external identity provider. This module only verifies the
bearer token it issues and resolves the member profile the token refers to.
"""

from __future__ import annotations

import os
import uuid
from datetime import datetime, timedelta, timezone

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from . import models
from .deps import get_db
from .utils.access import ensure_active_member, ensure_admin, ensure_approved, ensure_moderator

# Security scheme for Bearer token
oauth2_scheme = HTTPBearer(auto_error=False)

# JWT Configuration (shared with the identity provider)
JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY")
if not JWT_SECRET_KEY:
    raise RuntimeError(
        "JWT_SECRET_KEY environment variable is required but not set. "
        "It must match the signing key of the identity provider."
    )
# Validate minimum key length (256 bits = 32 bytes)
if len(JWT_SECRET_KEY) < 32:
    raise RuntimeError("JWT_SECRET_KEY is too short. Must be at least 32 characters long.")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_AUDIENCE = os.getenv("JWT_AUDIENCE") or None


def create_access_token(member_id: uuid.UUID, expires_in_seconds: int = 3600) -> str:
    """
    Mint a token the way the identity provider does.

    Production tokens come from the provider; this is for tests and local tooling.
    """
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(member_id),
        "exp": now + timedelta(seconds=expires_in_seconds),
        "iat": now,
    }
    if JWT_AUDIENCE:
        payload["aud"] = JWT_AUDIENCE
    return jwt.encode(payload, JWT_SECRET_KEY, algorithm=JWT_ALGORITHM)


def get_caller_id(
    credentials: HTTPAuthorizationCredentials | None = Depends(oauth2_scheme),
) -> uuid.UUID:
    """
    Verify the bearer token and return the identity it names.

    Does not require a profile, so a freshly signed-up identity can redeem an invite.
    """
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        payload = jwt.decode(
            credentials.credentials,
            JWT_SECRET_KEY,
            algorithms=[JWT_ALGORITHM],
            audience=JWT_AUDIENCE,
            options={"verify_aud": JWT_AUDIENCE is not None},
        )
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token expired")
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")

    subject = payload.get("sub")
    if not subject:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token: missing subject"
        )
    try:
        return uuid.UUID(subject)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid member ID in token"
        )


def get_current_member(
    caller_id: uuid.UUID = Depends(get_caller_id),
    db: Session = Depends(get_db),
) -> models.Profile:
    """Resolve the caller's profile. Suspended and banned members are refused."""
    member = db.get(models.Profile, caller_id)
    if member is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Member not found")
    ensure_active_member(member)
    return member


def require_approved(member: models.Profile = Depends(get_current_member)) -> models.Profile:
    ensure_approved(member)
    return member


def require_moderator(member: models.Profile = Depends(get_current_member)) -> models.Profile:
    """
    Require that the current member has moderator or admin role.
    """
    ensure_moderator(member)
    return member


def require_admin(member: models.Profile = Depends(get_current_member)) -> models.Profile:
    ensure_admin(member)
    return member
