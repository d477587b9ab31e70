"""
Credential checks and request identity helpers for the API routes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import bcrypt
from fastapi import Depends, HTTPException, Request

from storefront.cookies import LEGACY_COOKIE_NAME
from storefront.dependencies import get_session_codec
from storefront.session import (
    Role,
    SessionCodec,
    SessionDecodeError,
    has_required_fields,
)

logger = logging.getLogger(__name__)

ADMIN_REQUIRED_MESSAGE = "Admin access required"


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        logger.warning("Stored password hash is not a bcrypt hash")
        return False


@dataclass
class ApiUser:
    id: str
    role: str
    email: str

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN.value


def get_api_user(request: Request) -> Optional[ApiUser]:
    """Identity claimed by the client through the user-* headers."""
    user_id = request.headers.get("user-id")
    role = request.headers.get("user-role")
    email = request.headers.get("user-email")
    if not user_id or not role or not email:
        return None
    return ApiUser(id=user_id, role=role, email=email)


def require_admin(request: Request) -> ApiUser:
    user = get_api_user(request)
    if not user or not user.is_admin:
        raise HTTPException(status_code=403, detail=ADMIN_REQUIRED_MESSAGE)
    return user


def get_cookie_user(
    request: Request, codec: SessionCodec = Depends(get_session_codec)
) -> Optional[dict]:
    """Session record from the legacy site-wide cookie, if it is well formed."""
    token = request.cookies.get(LEGACY_COOKIE_NAME)
    if not token:
        return None
    try:
        user = codec.decode(token)
    except SessionDecodeError as e:
        logger.error("Error parsing cookie user data: %s", e)
        return None
    if not has_required_fields(user):
        return None
    return user


def require_cookie_user(user: Optional[dict] = Depends(get_cookie_user)) -> dict:
    if not user:
        raise HTTPException(status_code=401, detail="Authentication required")
    return user
