"""
Session record types and the cookie/storage value codec.

A session record is the JSON object returned by the authentication endpoint
for the logged-in user (``id``, ``name``, ``email``, ``role`` and whatever
else the account carries). The same text is stored in the per-tab store,
the "remember me" store and the auth cookies.
"""

from __future__ import annotations

import json
from enum import Enum
from typing import Optional, Protocol

from itsdangerous import BadSignature, URLSafeSerializer


class Role(str, Enum):
    ADMIN = "admin"
    USER = "user"


REQUIRED_RECORD_FIELDS = ("id", "email", "role")


class SessionDecodeError(ValueError):
    """Raised when a stored session value cannot be turned back into a record."""


def is_admin_record(record: Optional[dict]) -> bool:
    return bool(record) and record.get("role") == Role.ADMIN.value


def has_required_fields(record: Optional[dict]) -> bool:
    if not isinstance(record, dict):
        return False
    return all(record.get(name) for name in REQUIRED_RECORD_FIELDS)


class SessionCodec(Protocol):
    """Turns a session record into a cookie/storage string and back."""

    def encode(self, record: dict) -> str:
        ...

    def decode(self, raw: str) -> dict:
        ...


class JsonSessionCodec:
    """Plain JSON text, readable by any client that knows the record shape."""

    def encode(self, record: dict) -> str:
        return json.dumps(record, separators=(",", ":"), default=str)

    def decode(self, raw: str) -> dict:
        try:
            record = json.loads(raw)
        except (TypeError, ValueError) as exc:
            raise SessionDecodeError(f"Invalid session payload: {exc}") from exc
        if not isinstance(record, dict):
            raise SessionDecodeError("Session payload is not a JSON object")
        return record


class SignedSessionCodec:
    """JSON record signed with a server secret so clients cannot edit the role."""

    def __init__(self, secret: str, salt: str = "storefront-session"):
        if not secret:
            raise ValueError("A secret is required for SignedSessionCodec")
        self._serializer = URLSafeSerializer(secret, salt=salt)

    def encode(self, record: dict) -> str:
        return self._serializer.dumps(record)

    def decode(self, raw: str) -> dict:
        try:
            record = self._serializer.loads(raw)
        except BadSignature as exc:
            raise SessionDecodeError("Session signature mismatch") from exc
        if not isinstance(record, dict):
            raise SessionDecodeError("Session payload is not a JSON object")
        return record


def make_codec(secret: Optional[str] = None) -> SessionCodec:
    if secret:
        return SignedSessionCodec(secret)
    return JsonSessionCodec()


def public_user(user: dict) -> dict:
    """Strip credentials from a user dict before it becomes a session record."""
    return {
        key: value
        for key, value in user.items()
        if key not in ("password", "password_hash")
    }
