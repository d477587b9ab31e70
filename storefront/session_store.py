"""
Client-side session state: the per-tab store, the "remember me" store and
the mirrored auth cookies.

``SessionStore`` owns the write, restore and logout rules. Storage is
injected so the rules can run against in-memory dicts in tests and a JSON
file for a durable store that survives restarts.
"""

from __future__ import annotations

import json
import logging
import os
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional, Protocol

from storefront.cookies import CookieJar, CookiePolicy, InMemoryCookieJar
from storefront.session import (
    JsonSessionCodec,
    Role,
    SessionCodec,
    SessionDecodeError,
    has_required_fields,
)

logger = logging.getLogger(__name__)

USER_KEY = "user"
LOGIN_TIME_KEY = "loginTime"
LOGOUT_KEY = "logout"
REMEMBER_ME_KEY = "rememberMe"

REMEMBER_WINDOW_MS = 30 * 24 * 60 * 60 * 1000

ADMIN_HOME = "/Admin"
CUSTOMER_HOME = "/"
LOGIN_PAGE = "/Login"


def redirect_for_role(role: Optional[str]) -> str:
    return ADMIN_HOME if role == Role.ADMIN.value else CUSTOMER_HOME


class SessionStorage(Protocol):
    """String key/value storage, the shape of a browser storage area."""

    def get_item(self, key: str) -> Optional[str]:
        ...

    def set_item(self, key: str, value: str) -> None:
        ...

    def remove_item(self, key: str) -> None:
        ...

    def clear(self) -> None:
        ...


@dataclass
class InMemorySessionStorage:
    """Per-tab storage; gone when the object is."""

    items: Dict[str, str] = field(default_factory=dict)

    def get_item(self, key: str) -> Optional[str]:
        return self.items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self.items[key] = str(value)

    def remove_item(self, key: str) -> None:
        self.items.pop(key, None)

    def clear(self) -> None:
        self.items.clear()


class JsonFileSessionStorage:
    """Durable storage persisted as a flat JSON object on disk."""

    def __init__(self, path: str):
        self.path = path

    def _load(self) -> Dict[str, str]:
        if not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning("Discarding unreadable session file %s: %s", self.path, e)
            return {}
        if not isinstance(data, dict):
            return {}
        return {str(k): str(v) for k, v in data.items()}

    def _save(self, data: Dict[str, str]) -> None:
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(data, f)

    def get_item(self, key: str) -> Optional[str]:
        return self._load().get(key)

    def set_item(self, key: str, value: str) -> None:
        data = self._load()
        data[key] = str(value)
        self._save(data)

    def remove_item(self, key: str) -> None:
        data = self._load()
        if key in data:
            del data[key]
            self._save(data)

    def clear(self) -> None:
        if os.path.exists(self.path):
            os.remove(self.path)


class SessionStore:
    """Reads and writes the logged-in user across storage and cookies."""

    def __init__(
        self,
        ephemeral: Optional[SessionStorage] = None,
        durable: Optional[SessionStorage] = None,
        cookies: Optional[CookieJar] = None,
        *,
        policy: Optional[CookiePolicy] = None,
        codec: Optional[SessionCodec] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.ephemeral = ephemeral if ephemeral is not None else InMemorySessionStorage()
        self.durable = durable if durable is not None else InMemorySessionStorage()
        self.cookies = cookies if cookies is not None else InMemoryCookieJar(clock=clock)
        self.policy = policy or CookiePolicy()
        self.codec = codec or JsonSessionCodec()
        self.clock = clock

    def _now_ms(self) -> int:
        return int(self.clock() * 1000)

    def _read_record(self, storage: SessionStorage, *keys: str) -> Optional[dict]:
        """Parse ``user`` from ``storage``; on failure remove ``keys`` and return None."""
        raw = storage.get_item(USER_KEY)
        if raw is None:
            return None
        try:
            record = json.loads(raw)
            if not isinstance(record, dict):
                raise SessionDecodeError("stored user is not an object")
            return record
        except ValueError as e:
            logger.warning("Clearing unreadable stored session: %s", e)
            for key in keys or (USER_KEY,):
                storage.remove_item(key)
            return None

    def _write_cookies(self, record: dict, remember_me: bool) -> None:
        self.policy.write(
            self.cookies,
            self.codec.encode(record),
            record.get("role"),
            remember_me,
        )

    def _clear_durable(self) -> None:
        for key in (USER_KEY, REMEMBER_ME_KEY, LOGIN_TIME_KEY):
            self.durable.remove_item(key)

    def write(self, record: dict, remember_me: bool = False) -> None:
        """Store a freshly authenticated user everywhere it needs to be."""
        now = str(self._now_ms())
        payload = json.dumps(record, default=str)
        self.ephemeral.remove_item(LOGOUT_KEY)
        self.ephemeral.set_item(USER_KEY, payload)
        self.ephemeral.set_item(LOGIN_TIME_KEY, now)

        self._write_cookies(record, remember_me)

        if remember_me:
            self.durable.set_item(USER_KEY, payload)
            self.durable.set_item(REMEMBER_ME_KEY, "true")
            self.durable.set_item(LOGIN_TIME_KEY, now)
        else:
            self._clear_durable()

    def restore(self) -> Optional[str]:
        """
        Run the page-load check.

        Returns the page to redirect to when a remembered session was
        restored, otherwise None.
        """
        if self.ephemeral.get_item(LOGOUT_KEY):
            self.ephemeral.clear()
            self._clear_durable()
            self.policy.clear_all(self.cookies)
            return None

        record = self._read_record(self.durable, USER_KEY, REMEMBER_ME_KEY, LOGIN_TIME_KEY)
        if record is None:
            return None

        try:
            login_time = int(self.durable.get_item(LOGIN_TIME_KEY) or "")
        except ValueError:
            logger.warning("Clearing remembered session with invalid login time")
            self._clear_durable()
            return None

        if self._now_ms() - login_time >= REMEMBER_WINDOW_MS:
            logger.info("Remembered session expired, clearing it")
            self._clear_durable()
            return None

        self.ephemeral.set_item(USER_KEY, json.dumps(record, default=str))
        self.ephemeral.set_item(LOGIN_TIME_KEY, str(self._now_ms()))
        self._write_cookies(record, remember_me=True)
        return redirect_for_role(record.get("role"))

    def current_user(self) -> Optional[dict]:
        record = self._read_record(self.ephemeral, USER_KEY)
        if record is None:
            return None
        if not has_required_fields(record):
            logger.error("Invalid user data structure in session")
            return None
        return record

    def is_admin(self) -> bool:
        user = self.current_user()
        return bool(user) and user.get("role") == Role.ADMIN.value

    def is_remembered(self) -> bool:
        if self.durable.get_item(REMEMBER_ME_KEY) != "true":
            return False
        if self.durable.get_item(USER_KEY) is None:
            return False
        try:
            login_time = int(self.durable.get_item(LOGIN_TIME_KEY) or "")
        except ValueError:
            return False
        return self._now_ms() - login_time < REMEMBER_WINDOW_MS

    def touch(self) -> None:
        """Refresh the per-tab login time after user activity."""
        if self.ephemeral.get_item(USER_KEY) is not None:
            self.ephemeral.set_item(LOGIN_TIME_KEY, str(self._now_ms()))

    def auth_headers(self) -> Dict[str, str]:
        user = self.current_user()
        if not user:
            return {}
        headers = {
            "user-id": str(user["id"]),
            "user-role": str(user["role"]),
        }
        if user.get("email"):
            headers["user-email"] = str(user["email"])
        return headers

    def logout(self) -> str:
        """Forget the current user and return the page to show next."""
        record = self._read_record(self.ephemeral, USER_KEY)
        role = record.get("role") if record else None

        self.ephemeral.clear()
        self.ephemeral.set_item(LOGOUT_KEY, "true")
        self._clear_durable()
        self.policy.clear(self.cookies, role)
        return LOGIN_PAGE
