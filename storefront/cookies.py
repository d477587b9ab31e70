"""
Auth cookie layout and the jars that hold them.

Every successful login writes the same session payload to a role-scoped
cookie and to the legacy site-wide cookie. ``CookiePolicy`` is the single
write path for that fan-out; the legacy cookie list can be emptied to stop
writing the duplicate.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional, Protocol

from starlette.requests import Request
from starlette.responses import Response

from storefront.session import Role

ADMIN_COOKIE_NAME = "admin-auth-token"
USER_COOKIE_NAME = "user-auth-token"
LEGACY_COOKIE_NAME = "auth-token"

SESSION_MAX_AGE = 24 * 60 * 60
REMEMBER_ME_MAX_AGE = 30 * 24 * 60 * 60


@dataclass(frozen=True)
class CookieSpec:
    name: str
    path: str = "/"

    def matches_path(self, request_path: str) -> bool:
        if self.path == "/":
            return True
        return request_path == self.path or request_path.startswith(
            self.path.rstrip("/") + "/"
        )


class CookieJar(Protocol):
    """Where auth cookies are read from and written to."""

    def get(self, name: str) -> Optional[str]:
        ...

    def set(self, spec: CookieSpec, value: str, max_age: int) -> None:
        ...

    def delete(self, spec: CookieSpec) -> None:
        ...


@dataclass
class CookiePolicy:
    admin_cookie: CookieSpec = CookieSpec(ADMIN_COOKIE_NAME, "/Admin")
    user_cookie: CookieSpec = CookieSpec(USER_COOKIE_NAME, "/")
    legacy_cookies: tuple[CookieSpec, ...] = (CookieSpec(LEGACY_COOKIE_NAME, "/"),)
    session_max_age: int = SESSION_MAX_AGE
    remember_me_max_age: int = REMEMBER_ME_MAX_AGE

    @classmethod
    def from_settings(cls, settings) -> "CookiePolicy":
        legacy = (
            (CookieSpec(LEGACY_COOKIE_NAME, "/"),)
            if settings.legacy_cookie_enabled
            else ()
        )
        return cls(
            admin_cookie=CookieSpec(ADMIN_COOKIE_NAME, settings.admin_path_prefix),
            user_cookie=CookieSpec(USER_COOKIE_NAME, "/"),
            legacy_cookies=legacy,
            session_max_age=settings.session_max_age,
            remember_me_max_age=settings.remember_me_max_age,
        )

    def role_cookie(self, role: Optional[str]) -> CookieSpec:
        if role == Role.ADMIN.value:
            return self.admin_cookie
        return self.user_cookie

    def cookies_for(self, role: Optional[str]) -> list[CookieSpec]:
        return [self.role_cookie(role), *self.legacy_cookies]

    def all_cookies(self) -> list[CookieSpec]:
        return [self.admin_cookie, self.user_cookie, *self.legacy_cookies]

    def admin_lookup(self) -> list[str]:
        """Cookie names checked, in order, for an admin session."""
        return [self.admin_cookie.name, *(c.name for c in self.legacy_cookies)]

    def user_lookup(self) -> list[str]:
        """Cookie names checked, in order, for a customer session."""
        return [self.user_cookie.name, *(c.name for c in self.legacy_cookies)]

    def max_age(self, remember_me: bool) -> int:
        return self.remember_me_max_age if remember_me else self.session_max_age

    def write(
        self, jar: CookieJar, value: str, role: Optional[str], remember_me: bool
    ) -> list[CookieSpec]:
        max_age = self.max_age(remember_me)
        written = self.cookies_for(role)
        for spec in written:
            jar.set(spec, value, max_age)
        return written

    def clear(self, jar: CookieJar, role: Optional[str]) -> None:
        # Only the caller's role cookie; another tab may hold the other role.
        for spec in self.cookies_for(role):
            jar.delete(spec)

    def clear_all(self, jar: CookieJar) -> None:
        for spec in self.all_cookies():
            jar.delete(spec)


@dataclass
class StoredCookie:
    value: str
    max_age: int
    expires_at: float


@dataclass
class InMemoryCookieJar:
    """Browser-side cookie jar keyed by (name, path), honouring max-age."""

    clock: Callable[[], float] = time.time
    cookies: Dict[CookieSpec, StoredCookie] = field(default_factory=dict)

    def _live(self) -> Dict[CookieSpec, StoredCookie]:
        now = self.clock()
        expired = [spec for spec, c in self.cookies.items() if c.expires_at <= now]
        for spec in expired:
            del self.cookies[spec]
        return self.cookies

    def get(self, name: str) -> Optional[str]:
        for spec, cookie in self._live().items():
            if spec.name == name:
                return cookie.value
        return None

    def get_spec(self, spec: CookieSpec) -> Optional[StoredCookie]:
        return self._live().get(spec)

    def set(self, spec: CookieSpec, value: str, max_age: int) -> None:
        self.cookies[spec] = StoredCookie(
            value=value, max_age=max_age, expires_at=self.clock() + max_age
        )

    def delete(self, spec: CookieSpec) -> None:
        self.cookies.pop(spec, None)

    def for_path(self, request_path: str) -> dict[str, str]:
        """Cookies a browser would attach to a request for ``request_path``."""
        attached: dict[str, str] = {}
        # Longer paths first, as browsers order them.
        for spec, cookie in sorted(
            self._live().items(), key=lambda item: len(item[0].path), reverse=True
        ):
            if spec.matches_path(request_path) and spec.name not in attached:
                attached[spec.name] = cookie.value
        return attached


class ResponseCookieJar:
    """Server-side jar: reads the incoming request, writes Set-Cookie headers."""

    def __init__(
        self,
        request: Optional[Request],
        response: Response,
        *,
        secure: bool = False,
    ):
        self.request = request
        self.response = response
        self.secure = secure

    def get(self, name: str) -> Optional[str]:
        if self.request is None:
            return None
        return self.request.cookies.get(name)

    def set(self, spec: CookieSpec, value: str, max_age: int) -> None:
        self.response.set_cookie(
            key=spec.name,
            value=value,
            max_age=max_age,
            path=spec.path,
            secure=self.secure,
            samesite="lax",
        )

    def delete(self, spec: CookieSpec) -> None:
        self.response.delete_cookie(key=spec.name, path=spec.path)
