"""
Login and registration flow as seen from the shop front end.

``StorefrontClient`` validates form input, talks to the authentication
endpoint and records the result in a ``SessionStore``. ``IdleLogoutTimer``
logs the user out after a period without activity.
"""

from __future__ import annotations

import logging
import re
import threading
from dataclasses import dataclass, field
from typing import Callable, Optional

import requests

from storefront.session import Role, public_user
from storefront.session_store import (
    ADMIN_HOME,
    CUSTOMER_HOME,
    LOGIN_PAGE,
    SessionStore,
)

logger = logging.getLogger(__name__)

LOGIN_TIMEOUT_SECONDS = 10
IDLE_TIMEOUT_SECONDS = 5 * 60

EMAIL_PATTERN = re.compile(r"\S+@\S+\.\S+")
PHONE_PATTERN = re.compile(r"\d{10,13}")
SPECIAL_CHARACTER = re.compile(r"[^A-Za-z0-9]")

TIMEOUT_MESSAGE = "The server took too long to respond. Please try again."
GENERIC_FAILURE_MESSAGE = "Something went wrong. Please try again."


@dataclass
class AuthResult:
    success: bool
    message: str = ""
    user: Optional[dict] = None
    redirect_to: Optional[str] = None
    timed_out: bool = False
    errors: dict = field(default_factory=dict)


def validate_login(email: str, password: str) -> dict:
    errors = {}
    if not email:
        errors["email"] = "Email is required"
    elif not EMAIL_PATTERN.fullmatch(email.strip()):
        errors["email"] = "Invalid email format"
    if not password:
        errors["password"] = "Password is required"
    return errors


def password_strength(password: str) -> int:
    """Count of satisfied strength criteria (uppercase, digit, special, length)."""
    checks = (
        any(c.isupper() for c in password),
        any(c.isdigit() for c in password),
        bool(SPECIAL_CHARACTER.search(password)),
        len(password) >= 8,
    )
    return sum(checks)


def validate_registration(
    name: str, email: str, phone: str, password: str, confirm_password: str
) -> dict:
    errors = {}
    if not (name or "").strip():
        errors["name"] = "Name is required"
    if not email:
        errors["email"] = "Email is required"
    elif not EMAIL_PATTERN.fullmatch(email.strip()):
        errors["email"] = "Invalid email format"
    if not phone:
        errors["phone"] = "Phone number is required"
    elif not PHONE_PATTERN.fullmatch(phone.strip()):
        errors["phone"] = "Phone number must be 10-13 digits"
    if not password:
        errors["password"] = "Password is required"
    elif len(password) < 8:
        errors["password"] = "Password must be at least 8 characters"
    elif password_strength(password) < 3:
        errors["password"] = (
            "Password must include at least three of: uppercase letter, "
            "number, special character"
        )
    if password != confirm_password:
        errors["confirm_password"] = "Passwords do not match"
    return errors


class StorefrontClient:
    """Front-end side of the login, registration and logout flow."""

    def __init__(
        self,
        base_url: str,
        session_store: Optional[SessionStore] = None,
        http: Optional[requests.Session] = None,
        timeout: float = LOGIN_TIMEOUT_SECONDS,
        api_prefix: str = "/api",
    ):
        self.base_url = base_url.rstrip("/")
        self.api_prefix = api_prefix.rstrip("/")
        self.session_store = session_store or SessionStore()
        self.http = http or requests.Session()
        self.timeout = timeout

    def _post_auth(self, payload: dict) -> tuple[Optional[dict], Optional[AuthResult]]:
        try:
            response = self.http.post(
                f"{self.base_url}{self.api_prefix}/user",
                json=payload,
                timeout=self.timeout,
            )
            body = response.json()
        except requests.exceptions.Timeout:
            logger.warning("Authentication request timed out")
            return None, AuthResult(
                success=False, message=TIMEOUT_MESSAGE, timed_out=True
            )
        except (requests.RequestException, ValueError) as e:
            logger.error("Authentication request failed: %s", e)
            return None, AuthResult(success=False, message=GENERIC_FAILURE_MESSAGE)

        if not isinstance(body, dict) or not body.get("success"):
            message = GENERIC_FAILURE_MESSAGE
            if isinstance(body, dict) and body.get("message"):
                message = body["message"]
            return None, AuthResult(success=False, message=message)
        return body, None

    def login(self, email: str, password: str, remember_me: bool = False) -> AuthResult:
        errors = validate_login(email, password)
        if errors:
            return AuthResult(
                success=False, message="Please fix the errors below", errors=errors
            )

        body, failure = self._post_auth(
            {
                "email": email.strip(),
                "password": password,
                "action": "login",
                "rememberMe": remember_me,
            }
        )
        if failure:
            return failure

        data = body.get("data") or {}
        user = data.get("user") if isinstance(data, dict) else None
        if not isinstance(user, dict):
            logger.error("Login response did not include a user record")
            return AuthResult(success=False, message=GENERIC_FAILURE_MESSAGE)

        user = public_user(user)
        self.session_store.write(user, remember_me=remember_me)
        redirect_to = ADMIN_HOME if user.get("role") == Role.ADMIN.value else CUSTOMER_HOME
        logger.info("Logged in %s", user.get("email"))
        return AuthResult(
            success=True,
            message=body.get("message") or "Login successful",
            user=user,
            redirect_to=redirect_to,
        )

    def register(
        self,
        name: str,
        email: str,
        phone: str,
        password: str,
        confirm_password: str,
    ) -> AuthResult:
        errors = validate_registration(name, email, phone, password, confirm_password)
        if errors:
            return AuthResult(
                success=False, message="Please fix the errors below", errors=errors
            )

        body, failure = self._post_auth(
            {
                "name": name.strip(),
                "email": email.strip(),
                "phone": phone.strip(),
                "password": password,
                "action": "register",
            }
        )
        if failure:
            return failure
        return AuthResult(
            success=True,
            message=body.get("message") or "Registration successful",
            redirect_to=LOGIN_PAGE,
        )

    def logout(self) -> str:
        return self.session_store.logout()

    def restore(self) -> Optional[str]:
        return self.session_store.restore()


class IdleLogoutTimer:
    """
    Logs the user out after ``timeout`` seconds without activity.

    Call ``reset()`` whenever the user does something. The timer runs on its
    own thread and is not coordinated with the server session.
    """

    def __init__(
        self,
        session_store: SessionStore,
        timeout: float = IDLE_TIMEOUT_SECONDS,
        on_timeout: Optional[Callable[[str], None]] = None,
    ):
        self.session_store = session_store
        self.timeout = timeout
        self.on_timeout = on_timeout
        self._timer: Optional[threading.Timer] = None
        self._lock = threading.Lock()

    def _expire(self) -> None:
        logger.info("Logging out after %s seconds of inactivity", self.timeout)
        redirect_to = self.session_store.logout()
        if self.on_timeout:
            self.on_timeout(redirect_to)

    def start(self) -> None:
        with self._lock:
            if self._timer:
                self._timer.cancel()
            self._timer = threading.Timer(self.timeout, self._expire)
            self._timer.daemon = True
            self._timer.start()

    def reset(self) -> None:
        self.session_store.touch()
        self.start()

    def cancel(self) -> None:
        with self._lock:
            if self._timer:
                self._timer.cancel()
                self._timer = None
