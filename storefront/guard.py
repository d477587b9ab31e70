"""
Routing guard for page requests.

``RoutingGuard.evaluate`` is a pure decision over the requested path and the
request cookies. It is installed as HTTP middleware in ``storefront.app`` and
runs before any page route.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Mapping, Optional

from storefront.cookies import CookiePolicy
from storefront.session import (
    JsonSessionCodec,
    SessionCodec,
    SessionDecodeError,
    is_admin_record,
)

logger = logging.getLogger(__name__)

CUSTOMER_PAGE_PREFIXES = (
    "/Detail",
    "/Review",
    "/Profile",
    "/view-order",
    "/cart",
    "/checkout",
)
PROTECTED_PREFIXES = ("/cart", "/checkout")


@dataclass(frozen=True)
class GuardDecision:
    redirect_to: Optional[str] = None

    @property
    def allowed(self) -> bool:
        return self.redirect_to is None

    @classmethod
    def allow(cls) -> "GuardDecision":
        return cls()

    @classmethod
    def redirect(cls, target: str) -> "GuardDecision":
        return cls(redirect_to=target)


@dataclass
class RoutingGuard:
    policy: CookiePolicy = field(default_factory=CookiePolicy)
    codec: SessionCodec = field(default_factory=JsonSessionCodec)
    admin_prefix: str = "/Admin"
    login_path: str = "/Login"
    home_path: str = "/"
    customer_prefixes: tuple[str, ...] = CUSTOMER_PAGE_PREFIXES
    protected_prefixes: tuple[str, ...] = PROTECTED_PREFIXES

    @classmethod
    def from_settings(cls, settings, codec: SessionCodec) -> "RoutingGuard":
        return cls(
            policy=CookiePolicy.from_settings(settings),
            codec=codec,
            admin_prefix=settings.admin_path_prefix,
            login_path=settings.login_path,
            home_path=settings.home_path,
        )

    @staticmethod
    def _first_token(cookies: Mapping[str, str], names: list[str]) -> Optional[str]:
        for name in names:
            value = cookies.get(name)
            if value:
                return value
        return None

    def is_customer_page(self, path: str) -> bool:
        if path == self.home_path:
            return True
        return path.startswith(self.customer_prefixes)

    def is_admin_area(self, path: str) -> bool:
        return path.startswith(self.admin_prefix)

    def is_protected(self, path: str) -> bool:
        return path.startswith(self.protected_prefixes)

    def evaluate(self, path: str, cookies: Mapping[str, str]) -> GuardDecision:
        # Admins never see customer pages, even though those paths are
        # outside the admin prefix.
        if self.is_customer_page(path):
            token = self._first_token(cookies, self.policy.admin_lookup())
            if token:
                try:
                    if is_admin_record(self.codec.decode(token)):
                        return GuardDecision.redirect(self.admin_prefix)
                except SessionDecodeError as e:
                    logger.warning("Ignoring malformed admin cookie on %s: %s", path, e)

        if self.is_admin_area(path):
            token = self._first_token(cookies, self.policy.admin_lookup())
            if not token:
                return GuardDecision.redirect(self.login_path)
            try:
                record = self.codec.decode(token)
            except SessionDecodeError as e:
                logger.error("Invalid auth token: %s", e)
                return GuardDecision.redirect(self.login_path)
            if not is_admin_record(record):
                return GuardDecision.redirect(self.home_path)
            return GuardDecision.allow()

        if self.is_protected(path):
            token = self._first_token(cookies, self.policy.user_lookup())
            if not token:
                return GuardDecision.redirect(self.login_path)
            try:
                self.codec.decode(token)
            except SessionDecodeError as e:
                logger.error("Invalid auth token: %s", e)
                return GuardDecision.redirect(self.login_path)
            return GuardDecision.allow()

        return GuardDecision.allow()
