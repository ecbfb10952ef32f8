"""Shared configuration for the Conduit acceptance harness.

Every value comes from an environment variable with an in-code default;
a set, non-empty variable always wins. Core components never read the
environment themselves - they receive the resolved values from here via
the lifecycle and fixtures.

Environment:
    TEST_BASE_URL / TEST_API_URL            Frontend and backend roots
    TEST_USER_{A,B,C}_{EMAIL,PASSWORD,USERNAME}
    PLAYWRIGHT_HEADLESS, UI_BROWSER         Browser launch
    UI_VIEWPORT_WIDTH / UI_VIEWPORT_HEIGHT
    UI_WAIT_TIMEOUT, UI_POLL_INTERVAL       WaitEngine defaults (seconds)
    UI_NAVIGATION_TIMEOUT, API_TIMEOUT      Seconds
    SCREENSHOT_DIR                          Failure captures
    CONDUIT_LIVE_TESTS                      Enables journeys against a live app
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional
from urllib.parse import urljoin

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:3000"
DEFAULT_API_URL = "http://localhost:8080"

# Seeded RealWorld users; only user A has known defaults.
_USER_DEFAULTS: Dict[str, Dict[str, str]] = {
    "a": {"email": "john@example.com", "password": "password123", "username": "johndoe"},
    "b": {"email": "", "password": "", "username": ""},
    "c": {"email": "", "password": "", "username": ""},
}

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass
class TestUser:
    """Credentials for one seeded account."""

    __test__ = False

    name: str
    email: str
    password: str
    username: str

    @property
    def configured(self) -> bool:
        return bool(self.email and self.password)


class HarnessConfig:
    """Resolved harness settings.

    ``environ`` defaults to ``os.environ``; tests pass a plain dict.
    """

    def __init__(self, environ: Optional[Mapping[str, str]] = None) -> None:
        self._env: Mapping[str, str] = os.environ if environ is None else environ

        self.base_url: str = self._get("TEST_BASE_URL", DEFAULT_BASE_URL)
        self.api_url: str = self._get("TEST_API_URL", DEFAULT_API_URL)

        self.playwright_headless: bool = self._get_bool("PLAYWRIGHT_HEADLESS", True)
        self.browser_type: str = self._get("UI_BROWSER", "chromium").lower()
        if self.browser_type not in {"chromium", "firefox", "webkit"}:
            raise ValueError(f"UI_BROWSER must be chromium, firefox or webkit, got {self.browser_type!r}")

        self.viewport: Dict[str, int] = {
            "width": self._get_int("UI_VIEWPORT_WIDTH", 1920),
            "height": self._get_int("UI_VIEWPORT_HEIGHT", 1080),
        }

        self.wait_timeout: float = self._get_float("UI_WAIT_TIMEOUT", 10.0)
        self.poll_interval: float = self._get_float("UI_POLL_INTERVAL", 0.3)
        self.navigation_timeout: float = self._get_float("UI_NAVIGATION_TIMEOUT", 15.0)
        self.api_timeout: float = self._get_float("API_TIMEOUT", 10.0)

        self.screenshot_dir: str = self._get("SCREENSHOT_DIR", "build/reports/screenshots")
        self.live_tests: bool = self._get_bool("CONDUIT_LIVE_TESTS", False)

        self._users: Dict[str, TestUser] = {
            letter: TestUser(
                name=letter,
                email=self._get(f"TEST_USER_{letter.upper()}_EMAIL", defaults["email"]),
                password=self._get(f"TEST_USER_{letter.upper()}_PASSWORD", defaults["password"]),
                username=self._get(f"TEST_USER_{letter.upper()}_USERNAME", defaults["username"]),
            )
            for letter, defaults in _USER_DEFAULTS.items()
        }

        logger.debug("Harness config: base_url=%s api_url=%s browser=%s", self.base_url, self.api_url, self.browser_type)

    # ---- raw lookups -------------------------------------------------------------
    def _get(self, key: str, default: str) -> str:
        value = self._env.get(key)
        if value is None or value == "":
            return default
        return value

    def _get_bool(self, key: str, default: bool) -> bool:
        value = self._env.get(key)
        if not value:
            return default
        return value.strip().lower() in _TRUTHY

    def _get_int(self, key: str, default: int) -> int:
        value = self._env.get(key)
        if not value:
            return default
        try:
            parsed = int(value)
        except ValueError:
            raise ValueError(f"{key} must be an integer, got {value!r}") from None
        if parsed <= 0:
            raise ValueError(f"{key} must be positive, got {value!r}")
        return parsed

    def _get_float(self, key: str, default: float) -> float:
        value = self._env.get(key)
        if not value:
            return default
        try:
            parsed = float(value)
        except ValueError:
            raise ValueError(f"{key} must be a number of seconds, got {value!r}") from None
        if parsed <= 0:
            raise ValueError(f"{key} must be positive, got {value!r}")
        return parsed

    # ---- users -------------------------------------------------------------------
    def user(self, name: str) -> TestUser:
        """Return test user ``a``, ``b`` or ``c``."""
        try:
            return self._users[name.lower()]
        except KeyError:
            raise KeyError(f"Unknown test user {name!r}; expected one of {sorted(self._users)}") from None

    def users(self) -> List[TestUser]:
        return list(self._users.values())

    # ---- utility helpers ---------------------------------------------------------
    def url(self, path: str) -> str:
        """Return an absolute frontend URL for the provided path."""
        return urljoin(self.base_url.rstrip("/") + "/", path.lstrip("/"))

    def api_url_for(self, path: str) -> str:
        """Return an absolute backend URL for the provided path."""
        return urljoin(self.api_url.rstrip("/") + "/", path.lstrip("/"))


# Singleton instance - initialized on first import
settings = HarnessConfig()
