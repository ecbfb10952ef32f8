"""Harness-level failures.

Everything here means the *harness* could not do its job (a wait never
resolved, an element vanished mid-click, the API host is unreachable).
Application outcomes such as HTTP 401/404/422 are never raised; they come
back as data in :class:`conduit_acceptance.api_client.ApiResponse`.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:  # pragma: no cover
    from conduit_acceptance.api_client import ApiResponse


class HarnessError(Exception):
    """Base class for all harness failures."""


class WaitTimeoutError(HarnessError, TimeoutError):
    """A wait predicate never became true within its timeout."""

    def __init__(
        self,
        description: str,
        elapsed: float,
        timeout: float,
        last_error: Optional[BaseException] = None,
    ) -> None:
        self.description = description
        self.elapsed = elapsed
        self.timeout = timeout
        self.last_error = last_error
        super().__init__(str(self))

    def __str__(self) -> str:
        message = (
            f"Timed out after {self.elapsed:.2f}s (timeout {self.timeout:.2f}s) "
            f"waiting for: {self.description}"
        )
        if self.last_error is not None:
            message += f". Last error: {self.last_error}"
        return message


class ElementNotFoundError(HarnessError):
    """No element matched a locator at resolution time."""

    def __init__(self, locator: Any, name: str | None = None) -> None:
        self.locator = locator
        self.name = name
        super().__init__(str(self))

    def __str__(self) -> str:
        label = f"'{self.name}' " if self.name else ""
        return f"Element {label}not found for locator {self.locator}"


@dataclass
class InteractionError(HarnessError):
    """Raised when a click/type fails on a resolved element."""

    action: str
    locator: Any
    message: str

    def __str__(self) -> str:  # pragma: no cover - human readable helper
        return f"{self.action} failed on {self.locator}: {self.message}"


@dataclass
class NavigationError(HarnessError):
    """The browser could not load a URL at all."""

    url: str
    message: str

    def __str__(self) -> str:  # pragma: no cover - human readable helper
        return f"Navigation to {self.url} failed: {self.message}"


class ApiError(HarnessError):
    """Network-level API failure, or a login that produced no token.

    ``response`` is set when the server did answer (e.g. a 422 on login);
    it is ``None`` for connection refused, DNS failures and timeouts.
    """

    def __init__(
        self,
        method: str,
        url: str,
        message: str,
        response: Optional["ApiResponse"] = None,
    ) -> None:
        self.method = method
        self.url = url
        self.message = message
        self.response = response
        super().__init__(str(self))

    def __str__(self) -> str:
        status = f" (HTTP {self.response.status_code})" if self.response is not None else ""
        return f"{self.method} {self.url} failed{status}: {self.message}"
