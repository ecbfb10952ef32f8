"""Predicate-driven waits over live browser state.

Every read or write the harness performs against the page goes through
:class:`WaitEngine`, which polls a predicate until it holds or a timeout
elapses. Polls are separated by ``anyio.sleep`` so the Playwright driver's
own I/O keeps running between checks.

Usage:
    waits = WaitEngine(page, timeout=10.0, poll_interval=0.3)
    await waits.until(element_visible(Locator.css(".article-meta")))
    title = await waits.value(lambda: page.title(), "document title")
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, replace
from typing import Any, Awaitable, Callable, Optional, Tuple, Type, TypeVar

import anyio
from playwright.async_api import Error as PlaywrightError, Page

from conduit_acceptance.errors import ElementNotFoundError, WaitTimeoutError
from conduit_acceptance.locators import Locator

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_TIMEOUT = 10.0
DEFAULT_POLL_INTERVAL = 0.3

# Errors raised while the DOM is being re-rendered; retried until the deadline.
TRANSIENT_ERRORS: Tuple[Type[BaseException], ...] = (PlaywrightError, ElementNotFoundError)

Predicate = Callable[[Page], Awaitable[bool]]


@dataclass(frozen=True)
class WaitCondition:
    """A named predicate over page state, with optional timing overrides."""

    description: str
    predicate: Predicate
    timeout: Optional[float] = None
    poll_interval: Optional[float] = None

    def with_timeout(self, timeout: float) -> "WaitCondition":
        return replace(self, timeout=timeout)

    def __str__(self) -> str:
        return self.description


# ============================================================================
# Condition factories
# ============================================================================

def element_attached(locator: Locator) -> WaitCondition:
    async def _check(page: Page) -> bool:
        return await page.query_selector(locator.selector) is not None

    return WaitCondition(f"element {locator} attached", _check)


def element_visible(locator: Locator) -> WaitCondition:
    async def _check(page: Page) -> bool:
        handle = await page.query_selector(locator.selector)
        return handle is not None and await handle.is_visible()

    return WaitCondition(f"element {locator} visible", _check)


def element_hidden(locator: Locator) -> WaitCondition:
    """Holds when the element is absent or not visible."""

    async def _check(page: Page) -> bool:
        handle = await page.query_selector(locator.selector)
        return handle is None or not await handle.is_visible()

    return WaitCondition(f"element {locator} hidden", _check)


def element_enabled(locator: Locator) -> WaitCondition:
    async def _check(page: Page) -> bool:
        handle = await page.query_selector(locator.selector)
        return handle is not None and await handle.is_visible() and await handle.is_enabled()

    return WaitCondition(f"element {locator} visible and enabled", _check)


def text_contains(locator: Locator, expected: str) -> WaitCondition:
    async def _check(page: Page) -> bool:
        handle = await page.query_selector(locator.selector)
        if handle is None:
            return False
        return expected in (await handle.inner_text())

    return WaitCondition(f"text of {locator} contains {expected!r}", _check)


def url_contains(substring: str) -> WaitCondition:
    async def _check(page: Page) -> bool:
        return substring in page.url

    return WaitCondition(f"URL contains {substring!r}", _check)


def url_excludes(substring: str) -> WaitCondition:
    async def _check(page: Page) -> bool:
        return substring not in page.url

    return WaitCondition(f"URL no longer contains {substring!r}", _check)


def url_matches(pattern: str) -> WaitCondition:
    regex = re.compile(pattern)

    async def _check(page: Page) -> bool:
        return regex.search(page.url) is not None

    return WaitCondition(f"URL matches /{pattern}/", _check)


def any_of(*conditions: WaitCondition) -> WaitCondition:
    """Holds when at least one condition holds.

    A transient error in one branch counts as "not yet" for that branch
    only, so a re-rendering marker cannot mask a sibling that is true.
    """
    if not conditions:
        raise ValueError("any_of() needs at least one condition")

    async def _check(page: Page) -> bool:
        for condition in conditions:
            try:
                if await condition.predicate(page):
                    return True
            except TRANSIENT_ERRORS:
                continue
        return False

    return WaitCondition(" or ".join(c.description for c in conditions), _check)


def all_of(*conditions: WaitCondition) -> WaitCondition:
    if not conditions:
        raise ValueError("all_of() needs at least one condition")

    async def _check(page: Page) -> bool:
        for condition in conditions:
            if not await condition.predicate(page):
                return False
        return True

    return WaitCondition(" and ".join(c.description for c in conditions), _check)


# ============================================================================
# Engine
# ============================================================================

class WaitEngine:
    """Polls predicates against one page until they hold or time out."""

    def __init__(
        self,
        page: Page,
        timeout: float = DEFAULT_TIMEOUT,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
    ) -> None:
        if timeout <= 0 or poll_interval <= 0:
            raise ValueError("timeout and poll_interval must be positive")
        self._page = page
        self.timeout = timeout
        self.poll_interval = poll_interval

    @property
    def page(self) -> Page:
        return self._page

    async def until(self, condition: WaitCondition, timeout: Optional[float] = None) -> None:
        """Block until ``condition`` holds.

        Raises:
            WaitTimeoutError: the condition was still false (or erroring)
                after at least ``timeout`` seconds.
        """
        await self.value(
            lambda: condition.predicate(self._page),
            condition.description,
            timeout=timeout if timeout is not None else condition.timeout,
            poll_interval=condition.poll_interval,
        )

    async def holds(self, condition: WaitCondition) -> bool:
        """Evaluate ``condition`` once; transient errors count as false."""
        try:
            return bool(await condition.predicate(self._page))
        except TRANSIENT_ERRORS:
            return False

    async def value(
        self,
        read: Callable[[], Awaitable[T]],
        description: str,
        accept: Callable[[T], Any] = bool,
        timeout: Optional[float] = None,
        poll_interval: Optional[float] = None,
    ) -> T:
        """Poll ``read`` until ``accept(result)`` is truthy and return the result."""
        timeout = timeout if timeout is not None else self.timeout
        poll_interval = poll_interval if poll_interval is not None else self.poll_interval

        start = anyio.current_time()
        deadline = start + timeout
        last_error: BaseException | None = None
        attempts = 0

        logger.debug("Waiting up to %.2fs for: %s", timeout, description)
        while True:
            attempts += 1
            try:
                result = await read()
            except TRANSIENT_ERRORS as exc:
                last_error = exc
                logger.debug("Transient error while waiting for %s: %s", description, exc)
            else:
                if accept(result):
                    logger.debug(
                        "Satisfied after %.2fs (%d polls): %s",
                        anyio.current_time() - start,
                        attempts,
                        description,
                    )
                    return result

            now = anyio.current_time()
            if now >= deadline:
                elapsed = now - start
                logger.warning("Timed out after %.2fs waiting for: %s", elapsed, description)
                raise WaitTimeoutError(description, elapsed, timeout, last_error)
            await anyio.sleep(min(poll_interval, deadline - now))
