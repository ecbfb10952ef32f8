"""Page object base classes and the page synchronization protocol.

A page object moves through::

    UNLOADED -> NAVIGATING -> LOADED | NOT_FOUND | ERROR -> (interacting)* -> UNLOADED

``navigate_to`` does not return until one of the terminal states is
observable, so test bodies never need a sleep between "open the page"
and "read from it". Missing content is reported as a state, never raised.
"""
from __future__ import annotations

import enum
import logging
import re
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple, TypeVar
from urllib.parse import quote

from conduit_acceptance.browser import BrowserSession
from conduit_acceptance.elements import ElementHandle
from conduit_acceptance.errors import WaitTimeoutError
from conduit_acceptance.locators import Locator
from conduit_acceptance.waits import WaitEngine, element_visible

logger = logging.getLogger(__name__)

T = TypeVar("T")


class PageState(enum.Enum):
    UNLOADED = "unloaded"
    NAVIGATING = "navigating"
    LOADING = "loading"
    LOADED = "loaded"
    NOT_FOUND = "not_found"
    ERROR = "error"

    @property
    def terminal(self) -> bool:
        return self in TERMINAL_STATES


TERMINAL_STATES = frozenset({PageState.LOADED, PageState.NOT_FOUND, PageState.ERROR})

DEFAULT_NOT_FOUND_MARKERS: Tuple[Locator, ...] = (
    Locator.css(".not-found, .error-page"),
    Locator.text("/404|not found|can't load/i"),
)
DEFAULT_ERROR_MARKERS: Tuple[Locator, ...] = (
    Locator.css(".error-message, .alert-danger"),
)


class BasePage:
    """One logical Conduit screen.

    Subclasses declare ``path`` (a ``str.format`` template), the ``marker``
    that proves the screen has rendered, and optionally ``url_pattern``
    plus overrides for the not-found / error markers.
    """

    path: str = "/"
    marker: Optional[Locator] = None
    url_pattern: Optional[str] = None
    not_found_markers: Tuple[Locator, ...] = DEFAULT_NOT_FOUND_MARKERS
    error_markers: Tuple[Locator, ...] = DEFAULT_ERROR_MARKERS

    def __init__(self, session: BrowserSession, base_url: str) -> None:
        self.session = session
        self.base_url = base_url.rstrip("/")
        self.state = PageState.UNLOADED
        self._cache: Dict[str, Any] = {}

    def __repr__(self) -> str:
        return f"{type(self).__name__}(state={self.state.value})"

    @property
    def waits(self) -> WaitEngine:
        return self.session.waits

    def element(self, locator: Locator, name: Optional[str] = None) -> ElementHandle:
        return self.session.element(locator, name=name)

    def url_for(self, **params: Any) -> str:
        encoded = {key: quote(str(value), safe="") for key, value in params.items()}
        return self.base_url + self.path.format(**encoded)

    @property
    def current_url(self) -> str:
        return self.session.page.url

    # ---- navigation -----------------------------------------------------------------
    async def navigate_to(self, timeout: Optional[float] = None, **params: Any) -> "BasePage":
        """Open this page and block until it is loaded, not found, or errored.

        Raises:
            WaitTimeoutError: no terminal state became observable.
            NavigationError: the browser could not load the URL.
        """
        self._reset()
        self.state = PageState.NAVIGATING
        url = self.url_for(**params)
        await self.session.goto(url)
        self.state = PageState.LOADING
        await self.wait_for_state(*TERMINAL_STATES, timeout=timeout)
        logger.debug("%s reached %s at %s", type(self).__name__, self.state.value, url)
        return self

    async def reload(self, timeout: Optional[float] = None) -> "BasePage":
        self._reset()
        self.state = PageState.NAVIGATING
        await self.session.reload()
        self.state = PageState.LOADING
        await self.wait_for_state(*TERMINAL_STATES, timeout=timeout)
        return self

    def _reset(self) -> None:
        self._cache.clear()
        self.state = PageState.UNLOADED

    async def _remember(self, key: str, loader: Callable[[], Awaitable[T]]) -> T:
        """Cache ``loader()`` for the current visit only."""
        if key not in self._cache:
            self._cache[key] = await loader()
        return self._cache[key]

    # ---- state observation ----------------------------------------------------------
    async def _is_loaded_now(self) -> bool:
        if self.url_pattern and not re.search(self.url_pattern, self.current_url):
            return False
        if self.marker is None:
            return True
        return await self.waits.holds(element_visible(self.marker))

    async def current_state(self) -> PageState:
        """Observe the page once, without waiting."""
        if self.session.document_status() == 404:
            return PageState.NOT_FOUND
        if await self._is_loaded_now():
            return PageState.LOADED
        for locator in self.not_found_markers:
            if await self.waits.holds(element_visible(locator)):
                return PageState.NOT_FOUND
        for locator in self.error_markers:
            if await self.waits.holds(element_visible(locator)):
                return PageState.ERROR
        return PageState.LOADING

    async def wait_for_state(self, *states: PageState, timeout: Optional[float] = None) -> PageState:
        """Block until the page is in one of ``states`` and return it."""
        wanted = frozenset(states) or TERMINAL_STATES
        names = ", ".join(sorted(s.value for s in wanted))
        observed = await self.waits.value(
            self.current_state,
            f"{type(self).__name__} in state {{{names}}}",
            accept=lambda state: state in wanted,
            timeout=timeout,
        )
        if observed.terminal:
            self.state = observed
        return observed

    async def _settled_state(self, timeout: Optional[float]) -> Optional[PageState]:
        try:
            return await self.wait_for_state(*TERMINAL_STATES, timeout=timeout)
        except WaitTimeoutError:
            return None

    async def is_loaded(self, timeout: Optional[float] = None) -> bool:
        return await self._settled_state(timeout) is PageState.LOADED

    async def is_page_not_found(self, timeout: Optional[float] = None) -> bool:
        return await self._settled_state(timeout) is PageState.NOT_FOUND

    async def is_error_displayed(self, timeout: Optional[float] = None) -> bool:
        return await self._settled_state(timeout) is PageState.ERROR

    # ---- interaction sync -----------------------------------------------------------
    async def wait_for_state_change(
        self,
        read: Callable[[], Awaitable[T]],
        expected: T,
        description: str,
        timeout: Optional[float] = None,
    ) -> T:
        """Wait until ``read()`` returns ``expected`` after an async action.

        Callers that trigger a backend round-trip (favorite, follow, comment)
        must call this (or a page-specific wrapper) before reading again.
        """
        return await self.waits.value(
            read,
            f"{description} == {expected!r}",
            accept=lambda value: value == expected,
            timeout=timeout,
        )


class Component:
    """A fragment of a screen (navbar, preview card, pagination) without its own URL."""

    def __init__(self, session: BrowserSession, root: Locator) -> None:
        self.session = session
        self.root = root

    @property
    def waits(self) -> WaitEngine:
        return self.session.waits

    def element(self, locator: Locator, name: Optional[str] = None) -> ElementHandle:
        return self.session.element(locator.within(self.root), name=name)

    async def is_displayed(self, timeout: Optional[float] = None) -> bool:
        return await self.session.element(self.root).is_displayed(timeout=timeout)
