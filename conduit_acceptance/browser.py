"""Per-test browser session: navigation, cookies, storage and element factory."""
from __future__ import annotations

import json
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator, Dict, List, Optional

from playwright.async_api import BrowserContext, Error as PlaywrightError, Page, TimeoutError as PlaywrightTimeout

from conduit_acceptance.elements import ElementHandle
from conduit_acceptance.errors import NavigationError
from conduit_acceptance.locators import Locator
from conduit_acceptance.playwright_client import PlaywrightClient
from conduit_acceptance.waits import DEFAULT_POLL_INTERVAL, DEFAULT_TIMEOUT, WaitEngine

logger = logging.getLogger(__name__)

# localStorage key the Conduit frontend keeps the signed-in user (and its JWT) under.
USER_STORAGE_KEY = "user"

_READ_LOCAL_STORAGE = """() => {
    try { return Object.assign({}, window.localStorage); } catch (e) { return {}; }
}"""
_CLEAR_STORAGE = """() => {
    try { window.localStorage.clear(); window.sessionStorage.clear(); } catch (e) {}
}"""


class BrowserSession:
    """Wraps one Playwright page; owned by exactly one test."""

    def __init__(
        self,
        page: Page,
        navigation_timeout: float = 15.0,
        wait_timeout: float = DEFAULT_TIMEOUT,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        owner: Optional[PlaywrightClient] = None,
    ) -> None:
        self._page = page
        self._owner = owner
        self.navigation_timeout = navigation_timeout
        self.waits = WaitEngine(page, timeout=wait_timeout, poll_interval=poll_interval)
        self.current_url: str | None = None
        self.current_title: str | None = None
        self.last_status: int | None = None
        self._status_url: str | None = None
        self.closed = False

    @property
    def page(self) -> Page:
        return self._page

    @property
    def context(self) -> BrowserContext:
        return self._page.context

    async def _update_state(self) -> None:
        self.current_url = self._page.url
        self.current_title = await self._page.title()

    async def _record_load(self, response: Any) -> Optional[int]:
        self.last_status = response.status if response else None
        self._status_url = self._page.url
        await self._update_state()
        return self.last_status

    def document_status(self) -> Optional[int]:
        """HTTP status of the document on screen.

        ``None`` once the page has moved on through history or in-app routing,
        because the status belongs to the URL that was loaded.
        """
        if self._status_url != self._page.url:
            return None
        return self.last_status

    # ---- navigation ---------------------------------------------------------------
    async def goto(self, url: str, wait_until: str = "domcontentloaded") -> Optional[int]:
        """Navigate and return the document's HTTP status (``None`` for SPA/about: loads).

        A driver timeout is retried once before surfacing as NavigationError.
        """
        timeout_ms = self.navigation_timeout * 1000
        try:
            try:
                response = await self._page.goto(url, wait_until=wait_until, timeout=timeout_ms)
            except PlaywrightTimeout:
                logger.info("Navigation to %s timed out, retrying once", url)
                response = await self._page.goto(url, wait_until=wait_until, timeout=timeout_ms)
        except PlaywrightError as exc:
            raise NavigationError(url=url, message=str(exc)) from exc

        await self._record_load(response)
        logger.debug("Loaded %s (status=%s)", url, self.last_status)
        return self.last_status

    async def reload(self) -> Optional[int]:
        try:
            response = await self._page.reload(wait_until="domcontentloaded", timeout=self.navigation_timeout * 1000)
        except PlaywrightError as exc:
            raise NavigationError(url=self._page.url, message=str(exc)) from exc
        return await self._record_load(response)

    async def back(self) -> None:
        await self._page.go_back(wait_until="domcontentloaded")
        self.last_status = None
        await self._update_state()

    async def forward(self) -> None:
        await self._page.go_forward(wait_until="domcontentloaded")
        self.last_status = None
        await self._update_state()

    async def reset(self) -> None:
        """Navigate to about:blank."""
        await self.goto("about:blank")

    # ---- page reads ------------------------------------------------------------------
    async def page_source(self) -> str:
        return await self._page.content()

    async def title(self) -> str:
        return await self._page.title()

    async def evaluate(self, script: str, arg: Any = None) -> Any:
        return await self._page.evaluate(script, arg)

    def element(self, locator: Locator, name: Optional[str] = None) -> ElementHandle:
        """Build an ElementHandle bound to this session's page and wait settings."""
        return ElementHandle(self._page, locator, name=name, waits=self.waits)

    # ---- cookies and storage ---------------------------------------------------------
    async def cookies(self) -> List[Dict[str, Any]]:
        return list(await self.context.cookies())

    async def add_cookies(self, cookies: List[Dict[str, Any]]) -> None:
        await self.context.add_cookies(cookies)

    async def clear_cookies(self) -> None:
        await self.context.clear_cookies()

    async def local_storage(self) -> Dict[str, str]:
        """Snapshot of localStorage for the current origin (empty on about:blank)."""
        return dict(await self._page.evaluate(_READ_LOCAL_STORAGE))

    async def get_local_storage(self, key: str) -> Optional[str]:
        return (await self.local_storage()).get(key)

    async def set_local_storage(self, key: str, value: str) -> None:
        await self._page.evaluate("([k, v]) => window.localStorage.setItem(k, v)", [key, value])

    async def clear_storage(self) -> None:
        await self._page.evaluate(_CLEAR_STORAGE)

    async def stored_token(self) -> Optional[str]:
        """JWT the frontend keeps under localStorage ``user``, if any."""
        raw = await self.get_local_storage(USER_STORAGE_KEY)
        if not raw:
            return None
        try:
            data = json.loads(raw)
        except ValueError:
            return None
        token = data.get("token") if isinstance(data, dict) else None
        return token or None

    async def store_token(self, token: str, **user_fields: Any) -> None:
        """Write a ``user`` entry the way the frontend does after login."""
        payload = dict(user_fields)
        payload["token"] = token
        await self.set_local_storage(USER_STORAGE_KEY, json.dumps(payload))

    # ---- misc --------------------------------------------------------------------------
    async def screenshot(self, path: str | Path) -> Path:
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        await self._page.screenshot(path=str(target), full_page=True)
        return target

    async def set_viewport(self, width: int, height: int) -> None:
        await self._page.set_viewport_size({"width": width, "height": height})

    async def close(self) -> None:
        """Release the browser. Idempotent."""
        if self.closed:
            return
        self.closed = True
        if self._owner is not None:
            await self._owner.close()
        else:
            await self._page.close()


@asynccontextmanager
async def browser_session(
    browser_type: str = "chromium",
    headless: bool = True,
    viewport: Optional[Dict[str, int]] = None,
    navigation_timeout: float = 15.0,
    wait_timeout: float = DEFAULT_TIMEOUT,
    poll_interval: float = DEFAULT_POLL_INTERVAL,
) -> AsyncIterator[BrowserSession]:
    """Yield a BrowserSession on a fresh context; always closed on exit."""
    client = PlaywrightClient(browser_type=browser_type, headless=headless, viewport=viewport)
    try:
        await client.connect()
    except BaseException:
        await client.close()
        raise
    session = BrowserSession(
        client.page,
        navigation_timeout=navigation_timeout,
        wait_timeout=wait_timeout,
        poll_interval=poll_interval,
        owner=client,
    )
    try:
        yield session
    finally:
        await session.close()
