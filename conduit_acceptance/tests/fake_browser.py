"""In-memory stand-ins for the Playwright objects the harness touches.

The DOM is a dict from rendered selector string (``Locator.selector``) to
the list of elements it matches, so tests register exactly the selectors
the page objects will query.
"""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from playwright.async_api import Error as PlaywrightError

from conduit_acceptance.locators import Locator


def stale_error() -> PlaywrightError:
    return PlaywrightError("Element is not attached to the DOM")


class FakeElement:
    def __init__(
        self,
        text: str = "",
        visible: bool = True,
        enabled: bool = True,
        attrs: Optional[Dict[str, str]] = None,
        value: str = "",
        stale: bool = False,
        on_click: Optional[Callable[[], None]] = None,
        click_error: Optional[Exception] = None,
    ):
        self.text = text
        self.visible = visible
        self.enabled = enabled
        self.attrs = dict(attrs or {})
        self.value = value
        self.stale = stale
        self.on_click = on_click
        self.click_error = click_error
        self.clicks = 0
        self.pressed: List[str] = []

    def _check(self) -> None:
        if self.stale:
            raise stale_error()

    async def is_visible(self) -> bool:
        self._check()
        return self.visible

    async def is_enabled(self) -> bool:
        self._check()
        return self.enabled

    async def inner_text(self) -> str:
        self._check()
        return self.text

    async def get_attribute(self, name: str) -> Optional[str]:
        self._check()
        return self.attrs.get(name)

    async def input_value(self) -> str:
        self._check()
        return self.value

    async def click(self, timeout: Optional[float] = None) -> None:
        self._check()
        if self.click_error is not None:
            raise self.click_error
        self.clicks += 1
        if self.on_click is not None:
            self.on_click()

    async def fill(self, text: str, timeout: Optional[float] = None) -> None:
        self._check()
        self.value = text

    async def press(self, key: str, timeout: Optional[float] = None) -> None:
        self._check()
        self.pressed.append(key)


@dataclass
class FakeResponse:
    status: int


class FakeContext:
    def __init__(self) -> None:
        self.cookie_jar: List[Dict[str, Any]] = []
        self.closed = False
        self.default_timeout: Optional[float] = None

    async def cookies(self) -> List[Dict[str, Any]]:
        return list(self.cookie_jar)

    async def add_cookies(self, cookies: List[Dict[str, Any]]) -> None:
        self.cookie_jar.extend(cookies)

    async def clear_cookies(self) -> None:
        self.cookie_jar.clear()

    def set_default_timeout(self, timeout: float) -> None:
        self.default_timeout = timeout

    async def close(self) -> None:
        self.closed = True


Route = Callable[["FakePage"], None]


class FakePage:
    """Minimal async Page: selector lookups, navigation, storage, screenshots."""

    def __init__(self) -> None:
        self.url = "about:blank"
        self.title_text = ""
        self.dom: Dict[str, List[FakeElement]] = {}
        self.routes: Dict[str, tuple] = {}
        self.storage: Dict[str, str] = {}
        self.context = FakeContext()
        self.visited: List[str] = []
        self.screenshots: List[str] = []
        self.screenshot_error: Optional[Exception] = None
        self.goto_errors: List[Exception] = []
        self.handlers: Dict[str, Callable] = {}
        self.closed = False

    # ---- DOM helpers used by tests ------------------------------------------------
    def set(self, locator: Locator | str, *elements: FakeElement) -> List[FakeElement]:
        key = locator.selector if isinstance(locator, Locator) else locator
        self.dom[key] = list(elements)
        return self.dom[key]

    def remove(self, locator: Locator | str) -> None:
        key = locator.selector if isinstance(locator, Locator) else locator
        self.dom.pop(key, None)

    def route(self, url: str, status: int = 200, render: Optional[Route] = None) -> None:
        self.routes[url] = (status, render)

    # ---- Page API -----------------------------------------------------------------
    async def query_selector(self, selector: str) -> Optional[FakeElement]:
        matches = self.dom.get(selector) or []
        return matches[0] if matches else None

    async def query_selector_all(self, selector: str) -> List[FakeElement]:
        return list(self.dom.get(selector) or [])

    async def goto(self, url: str, wait_until: str = "load", timeout: Optional[float] = None):
        if self.goto_errors:
            raise self.goto_errors.pop(0)
        self.visited.append(url)
        self.url = url
        self.dom = {}
        if url == "about:blank":
            return None
        status, render = self.routes.get(url, (200, None))
        if render is not None:
            render(self)
        return FakeResponse(status)

    async def reload(self, wait_until: str = "load", timeout: Optional[float] = None):
        return await self.goto(self.url, wait_until=wait_until, timeout=timeout)

    async def go_back(self, wait_until: str = "load") -> None:
        if len(self.visited) > 1:
            self.visited.pop()
            self.url = self.visited[-1]

    async def go_forward(self, wait_until: str = "load") -> None:
        return None

    async def title(self) -> str:
        return self.title_text

    async def content(self) -> str:
        return "<html>" + "".join(el.text for els in self.dom.values() for el in els) + "</html>"

    async def evaluate(self, script: str, arg: Any = None) -> Any:
        if "localStorage.setItem" in script:
            key, value = arg
            self.storage[key] = value
            return None
        if "localStorage.clear" in script:
            self.storage.clear()
            return None
        if "Object.assign" in script:
            return dict(self.storage)
        raise PlaywrightError(f"FakePage cannot evaluate {script!r}")

    async def screenshot(self, path: str, full_page: bool = False) -> bytes:
        if self.screenshot_error is not None:
            raise self.screenshot_error
        Path(path).write_bytes(b"\x89PNG fake")
        self.screenshots.append(path)
        return b""

    async def set_viewport_size(self, size: Dict[str, int]) -> None:
        self.viewport = size

    def once(self, event: str, handler: Callable) -> None:
        self.handlers[event] = handler

    async def close(self) -> None:
        self.closed = True


class FakeClient:
    """Stands in for PlaywrightClient in lifecycle tests."""

    instances: List["FakeClient"] = []

    def __init__(self, fail_connect: bool = False, close_error: Optional[Exception] = None) -> None:
        self.fail_connect = fail_connect
        self.close_error = close_error
        self._page: Optional[FakePage] = None
        self.connected = False
        self.closed = False
        FakeClient.instances.append(self)

    async def connect(self) -> None:
        if self.fail_connect:
            raise PlaywrightError("browser failed to launch")
        self._page = FakePage()
        self.connected = True

    async def close(self) -> None:
        self.closed = True
        if self._page is not None:
            await self._page.close()
        if self.close_error is not None:
            raise self.close_error

    @property
    def page(self) -> FakePage:
        if self._page is None:
            raise RuntimeError("Client not connected")
        return self._page
