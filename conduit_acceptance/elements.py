"""Lazily-resolved element references.

An :class:`ElementHandle` never holds on to a DOM node: each operation
queries the page again, because the Conduit frontend re-renders after
navigation and after every favorite/follow/comment round-trip. Reads wait
for the element to be visible, writes wait for it to be enabled, and a
failure during the write itself becomes :class:`InteractionError`.
"""
from __future__ import annotations

import logging
from typing import List, Optional

from playwright.async_api import ElementHandle as PlaywrightElement, Error as PlaywrightError, Page

from conduit_acceptance.errors import ElementNotFoundError, InteractionError, WaitTimeoutError
from conduit_acceptance.locators import Locator
from conduit_acceptance.waits import (
    WaitEngine,
    element_attached,
    element_enabled,
    element_hidden,
    element_visible,
)

logger = logging.getLogger(__name__)


def _always(_: object) -> bool:
    return True


class ElementHandle:
    """A named locator bound to one page, with wait-guarded operations."""

    def __init__(
        self,
        page: Page,
        locator: Locator,
        name: Optional[str] = None,
        waits: Optional[WaitEngine] = None,
    ) -> None:
        self._page = page
        self.locator = locator
        self.name = name or str(locator)
        self._waits = waits or WaitEngine(page)

    def __repr__(self) -> str:
        return f"ElementHandle(name={self.name!r}, locator={self.locator})"

    @property
    def _action_timeout_ms(self) -> float:
        return self._waits.timeout * 1000

    # ---- resolution ---------------------------------------------------------------
    async def find(self) -> PlaywrightElement:
        """Resolve the first matching element right now."""
        element = await self._page.query_selector(self.locator.selector)
        if element is None:
            raise ElementNotFoundError(self.locator, self.name)
        return element

    async def find_all(self) -> List[PlaywrightElement]:
        return await self._page.query_selector_all(self.locator.selector)

    # ---- immediate observations -----------------------------------------------------
    async def count(self) -> int:
        return len(await self.find_all())

    async def is_present(self) -> bool:
        return await self._waits.holds(element_attached(self.locator))

    async def is_visible_now(self) -> bool:
        return await self._waits.holds(element_visible(self.locator))

    async def is_enabled(self) -> bool:
        return await self._waits.holds(element_enabled(self.locator))

    # ---- waiting observations -------------------------------------------------------
    async def is_displayed(self, timeout: Optional[float] = None) -> bool:
        """Wait for visibility; ``False`` (not an error) if it never shows."""
        try:
            await self._waits.until(element_visible(self.locator), timeout=timeout)
        except WaitTimeoutError:
            return False
        return True

    async def wait_until_visible(self, timeout: Optional[float] = None) -> None:
        await self._waits.until(element_visible(self.locator), timeout=timeout)

    async def wait_until_hidden(self, timeout: Optional[float] = None) -> None:
        await self._waits.until(element_hidden(self.locator), timeout=timeout)

    # ---- reads ------------------------------------------------------------------------
    async def get_text(self, timeout: Optional[float] = None) -> str:
        """Visible text, trimmed. Waits until the element is attached and visible."""

        async def _read() -> Optional[str]:
            element = await self.find()
            if not await element.is_visible():
                return None
            return (await element.inner_text()).strip()

        return await self._waits.value(
            _read,
            f"text of {self.name}",
            accept=lambda text: text is not None,
            timeout=timeout,
        )

    async def get_texts(self, timeout: Optional[float] = None) -> List[str]:
        """Texts of all current matches (possibly none); stale reads are retried."""

        async def _read() -> List[str]:
            return [(await element.inner_text()).strip() for element in await self.find_all()]

        return await self._waits.value(_read, f"texts of {self.name}", accept=_always, timeout=timeout)

    async def get_attribute(self, attribute: str, timeout: Optional[float] = None) -> Optional[str]:
        """Attribute value once the element is attached (visibility not required)."""

        async def _read() -> Optional[str]:
            element = await self.find()
            return await element.get_attribute(attribute)

        return await self._waits.value(
            _read,
            f"attribute {attribute!r} of {self.name}",
            accept=_always,
            timeout=timeout,
        )

    async def get_value(self, timeout: Optional[float] = None) -> str:
        """Current value of an input/textarea once it is attached."""

        async def _read() -> str:
            element = await self.find()
            return await element.input_value()

        return await self._waits.value(_read, f"value of {self.name}", accept=_always, timeout=timeout)

    # ---- writes -----------------------------------------------------------------------
    async def click(self, timeout: Optional[float] = None) -> None:
        await self._waits.until(element_enabled(self.locator), timeout=timeout)
        try:
            element = await self.find()
            await element.click(timeout=self._action_timeout_ms)
        except (PlaywrightError, ElementNotFoundError) as exc:
            raise InteractionError(action="click", locator=self.locator, message=str(exc)) from exc
        logger.debug("Clicked %s", self.name)

    async def type(self, text: str, timeout: Optional[float] = None) -> None:
        """Replace the field's value with ``text``."""
        await self._waits.until(element_enabled(self.locator), timeout=timeout)
        try:
            element = await self.find()
            await element.fill(text, timeout=self._action_timeout_ms)
        except (PlaywrightError, ElementNotFoundError) as exc:
            raise InteractionError(action="type", locator=self.locator, message=str(exc)) from exc

    async def clear(self, timeout: Optional[float] = None) -> None:
        await self.type("", timeout=timeout)

    async def press(self, key: str, timeout: Optional[float] = None) -> None:
        await self._waits.until(element_enabled(self.locator), timeout=timeout)
        try:
            element = await self.find()
            await element.press(key, timeout=self._action_timeout_ms)
        except (PlaywrightError, ElementNotFoundError) as exc:
            raise InteractionError(action=f"press {key}", locator=self.locator, message=str(exc)) from exc
