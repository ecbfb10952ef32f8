"""Screen fragments shared across Conduit pages."""
from __future__ import annotations

import json
import re
from typing import List, Optional

from playwright.async_api import Page

from conduit_acceptance.browser import BrowserSession
from conduit_acceptance.locators import Locator
from conduit_acceptance.pages.base import Component
from conduit_acceptance.waits import WaitCondition, text_contains

ARTICLE_PREVIEW = Locator.css(".article-preview")
PREVIEW_LINK = Locator.css(".article-preview .preview-link")

_DIGITS = re.compile(r"\d+")


def parse_count(text: str) -> int:
    """First integer in a button label such as ``"Favorite Article (3)"``; 0 when absent."""
    match = _DIGITS.search(text or "")
    return int(match.group()) if match else 0


def has_class(class_attr: Optional[str], name: str) -> bool:
    return name in (class_attr or "").split()


def exact_text(value: str) -> str:
    """Quote ``value`` for Playwright's exact-match ``text="..."`` / ``:text-is()`` forms."""
    return json.dumps(value)


def article_list_settled() -> WaitCondition:
    """Holds once the preview list has rendered something other than its loading text.

    The frontend renders both "Loading articles..." and "No articles are here"
    inside an ``.article-preview`` block, so presence alone proves nothing.
    """

    async def _check(page: Page) -> bool:
        previews = await page.query_selector_all(ARTICLE_PREVIEW.selector)
        if not previews:
            return False
        for preview in previews:
            if "loading" in (await preview.inner_text()).lower():
                return False
        return True

    return WaitCondition("article list rendered", _check)


class NavBar(Component):
    """Top navigation; its links reveal who (if anyone) is signed in."""

    ROOT = Locator.css("nav.navbar")
    BRAND = Locator.css("a.navbar-brand")
    SIGN_IN = Locator.css("a[href='/user/login']")
    SIGN_UP = Locator.css("a[href='/user/register']")
    NEW_ARTICLE = Locator.css("a[href='/editor/new']")
    SETTINGS = Locator.css("a[href='/user/settings']")
    PROFILE = Locator.css(".nav-link[href*='/profile/']")

    def __init__(self, session: BrowserSession) -> None:
        super().__init__(session, self.ROOT)

    async def is_logged_in(self, timeout: Optional[float] = None) -> bool:
        return await self.element(self.PROFILE, "navbar profile link").is_displayed(timeout=timeout)

    async def is_logged_out(self, timeout: Optional[float] = None) -> bool:
        return await self.element(self.SIGN_IN, "navbar sign-in link").is_displayed(timeout=timeout)

    async def logged_in_username(self, timeout: Optional[float] = None) -> Optional[str]:
        """Username shown in the navbar, or ``None`` when nobody is signed in."""
        if not await self.is_logged_in(timeout=timeout):
            return None
        return await self.element(self.PROFILE, "navbar profile link").get_text()

    async def wait_for_user(self, username: str, timeout: Optional[float] = None) -> None:
        await self.waits.until(text_contains(self.PROFILE.within(self.root), username), timeout=timeout)

    async def go_home(self) -> None:
        await self.element(self.BRAND, "navbar brand").click()

    async def go_to_sign_in(self) -> None:
        await self.element(self.SIGN_IN, "navbar sign-in link").click()

    async def go_to_sign_up(self) -> None:
        await self.element(self.SIGN_UP, "navbar sign-up link").click()

    async def go_to_new_article(self) -> None:
        await self.element(self.NEW_ARTICLE, "navbar new-article link").click()

    async def go_to_settings(self) -> None:
        await self.element(self.SETTINGS, "navbar settings link").click()

    async def go_to_profile(self) -> None:
        await self.element(self.PROFILE, "navbar profile link").click()


class ArticlePreview(Component):
    """The ``index``-th article card of a feed or profile list."""

    TITLE = Locator.css("h1")
    DESCRIPTION = Locator.css(".preview-link p")
    LINK = Locator.css(".preview-link")
    AUTHOR = Locator.css(".author")
    DATE = Locator.css(".date")
    FAVORITE_BUTTON = Locator.css("button")
    TAGS = Locator.css(".tag-list li")

    def __init__(self, session: BrowserSession, index: int) -> None:
        super().__init__(session, ARTICLE_PREVIEW.nth(index))
        self.index = index

    def __repr__(self) -> str:
        return f"ArticlePreview(index={self.index})"

    async def get_title(self) -> str:
        return await self.element(self.TITLE, f"preview {self.index} title").get_text()

    async def get_description(self) -> str:
        return await self.element(self.DESCRIPTION, f"preview {self.index} description").get_text()

    async def get_author(self) -> str:
        return await self.element(self.AUTHOR, f"preview {self.index} author").get_text()

    async def get_date(self) -> str:
        return await self.element(self.DATE, f"preview {self.index} date").get_text()

    async def get_tags(self) -> List[str]:
        await self.element(self.TITLE).wait_until_visible()
        return await self.element(self.TAGS, f"preview {self.index} tags").get_texts()

    async def get_favorite_count(self) -> int:
        return parse_count(await self.element(self.FAVORITE_BUTTON, f"preview {self.index} favorite").get_text())

    async def is_favorited(self) -> bool:
        button = self.element(self.FAVORITE_BUTTON, f"preview {self.index} favorite")
        await button.wait_until_visible()
        return has_class(await button.get_attribute("class"), "btn-primary")

    async def toggle_favorite(self) -> None:
        await self.element(self.FAVORITE_BUTTON, f"preview {self.index} favorite").click()

    async def wait_for_favorite_state(self, expected: bool, timeout: Optional[float] = None) -> bool:
        return await self.waits.value(
            self.is_favorited,
            f"preview {self.index} favorited == {expected!r}",
            accept=lambda value: value == expected,
            timeout=timeout,
        )

    async def open(self) -> None:
        await self.element(self.LINK, f"preview {self.index} link").click()


class Pagination(Component):
    """Page links under an article list; absent when everything fits on one page."""

    ROOT = Locator.css("ul.pagination")
    ITEMS = Locator.css(".page-item")
    ACTIVE = Locator.css(".page-item.active")

    def __init__(self, session: BrowserSession) -> None:
        super().__init__(session, self.ROOT)

    async def page_count(self) -> int:
        if not await self.session.element(self.root).is_present():
            return 0
        return await self.element(self.ITEMS, "page items").count()

    async def active_page(self) -> Optional[int]:
        if not await self.session.element(self.root).is_present():
            return None
        return parse_count(await self.element(self.ACTIVE, "active page").get_text()) or None

    async def go_to_page(self, number: int, timeout: Optional[float] = None) -> None:
        link = Locator.css(f".page-link:text-is({exact_text(str(number))})")
        await self.element(link, f"page {number} link").click()
        await self.waits.value(
            self.active_page,
            f"active page == {number}",
            accept=lambda active: active == number,
            timeout=timeout,
        )
