"""Home page: feed tabs, tag sidebar, article previews."""
from __future__ import annotations

import logging
from typing import List, Optional

from conduit_acceptance.locators import Locator
from conduit_acceptance.pages.base import BasePage
from conduit_acceptance.pages.components import (
    PREVIEW_LINK,
    ArticlePreview,
    NavBar,
    Pagination,
    article_list_settled,
    exact_text,
)
from conduit_acceptance.waits import element_attached, text_contains, url_contains

logger = logging.getLogger(__name__)


class HomePage(BasePage):
    path = "/"
    marker = Locator.css(".home-page")

    FEED_TOGGLE = Locator.css(".feed-toggle")
    ACTIVE_TAB = Locator.css(".feed-toggle .nav-link.active")
    YOUR_FEED = Locator.css(".feed-toggle .nav-link:has-text('Your Feed')")
    GLOBAL_FEED = Locator.css(".feed-toggle .nav-link:has-text('Global Feed')")
    TAG_LIST = Locator.css(".sidebar .tag-list")
    TAGS = Locator.css(".sidebar .tag-list .tag-pill")

    @property
    def navbar(self) -> NavBar:
        return NavBar(self.session)

    @property
    def pagination(self) -> Pagination:
        return Pagination(self.session)

    # ---- feeds ---------------------------------------------------------------------
    async def get_active_tab(self) -> str:
        return await self.element(self.ACTIVE_TAB, "active feed tab").get_text()

    async def is_your_feed_available(self) -> bool:
        await self.element(self.FEED_TOGGLE, "feed toggle").wait_until_visible()
        return await self.element(self.YOUR_FEED).is_visible_now()

    async def show_global_feed(self) -> None:
        await self._switch_tab(self.GLOBAL_FEED, "Global Feed")

    async def show_your_feed(self) -> None:
        await self._switch_tab(self.YOUR_FEED, "Your Feed")

    async def _switch_tab(self, tab: Locator, label: str) -> None:
        await self.element(tab, f"{label} tab").click()
        await self.waits.until(text_contains(self.ACTIVE_TAB, label))
        self._cache.pop("article_count", None)
        await self.waits.until(article_list_settled())

    # ---- tags ----------------------------------------------------------------------
    async def get_tags(self) -> List[str]:
        """Popular tags from the sidebar; waits for the list container first."""
        return await self._remember("tags", self._load_tags)

    async def _load_tags(self) -> List[str]:
        await self.waits.until(element_attached(self.TAG_LIST))
        return await self.element(self.TAGS, "sidebar tags").get_texts()

    async def get_tag_count(self) -> int:
        return len(await self.get_tags())

    async def select_tag(self, tag: str) -> None:
        """Filter the feed by ``tag``; returns once the tag tab is active and the list rendered."""
        pill = Locator.css(f".sidebar .tag-pill:text-is({exact_text(tag)})")
        await self.element(pill, f"tag {tag!r}").click()
        await self.waits.until(text_contains(self.ACTIVE_TAB, tag))
        self._cache.pop("article_count", None)
        await self.waits.until(article_list_settled())
        logger.debug("Filtered home feed by tag %r", tag)

    # ---- previews ------------------------------------------------------------------
    async def get_article_count(self) -> int:
        return await self._remember("article_count", self._count_articles)

    async def _count_articles(self) -> int:
        await self.waits.until(article_list_settled())
        return await self.element(PREVIEW_LINK, "article previews").count()

    async def get_article_previews(self) -> List[ArticlePreview]:
        return [ArticlePreview(self.session, index) for index in range(await self.get_article_count())]

    def article_preview(self, index: int) -> ArticlePreview:
        return ArticlePreview(self.session, index)

    async def get_article_titles(self) -> List[str]:
        return [await preview.get_title() for preview in await self.get_article_previews()]

    async def open_article(self, index: int = 0, timeout: Optional[float] = None) -> None:
        await self.article_preview(index).open()
        await self.waits.until(url_contains("/article/"), timeout=timeout)
