"""Single article view: content, favorite/follow buttons, comments."""
from __future__ import annotations

import logging
import re
from typing import List, Optional

from playwright.async_api import Dialog

from conduit_acceptance.locators import Locator
from conduit_acceptance.pages.base import BasePage
from conduit_acceptance.pages.components import exact_text, has_class, parse_count
from conduit_acceptance.waits import url_excludes

logger = logging.getLogger(__name__)


async def _accept_dialog(dialog: Dialog) -> None:
    await dialog.accept()


class ArticlePage(BasePage):
    path = "/article/{slug}"
    marker = Locator.css(".banner h1")
    url_pattern = r"/article/[^/?#]+"

    TITLE = Locator.css(".banner h1")
    META = Locator.css(".article-meta")
    AUTHOR = Locator.css(".article-meta .author")
    DATE = Locator.css(".article-meta .date")
    BODY = Locator.css(".article-content")
    TAGS = Locator.css(".tag-list .tag-pill")
    FAVORITE_BUTTON = Locator.css(".article-meta button:has-text('avorite')")
    FOLLOW_BUTTON = Locator.css(".article-meta button:has-text('ollow')")
    EDIT_BUTTON = Locator.css(".article-meta a[href*='/editor/']")
    DELETE_BUTTON = Locator.css(".article-meta button.btn-outline-danger")
    COMMENT_INPUT = Locator.css(".comment-form textarea")
    COMMENT_SUBMIT = Locator.css(".comment-form button[type='submit']")
    COMMENTS = Locator.css(".card:not(.comment-form)")
    COMMENT_TEXTS = Locator.css(".card:not(.comment-form) .card-text")
    COMMENT_DELETE = Locator.css(".card:not(.comment-form) .mod-options i")

    async def is_article_page_displayed(self, timeout: Optional[float] = None) -> bool:
        return await self.is_loaded(timeout=timeout)

    def get_slug(self) -> Optional[str]:
        match = re.search(r"/article/([^/?#]+)", self.current_url)
        return match.group(1) if match else None

    # ---- content -------------------------------------------------------------------
    async def get_article_title(self) -> str:
        return await self._remember("title", self.element(self.TITLE, "article title").get_text)

    async def get_body(self) -> str:
        return await self._remember("body", self.element(self.BODY, "article body").get_text)

    async def get_author(self) -> str:
        return await self._remember("author", self.element(self.AUTHOR, "article author").get_text)

    async def get_date(self) -> str:
        return await self.element(self.DATE, "article date").get_text()

    async def get_tags(self) -> List[str]:
        """Tags under the body; the body must be rendered before the list is trusted."""
        await self.element(self.BODY, "article body").wait_until_visible()
        return await self.element(self.TAGS, "article tags").get_texts()

    async def get_tag_count(self) -> int:
        return len(await self.get_tags())

    # ---- favorite ------------------------------------------------------------------
    async def is_favorited(self) -> bool:
        button = self.element(self.FAVORITE_BUTTON, "favorite button")
        await button.wait_until_visible()
        return has_class(await button.get_attribute("class"), "btn-primary")

    async def get_favorite_count(self) -> int:
        return parse_count(await self.element(self.FAVORITE_BUTTON, "favorite button").get_text())

    async def toggle_favorite(self) -> None:
        """Click favorite once; follow with :meth:`wait_for_favorite_state` before reading."""
        await self.element(self.FAVORITE_BUTTON, "favorite button").click()

    async def wait_for_favorite_state(self, expected: bool, timeout: Optional[float] = None) -> bool:
        return await self.wait_for_state_change(self.is_favorited, expected, "article favorited", timeout)

    async def favorite(self, timeout: Optional[float] = None) -> None:
        if not await self.is_favorited():
            await self.toggle_favorite()
        await self.wait_for_favorite_state(True, timeout)

    async def unfavorite(self, timeout: Optional[float] = None) -> None:
        if await self.is_favorited():
            await self.toggle_favorite()
        await self.wait_for_favorite_state(False, timeout)

    # ---- follow --------------------------------------------------------------------
    async def is_follow_button_visible(self) -> bool:
        await self.wait_for_state()
        return await self.element(self.FOLLOW_BUTTON).is_visible_now()

    async def is_following_author(self) -> bool:
        text = await self.element(self.FOLLOW_BUTTON, "follow button").get_text()
        return text.lower().startswith("unfollow")

    async def wait_for_follow_state(self, expected: bool, timeout: Optional[float] = None) -> bool:
        return await self.wait_for_state_change(self.is_following_author, expected, "following author", timeout)

    async def follow_author(self, timeout: Optional[float] = None) -> None:
        if not await self.is_following_author():
            await self.element(self.FOLLOW_BUTTON, "follow button").click()
        await self.wait_for_follow_state(True, timeout)

    async def unfollow_author(self, timeout: Optional[float] = None) -> None:
        if await self.is_following_author():
            await self.element(self.FOLLOW_BUTTON, "follow button").click()
        await self.wait_for_follow_state(False, timeout)

    # ---- author controls -----------------------------------------------------------
    async def is_edit_button_visible(self) -> bool:
        """Only the author sees edit/delete; checked once the article has loaded."""
        await self.wait_for_state()
        return await self.element(self.EDIT_BUTTON).is_visible_now()

    async def is_delete_button_visible(self) -> bool:
        await self.wait_for_state()
        return await self.element(self.DELETE_BUTTON).is_visible_now()

    async def click_edit(self, timeout: Optional[float] = None) -> None:
        await self.element(self.EDIT_BUTTON, "edit article button").click()
        await self.waits.until(url_excludes("/article/"), timeout=timeout)
        self._reset()

    async def delete_article(self, timeout: Optional[float] = None) -> None:
        """Delete via the UI, accepting the confirm dialog, and wait to leave the page."""
        self.session.page.once("dialog", _accept_dialog)
        await self.element(self.DELETE_BUTTON, "delete article button").click()
        await self.waits.until(url_excludes("/article/"), timeout=timeout)
        self._reset()

    # ---- comments ------------------------------------------------------------------
    async def can_comment(self) -> bool:
        await self.wait_for_state()
        return await self.element(self.COMMENT_INPUT).is_visible_now()

    async def get_comment_count(self) -> int:
        await self.wait_for_state()
        return await self.element(self.COMMENTS, "comments").count()

    async def get_comments(self) -> List[str]:
        await self.wait_for_state()
        return await self.element(self.COMMENT_TEXTS, "comment texts").get_texts()

    async def add_comment(self, text: str, timeout: Optional[float] = None) -> int:
        """Post ``text`` and wait for the comment list to grow; returns the new count."""
        before = await self.get_comment_count()
        await self.element(self.COMMENT_INPUT, "comment input").type(text)
        await self.element(self.COMMENT_SUBMIT, "post comment button").click()
        return await self.wait_for_state_change(self.get_comment_count, before + 1, "comment count", timeout)

    async def delete_comment(self, index: int = 0, timeout: Optional[float] = None) -> int:
        before = await self.get_comment_count()
        await self.element(self.COMMENT_DELETE.nth(index), f"delete comment {index}").click()
        return await self.wait_for_state_change(self.get_comment_count, before - 1, "comment count", timeout)

    async def is_comment_displayed(self, text: str, timeout: Optional[float] = None) -> bool:
        comment = Locator.css(f".card:not(.comment-form) .card-text:has-text({exact_text(text)})")
        return await self.element(comment).is_displayed(timeout=timeout)
