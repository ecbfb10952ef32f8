"""User profile with follow button and article tabs."""
from __future__ import annotations

import logging
from typing import List, Optional

from conduit_acceptance.locators import Locator
from conduit_acceptance.pages.base import BasePage
from conduit_acceptance.pages.components import PREVIEW_LINK, ArticlePreview, article_list_settled
from conduit_acceptance.waits import text_contains, url_contains, url_excludes

logger = logging.getLogger(__name__)


class ProfilePage(BasePage):
    path = "/profile/{username}"
    marker = Locator.css(".user-info h4")
    url_pattern = r"/profile/[^/?#]+"

    USERNAME = Locator.css(".user-info h4")
    BIO = Locator.css(".user-info p")
    IMAGE = Locator.css(".user-info img")
    FOLLOW_BUTTON = Locator.css(".user-info button.action-btn")
    EDIT_SETTINGS = Locator.css(".user-info a.action-btn")
    ACTIVE_TAB = Locator.css(".articles-toggle .nav-link.active")
    MY_ARTICLES = Locator.css(".articles-toggle .nav-link:has-text('My Articles')")
    FAVORITED_ARTICLES = Locator.css(".articles-toggle .nav-link:has-text('Favorited Articles')")

    async def get_username(self) -> str:
        return await self._remember("username", self.element(self.USERNAME, "profile username").get_text)

    async def get_bio(self) -> str:
        """Bio paragraph; empty string when the user has none."""
        await self.wait_for_state()
        if not await self.element(self.BIO).is_present():
            return ""
        return await self.element(self.BIO, "profile bio").get_text()

    async def get_image_url(self) -> Optional[str]:
        return await self.element(self.IMAGE, "profile image").get_attribute("src")

    # ---- follow --------------------------------------------------------------------
    async def is_own_profile(self) -> bool:
        await self.wait_for_state()
        return await self.element(self.EDIT_SETTINGS).is_visible_now()

    async def is_follow_button_visible(self) -> bool:
        await self.wait_for_state()
        return await self.element(self.FOLLOW_BUTTON).is_visible_now()

    async def is_following(self) -> bool:
        text = await self.element(self.FOLLOW_BUTTON, "follow button").get_text()
        return text.lower().startswith("unfollow")

    async def wait_for_follow_state(self, expected: bool, timeout: Optional[float] = None) -> bool:
        return await self.wait_for_state_change(self.is_following, expected, "following profile", timeout)

    async def follow(self, timeout: Optional[float] = None) -> None:
        if not await self.is_following():
            await self.element(self.FOLLOW_BUTTON, "follow button").click()
        await self.wait_for_follow_state(True, timeout)
        logger.debug("Now following %s", await self.get_username())

    async def unfollow(self, timeout: Optional[float] = None) -> None:
        if await self.is_following():
            await self.element(self.FOLLOW_BUTTON, "follow button").click()
        await self.wait_for_follow_state(False, timeout)

    async def edit_profile_settings(self, timeout: Optional[float] = None) -> None:
        await self.element(self.EDIT_SETTINGS, "edit profile settings").click()
        await self.waits.until(url_excludes("/profile/"), timeout=timeout)
        self._reset()

    # ---- article tabs --------------------------------------------------------------
    async def get_active_tab(self) -> str:
        return await self.element(self.ACTIVE_TAB, "active articles tab").get_text()

    async def show_my_articles(self) -> None:
        await self.element(self.MY_ARTICLES, "My Articles tab").click()
        await self.waits.until(text_contains(self.ACTIVE_TAB, "My Articles"))
        await self.waits.until(article_list_settled())

    async def show_favorited_articles(self) -> None:
        await self.element(self.FAVORITED_ARTICLES, "Favorited Articles tab").click()
        await self.waits.until(url_contains("favorite"))
        await self.waits.until(text_contains(self.ACTIVE_TAB, "Favorited Articles"))
        await self.waits.until(article_list_settled())

    async def get_article_count(self) -> int:
        """Previews in the active tab, after the list finished loading."""
        await self.waits.until(article_list_settled())
        return await self.element(PREVIEW_LINK, "article previews").count()

    async def get_article_previews(self) -> List[ArticlePreview]:
        return [ArticlePreview(self.session, index) for index in range(await self.get_article_count())]
