"""Article editor for new and existing articles."""
from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Tuple

from conduit_acceptance.locators import Locator
from conduit_acceptance.pages.base import BasePage
from conduit_acceptance.waits import any_of, element_visible, url_matches

logger = logging.getLogger(__name__)

ARTICLE_URL = r"/article/[^/?#]+$"


class EditorPage(BasePage):
    path = "/editor/{slug}"
    marker = Locator.css("input[placeholder='Article Title']")
    url_pattern = r"/editor/"
    error_markers: Tuple[Locator, ...] = ()

    TITLE = Locator.css("input[placeholder='Article Title']")
    DESCRIPTION = Locator.css("input[placeholder=\"What's this article about?\"]")
    BODY = Locator.css("textarea[placeholder='Write your article (in markdown)']")
    TAG_INPUT = Locator.css("input[placeholder='Enter tags']")
    TAGS = Locator.css(".tag-list .tag-pill")
    PUBLISH = Locator.css("button.btn-primary:has-text('Publish')")
    ERRORS = Locator.css("ul.error-messages li")

    async def navigate_to(self, timeout: Optional[float] = None, slug: str = "new") -> "EditorPage":
        """Open the blank editor, or the editor for ``slug`` with its fields prefilled."""
        await super().navigate_to(timeout=timeout, slug=slug)
        if slug != "new":
            await self.wait_for_prefill(timeout)
        return self

    async def wait_for_prefill(self, timeout: Optional[float] = None) -> str:
        """Existing articles load asynchronously into the form."""
        return await self.waits.value(
            self.element(self.TITLE, "title field").get_value,
            "editor title prefilled",
            timeout=timeout,
        )

    async def get_title_value(self) -> str:
        return await self.element(self.TITLE, "title field").get_value()

    async def get_body_value(self) -> str:
        return await self.element(self.BODY, "body field").get_value()

    async def get_tags(self) -> List[str]:
        await self.element(self.TAG_INPUT, "tag field").wait_until_visible()
        return await self.element(self.TAGS, "editor tags").get_texts()

    async def add_tag(self, tag: str) -> None:
        field = self.element(self.TAG_INPUT, "tag field")
        await field.type(tag)
        await field.press("Enter")

    async def fill_article(
        self,
        title: Optional[str] = None,
        description: Optional[str] = None,
        body: Optional[str] = None,
        tags: Iterable[str] = (),
    ) -> None:
        """Fill the given fields; ``None`` leaves a field untouched."""
        if title is not None:
            await self.element(self.TITLE, "title field").type(title)
        if description is not None:
            await self.element(self.DESCRIPTION, "description field").type(description)
        if body is not None:
            await self.element(self.BODY, "body field").type(body)
        for tag in tags:
            await self.add_tag(tag)

    async def publish(self, timeout: Optional[float] = None) -> bool:
        """Submit; True once the article URL is shown, False when errors appear.

        Raises:
            WaitTimeoutError: neither happened in time.
        """
        await self.element(self.PUBLISH, "publish button").click()
        published = url_matches(ARTICLE_URL)
        await self.waits.until(any_of(published, element_visible(self.ERRORS)), timeout=timeout)
        succeeded = await self.waits.holds(published)
        if succeeded:
            logger.info("Published article at %s", self.current_url)
            self._reset()
        return succeeded

    async def get_error_messages(self, timeout: Optional[float] = None) -> List[str]:
        if not await self.element(self.ERRORS, "error messages").is_displayed(timeout=timeout):
            return []
        return await self.element(self.ERRORS, "error messages").get_texts()
