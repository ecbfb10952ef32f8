"""Account settings form and logout."""
from __future__ import annotations

import logging
from typing import Any, List, Optional, Tuple

from conduit_acceptance.locators import Locator
from conduit_acceptance.pages.base import BasePage, PageState
from conduit_acceptance.waits import any_of, element_visible, url_excludes

logger = logging.getLogger(__name__)


class SettingsPage(BasePage):
    path = "/user/settings"
    marker = Locator.css(".settings-page")
    url_pattern = r"/user/settings"
    error_markers: Tuple[Locator, ...] = ()

    IMAGE = Locator.css("input[placeholder='URL of profile picture']")
    USERNAME = Locator.css("input[placeholder='Username']")
    BIO = Locator.css("textarea[placeholder='Short bio about you']")
    EMAIL = Locator.css("input[placeholder='Email']")
    PASSWORD = Locator.css("input[placeholder='New Password']")
    UPDATE = Locator.css("form button.btn-primary")
    LOGOUT = Locator.css("button.btn-outline-danger")
    ERRORS = Locator.css("ul.error-messages li")

    async def navigate_to(self, timeout: Optional[float] = None, **params: Any) -> "SettingsPage":
        await super().navigate_to(timeout=timeout, **params)
        if self.state is PageState.LOADED:
            await self.wait_for_prefill(timeout)
        return self

    async def wait_for_prefill(self, timeout: Optional[float] = None) -> str:
        """The form is filled from the current user after the page renders."""
        return await self.waits.value(
            self.element(self.EMAIL, "email field").get_value,
            "settings email prefilled",
            timeout=timeout,
        )

    async def get_email(self) -> str:
        return await self.element(self.EMAIL, "email field").get_value()

    async def get_username(self) -> str:
        return await self.element(self.USERNAME, "username field").get_value()

    async def get_bio(self) -> str:
        return await self.element(self.BIO, "bio field").get_value()

    async def update_settings(
        self,
        image: Optional[str] = None,
        username: Optional[str] = None,
        bio: Optional[str] = None,
        email: Optional[str] = None,
        password: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> bool:
        """Change the given fields and submit; True when the app left the settings page."""
        fields = (
            (self.IMAGE, "image field", image),
            (self.USERNAME, "username field", username),
            (self.BIO, "bio field", bio),
            (self.EMAIL, "email field", email),
            (self.PASSWORD, "password field", password),
        )
        for locator, name, value in fields:
            if value is not None:
                await self.element(locator, name).type(value)

        await self.element(self.UPDATE, "update settings button").click()
        leaving = url_excludes(self.path)
        await self.waits.until(any_of(leaving, element_visible(self.ERRORS)), timeout=timeout)
        succeeded = await self.waits.holds(leaving)
        if succeeded:
            self._reset()
        logger.info("Settings update %s", "saved" if succeeded else "was rejected")
        return succeeded

    async def get_error_messages(self, timeout: Optional[float] = None) -> List[str]:
        if not await self.element(self.ERRORS, "error messages").is_displayed(timeout=timeout):
            return []
        return await self.element(self.ERRORS, "error messages").get_texts()

    async def logout(self, timeout: Optional[float] = None) -> None:
        """Click the logout button and wait until the app leaves the settings page."""
        await self.element(self.LOGOUT, "logout button").click()
        await self.waits.until(url_excludes(self.path), timeout=timeout)
        self._reset()
        logger.info("Logged out via settings page")
