"""Sign-in and sign-up forms."""
from __future__ import annotations

import logging
from typing import List, Optional, Tuple

from conduit_acceptance.errors import WaitTimeoutError
from conduit_acceptance.locators import Locator
from conduit_acceptance.pages.base import BasePage
from conduit_acceptance.waits import any_of, element_visible, url_excludes

logger = logging.getLogger(__name__)


class _AuthFormPage(BasePage):
    """Shared markup of the login and register forms."""

    marker = Locator.css("h1.text-xs-center")
    # Validation errors belong to the loaded form, they are not an ERROR state.
    error_markers: Tuple[Locator, ...] = ()

    EMAIL = Locator.css("input[placeholder='Email']")
    PASSWORD = Locator.css("input[placeholder='Password']")
    SUBMIT = Locator.css("button[type='submit']")
    ERROR_LIST = Locator.css("ul.error-messages")
    ERRORS = Locator.css("ul.error-messages li")
    HEADING = Locator.css("h1.text-xs-center")

    async def get_heading(self) -> str:
        return await self.element(self.HEADING, "form heading").get_text()

    async def has_errors(self, timeout: Optional[float] = None) -> bool:
        return await self.element(self.ERRORS, "error messages").is_displayed(timeout=timeout)

    async def get_error_messages(self, timeout: Optional[float] = None) -> List[str]:
        """Visible validation messages; empty when none appear within ``timeout``."""
        if not await self.has_errors(timeout=timeout):
            return []
        return await self.element(self.ERRORS, "error messages").get_texts()

    async def get_error_count(self, timeout: Optional[float] = None) -> int:
        return len(await self.get_error_messages(timeout=timeout))

    async def has_error_containing(self, text: str, timeout: Optional[float] = None) -> bool:
        needle = text.lower()
        return any(needle in message.lower() for message in await self.get_error_messages(timeout=timeout))

    async def _submit_and_wait(self, timeout: Optional[float]) -> bool:
        """Submit, then wait until the form is left (True) or errors show (False)."""
        await self.element(self.SUBMIT, "submit button").click()
        leaving = url_excludes(self.path)
        try:
            await self.waits.until(any_of(leaving, element_visible(self.ERRORS)), timeout=timeout)
        except WaitTimeoutError:
            logger.warning("%s neither redirected nor showed errors", type(self).__name__)
            raise
        succeeded = await self.waits.holds(leaving)
        if succeeded:
            self._reset()
        return succeeded


class LoginPage(_AuthFormPage):
    path = "/user/login"
    url_pattern = r"/user/login"

    async def is_on_login_page(self) -> bool:
        return await self.is_loaded()

    async def fill_credentials(self, email: str, password: str) -> None:
        await self.element(self.EMAIL, "email field").type(email)
        await self.element(self.PASSWORD, "password field").type(password)

    async def login(self, email: str, password: str, timeout: Optional[float] = None) -> bool:
        """Submit credentials; True when the app navigated away from the form.

        Raises:
            WaitTimeoutError: neither a redirect nor an error message appeared.
        """
        await self.fill_credentials(email, password)
        succeeded = await self._submit_and_wait(timeout)
        logger.info("UI login as %s %s", email, "succeeded" if succeeded else "was rejected")
        return succeeded


class RegisterPage(_AuthFormPage):
    path = "/user/register"
    url_pattern = r"/user/register"

    USERNAME = Locator.css("input[placeholder='Username']")

    async def is_on_register_page(self) -> bool:
        return await self.is_loaded()

    async def register(self, username: str, email: str, password: str, timeout: Optional[float] = None) -> bool:
        """Submit the sign-up form; True when the app navigated away from it."""
        await self.element(self.USERNAME, "username field").type(username)
        await self.element(self.EMAIL, "email field").type(email)
        await self.element(self.PASSWORD, "password field").type(password)
        succeeded = await self._submit_and_wait(timeout)
        logger.info("UI registration of %s %s", username, "succeeded" if succeeded else "was rejected")
        return succeeded
