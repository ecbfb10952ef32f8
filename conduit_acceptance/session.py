"""Per-test bundle of browser, identity, token and API client."""
from __future__ import annotations

import logging
from typing import Any, Optional, Type, TypeVar

import httpx

from conduit_acceptance.api_client import ApiClient, AuthToken
from conduit_acceptance.browser import BrowserSession
from conduit_acceptance.config import TestUser
from conduit_acceptance.errors import InteractionError
from conduit_acceptance.pages.auth import LoginPage
from conduit_acceptance.pages.base import BasePage
from conduit_acceptance.pages.components import NavBar
from conduit_acceptance.pages.home import HomePage

logger = logging.getLogger(__name__)

P = TypeVar("P", bound=BasePage)


class SessionContext:
    """Everything one test owns. Never shared between tests."""

    def __init__(
        self,
        browser: BrowserSession,
        base_url: str,
        api_url: str,
        api_timeout: float = 10.0,
        name: str = "",
        api_transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.browser = browser
        self.base_url = base_url.rstrip("/")
        self.api_url = api_url
        self.api_timeout = api_timeout
        self.api_transport = api_transport
        self.name = name
        self.identity: Optional[TestUser] = None
        self.token: Optional[AuthToken] = None
        self._api: Optional[ApiClient] = None

    def __repr__(self) -> str:
        who = self.identity.email if self.identity else None
        return f"SessionContext(name={self.name!r}, identity={who!r})"

    def api(self) -> ApiClient:
        """The test's ApiClient, created on first use."""
        if self._api is None:
            self._api = ApiClient(self.api_url, timeout=self.api_timeout, transport=self.api_transport)
            if self.token is not None:
                self._api.set_token(self.token)
        return self._api

    def page(self, page_class: Type[P]) -> P:
        return page_class(self.browser, self.base_url)

    @property
    def navbar(self) -> NavBar:
        return NavBar(self.browser)

    # ---- authentication ------------------------------------------------------------
    async def login_via_ui(self, user: TestUser, timeout: Optional[float] = None) -> None:
        """Sign in through the login form and wait until the navbar shows the user.

        Raises:
            InteractionError: the form rejected the credentials.
        """
        login = self.page(LoginPage)
        await login.navigate_to(timeout=timeout)
        if not await login.login(user.email, user.password, timeout=timeout):
            messages = await login.get_error_messages(timeout=0.5)
            raise InteractionError(
                action="login",
                locator=LoginPage.SUBMIT,
                message=f"login as {user.email} rejected: {'; '.join(messages) or 'no message'}",
            )
        await self.navbar.wait_for_user(user.username, timeout=timeout)
        self.identity = user
        token = await self.browser.stored_token()
        self.token = AuthToken(value=token, identity=user.email) if token else None
        if self.token is not None and self._api is not None:
            self._api.set_token(self.token)

    async def login_via_api(self, user: TestUser, **user_fields: Any) -> AuthToken:
        """Log in over HTTP and hand the token to the frontend through local storage.

        The origin must be loaded before storage can be written, so the home
        page is opened first and reloaded afterwards.
        """
        token = self.api().login(user.email, user.password)
        home = self.page(HomePage)
        if not self.browser.page.url.startswith(self.base_url):
            await home.navigate_to()
        fields = {"email": user.email, "username": user.username}
        fields.update(user_fields)
        await self.browser.store_token(token.value, **fields)
        await home.reload()
        self.identity = user
        self.token = token
        logger.info("Injected API token for %s into %s", user.email, self.name or "session")
        return token

    async def logout(self) -> None:
        """Drop every trace of the signed-in user: cookies, storage and tokens."""
        await self.browser.clear_cookies()
        await self.browser.clear_storage()
        if self._api is not None:
            self._api.clear_token()
        self.identity = None
        self.token = None

    async def is_authenticated(self) -> bool:
        return await self.browser.stored_token() is not None

    def close(self) -> None:
        """Release the API client. The browser belongs to the lifecycle."""
        if self._api is not None:
            self._api.close()
            self._api = None
