"""Per-test setup and teardown around an isolated browser.

Every test gets a brand-new browser context, so no cookies, local storage
or tokens leak from the previous one. Teardown reports the outcome, captures
a screenshot on failure and always closes what setup opened, even when the
test was cancelled.

Usage:
    lifecycle = TestLifecycle.from_settings(LoggingReporter())
    async with lifecycle.run("favorite_toggle", "Favorite then unfavorite") as ctx:
        article = ctx.page(ArticlePage)
        await article.navigate_to(slug="how-to-train-your-dragon")
"""
from __future__ import annotations

import enum
import logging
import re
from contextlib import asynccontextmanager
from datetime import datetime
from pathlib import Path
from typing import AsyncIterator, Callable, Optional, Protocol

import anyio

from conduit_acceptance.browser import BrowserSession
from conduit_acceptance.config import HarnessConfig, settings
from conduit_acceptance.playwright_client import PlaywrightClient
from conduit_acceptance.session import SessionContext
from conduit_acceptance.waits import DEFAULT_POLL_INTERVAL, DEFAULT_TIMEOUT

logger = logging.getLogger(__name__)

_UNSAFE_NAME = re.compile(r"[^A-Za-z0-9_.-]+")


class Reporter(Protocol):
    """Receives lifecycle events for one test at a time."""

    def create_test(self, name: str, description: str) -> None: ...

    def info(self, message: str) -> None: ...

    def passed(self, message: str) -> None: ...

    def failed(self, message: str, screenshot: Optional[Path] = None) -> None: ...

    def skipped(self, message: str) -> None: ...


class LoggingReporter:
    """Writes lifecycle events to the ``conduit_acceptance.report`` logger."""

    def __init__(self, logger_name: str = "conduit_acceptance.report") -> None:
        self._log = logging.getLogger(logger_name)
        self.current_test: Optional[str] = None

    def create_test(self, name: str, description: str) -> None:
        self.current_test = name
        self._log.info("START %s: %s", name, description)

    def info(self, message: str) -> None:
        self._log.info("[%s] %s", self.current_test, message)

    def passed(self, message: str) -> None:
        self._log.info("PASS %s: %s", self.current_test, message)

    def failed(self, message: str, screenshot: Optional[Path] = None) -> None:
        if screenshot is not None:
            self._log.error("FAIL %s: %s (screenshot: %s)", self.current_test, message, screenshot)
        else:
            self._log.error("FAIL %s: %s", self.current_test, message)

    def skipped(self, message: str) -> None:
        self._log.warning("SKIP %s: %s", self.current_test, message)


class TestOutcome(enum.Enum):
    __test__ = False

    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"


ClientFactory = Callable[[], PlaywrightClient]


class TestLifecycle:
    """Owns the browser and API client of exactly one test at a time."""

    __test__ = False

    def __init__(
        self,
        reporter: Reporter,
        client_factory: ClientFactory,
        base_url: str,
        api_url: str,
        screenshot_dir: str | Path,
        navigation_timeout: float = 15.0,
        wait_timeout: float = DEFAULT_TIMEOUT,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        api_timeout: float = 10.0,
    ) -> None:
        self.reporter = reporter
        self._client_factory = client_factory
        self.base_url = base_url
        self.api_url = api_url
        self.screenshot_dir = Path(screenshot_dir)
        self.navigation_timeout = navigation_timeout
        self.wait_timeout = wait_timeout
        self.poll_interval = poll_interval
        self.api_timeout = api_timeout
        self.context: Optional[SessionContext] = None

    @classmethod
    def from_settings(cls, reporter: Reporter, config: HarnessConfig = settings) -> "TestLifecycle":
        def _client() -> PlaywrightClient:
            return PlaywrightClient(
                browser_type=config.browser_type,
                headless=config.playwright_headless,
                timeout=config.navigation_timeout,
                viewport=config.viewport,
            )

        return cls(
            reporter,
            _client,
            base_url=config.base_url,
            api_url=config.api_url,
            screenshot_dir=config.screenshot_dir,
            navigation_timeout=config.navigation_timeout,
            wait_timeout=config.wait_timeout,
            poll_interval=config.poll_interval,
            api_timeout=config.api_timeout,
        )

    async def setup_test(self, name: str, description: str = "") -> SessionContext:
        """Launch a fresh browser context and register the test with the reporter."""
        if self.context is not None:
            raise RuntimeError(f"Test {self.context.name!r} is still running; tear it down first")

        client = self._client_factory()
        try:
            await client.connect()
        except BaseException:
            await client.close()
            raise

        browser = BrowserSession(
            client.page,
            navigation_timeout=self.navigation_timeout,
            wait_timeout=self.wait_timeout,
            poll_interval=self.poll_interval,
            owner=client,
        )
        self.context = SessionContext(
            browser,
            base_url=self.base_url,
            api_url=self.api_url,
            api_timeout=self.api_timeout,
            name=name,
        )
        self.reporter.create_test(name, description)
        logger.info("Set up %s", name)
        return self.context

    async def teardown_test(self, outcome: TestOutcome, error: BaseException | str | None = None) -> None:
        """Report ``outcome`` and release the browser and API client.

        Runs shielded from cancellation. Resources are closed even when the
        screenshot or the reporter fails.
        """
        context = self.context
        if context is None:
            return
        self.context = None

        with anyio.CancelScope(shield=True):
            try:
                if outcome is TestOutcome.FAILED:
                    screenshot = await self._capture_failure(context)
                    self.reporter.failed(str(error) if error else "Test failed", screenshot)
                elif outcome is TestOutcome.PASSED:
                    self.reporter.passed("Test passed")
                else:
                    self.reporter.skipped(str(error) if error else "Test skipped")
            finally:
                try:
                    context.close()
                finally:
                    await context.browser.close()
                logger.info("Tore down %s (%s)", context.name, outcome.value)

    async def _capture_failure(self, context: SessionContext) -> Optional[Path]:
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        safe_name = _UNSAFE_NAME.sub("_", context.name) or "test"
        target = self.screenshot_dir / f"{safe_name}_{timestamp}.png"
        try:
            return await context.browser.screenshot(target)
        except Exception as exc:
            logger.warning("Could not capture failure screenshot for %s: %s", context.name, exc)
            return None

    async def _teardown_after(self, name: str, outcome: TestOutcome, error: BaseException) -> None:
        """Tear down after the body raised; a teardown failure must not replace ``error``."""
        try:
            await self.teardown_test(outcome, error)
        except Exception as exc:
            logger.warning("Teardown of %s failed after %s: %s", name, type(error).__name__, exc)

    @asynccontextmanager
    async def run(self, name: str, description: str = "") -> AsyncIterator[SessionContext]:
        """Set up, yield the context, and tear down with the outcome of the body.

        A normal exit is PASSED, an ``Exception`` is FAILED and anything else
        (skip, cancellation, interrupt) is SKIPPED. The body's exception is
        re-raised even when teardown fails too; after a clean body a teardown
        failure propagates.
        """
        context = await self.setup_test(name, description)
        try:
            yield context
        except Exception as exc:
            await self._teardown_after(name, TestOutcome.FAILED, exc)
            raise
        except BaseException as exc:
            await self._teardown_after(name, TestOutcome.SKIPPED, exc)
            raise
        else:
            await self.teardown_test(TestOutcome.PASSED)
