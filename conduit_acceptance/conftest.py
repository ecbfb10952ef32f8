"""Pytest glue: lifecycle fixtures, result hooks and the ``live`` marker."""
import pytest
import pytest_asyncio

from conduit_acceptance.api_client import ApiClient
from conduit_acceptance.config import settings
from conduit_acceptance.lifecycle import LoggingReporter, TestLifecycle, TestOutcome


# ============================================================================
# Hooks
# ============================================================================

@pytest.hookimpl(tryfirst=True, hookwrapper=True)
def pytest_runtest_makereport(item, call):
    """Store each phase's report on the item so fixtures can read the outcome."""
    outcome = yield
    rep = outcome.get_result()
    setattr(item, f"rep_{rep.when}", rep)


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers",
        "live: needs a running Conduit frontend and API (enable with CONDUIT_LIVE_TESTS=1)",
    )


def pytest_collection_modifyitems(config, items):
    """Skip live journeys unless explicitly enabled."""
    if settings.live_tests:
        return
    skip_live = pytest.mark.skip(reason="live journey; set CONDUIT_LIVE_TESTS=1 to run")
    for item in items:
        if "live" in item.keywords:
            item.add_marker(skip_live)


# ============================================================================
# Lifecycle fixtures
# ============================================================================

@pytest.fixture(scope="session")
def reporter():
    """One reporter for the whole run."""
    return LoggingReporter()


@pytest.fixture()
def lifecycle(reporter):
    return TestLifecycle.from_settings(reporter)


def _outcome_of(item):
    rep = getattr(item, "rep_call", None)
    if rep is None or rep.skipped:
        return TestOutcome.SKIPPED, None
    if rep.failed:
        return TestOutcome.FAILED, rep.longreprtext
    return TestOutcome.PASSED, None


@pytest_asyncio.fixture()
async def session_context(request, lifecycle):
    """Fresh browser context per test, torn down with the test's real outcome.

    Usage:
        @pytest.mark.live
        @pytest.mark.asyncio
        async def test_login(session_context):
            await session_context.login_via_ui(settings.user("a"))
    """
    doc = getattr(request.node.function, "__doc__", None) or ""
    context = await lifecycle.setup_test(request.node.name, doc.strip())
    try:
        yield context
    finally:
        outcome, error = _outcome_of(request.node)
        await lifecycle.teardown_test(outcome, error)


@pytest.fixture()
def api_client():
    """ApiClient against ``TEST_API_URL``; closed after the test."""
    with ApiClient(settings.api_url, timeout=settings.api_timeout) as client:
        yield client
