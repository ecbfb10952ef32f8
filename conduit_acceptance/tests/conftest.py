import pytest

from conduit_acceptance.browser import BrowserSession
from conduit_acceptance.tests.fake_browser import FakeClient, FakePage

# Short waits keep the suite fast; timeouts are still measured, not mocked.
WAIT_TIMEOUT = 0.3
POLL_INTERVAL = 0.02


@pytest.fixture()
def fake_page():
    return FakePage()


@pytest.fixture()
def session(fake_page):
    return BrowserSession(
        fake_page,
        navigation_timeout=1.0,
        wait_timeout=WAIT_TIMEOUT,
        poll_interval=POLL_INTERVAL,
    )


@pytest.fixture(autouse=True)
def reset_fake_clients():
    FakeClient.instances.clear()
    yield
    FakeClient.instances.clear()
