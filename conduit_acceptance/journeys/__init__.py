"""
Journeys against a running Conduit frontend and API.

Every test here carries the ``live`` marker and is skipped unless
``CONDUIT_LIVE_TESTS=1``. Point ``TEST_BASE_URL`` / ``TEST_API_URL`` at the
deployment and make sure the seeded user A (john@example.com) exists.

Journey Order:
    01 - API authorization (favorite endpoints, missing and corrupted tokens)
    02 - Article pages (not-found handling, favorite toggle through the UI)
    03 - Sessions (UI login, isolation between consecutive tests)
"""
