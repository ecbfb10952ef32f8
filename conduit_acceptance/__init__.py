"""
Acceptance-test harness for the Conduit (RealWorld) application.

Drives the frontend through Playwright page objects and the backend through
an httpx API client, with one isolated browser context per test.
"""

__version__ = "1.0.0"
