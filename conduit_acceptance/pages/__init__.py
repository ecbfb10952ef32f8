"""
Page objects for the Conduit frontend.

Each page declares the URL template it lives at and the marker element that
proves it has rendered. ``navigate_to`` returns only once the page is
LOADED, NOT_FOUND or ERROR, so callers never sleep between opening a page
and reading from it.

Usage:
    from conduit_acceptance.pages import ArticlePage

    article = ArticlePage(session.browser, settings.base_url)
    await article.navigate_to(slug="how-to-train-your-dragon")
    await article.toggle_favorite()
    await article.wait_for_favorite_state(True)
"""

from .base import BasePage, Component, PageState, TERMINAL_STATES
from .components import ArticlePreview, NavBar, Pagination
from .article import ArticlePage
from .auth import LoginPage, RegisterPage
from .editor import EditorPage
from .home import HomePage
from .profile import ProfilePage
from .settings import SettingsPage

__all__ = [
    'BasePage',
    'Component',
    'PageState',
    'TERMINAL_STATES',
    'ArticlePreview',
    'NavBar',
    'Pagination',
    'ArticlePage',
    'LoginPage',
    'RegisterPage',
    'EditorPage',
    'HomePage',
    'ProfilePage',
    'SettingsPage',
]
