"""Direct HTTP access to the Conduit REST API.

Used to set up data faster than the UI can, and to exercise authorization
behavior the UI never exposes (anonymous, malformed or foreign tokens).
Non-2xx answers are returned as :class:`ApiResponse`, never raised: a
401 or 403 is usually exactly what a test wants to observe.

Usage:
    with ApiClient(settings.api_url) as api:
        api.login("john@example.com", "password123")
        response = api.favorite_article("how-to-train-your-dragon")
        assert response.is_favorited

        anonymous = api.unfavorite_article("how-to-train-your-dragon", token=None)
        assert anonymous.status_code == 401
"""
from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Iterable, Mapping

import httpx

from conduit_acceptance.errors import ApiError

logger = logging.getLogger(__name__)

# Marker for "use whatever token the client currently holds".
_STORED: Any = object()

_SENSITIVE_MARKERS = (
    "stacktrace",
    "exception",
    "at io.spring",
    "at java.",
    "at org.",
    "/home/",
    "/usr/",
    "jdbc:",
    "password",
)
_UUID = re.compile(r"[a-f0-9]{8}-[a-f0-9]{4}-[a-f0-9]{4}-[a-f0-9]{4}-[a-f0-9]{12}")
_EMAIL = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")


@dataclass(frozen=True)
class AuthToken:
    """A JWT issued to ``identity`` (the login email). Held in memory only."""

    value: str
    identity: str
    issued_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __repr__(self) -> str:
        return f"<AuthToken identity={self.identity!r} issued_at={self.issued_at.isoformat()}>"


@dataclass(frozen=True)
class ApiResponse:
    """Immutable snapshot of one HTTP exchange."""

    status_code: int
    body: str
    content_type: str | None = None
    headers: Mapping[str, str] = field(default_factory=dict, compare=False)
    method: str = "GET"
    url: str = ""

    def __post_init__(self) -> None:
        if not isinstance(self.headers, MappingProxyType):
            object.__setattr__(self, "headers", MappingProxyType(dict(self.headers)))

    @classmethod
    def from_httpx(cls, response: httpx.Response) -> ApiResponse:
        return cls(
            status_code=response.status_code,
            body=response.text,
            content_type=response.headers.get("content-type"),
            headers=dict(response.headers),
            method=response.request.method,
            url=str(response.request.url),
        )

    def __repr__(self) -> str:
        return f"<ApiResponse {self.method} {self.url} status={self.status_code}>"

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    def json(self) -> Any:
        """Decoded body, or ``None`` when it is empty or not JSON."""
        if not self.body:
            return None
        try:
            return json.loads(self.body)
        except ValueError:
            return None

    def _section(self, key: str) -> dict[str, Any]:
        data = self.json()
        if isinstance(data, dict) and isinstance(data.get(key), dict):
            return data[key]
        return {}

    # ---- articles -------------------------------------------------------------
    def _article_str(self, key: str) -> str | None:
        value = self.article.get(key)
        return value if isinstance(value, str) and value else None

    @property
    def article(self) -> dict[str, Any]:
        return self._section("article")

    @property
    def is_favorited(self) -> bool:
        return self.article.get("favorited") is True

    @property
    def is_not_favorited(self) -> bool:
        return self.article.get("favorited") is False

    @property
    def slug(self) -> str | None:
        return self._article_str("slug")

    @property
    def created_at(self) -> str | None:
        """Raw ``createdAt`` timestamp as the API sent it."""
        return self._article_str("createdAt")

    @property
    def updated_at(self) -> str | None:
        return self._article_str("updatedAt")

    @property
    def favorites_count(self) -> int | None:
        count = self.article.get("favoritesCount")
        return count if isinstance(count, int) else None

    @property
    def articles_count(self) -> int | None:
        data = self.json()
        if isinstance(data, dict) and isinstance(data.get("articlesCount"), int):
            return data["articlesCount"]
        return None

    # ---- profiles and users ---------------------------------------------------
    @property
    def profile(self) -> dict[str, Any]:
        return self._section("profile")

    @property
    def is_following(self) -> bool:
        return self.profile.get("following") is True

    @property
    def user(self) -> dict[str, Any]:
        return self._section("user")

    @property
    def token(self) -> str | None:
        token = self.user.get("token")
        return token if isinstance(token, str) and token else None

    @property
    def errors(self) -> dict[str, list[str]]:
        """Validation errors as ``{"field": ["message", ...]}``."""
        return self._section("errors")

    # ---- leakage checks -------------------------------------------------------
    def contains_sensitive_info(self) -> bool:
        """True when the body leaks internals: stack traces, paths, JDBC URLs, passwords or UUIDs."""
        lowered = self.body.lower()
        if any(marker in lowered for marker in _SENSITIVE_MARKERS):
            return True
        return _UUID.search(self.body) is not None

    def contains_email_address(self) -> bool:
        return _EMAIL.search(self.body) is not None


class ApiClient:
    """Synchronous client for the Conduit REST API.

    Args:
        base_url: API root, e.g. ``http://localhost:8080``
        timeout: Request timeout in seconds
        transport: Optional httpx transport (tests pass ``httpx.MockTransport``)

    The only mutable state is the stored token, so repeating a call is safe.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._token: AuthToken | None = None
        self._client = httpx.Client(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
            headers={"Accept": "application/json"},
        )

    def __repr__(self) -> str:
        return f"<ApiClient base_url={self.base_url!r} authenticated={self.is_authenticated}>"

    # ---- token lifecycle ------------------------------------------------------
    @property
    def token(self) -> AuthToken | None:
        return self._token

    @property
    def is_authenticated(self) -> bool:
        return self._token is not None

    def set_token(self, token: AuthToken | str, identity: str = "") -> AuthToken:
        if isinstance(token, str):
            token = AuthToken(value=token, identity=identity)
        self._token = token
        return token

    def clear_token(self) -> None:
        """Forget the stored token (logout)."""
        self._token = None

    def login(self, email: str, password: str) -> AuthToken:
        """Authenticate and store the issued token.

        Raises:
            ApiError: the API was unreachable, or answered without a token
                (the response is attached).
        """
        response = self.post(
            "/users/login",
            {"user": {"email": email, "password": password}},
            use_auth=False,
        )
        if response.status_code != 200 or response.token is None:
            logger.warning("API login for %s rejected with HTTP %s", email, response.status_code)
            raise ApiError("POST", response.url, "login did not return a token", response=response)
        token = self.set_token(AuthToken(value=response.token, identity=email))
        logger.info("API login as %s succeeded", email)
        return token

    # ---- transport ------------------------------------------------------------
    def _headers(self, use_auth: bool, token: Any, extra: Mapping[str, str] | None) -> dict[str, str]:
        headers = dict(extra or {})
        if token is _STORED:
            value = self._token.value if (use_auth and self._token is not None) else None
        elif isinstance(token, AuthToken):
            value = token.value
        else:
            value = token
        if value is not None:
            headers["Authorization"] = f"Token {value}"
        return headers

    def request(
        self,
        method: str,
        path: str,
        body: Any = None,
        *,
        params: Mapping[str, Any] | None = None,
        use_auth: bool = True,
        token: Any = _STORED,
        headers: Mapping[str, str] | None = None,
    ) -> ApiResponse:
        """Send one request; any HTTP status comes back as an ApiResponse.

        ``token`` defaults to the stored token (when ``use_auth``). Pass a
        string to send it verbatim, or ``None`` to force an anonymous call.

        Raises:
            ApiError: connection refused, DNS failure or timeout.
        """
        request_headers = self._headers(use_auth, token, headers)
        query = {key: value for key, value in (params or {}).items() if value is not None}
        try:
            response = self._client.request(
                method,
                path,
                json=body,
                params=query or None,
                headers=request_headers,
            )
        except httpx.TransportError as exc:
            url = f"{self.base_url}{path}"
            logger.warning("%s %s failed: %s", method, url, exc)
            raise ApiError(method, url, str(exc)) from exc

        result = ApiResponse.from_httpx(response)
        logger.debug(
            "%s %s (auth=%s) -> %s",
            method,
            result.url,
            "Authorization" in request_headers,
            result.status_code,
        )
        return result

    def get(self, path: str, body: Any = None, **kwargs: Any) -> ApiResponse:
        return self.request("GET", path, body, **kwargs)

    def post(self, path: str, body: Any = None, **kwargs: Any) -> ApiResponse:
        return self.request("POST", path, body, **kwargs)

    def put(self, path: str, body: Any = None, **kwargs: Any) -> ApiResponse:
        return self.request("PUT", path, body, **kwargs)

    def delete(self, path: str, body: Any = None, **kwargs: Any) -> ApiResponse:
        return self.request("DELETE", path, body, **kwargs)

    # ---- users ----------------------------------------------------------------
    def register(self, username: str, email: str, password: str) -> ApiResponse:
        return self.post(
            "/users",
            {"user": {"username": username, "email": email, "password": password}},
            use_auth=False,
        )

    def get_current_user(self, **kwargs: Any) -> ApiResponse:
        return self.get("/user", **kwargs)

    def update_user(self, **fields: Any) -> ApiResponse:
        """PUT /user with the given fields (email, username, password, bio, image)."""
        token = fields.pop("token", _STORED)
        return self.put("/user", {"user": fields}, token=token)

    # ---- profiles -------------------------------------------------------------
    def get_profile(self, username: str, **kwargs: Any) -> ApiResponse:
        return self.get(f"/profiles/{username}", **kwargs)

    def follow_user(self, username: str, **kwargs: Any) -> ApiResponse:
        return self.post(f"/profiles/{username}/follow", **kwargs)

    def unfollow_user(self, username: str, **kwargs: Any) -> ApiResponse:
        return self.delete(f"/profiles/{username}/follow", **kwargs)

    # ---- articles -------------------------------------------------------------
    def list_articles(
        self,
        tag: str | None = None,
        author: str | None = None,
        favorited: str | None = None,
        offset: int = 0,
        limit: int = 20,
        **kwargs: Any,
    ) -> ApiResponse:
        params = {"tag": tag, "author": author, "favorited": favorited, "offset": offset, "limit": limit}
        return self.get("/articles", params=params, **kwargs)

    def get_feed(self, offset: int = 0, limit: int = 20, **kwargs: Any) -> ApiResponse:
        return self.get("/articles/feed", params={"offset": offset, "limit": limit}, **kwargs)

    def get_article(self, slug: str, **kwargs: Any) -> ApiResponse:
        return self.get(f"/articles/{slug}", **kwargs)

    def create_article(
        self,
        title: str,
        description: str,
        body: str,
        tags: Iterable[str] = (),
        **kwargs: Any,
    ) -> ApiResponse:
        payload = {"title": title, "description": description, "body": body, "tagList": list(tags)}
        return self.post("/articles", {"article": payload}, **kwargs)

    def update_article(
        self,
        slug: str,
        title: str | None = None,
        description: str | None = None,
        body: str | None = None,
        **kwargs: Any,
    ) -> ApiResponse:
        changes = {"title": title, "description": description, "body": body}
        payload = {key: value for key, value in changes.items() if value is not None}
        return self.put(f"/articles/{slug}", {"article": payload}, **kwargs)

    def delete_article(self, slug: str, **kwargs: Any) -> ApiResponse:
        return self.delete(f"/articles/{slug}", **kwargs)

    def favorite_article(self, slug: str, **kwargs: Any) -> ApiResponse:
        return self.post(f"/articles/{slug}/favorite", **kwargs)

    def unfavorite_article(self, slug: str, **kwargs: Any) -> ApiResponse:
        return self.delete(f"/articles/{slug}/favorite", **kwargs)

    # ---- comments -------------------------------------------------------------
    def get_comments(self, slug: str, **kwargs: Any) -> ApiResponse:
        return self.get(f"/articles/{slug}/comments", **kwargs)

    def add_comment(self, slug: str, body: str, **kwargs: Any) -> ApiResponse:
        return self.post(f"/articles/{slug}/comments", {"comment": {"body": body}}, **kwargs)

    def delete_comment(self, slug: str, comment_id: int | str, **kwargs: Any) -> ApiResponse:
        return self.delete(f"/articles/{slug}/comments/{comment_id}", **kwargs)

    # ---- tags -----------------------------------------------------------------
    def get_tags(self) -> ApiResponse:
        return self.get("/tags", use_auth=False)

    # ---- lifecycle ------------------------------------------------------------
    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> ApiClient:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()
