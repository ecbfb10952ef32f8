"""ApiClient token handling and ApiResponse derivations over httpx.MockTransport."""
import json

import httpx
import pytest

from conduit_acceptance.api_client import ApiClient, ApiResponse
from conduit_acceptance.errors import ApiError

API_URL = "http://api.conduit.test"
SLUG = "how-to-train-your-dragon"


class FakeConduitApi:
    """Just enough of the Conduit API: login, favorite/unfavorite, tags."""

    def __init__(self):
        self.requests = []
        self.favorited = set()
        self.valid_tokens = {"jwt-john": "john@example.com"}

    def article(self, email):
        return {
            "article": {
                "slug": SLUG,
                "title": "How to train your dragon",
                "favorited": email in self.favorited,
                "favoritesCount": len(self.favorited),
            }
        }

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        auth = request.headers.get("Authorization")

        if path == "/users/login":
            creds = json.loads(request.content)["user"]
            if creds == {"email": "john@example.com", "password": "password123"}:
                return httpx.Response(200, json={"user": {"email": creds["email"], "token": "jwt-john"}})
            return httpx.Response(422, json={"errors": {"email or password": ["is invalid"]}})

        if path == "/tags":
            return httpx.Response(200, json={"tags": ["dragons", "training"]})

        if path == "/articles":
            return httpx.Response(200, json={"articles": [], "articlesCount": 0})

        if path == f"/articles/{SLUG}/favorite":
            if auth is None:
                return httpx.Response(401, text="")
            email = self.valid_tokens.get(auth.removeprefix("Token "))
            if email is None:
                return httpx.Response(401, json={"message": "invalid token"})
            if request.method == "POST":
                self.favorited.add(email)
            else:
                self.favorited.discard(email)
            return httpx.Response(200, json=self.article(email))

        return httpx.Response(404, text="<html>Not Found</html>", headers={"content-type": "text/html"})


@pytest.fixture()
def server():
    return FakeConduitApi()


@pytest.fixture()
def api(server):
    with ApiClient(API_URL, transport=httpx.MockTransport(server)) as client:
        yield client


class TestAuthentication:
    def test_login_stores_token_and_sends_it(self, api, server):
        token = api.login("john@example.com", "password123")

        assert token.value == "jwt-john"
        assert token.identity == "john@example.com"
        assert api.is_authenticated
        assert "Authorization" not in server.requests[0].headers

        response = api.favorite_article(SLUG)
        assert server.requests[-1].headers["Authorization"] == "Token jwt-john"
        assert response.status_code == 200
        assert response.is_favorited

    def test_rejected_login_raises_with_response(self, api):
        with pytest.raises(ApiError) as excinfo:
            api.login("john@example.com", "wrong")

        assert excinfo.value.response is not None
        assert excinfo.value.response.status_code == 422
        assert excinfo.value.response.errors == {"email or password": ["is invalid"]}
        assert "HTTP 422" in str(excinfo.value)
        assert not api.is_authenticated

    def test_missing_token_is_anonymous(self, api, server):
        response = api.unfavorite_article(SLUG)

        assert "Authorization" not in server.requests[-1].headers
        assert response.status_code == 401
        assert response.json() is None

    def test_explicit_token_is_sent_verbatim_and_not_stored(self, api, server):
        api.login("john@example.com", "password123")

        response = api.favorite_article(SLUG, token="jwt-john-corrupted")

        assert server.requests[-1].headers["Authorization"] == "Token jwt-john-corrupted"
        assert response.status_code == 401
        assert api.token.value == "jwt-john"

    def test_token_none_forces_anonymous_call(self, api, server):
        api.login("john@example.com", "password123")

        response = api.unfavorite_article(SLUG, token=None)

        assert "Authorization" not in server.requests[-1].headers
        assert response.status_code == 401

    def test_clear_token_makes_calls_anonymous(self, api, server):
        api.login("john@example.com", "password123")
        api.clear_token()

        api.favorite_article(SLUG)

        assert not api.is_authenticated
        assert "Authorization" not in server.requests[-1].headers

    def test_set_token_accepts_plain_string(self, api, server):
        api.set_token("jwt-john", identity="john@example.com")
        assert api.favorite_article(SLUG).is_favorited


class TestRequests:
    def test_repeated_unfavorite_is_safe(self, api):
        api.login("john@example.com", "password123")
        api.favorite_article(SLUG)

        first = api.unfavorite_article(SLUG)
        second = api.unfavorite_article(SLUG)

        assert first.status_code == 200
        assert second.status_code in (200, 422)
        assert first.is_not_favorited and second.is_not_favorited
        assert second.favorites_count == 0

    def test_error_status_is_returned_not_raised(self, api):
        response = api.get("/does-not-exist")

        assert response.status_code == 404
        assert not response.ok
        assert response.content_type == "text/html"
        assert response.json() is None
        assert response.article == {}
        assert response.favorites_count is None

    def test_network_failure_becomes_api_error(self):
        def refuse(request):
            raise httpx.ConnectError("Connection refused", request=request)

        with ApiClient(API_URL, transport=httpx.MockTransport(refuse)) as client:
            with pytest.raises(ApiError) as excinfo:
                client.get_tags()

        assert excinfo.value.response is None
        assert excinfo.value.method == "GET"
        assert "Connection refused" in str(excinfo.value)

    def test_list_articles_omits_unset_filters(self, api, server):
        response = api.list_articles(tag="dragons", limit=5)

        params = server.requests[-1].url.params
        assert params["tag"] == "dragons"
        assert params["limit"] == "5"
        assert params["offset"] == "0"
        assert "author" not in params
        assert response.articles_count == 0

    def test_update_article_sends_only_given_fields(self, api, server):
        api.update_article(SLUG, title="New title")

        body = json.loads(server.requests[-1].content)
        assert body == {"article": {"title": "New title"}}
        assert server.requests[-1].method == "PUT"

    def test_create_article_payload(self, api, server):
        api.create_article("Title", "About", "Body", tags=("dragons",))

        body = json.loads(server.requests[-1].content)
        assert body == {
            "article": {"title": "Title", "description": "About", "body": "Body", "tagList": ["dragons"]}
        }

    def test_base_url_path_prefix_is_kept(self, server):
        with ApiClient(API_URL + "/api/", transport=httpx.MockTransport(server)) as client:
            client.get_tags()
        assert server.requests[-1].url.path == "/api/tags"


class TestApiResponse:
    def test_derivations_never_raise_on_garbage(self):
        response = ApiResponse(status_code=500, body="{not json")

        assert response.json() is None
        assert response.user == {}
        assert response.token is None
        assert response.errors == {}
        assert not response.is_favorited
        assert not response.is_not_favorited
        assert not response.is_following

    def test_profile_and_user_sections(self):
        profile = ApiResponse(200, json.dumps({"profile": {"username": "jake", "following": True}}))
        user = ApiResponse(200, json.dumps({"user": {"email": "jake@jake.jake", "token": "jwt"}}))

        assert profile.is_following
        assert profile.profile["username"] == "jake"
        assert user.token == "jwt"

    @pytest.mark.parametrize(
        "body",
        [
            '{"error": "NullPointerException"}',
            "at io.spring.api.ArticleApi.favorite(ArticleApi.java:42)",
            '{"path": "/home/app/config.yml"}',
            '{"url": "jdbc:mysql://db/conduit"}',
            '{"password": "hunter2"}',
            '{"id": "123e4567-e89b-12d3-a456-426614174000"}',
        ],
    )
    def test_sensitive_info_is_detected(self, body):
        assert ApiResponse(500, body).contains_sensitive_info()

    def test_clean_error_body_is_not_sensitive(self):
        response = ApiResponse(401, '{"message": "unauthorized"}')
        assert not response.contains_sensitive_info()
        assert not response.contains_email_address()

    def test_email_address_is_detected(self):
        assert ApiResponse(200, '{"user": {"email": "john@example.com"}}').contains_email_address()

    def test_article_fields(self):
        response = ApiResponse(
            201,
            json.dumps(
                {
                    "article": {
                        "slug": "how-to-train-your-dragon",
                        "createdAt": "2016-02-18T03:22:56.637Z",
                        "updatedAt": "2016-02-18T03:48:35.824Z",
                    }
                }
            ),
        )

        assert response.slug == "how-to-train-your-dragon"
        assert response.created_at == "2016-02-18T03:22:56.637Z"
        assert response.updated_at == "2016-02-18T03:48:35.824Z"
        assert ApiResponse(404, "").slug is None
        assert ApiResponse(200, '{"article": {"createdAt": 17}}').created_at is None

    def test_response_is_hashable_and_headers_are_read_only(self, api):
        response = api.get_tags()

        assert response.headers["content-type"] == "application/json"
        with pytest.raises(TypeError):
            response.headers["content-type"] = "text/plain"
        twin = ApiResponse(response.status_code, response.body, response.content_type, method=response.method, url=response.url)
        assert hash(response) == hash(twin)
        assert ApiResponse(200, "{}", headers={"a": "b"}) == ApiResponse(200, "{}")
