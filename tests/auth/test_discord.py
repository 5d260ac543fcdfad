"""Tests for the Discord OAuth client (HTTP mocked with httpx.MockTransport)."""

from urllib.parse import parse_qs, urlparse

import httpx
import pytest
from fastapi.testclient import TestClient

from mirabellier.auth.discord import DiscordOAuthClient, DiscordOAuthError, DiscordProfile
from mirabellier.main import create_app


API = "https://discord.test/api"


def make_client(handler) -> DiscordOAuthClient:
    return DiscordOAuthClient(
        client_id="cid",
        client_secret="secret",
        redirect_uri="http://localhost/auth/discord/callback",
        api_base=API,
        transport=httpx.MockTransport(handler),
    )


def discord_api(request: httpx.Request) -> httpx.Response:
    if request.url.path == "/api/oauth2/token":
        form = parse_qs(request.content.decode())
        if form.get("code") != ["good-code"]:
            return httpx.Response(400, json={"error": "invalid_grant"})
        return httpx.Response(200, json={"access_token": "at", "token_type": "Bearer"})

    if request.url.path == "/api/users/@me":
        if request.headers.get("Authorization") != "Bearer at":
            return httpx.Response(401)
        return httpx.Response(
            200,
            json={"id": "42", "username": "mira", "avatar": "abc", "banner": None},
        )

    return httpx.Response(404)


class TestDiscordProfile:
    def test_cdn_urls(self) -> None:
        profile = DiscordProfile(id="1", username="m", avatar_hash="a", banner_hash="b")
        assert profile.avatar_url == "https://cdn.discordapp.com/avatars/1/a.png"
        assert profile.banner_url == "https://cdn.discordapp.com/banners/1/b.png"

    def test_missing_hashes(self) -> None:
        profile = DiscordProfile.from_api({"id": 1, "username": "m"})
        assert profile.id == "1"
        assert profile.avatar_url is None
        assert profile.banner_url is None


class TestAuthorizationUrl:
    def test_parameters(self) -> None:
        url = urlparse(make_client(discord_api).authorization_url("xyz"))
        query = parse_qs(url.query)

        assert url.path == "/api/oauth2/authorize"
        assert query["client_id"] == ["cid"]
        assert query["scope"] == ["identify"]
        assert query["response_type"] == ["code"]
        assert query["state"] == ["xyz"]


class TestAuthenticate:
    """Code exchange and profile fetch."""

    @pytest.mark.asyncio
    async def test_success(self) -> None:
        profile = await make_client(discord_api).authenticate("good-code")
        assert profile.id == "42"
        assert profile.username == "mira"
        assert profile.avatar_hash == "abc"

    @pytest.mark.asyncio
    async def test_rejected_code(self) -> None:
        with pytest.raises(DiscordOAuthError):
            await make_client(discord_api).authenticate("bad-code")

    @pytest.mark.asyncio
    async def test_network_error(self) -> None:
        def broken(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("boom", request=request)

        with pytest.raises(DiscordOAuthError):
            await make_client(broken).exchange_code("good-code")

    @pytest.mark.asyncio
    async def test_profile_unauthorized(self) -> None:
        with pytest.raises(DiscordOAuthError):
            await make_client(discord_api).fetch_profile("wrong-token")


class TestCallbackEndpoint:
    """The full callback against a mocked Discord."""

    def test_callback_logs_in(self, settings) -> None:
        with TestClient(create_app(settings)) as client:
            client.app.state.discord = make_client(discord_api)
            client.cookies.set("discord_oauth_state", "s1")

            response = client.get(
                "/auth/discord/callback",
                params={"code": "good-code", "state": "s1"},
                follow_redirects=False,
            )
            assert response.status_code == 302
            location = response.headers["location"]
            assert location.startswith(f"{settings.frontend_url}/auth/callback?token=")

            token = parse_qs(urlparse(location).query)["token"][0]
            me = client.get("/me", headers={"Authorization": f"Bearer {token}"})
            assert me.status_code == 200
            assert me.json()["discordId"] == "42"
            assert me.json()["username"] == "mira"

    def test_callback_failed_exchange(self, settings) -> None:
        with TestClient(create_app(settings)) as client:
            client.app.state.discord = make_client(discord_api)
            client.cookies.set("discord_oauth_state", "s1")

            response = client.get(
                "/auth/discord/callback",
                params={"code": "bad-code", "state": "s1"},
                follow_redirects=False,
            )

        assert response.status_code == 302
        assert response.headers["location"].endswith("/login?error=auth_failed")
