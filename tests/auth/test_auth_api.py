"""Tests for the authentication endpoints."""

from fastapi.testclient import TestClient

from mirabellier.main import create_app


CURATOR_USERNAME = "mira"
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


class TestRegisterLogin:
    """Register, login, logout and /me."""

    def test_register_returns_token_and_user(self, client: TestClient) -> None:
        response = client.post("/register", json={"username": "alice", "password": "pw"})
        assert response.status_code == 201
        data = response.json()
        assert data["token"]
        assert data["user"]["username"] == "alice"
        assert "passwordHash" not in data["user"]
        assert "password_hash" not in data["user"]

    def test_register_duplicate(self, client: TestClient, register) -> None:
        register("alice")
        response = client.post("/register", json={"username": "alice", "password": "x"})
        assert response.status_code == 409
        assert response.json()["code"] == "username_taken"

    def test_register_missing_fields(self, client: TestClient) -> None:
        response = client.post("/register", json={"username": "alice"})
        assert response.status_code == 400
        assert response.json()["code"] == "validation_error"

    def test_login(self, client: TestClient, register) -> None:
        register("alice", "right")

        wrong = client.post("/login", json={"username": "alice", "password": "wrong"})
        assert wrong.status_code == 401

        unknown = client.post("/login", json={"username": "nobody", "password": "x"})
        assert unknown.status_code == 401
        assert unknown.json()["error"] == wrong.json()["error"]

        right = client.post("/login", json={"username": "alice", "password": "right"})
        assert right.status_code == 200
        assert right.json()["user"]["username"] == "alice"

    def test_me_with_token(self, client: TestClient, register) -> None:
        alice = register("alice")
        response = client.get("/me", headers=alice["headers"])
        assert response.status_code == 200
        assert response.json()["id"] == alice["user"]["id"]

    def test_me_without_token(self, client: TestClient) -> None:
        assert client.get("/me").status_code == 401

    def test_malformed_header_is_anonymous(self, client: TestClient) -> None:
        response = client.get("/me", headers={"Authorization": "Token abc"})
        assert response.status_code == 401

    def test_logout_revokes_token(self, client: TestClient, register) -> None:
        alice = register("alice")
        response = client.post("/logout", headers=alice["headers"])
        assert response.status_code == 200
        assert response.json() == {"ok": True}
        assert client.get("/me", headers=alice["headers"]).status_code == 401

    def test_curator_role_granted(self, register) -> None:
        assert register(CURATOR_USERNAME)["user"]["role"] == "curator"
        assert register("someone")["user"]["role"] == "user"


class TestProfileUpdate:
    """POST /me with JSON or multipart bodies."""

    def test_json_update(self, client: TestClient, register) -> None:
        alice = register("alice")
        response = client.post(
            "/me",
            json={"bio": "hello", "website": "https://example.com"},
            headers=alice["headers"],
        )
        assert response.status_code == 200
        data = response.json()
        assert data["bio"] == "hello"
        assert data["website"] == "https://example.com"

    def test_multipart_avatar_upload(self, client: TestClient, register) -> None:
        alice = register("alice")
        response = client.post(
            "/me",
            data={"location": "Porto"},
            files={"avatar": ("me.png", PNG_BYTES, "image/png")},
            headers=alice["headers"],
        )
        assert response.status_code == 200
        data = response.json()
        assert data["location"] == "Porto"
        assert data["avatar"].startswith("/images/")
        assert data["avatar"].endswith("-me.png")

        listing = client.get("/images/list").json()
        assert any(image["url"] == data["avatar"] for image in listing)

    def test_rename_conflict(self, client: TestClient, register) -> None:
        register("bob")
        alice = register("alice")
        response = client.post(
            "/me", data={"username": "bob"}, headers=alice["headers"]
        )
        assert response.status_code == 409

    def test_requires_auth(self, client: TestClient) -> None:
        assert client.post("/me", json={"bio": "x"}).status_code == 401


class TestUserLookup:
    def test_by_id_and_username(self, client: TestClient, register) -> None:
        alice = register("alice")
        user_id = alice["user"]["id"]

        by_id = client.get(f"/user/{user_id}")
        assert by_id.status_code == 200
        assert by_id.json()["username"] == "alice"

        by_name = client.get("/user/by-username/alice")
        assert by_name.status_code == 200
        assert by_name.json()["id"] == user_id

    def test_unknown_user(self, client: TestClient) -> None:
        assert client.get("/user/missing").status_code == 404
        assert client.get("/user/by-username/missing").status_code == 404

    def test_stats(self, client: TestClient, register) -> None:
        alice = register("alice")
        client.post("/posts", json={"title": "Hello"}, headers=alice["headers"])

        response = client.get(f"/user/{alice['user']['id']}/stats")
        assert response.status_code == 200
        data = response.json()
        assert data["postsCount"] == 1
        assert data["likesCount"] == 0
        assert data["recentPosts"][0]["title"] == "Hello"


class TestDiscordEndpoints:
    def test_not_configured(self, client: TestClient) -> None:
        response = client.get("/auth/discord", follow_redirects=False)
        assert response.status_code == 503

    def test_redirect_sets_state_cookie(self, settings) -> None:
        configured = settings.model_copy(
            update={"discord_client_id": "cid", "discord_client_secret": "secret"}
        )
        with TestClient(create_app(configured)) as discord_client:
            response = discord_client.get("/auth/discord", follow_redirects=False)

        assert response.status_code == 307
        location = response.headers["location"]
        assert location.startswith("https://discord.com/api/oauth2/authorize?")
        assert "client_id=cid" in location
        assert "discord_oauth_state" in response.cookies

    def test_callback_state_mismatch(self, settings) -> None:
        configured = settings.model_copy(
            update={"discord_client_id": "cid", "discord_client_secret": "secret"}
        )
        with TestClient(create_app(configured)) as discord_client:
            response = discord_client.get(
                "/auth/discord/callback",
                params={"code": "abc", "state": "forged"},
                follow_redirects=False,
            )

        assert response.status_code == 302
        assert response.headers["location"].endswith("/login?error=auth_failed")
