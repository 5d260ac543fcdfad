"""Tests for the curated anime list."""

from fastapi.testclient import TestClient


ITEMS = [
    {"id": "a1", "title": "Frieren", "url": "https://example.com/frieren", "img": "f.png"},
    {"title": "Mushishi", "url": "https://example.com/mushishi", "img": "m.png"},
]


class TestReplaceList:
    """POST /anime replaces the whole list."""

    def test_curator_replaces(self, client: TestClient, register) -> None:
        curator = register("mira")
        response = client.post("/anime", json=ITEMS, headers=curator["headers"])
        assert response.status_code == 200
        assert response.json() == {"ok": True}

        listing = client.get("/anime").json()
        assert [item["title"] for item in listing] == ["Frieren", "Mushishi"]
        assert [item["ord"] for item in listing] == [0, 1]
        assert listing[0]["id"] == "a1"
        assert listing[1]["id"].endswith("-1")

    def test_replace_drops_old_entries(self, client: TestClient, register) -> None:
        curator = register("mira")
        client.post("/anime", json=ITEMS, headers=curator["headers"])
        client.post("/anime", json=[ITEMS[1]], headers=curator["headers"])

        listing = client.get("/anime").json()
        assert [item["title"] for item in listing] == ["Mushishi"]
        assert listing[0]["ord"] == 0

    def test_empty_list_clears(self, client: TestClient, register) -> None:
        curator = register("mira")
        client.post("/anime", json=ITEMS, headers=curator["headers"])
        client.post("/anime", json=[], headers=curator["headers"])
        assert client.get("/anime").json() == []

    def test_regular_user_forbidden(self, client: TestClient, register) -> None:
        curator = register("mira")
        client.post("/anime", json=ITEMS, headers=curator["headers"])

        user = register("alice")
        response = client.post("/anime", json=[], headers=user["headers"])
        assert response.status_code == 403
        assert len(client.get("/anime").json()) == 2

    def test_anonymous(self, client: TestClient) -> None:
        assert client.post("/anime", json=ITEMS).status_code == 401
        assert client.get("/anime").json() == []

    def test_body_must_be_array(self, client: TestClient, register) -> None:
        curator = register("mira")
        response = client.post(
            "/anime", json={"title": "x"}, headers=curator["headers"]
        )
        assert response.status_code == 400

    def test_duplicate_ids_rejected(self, client: TestClient, register) -> None:
        curator = register("mira")
        client.post("/anime", json=ITEMS, headers=curator["headers"])

        response = client.post(
            "/anime",
            json=[{"id": "a", "title": "x"}, {"id": "a", "title": "y"}],
            headers=curator["headers"],
        )
        assert response.status_code == 400
        assert response.json()["error"] == "duplicate id"
        assert len(client.get("/anime").json()) == 2


class TestReadList:
    def test_cache_header(self, client: TestClient) -> None:
        response = client.get("/anime")
        assert response.status_code == 200
        assert response.headers["cache-control"] == "public, max-age=600"


class TestPatchAndDelete:
    """PATCH and DELETE /anime/{id}."""

    def test_patch(self, client: TestClient, register) -> None:
        curator = register("mira")
        client.post("/anime", json=ITEMS, headers=curator["headers"])

        response = client.patch(
            "/anime/a1",
            json={"title": "Sousou no Frieren", "ord": 5},
            headers=curator["headers"],
        )
        assert response.status_code == 200
        assert response.json()["title"] == "Sousou no Frieren"
        assert response.json()["url"] == "https://example.com/frieren"

        listing = client.get("/anime").json()
        assert listing[-1]["id"] == "a1"

    def test_patch_without_fields(self, client: TestClient, register) -> None:
        curator = register("mira")
        client.post("/anime", json=ITEMS, headers=curator["headers"])
        response = client.patch("/anime/a1", json={}, headers=curator["headers"])
        assert response.status_code == 400
        assert response.json()["error"] == "No fields to update"

    def test_patch_unknown(self, client: TestClient, register) -> None:
        curator = register("mira")
        response = client.patch(
            "/anime/missing", json={"title": "x"}, headers=curator["headers"]
        )
        assert response.status_code == 404

    def test_patch_forbidden(self, client: TestClient, register) -> None:
        user = register("alice")
        response = client.patch(
            "/anime/a1", json={"title": "x"}, headers=user["headers"]
        )
        assert response.status_code == 403

    def test_delete(self, client: TestClient, register) -> None:
        curator = register("mira")
        client.post("/anime", json=ITEMS, headers=curator["headers"])

        response = client.delete("/anime/a1", headers=curator["headers"])
        assert response.status_code == 200
        assert [item["title"] for item in client.get("/anime").json()] == ["Mushishi"]

    def test_delete_anonymous(self, client: TestClient) -> None:
        assert client.delete("/anime/a1").status_code == 401
