"""Tests for the share pages served to social crawlers."""

from fastapi.testclient import TestClient

from mirabellier.main import create_app
from mirabellier.pages.router import post_id_candidates
from mirabellier.pages.templates import (
    extract_text,
    post_description,
    render_profile_page,
    resolve_image_url,
    slugify,
)


DOC = {
    "type": "doc",
    "content": [
        {"type": "paragraph", "content": [{"type": "text", "text": "First words"}]},
        {"type": "paragraph", "content": [{"type": "text", "text": "more"}]},
    ],
}


class TestHelpers:
    def test_slugify(self) -> None:
        assert slugify("Hello, Wörld!  Again") == "hello-world-again"
        assert slugify(None) == ""
        assert len(slugify("word " * 40)) == 80

    def test_extract_text(self) -> None:
        assert extract_text(DOC) == "First words more"
        assert extract_text(None) == ""
        assert extract_text("plain") == "plain"

    def test_description_fallback(self) -> None:
        assert post_description("teaser", DOC) == "teaser"
        assert post_description(None, DOC) == "First words more"
        long_doc = {"type": "text", "text": "x" * 500}
        assert len(post_description("", long_doc)) == 160

    def test_resolve_image_url(self) -> None:
        base = "https://mira.example"
        assert resolve_image_url(None, base) == ""
        assert resolve_image_url("https://cdn.example/a.png", base) == (
            "https://cdn.example/a.png"
        )
        assert resolve_image_url("/images/a.png", base) == f"{base}/images/a.png"
        assert resolve_image_url("a.png", base) == f"{base}/images/a.png"

    def test_post_id_candidates(self) -> None:
        assert post_id_candidates("hello-world-abc123") == ["abc123", "hello-world-abc123"]
        assert post_id_candidates("abc123") == ["abc123"]


class TestBlogPage:
    """GET /blog/{slug-id}."""

    def _create(self, client: TestClient, **fields) -> dict:
        response = client.post("/posts", json={"title": "Hello <World>", **fields})
        assert response.status_code == 201
        return response.json()

    def test_renders_metadata(self, client: TestClient) -> None:
        post = self._create(
            client, shortDescription="A \"quoted\" teaser", thumbnail="/images/t.png"
        )

        response = client.get(f"/blog/hello-world-{post['id']}")
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/html")

        page = response.text
        assert "<title>Hello &lt;World&gt;</title>" in page
        assert "A &quot;quoted&quot; teaser" in page
        assert '<meta property="og:image" content="http://testserver/images/t.png" />' in page
        assert f"/blog/hello-world-{post['id']}" in page
        assert "Hello <World>" not in page

    def test_raw_id(self, client: TestClient) -> None:
        post = self._create(client, content=DOC)
        response = client.get(f"/blog/{post['id']}")
        assert response.status_code == 200
        assert 'content="First words more"' in response.text

    def test_no_thumbnail_no_image_tag(self, client: TestClient) -> None:
        post = self._create(client)
        page = client.get(f"/blog/{post['id']}").text
        assert "og:image" not in page

    def test_unknown_post(self, client: TestClient) -> None:
        response = client.get("/blog/some-title-missing")
        assert response.status_code == 404
        assert response.text == "Not found"

    def test_public_base_url(self, settings) -> None:
        configured = settings.model_copy(
            update={"public_base_url": "https://mira.example/"}
        )
        with TestClient(create_app(configured)) as client:
            post = self._create(client)
            page = client.get(f"/blog/{post['id']}").text

        assert f'href="https://mira.example/blog/hello-world-{post["id"]}"' in page


class TestProfilePage:
    """GET /profile/{username}."""

    def test_default_image(self, client: TestClient, register) -> None:
        register("alice")
        response = client.get("/profile/alice")
        assert response.status_code == 200

        page = response.text
        assert "<title>alice&#x27;s Profile</title>" in page
        assert "Check out alice&#x27;s profile" in page
        assert 'content="http://testserver/background.jpg"' in page
        assert '"/#/profile/alice"' in page

    def test_banner_preferred(self, client: TestClient, register) -> None:
        alice = register("alice")
        client.post(
            "/me",
            json={
                "bio": "Hi <there>",
                "avatar": "https://cdn.example/a.png",
                "banner": "https://cdn.example/b.png",
            },
            headers=alice["headers"],
        )

        page = client.get("/profile/alice").text
        assert 'content="https://cdn.example/b.png"' in page
        assert "Hi &lt;there&gt;" in page

    def test_unknown_user(self, client: TestClient) -> None:
        response = client.get("/profile/nobody")
        assert response.status_code == 404
        assert response.text == "User not found"

    def test_avatar_fallback(self) -> None:
        page = render_profile_page(
            username="bob",
            bio=None,
            avatar="/images/bob.png",
            banner=None,
            default_image="/background.jpg",
            base_url="https://mira.example",
            request_path="/profile/bob",
        )
        assert 'content="https://mira.example/images/bob.png"' in page
        assert 'content="https://mira.example/profile/bob"' in page
