"""HTTP API tests using FastAPI's TestClient."""
from __future__ import annotations

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from errors import (
    ExecutionFailedError,
    GenerationTimeoutError,
    InvalidInputError,
    ServiceUnavailableError,
)
from image_service import ImageGenerationService, RenderRequest
from rate_limit import RateLimiter
from sandbox.workspace import WorkspaceManager
from server import create_app
from store import SnippetStore


class FakeImageService:
    def __init__(self, result=b"PNGDATA") -> None:
        self.result = result
        self.requests: list[RenderRequest] = []

    def generate(self, request: RenderRequest) -> bytes:
        self.requests.append(request)
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


@pytest.fixture
def image_service() -> FakeImageService:
    return FakeImageService()


@pytest.fixture
def client(tmp_path: Path, image_service: FakeImageService):
    app = create_app(
        store=SnippetStore(tmp_path / "api.sqlite3"),
        image_service=image_service,
        limiter=RateLimiter(max_requests=10_000, window_seconds=60),
    )
    with TestClient(app) as test_client:
        yield test_client


def _create(client: TestClient, **overrides) -> dict:
    payload = {
        "title": "Test Snippet",
        "code": "let x = 42",
        "language": "swift",
        "description": "Testing",
        "tags": ["test"],
        "isFavorite": True,
    }
    payload.update(overrides)
    response = client.post("/api/snippets", json=payload)
    assert response.status_code == 200, response.text
    return response.json()


class TestSnippetCrud:
    def test_list_empty(self, client):
        response = client.get("/api/snippets")
        assert response.status_code == 200
        assert response.json() == []

    def test_create_and_retrieve(self, client):
        created = _create(client)

        response = client.get(f"/api/snippets/{created['id']}")

        assert response.status_code == 200
        body = response.json()
        assert body["title"] == "Test Snippet"
        assert body["code"] == "let x = 42"
        assert body["isFavorite"] is True
        assert body["tags"] == ["test"]

    def test_create_invalid_is_400(self, client):
        response = client.post(
            "/api/snippets",
            json={"title": "", "code": "x", "language": "swift"},
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "Title cannot be empty"

    def test_update(self, client):
        created = _create(client)

        response = client.put(
            f"/api/snippets/{created['id']}",
            json={"title": "Updated", "code": "let y = 1", "language": "swift", "tags": []},
        )

        assert response.status_code == 200
        assert response.json()["title"] == "Updated"
        assert response.json()["isFavorite"] is False

    def test_update_missing_is_404(self, client):
        response = client.put(
            "/api/snippets/missing",
            json={"title": "t", "code": "c", "language": "swift"},
        )
        assert response.status_code == 404

    def test_delete(self, client):
        created = _create(client)
        assert client.delete(f"/api/snippets/{created['id']}").status_code == 204
        assert client.get(f"/api/snippets/{created['id']}").status_code == 404
        assert client.delete(f"/api/snippets/{created['id']}").status_code == 404


class TestQueries:
    def test_search(self, client):
        _create(client, title="Swift closure")
        _create(client, title="Python list", code="xs = []", language="python")

        response = client.get("/api/snippets/search", params={"q": "closure"})

        assert response.status_code == 200
        assert [s["title"] for s in response.json()] == ["Swift closure"]

    def test_search_requires_query(self, client):
        response = client.get("/api/snippets/search")
        assert response.status_code == 400
        assert "'q'" in response.json()["detail"]

    def test_search_query_too_long(self, client):
        response = client.get("/api/snippets/search", params={"q": "x" * 101})
        assert response.status_code == 400

    def test_tags_and_languages(self, client):
        _create(client, tags=["b", "a"], language="go")
        _create(client, tags=["a"], language="rust")

        assert client.get("/api/snippets/tags").json() == ["a", "b"]
        assert client.get("/api/snippets/languages").json() == ["go", "rust"]

    def test_health(self, client):
        assert client.get("/health").json() == {"status": "healthy", "app": "rookery"}


class TestFreeze:
    def test_defaults(self, client, image_service):
        created = _create(client, code="print(1)", language="python")

        response = client.get(f"/api/snippets/{created['id']}/freeze")

        assert response.status_code == 200
        assert response.content == b"PNGDATA"
        assert response.headers["content-type"] == "image/png"
        request = image_service.requests[0]
        assert request == RenderRequest(code="print(1)", language="python")

    def test_query_options(self, client, image_service):
        created = _create(client)

        response = client.get(
            f"/api/snippets/{created['id']}/freeze",
            params={
                "theme": "nord",
                "format": "svg",
                "window": "false",
                "padding": "10",
                "margin": "2,2",
                "background": "false",
                "showLineNumbers": "true",
            },
        )

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("image/svg+xml")
        request = image_service.requests[0]
        assert request.theme == "nord"
        assert request.format == "svg"
        assert request.window is False
        assert request.background is False
        assert request.show_line_numbers is True
        assert request.padding == "10"
        assert request.margin == "2,2"

    def test_missing_snippet_is_404(self, client, image_service):
        assert client.get("/api/snippets/missing/freeze").status_code == 404
        assert image_service.requests == []

    @pytest.mark.parametrize(
        "error,status",
        [
            (InvalidInputError("theme", "Invalid theme. Allowed themes: nord"), 400),
            (ServiceUnavailableError(), 503),
            (ExecutionFailedError(), 500),
            (GenerationTimeoutError(), 408),
        ],
    )
    def test_errors_map_to_status(self, client, image_service, error, status):
        created = _create(client)
        image_service.result = error

        response = client.get(f"/api/snippets/{created['id']}/freeze")

        assert response.status_code == status
        assert response.json()["detail"] == error.public_message


@pytest.mark.posix
def test_freeze_with_stub_renderer(tmp_path: Path, render_dir: Path, stub_renderer):
    binary = stub_renderer("ok")
    service = ImageGenerationService(
        workspaces=WorkspaceManager(render_dir),
        locator=lambda: str(binary),
        timeout=5,
    )
    app = create_app(
        store=SnippetStore(tmp_path / "e2e.sqlite3"),
        image_service=service,
        limiter=RateLimiter(max_requests=100, window_seconds=60),
    )

    with TestClient(app) as client:
        created = _create(client, code="print(1)", language="python")
        ok = client.get(f"/api/snippets/{created['id']}/freeze", params={"theme": "nord"})
        bad = client.get(f"/api/snippets/{created['id']}/freeze", params={"theme": "not-a-theme"})

    assert ok.status_code == 200
    assert ok.content == b"FAKEIMAGE"
    assert bad.status_code == 400
    assert bad.json()["detail"].startswith("Invalid theme")
    assert list(render_dir.iterdir()) == []


def test_rate_limit_applies_to_api(tmp_path: Path, image_service):
    app = create_app(
        store=SnippetStore(tmp_path / "limited.sqlite3"),
        image_service=image_service,
        limiter=RateLimiter(max_requests=2, window_seconds=60),
    )
    with TestClient(app) as client:
        statuses = [client.get("/health").status_code for _ in range(3)]
    assert statuses == [200, 200, 429]
