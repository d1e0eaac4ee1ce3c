"""FastAPI server for the Rookery snippet manager.

Start with:
    uv run uvicorn server:app --host 127.0.0.1 --port 8000 --reload

Endpoints
---------
GET    /api/snippets                     List snippets (newest first)
POST   /api/snippets                     Create a snippet
GET    /api/snippets/search?q=...        Substring search over title/code/description
GET    /api/snippets/tags                Sorted unique tags
GET    /api/snippets/languages           Sorted unique languages
GET    /api/snippets/{id}                Fetch one snippet
PUT    /api/snippets/{id}                Replace a snippet
DELETE /api/snippets/{id}                Delete a snippet
GET    /api/snippets/{id}/freeze         Render the snippet as PNG/SVG via freeze
GET    /health                           Liveness probe

Image options on /freeze (query string): theme, format, window, padding,
margin, background, showLineNumbers.
"""
from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response

import config as cfg
from errors import GenerationError
from image_service import ImageGenerationService, RenderRequest, media_type_for
from rate_limit import RateLimiter, rate_limit_middleware
from store import SnippetInput, SnippetStore, SnippetValidationError

logger = logging.getLogger(__name__)


def _configure_logging() -> None:
    logging.basicConfig(
        level=cfg.LOG_LEVEL,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


@asynccontextmanager
async def lifespan(_app: FastAPI):
    _configure_logging()
    logger.info("Rookery started; %d snippets in store", len(_app.state.store))
    yield


# ── Dependencies ──────────────────────────────────────────────────────────────

def _store(request: Request) -> SnippetStore:
    return request.app.state.store


def _service(request: Request) -> ImageGenerationService:
    return request.app.state.image_service


def _get_or_404(store: SnippetStore, snippet_id: str):
    snippet = store.get(snippet_id)
    if snippet is None:
        raise HTTPException(status_code=404, detail="Snippet not found.")
    return snippet


# ── App ───────────────────────────────────────────────────────────────────────

def create_app(
    store: SnippetStore | None = None,
    image_service: ImageGenerationService | None = None,
    limiter: RateLimiter | None = None,
) -> FastAPI:
    app = FastAPI(
        title="Rookery API",
        description="Personal code snippet manager with shareable code images.",
        lifespan=lifespan,
    )
    app.state.store = store or SnippetStore()
    app.state.image_service = image_service or ImageGenerationService()
    app.state.limiter = limiter or RateLimiter(
        max_requests=cfg.RATE_LIMIT_MAX_REQUESTS,
        window_seconds=cfg.RATE_LIMIT_WINDOW_SECONDS,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.middleware("http")(rate_limit_middleware(app.state.limiter))

    _register_routes(app)
    return app


def _register_routes(app: FastAPI) -> None:
    # Fixed paths are registered before /{snippet_id} so they are not shadowed.

    @app.get("/api/snippets")
    async def list_snippets(request: Request):
        return [s.to_dict() for s in _store(request).list_all()]

    @app.post("/api/snippets")
    async def create_snippet(request: Request, body: SnippetInput):
        try:
            snippet = _store(request).create(body)
        except SnippetValidationError as exc:
            raise HTTPException(status_code=400, detail=str(exc))
        return snippet.to_dict()

    @app.get("/api/snippets/search")
    async def search_snippets(request: Request, q: str | None = None):
        if q is None:
            raise HTTPException(status_code=400, detail="Missing search query parameter 'q'")
        try:
            results = _store(request).search(q)
        except SnippetValidationError as exc:
            raise HTTPException(status_code=400, detail=str(exc))
        return [s.to_dict() for s in results]

    @app.get("/api/snippets/tags")
    async def list_tags(request: Request):
        return _store(request).tags()

    @app.get("/api/snippets/languages")
    async def list_languages(request: Request):
        return _store(request).languages()

    @app.get("/api/snippets/{snippet_id}")
    async def get_snippet(request: Request, snippet_id: str):
        return _get_or_404(_store(request), snippet_id).to_dict()

    @app.put("/api/snippets/{snippet_id}")
    async def update_snippet(request: Request, snippet_id: str, body: SnippetInput):
        try:
            snippet = _store(request).update(snippet_id, body)
        except SnippetValidationError as exc:
            raise HTTPException(status_code=400, detail=str(exc))
        if snippet is None:
            raise HTTPException(status_code=404, detail="Snippet not found.")
        return snippet.to_dict()

    @app.delete("/api/snippets/{snippet_id}", status_code=204)
    async def delete_snippet(request: Request, snippet_id: str):
        if not _store(request).delete(snippet_id):
            raise HTTPException(status_code=404, detail="Snippet not found.")
        return Response(status_code=204)

    @app.get("/api/snippets/{snippet_id}/freeze")
    async def freeze_snippet(
        request: Request,
        snippet_id: str,
        theme: str = "catppuccin-mocha",
        fmt: str = Query("png", alias="format"),
        window: bool = True,
        padding: str = "20,40",
        margin: str = "0",
        background: bool = True,
        show_line_numbers: bool = Query(False, alias="showLineNumbers"),
    ):
        """Render the snippet's code to an image with the freeze CLI."""
        snippet = _get_or_404(_store(request), snippet_id)
        render_request = RenderRequest(
            code=snippet.code,
            language=snippet.language,
            theme=theme,
            format=fmt,
            window=window,
            background=background,
            show_line_numbers=show_line_numbers,
            padding=padding,
            margin=margin,
        )
        try:
            image = await asyncio.to_thread(_service(request).generate, render_request)
        except GenerationError as exc:
            raise HTTPException(status_code=exc.status_code, detail=exc.public_message)
        return Response(content=image, media_type=media_type_for(render_request.format))

    @app.get("/health")
    async def health():
        return {"status": "healthy", "app": "rookery"}


app = create_app()


# ── Dev entry-point ───────────────────────────────────────────────────────────

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "server:app",
        host=cfg.SERVER_HOST,
        port=cfg.SERVER_PORT,
        reload=True,
    )
