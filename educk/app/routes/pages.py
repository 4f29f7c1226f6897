"""
Pages Routes: templates/ served by path.

- GET/HEAD /health → "OK"
- GET /<path> → template resolved by TemplateStore.resolve()
- no match → 404 (templates/_404.html when present)
"""

from typing import Any

from fastapi import APIRouter, Request
from fastapi.responses import PlainTextResponse, Response

from educk.templates.store import TemplateStore

router = APIRouter()


def build_context(request: Request) -> dict[str, Any]:
    """Render context: request data only (identical requests → identical output)."""
    return {
        "request": {
            "method": request.method,
            "path": request.scope["path"],
            "query": dict(request.query_params),
        },
    }


@router.api_route("/health", methods=["GET", "HEAD"], response_class=PlainTextResponse)
async def health() -> str:
    """Health check."""
    return "OK"


@router.api_route("/{path:path}", methods=["GET", "HEAD"])
async def serve_template(request: Request, path: str) -> Response:
    """
    Render the template matching the request path.

    RequestParseError (400) and RenderError (500) are mapped by the app's
    exception handlers.
    """
    store: TemplateStore = request.app.state.templates
    context = build_context(request)

    key = store.resolve(request.scope["path"])
    if key is None:
        return render_not_found(store, context)

    body = store.render(key, context)
    return Response(content=body, media_type=store[key].content_type)


def render_not_found(store: TemplateStore, context: dict[str, Any]) -> Response:
    """404 body from _404.html, or plain text."""
    key = store.not_found_key
    if key is None:
        return PlainTextResponse("Not Found", status_code=404)

    body = store.render(key, context)
    return Response(content=body, status_code=404, media_type=store[key].content_type)
