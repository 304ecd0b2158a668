"""
Response helpers shared by the app factory and the routers.

Why:
    Personalized pages and JSON must never land in shared caches, and error
    payloads should look the same everywhere (`{"error": <code>}`).
"""
from __future__ import annotations

from typing import Any

from fastapi import Request
from fastapi.responses import HTMLResponse, JSONResponse

from backend.web.components import Layout

PRIVATE_HEADERS = {"Cache-Control": "private, no-store"}


def _json_private(payload: Any, *, status_code: int = 200) -> JSONResponse:
    """Return a JSONResponse with cache disabled for shared caches and browsers."""
    return JSONResponse(content=payload, status_code=status_code, headers=dict(PRIVATE_HEADERS))


def _private_error(error: str, *, status_code: int, detail: Any = None, headers: dict | None = None) -> JSONResponse:
    payload: dict[str, Any] = {"error": error}
    if detail is not None:
        payload["detail"] = detail
    response = _json_private(payload, status_code=status_code)
    for key, value in (headers or {}).items():
        response.headers[key] = value
    return response


def _layout_response(
    request: Request,
    title: str,
    content: str,
    *,
    status_code: int = 200,
    show_nav: bool = True,
    headers: dict[str, str] | None = None,
) -> HTMLResponse:
    """Render `content` inside the Layout for the current user.

    Pages rendered for a signed-in user default to `private, no-store`.
    """
    user = getattr(request.state, "user", None)
    layout = Layout(title=title, content=content, user=user, show_nav=show_nav, current_path=request.url.path)
    response = HTMLResponse(content=layout.render(), status_code=status_code)
    if user and not (headers and "Cache-Control" in headers):
        response.headers["Cache-Control"] = PRIVATE_HEADERS["Cache-Control"]
    for key, value in (headers or {}).items():
        response.headers[key] = value
    return response


def get_context(request: Request):
    """Return the PortalContext injected into the app."""
    return request.app.state.portal


def current_user(request: Request) -> dict | None:
    return getattr(request.state, "user", None)


def _require_role(request: Request, *roles: str):
    """Return (user, error_response) ensuring the caller has one of `roles`."""
    user = current_user(request)
    if not user:
        return None, _private_error("unauthenticated", status_code=401)
    if roles and str(user.get("role") or "").lower() not in roles:
        return None, _private_error("forbidden", status_code=403)
    return user, None


__all__ = [
    "PRIVATE_HEADERS",
    "_json_private",
    "_private_error",
    "_layout_response",
    "get_context",
    "current_user",
    "_require_role",
]
