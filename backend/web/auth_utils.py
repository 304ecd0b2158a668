"""
Session cookie helpers shared by the app middleware and the auth router.

Design:
    Pure functions over a FastAPI response. The cookie carries only the opaque
    session area id; the identity stays server-side.
"""

from __future__ import annotations

from fastapi import Request, Response

SESSION_COOKIE_NAME = "portal_session"


def cookie_opts() -> dict:
    """Return hardened cookie flags (dev = prod).

    Returns a mapping with keys:
      - httponly: True
      - secure: True
      - samesite: "lax"  # sent on top-level navigations, not cross-site posts
    """
    return {"httponly": True, "secure": True, "samesite": "lax", "path": "/"}


def read_session_id(request: Request) -> str | None:
    return request.cookies.get(SESSION_COOKIE_NAME) or None


def set_session_cookie(response: Response, session_id: str) -> None:
    response.set_cookie(key=SESSION_COOKIE_NAME, value=session_id, **cookie_opts())


def clear_session_cookie(response: Response) -> None:
    opts = cookie_opts()
    response.delete_cookie(
        key=SESSION_COOKIE_NAME,
        path=opts["path"],
        secure=opts["secure"],
        httponly=opts["httponly"],
        samesite=opts["samesite"],
    )
