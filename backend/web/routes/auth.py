"""
Authentication routes: login (form and JSON), logout and the current identity.

Why:
    Keep credential handling in one router so the form page and the JSON API
    share the same session rotation and cookie policy.

Behavior:
    - A successful login always starts a fresh session area (the previous one
      is discarded) and sets the opaque `portal_session` cookie.
    - Failed logins re-render the form with an inline message (401) or return
      `{"error": "invalid_credentials"}` for JSON callers.
    - `PATCH /api/me` merges profile fields into the session identity only;
      id and role cannot be changed by the client.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse, Response
from pydantic import BaseModel, ConfigDict, Field, field_validator

from backend.identity_access.domain import ALLOWED_ROLES, home_path_for
from backend.identity_access.stores import SessionStore
from backend.records.errors import InvalidCredentials
from backend.web.auth_utils import clear_session_cookie, read_session_id, set_session_cookie
from backend.web.components import Component
from backend.web.responses import _json_private, _layout_response, _private_error, get_context

auth_router = APIRouter(tags=["Auth"])
logger = logging.getLogger("portal.web.auth")


class LoginPayload(BaseModel):
    id: str = Field(..., min_length=1, max_length=64)
    password: str = Field(..., min_length=1, max_length=256)

    @field_validator("id")
    @classmethod
    def _strip_id(cls, v: str) -> str:
        return v.strip()


class MeUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(default=None, min_length=1, max_length=120)
    email: Optional[str] = Field(default=None, max_length=200)
    phone: Optional[str] = Field(default=None, max_length=40)
    photo: Optional[str] = Field(default=None, max_length=500)
    contact: Optional[Dict[str, Any]] = None


def _login_form(error: str | None = None, user_id: str = "") -> str:
    error_html = f'<p class="alert alert-error" role="alert">{Component.escape(error)}</p>' if error else ""
    return f"""
        <section class="card login-card">
            <h1>Login</h1>
            {error_html}
            <form method="post" action="/login" class="login-form">
                <label for="login-id">User ID</label>
                <input id="login-id" name="id" type="text" value="{Component.escape(user_id)}" required autocomplete="username">
                <label for="login-password">Password</label>
                <input id="login-password" name="password" type="password" required autocomplete="current-password">
                <button type="submit" class="btn btn-primary">Login</button>
            </form>
        </section>"""


def _start_session(request: Request, user_id: str, password: str) -> tuple[str, dict]:
    """Authenticate and store the identity in a fresh area; returns (sid, identity)."""
    ctx = get_context(request)
    identity = ctx.auth.authenticate(user_id, password)
    area, session = ctx.new_session(read_session_id(request))
    return area.session_id, session.save(identity)


@auth_router.get("/login", response_class=HTMLResponse)
async def login_page(request: Request):
    user = getattr(request.state, "user", None)
    if user and str(user.get("role") or "").lower() in ALLOWED_ROLES:
        return RedirectResponse(url=home_path_for(user.get("role")), status_code=302)
    return _layout_response(request, "Login", _login_form(), headers={"Cache-Control": "private, no-store"})


@auth_router.post("/login")
async def login_submit(
    request: Request,
    user_id: str = Form(default="", alias="id"),
    password: str = Form(default=""),
):
    if not get_context(request).ready:
        return _private_error("loading", status_code=503, headers={"Retry-After": "1"})
    try:
        sid, identity = _start_session(request, user_id, password)
    except InvalidCredentials:
        return _layout_response(
            request,
            "Login",
            _login_form("Invalid ID or password.", user_id=user_id),
            status_code=401,
            headers={"Cache-Control": "private, no-store"},
        )
    resp = RedirectResponse(url=home_path_for(identity.get("role")), status_code=303)
    resp.headers["Cache-Control"] = "private, no-store"
    set_session_cookie(resp, sid)
    return resp


@auth_router.post("/api/login")
async def login_api(request: Request, payload: LoginPayload):
    if not get_context(request).ready:
        return _private_error("loading", status_code=503, headers={"Retry-After": "1"})
    try:
        sid, identity = _start_session(request, payload.id, payload.password)
    except InvalidCredentials:
        return _private_error("invalid_credentials", status_code=401)
    resp = _json_private({"user": identity, "home": home_path_for(identity.get("role"))})
    set_session_cookie(resp, sid)
    return resp


@auth_router.post("/logout")
async def logout(request: Request):
    ctx = get_context(request)
    sid = read_session_id(request)
    area = ctx.sessions.get(sid)
    if area is not None:
        ctx.auth.logout(SessionStore(area.area))
    ctx.sessions.discard(sid)
    logger.info("Logout had_session=%s", area is not None)
    wants_json = "application/json" in (request.headers.get("accept") or "")
    resp: Response
    if wants_json:
        resp = Response(status_code=204, headers={"Cache-Control": "private, no-store"})
    else:
        resp = RedirectResponse(url="/login", status_code=303)
        resp.headers["Cache-Control"] = "private, no-store"
    clear_session_cookie(resp)
    return resp


@auth_router.get("/api/me")
async def get_me(request: Request):
    user = getattr(request.state, "user", None)
    if not user:
        return _private_error("unauthenticated", status_code=401)
    return _json_private(user)


@auth_router.patch("/api/me")
async def update_me(request: Request, payload: MeUpdate):
    ctx = get_context(request)
    area = ctx.sessions.get(read_session_id(request))
    if area is None:
        return _private_error("unauthenticated", status_code=401)
    fields = payload.model_dump(exclude_unset=True)
    try:
        updated = SessionStore(area.area).update(**fields)
    except LookupError:
        return _private_error("unauthenticated", status_code=401)
    return _json_private(updated)
