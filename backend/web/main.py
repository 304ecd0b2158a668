"School Portal"
from __future__ import annotations

import logging
import os
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional, Union

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, RedirectResponse, Response
from fastapi.staticfiles import StaticFiles

from backend.identity_access.guard import Outcome, evaluate
from backend.records.errors import DuplicateRecord, NotFound, StorageUnavailable
from backend.records.fixtures import SEED
from backend.web import config
from backend.web.auth_utils import read_session_id
from backend.web.components import Loading
from backend.web.context import PortalContext
from backend.web.responses import _layout_response, _private_error
from backend.web.routes.auth import auth_router
from backend.web.routes.locks import locks_router
from backend.web.routes.pages import pages_router
from backend.web.routes.records import records_router
from backend.web.routes.security import _is_same_origin


def _should_load_dotenv() -> bool:
    """Decide if we should load a local .env file.

    - Never load under pytest to avoid contaminating test env.
    - Allow explicit opt-out via PORTAL_ENABLE_DOTENV (default true outside
      pytest).
    """
    if "pytest" in sys.modules or os.getenv("PYTEST_CURRENT_TEST"):
        return False
    flag = (os.getenv("PORTAL_ENABLE_DOTENV", "true") or "").strip().lower()
    return flag in ("1", "true", "yes")


if _should_load_dotenv():
    from dotenv import load_dotenv

    load_dotenv()

logger = logging.getLogger("portal.web")

static_dir = Path(__file__).parent / "static"

# --- Route annotations -----------------------------------------------------------
#
# path -> required role. PUBLIC skips the guard; None means "any session".
# A rule matches the exact path and everything below it, except "/" which only
# matches itself. The longest matching rule wins; unlisted paths need a session.

PUBLIC = "public"
RequiredRole = Union[str, None]

ROUTE_RULES: dict[str, RequiredRole] = {
    "/": PUBLIC,
    "/login": PUBLIC,
    "/api/login": PUBLIC,
    "/health": PUBLIC,
    "/static": PUBLIC,
    "/favicon.ico": PUBLIC,
    "/logout": None,
    "/profile": None,
    "/notices": None,
    "/api/me": None,
    "/api/notices": None,
    "/api/timetables": None,
    "/dashboard": "student",
    "/fees": "student",
    "/attendance": "student",
    "/results": "student",
    "/assignments": "student",
    "/timetable": "student",
    "/messages": "student",
    "/teacher": "teacher",
    "/api/teacher": "teacher",
    "/admin": "admin",
    "/api/admin": "admin",
    "/api/students": "admin",
    "/api/teachers": "admin",
    "/api/admins": "admin",
}

UNSAFE_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})


def _rule_matches(path: str, rule: str) -> bool:
    if rule == "/":
        return path == "/"
    return path == rule or path.startswith(rule + "/")


def required_role_for(path: str) -> RequiredRole:
    best: Optional[str] = None
    for rule in ROUTE_RULES:
        if _rule_matches(path, rule) and (best is None or len(rule) > len(best)):
            best = rule
    return ROUTE_RULES[best] if best is not None else None


def _is_api(path: str) -> bool:
    return path.startswith("/api/")


def _loading_response(request: Request) -> Response:
    headers = {"Retry-After": "1", "Cache-Control": "private, no-store"}
    if _is_api(request.url.path):
        return _private_error("loading", status_code=503, headers=headers)
    return _layout_response(request, "Loading", Loading().render(), status_code=503, show_nav=False, headers=headers)


def create_app(context: PortalContext | None = None) -> FastAPI:
    """Build the portal app around `context` (built from the environment if None)."""
    if context is None:
        from backend.storage.config import build_storage_from_env

        context = PortalContext(
            build_storage_from_env(),
            fixtures=SEED if config.seed_fixtures_enabled() else None,
            idle_ttl_seconds=config.session_idle_ttl_seconds(),
        )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        context.ensure_ready()
        yield
        context.dispose()

    app = FastAPI(title="School Portal", description="Role-based school portal", version="0.1.0", lifespan=lifespan)
    app.state.portal = context

    if static_dir.is_dir():
        app.mount("/static", StaticFiles(directory=str(static_dir)), name="static")

    # --- Guard middleware -----------------------------------------------------------

    @app.middleware("http")
    async def access_guard(request: Request, call_next):
        path = request.url.path
        ctx: PortalContext = request.app.state.portal
        required = required_role_for(path)
        request.state.user = None

        if request.method in UNSAFE_METHODS and not _is_same_origin(request):
            return _private_error("forbidden", detail="csrf_violation", status_code=403)

        if path.startswith("/static/") or path == "/health":
            return await call_next(request)

        loaded = ctx.ensure_ready()
        identity = None
        if loaded:
            area, identity = ctx.session_for(read_session_id(request))
            if area is not None:
                request.state.session_id = area.session_id
        request.state.user = identity

        if required == PUBLIC:
            return await call_next(request)

        # Never cached: the session and its role may change between requests.
        decision = evaluate(required, identity, loaded=loaded)
        if decision.outcome is Outcome.LOADING:
            return _loading_response(request)
        if decision.outcome is Outcome.LOGIN:
            if _is_api(path):
                return _private_error("unauthenticated", status_code=401, headers={"Vary": "Origin"})
            return RedirectResponse(url=decision.location, status_code=302)
        if decision.outcome is Outcome.HOME:
            logger.info("Role mismatch path=%s role=%s", path, (identity or {}).get("role"))
            if _is_api(path):
                return _private_error("forbidden", status_code=403)
            return RedirectResponse(url=decision.location, status_code=302)
        return await call_next(request)

    # --- Security Headers Middleware ------------------------------------------------

    @app.middleware("http")
    async def security_headers(request: Request, call_next):
        response = await call_next(request)
        prod_like = config.portal_env() in config.PROD_LIKE_ENVS
        if prod_like:
            csp = "default-src 'self'; script-src 'self'; style-src 'self'; img-src 'self' data:;"
        else:
            csp = "default-src 'self'; script-src 'self' 'unsafe-inline'; style-src 'self' 'unsafe-inline'; img-src 'self' data:;"
        response.headers.setdefault("Content-Security-Policy", csp)
        response.headers.setdefault("X-Frame-Options", "SAMEORIGIN")
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("Referrer-Policy", "strict-origin-when-cross-origin")
        response.headers.setdefault("Permissions-Policy", "geolocation=(), microphone=(), camera=()")
        if prod_like:
            response.headers.setdefault("Strict-Transport-Security", "max-age=31536000; includeSubDomains")
        return response

    # --- Error mapping --------------------------------------------------------------

    @app.exception_handler(NotFound)
    async def _not_found(request: Request, exc: NotFound):
        return _private_error("not_found", status_code=404)

    @app.exception_handler(DuplicateRecord)
    async def _duplicate(request: Request, exc: DuplicateRecord):
        return _private_error("duplicate_id", status_code=409)

    @app.exception_handler(StorageUnavailable)
    async def _storage_down(request: Request, exc: StorageUnavailable):
        logger.error("Storage unavailable path=%s: %s", request.url.path, exc)
        return _private_error("storage_unavailable", status_code=503)

    @app.exception_handler(RequestValidationError)
    async def _bad_request(request: Request, exc: RequestValidationError):
        detail = [{"loc": list(err.get("loc", ())), "msg": err.get("msg", "")} for err in exc.errors()]
        return _private_error("bad_request", status_code=400, detail=detail)

    # --- Routers --------------------------------------------------------------------

    app.include_router(auth_router)
    app.include_router(pages_router)
    app.include_router(records_router)
    app.include_router(locks_router)

    @app.get("/health")
    async def health_check():
        # Security: include no-store to avoid caching any runtime status.
        return JSONResponse({"status": "healthy"}, headers={"Cache-Control": "private, no-store"})

    return app


config.configure_logging()
config.ensure_secure_config_on_startup()
app = create_app()
