"""
Shared web security helpers (FastAPI-agnostic utilities for routes).

Contains the CSRF same-origin check used by every state-changing route and the
app-wide guard middleware. Keeping a single implementation avoids drift.
"""
from __future__ import annotations

from typing import Tuple
from urllib.parse import urlparse

from fastapi import Request

from backend.web.config import trust_proxy

Origin = Tuple[str, str, int]


def _default_port(scheme: str) -> int:
    return 443 if scheme == "https" else 80


def _parse_origin(url: str) -> Origin:
    p = urlparse(url)
    if not p.scheme or not p.hostname:
        raise ValueError("invalid_origin")
    scheme = p.scheme.lower()
    port = p.port if p.port is not None else _default_port(scheme)
    return scheme, p.hostname.lower(), int(port)


def _server_origin(request: Request) -> Origin:
    """Origin the server is reachable at.

    X-Forwarded-* headers are only honored when PORTAL_TRUST_PROXY=true.
    """
    if trust_proxy():
        proto = (request.headers.get("x-forwarded-proto") or request.url.scheme or "http").split(",")[0].strip()
        scheme = (proto or "http").lower()
        host_raw = (request.headers.get("x-forwarded-host") or request.headers.get("host") or "").split(",")[0].strip()
        port = _default_port(scheme)
        if ":" in host_raw:
            host, port_str = host_raw.rsplit(":", 1)
            if port_str.isdigit():
                port = int(port_str)
        else:
            host = host_raw or (request.url.hostname or "")
        xf_port = (request.headers.get("x-forwarded-port") or "").split(",")[0].strip()
        if xf_port.isdigit():
            port = int(xf_port)
        return scheme, host.lower(), port

    scheme = (request.url.scheme or "http").lower()
    host = (request.url.hostname or "").lower()
    port = int(request.url.port) if request.url.port else _default_port(scheme)
    return scheme, host, port


def _is_same_origin(request: Request) -> bool:
    """Verify same-origin using Origin or Referer headers.

    Behavior:
    - If Origin is present, require exact scheme/host/port match with server.
    - Else if Referer is present, validate its origin similarly.
    - Else (no headers): allow to not break non-browser clients.
    """
    try:
        server = _server_origin(request)
        origin_val = request.headers.get("origin")
        if origin_val:
            return _parse_origin(origin_val) == server
        referer_val = request.headers.get("referer")
        if referer_val:
            return _parse_origin(referer_val) == server
        return True
    except ValueError:
        return False
