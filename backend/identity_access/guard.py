"""
Access guard: role-based route-entry decision.

Evaluated on every request; nothing is cached because the session or its
role can change between two navigations.

Outcomes:
    LOADING  session not loaded yet -> render a loading placeholder
    LOGIN    no session, or a session without a known role -> login page
    HOME     session role differs from the required role -> own landing page
    ALLOW    no role required, or the role matches
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Optional

from backend.identity_access.domain import ALLOWED_ROLES, LOGIN_PATH, home_path_for


class Outcome(str, Enum):
    LOADING = "loading"
    LOGIN = "login"
    HOME = "home"
    ALLOW = "allow"


@dataclass(frozen=True)
class GuardDecision:
    outcome: Outcome
    location: Optional[str] = None

    @property
    def allowed(self) -> bool:
        return self.outcome is Outcome.ALLOW


def evaluate(
    required_role: Optional[str],
    session: Optional[Mapping[str, Any]],
    *,
    loaded: bool = True,
) -> GuardDecision:
    if not loaded:
        return GuardDecision(Outcome.LOADING)
    if not session:
        return GuardDecision(Outcome.LOGIN, LOGIN_PATH)
    role = str(session.get("role") or "").lower()
    if required_role and role not in ALLOWED_ROLES:
        # unknown roles have no landing page
        return GuardDecision(Outcome.LOGIN, LOGIN_PATH)
    if required_role and role != required_role.lower():
        return GuardDecision(Outcome.HOME, home_path_for(role))
    return GuardDecision(Outcome.ALLOW)


__all__ = ["Outcome", "GuardDecision", "evaluate"]
