"""Role-based gate deciding whether a view may be shown."""
from __future__ import annotations

from enum import Enum
from typing import Dict, FrozenSet, Iterable, Optional, Protocol

from .models import Role, User


class AccessDecision(str, Enum):
    LOADING = "loading"
    PERMITTED = "permitted"
    UNAUTHENTICATED = "unauthenticated"
    FORBIDDEN = "forbidden"


class SessionState(Protocol):
    @property
    def loading(self) -> bool: ...

    @property
    def user(self) -> Optional[User]: ...


def check_access(session: SessionState, allowed_roles: Optional[Iterable[Role]] = None) -> AccessDecision:
    """Decide access for a view declaring ``allowed_roles``.

    ``None`` means any signed-in user may see the view; an empty collection
    means nobody may.
    """

    if session.loading:
        return AccessDecision.LOADING
    user = session.user
    if user is None:
        return AccessDecision.UNAUTHENTICATED
    if allowed_roles is not None and user.role not in {Role(role) for role in allowed_roles}:
        return AccessDecision.FORBIDDEN
    return AccessDecision.PERMITTED


_ALL_ROLES: FrozenSet[Role] = frozenset(Role)

ROUTE_ROLES: Dict[str, Optional[FrozenSet[Role]]] = {
    "dashboard": None,
    "users": frozenset({Role.ADMIN}),
    "mentees": frozenset({Role.MENTOR}),
    "notifications": frozenset({Role.MENTOR, Role.STUDENT}),
    "meetings": frozenset({Role.MENTOR, Role.STUDENT}),
    "logs": _ALL_ROLES,
    "session-notes": frozenset({Role.MENTOR}),
    "choose-mentor": frozenset({Role.STUDENT}),
    "schedule-meeting": frozenset({Role.MENTOR}),
    "send-notification": frozenset({Role.MENTOR}),
}

LOGIN_PATH = "/login"
UNAUTHORIZED_PATH = "/unauthorized"


def redirect_for(decision: AccessDecision) -> Optional[str]:
    """Map a decision onto the page the caller should navigate to, if any."""

    if decision is AccessDecision.UNAUTHENTICATED:
        return LOGIN_PATH
    if decision is AccessDecision.FORBIDDEN:
        return UNAUTHORIZED_PATH
    return None


__all__ = [
    "AccessDecision",
    "LOGIN_PATH",
    "ROUTE_ROLES",
    "SessionState",
    "UNAUTHORIZED_PATH",
    "check_access",
    "redirect_for",
]
