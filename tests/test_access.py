from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from portal.access import (
    LOGIN_PATH,
    ROUTE_ROLES,
    UNAUTHORIZED_PATH,
    AccessDecision,
    check_access,
    redirect_for,
)
from portal.models import Role, User


@dataclass
class _Session:
    user: Optional[User] = None
    loading: bool = False


def _user(role: Role) -> User:
    return User(id="1", name="Someone", email="someone@example.com", role=role)


def test_no_session_is_unauthenticated() -> None:
    assert check_access(_Session(), {Role.ADMIN}) is AccessDecision.UNAUTHENTICATED


def test_wrong_role_is_forbidden() -> None:
    decision = check_access(_Session(user=_user(Role.STUDENT)), {Role.MENTOR})
    assert decision is AccessDecision.FORBIDDEN


def test_member_role_is_permitted() -> None:
    decision = check_access(_Session(user=_user(Role.MENTOR)), {Role.MENTOR, Role.STUDENT})
    assert decision is AccessDecision.PERMITTED


def test_loading_session_has_no_decision() -> None:
    assert check_access(_Session(user=_user(Role.ADMIN), loading=True), {Role.ADMIN}) is AccessDecision.LOADING
    assert check_access(_Session(loading=True)) is AccessDecision.LOADING


def test_views_without_roles_admit_any_signed_in_user() -> None:
    for role in Role:
        assert check_access(_Session(user=_user(role))) is AccessDecision.PERMITTED


def test_empty_role_set_forbids_everyone() -> None:
    assert check_access(_Session(user=_user(Role.ADMIN)), []) is AccessDecision.FORBIDDEN


def test_string_roles_are_accepted() -> None:
    assert check_access(_Session(user=_user(Role.MENTOR)), ["mentor"]) is AccessDecision.PERMITTED


def test_redirect_targets() -> None:
    assert redirect_for(AccessDecision.UNAUTHENTICATED) == LOGIN_PATH
    assert redirect_for(AccessDecision.FORBIDDEN) == UNAUTHORIZED_PATH
    assert redirect_for(AccessDecision.PERMITTED) is None
    assert redirect_for(AccessDecision.LOADING) is None


def test_route_table_matches_portal_views() -> None:
    assert ROUTE_ROLES["dashboard"] is None
    assert ROUTE_ROLES["users"] == {Role.ADMIN}
    assert ROUTE_ROLES["logs"] == set(Role)
    student = _Session(user=_user(Role.STUDENT))
    assert check_access(student, ROUTE_ROLES["session-notes"]) is AccessDecision.FORBIDDEN
    assert check_access(student, ROUTE_ROLES["meetings"]) is AccessDecision.PERMITTED
