from __future__ import annotations

import pytest

from portal.api import PortalAPI
from portal.auth import AuthError, AuthSession, EmailInUseError, InvalidCredentialsError
from portal.models import Role
from portal.store import SESSION_KEY, MemoryStore

pytestmark = pytest.mark.anyio


@pytest.fixture()
def session(seeded_api: PortalAPI) -> AuthSession:
    auth = AuthSession(seeded_api)
    auth.restore()
    return auth


async def test_starts_loading_until_restored(seeded_api: PortalAPI) -> None:
    auth = AuthSession(seeded_api)
    assert auth.loading is True
    assert auth.restore() is None
    assert auth.loading is False
    assert auth.is_authenticated is False


async def test_login_with_seeded_admin(session: AuthSession, store: MemoryStore) -> None:
    user = await session.login("admin@example.com", "password")

    assert user.role is Role.ADMIN
    assert session.user == user
    assert session.loading is False
    assert store.load_value(SESSION_KEY)["email"] == "admin@example.com"


async def test_wrong_password_keeps_existing_session(session: AuthSession) -> None:
    mentor = await session.login("mentor@example.com", "password")

    with pytest.raises(InvalidCredentialsError) as excinfo:
        await session.login("admin@example.com", "wrong")

    assert str(excinfo.value) == "Invalid credentials"
    assert session.user == mentor
    assert session.loading is False


async def test_unknown_email_is_invalid_credentials(session: AuthSession) -> None:
    with pytest.raises(InvalidCredentialsError):
        await session.login("nobody@example.com", "password")
    assert session.user is None


async def test_register_signs_in_new_user(session: AuthSession, seeded_api: PortalAPI) -> None:
    user = await session.register("Ada Lovelace", "ada@example.com", "engine", Role.STUDENT)

    assert session.user == user
    assert user.role is Role.STUDENT

    fetched = await seeded_api.get_user_by_id(user.id)
    assert fetched.data == user

    session.logout()
    again = await session.login("ada@example.com", "engine")
    assert again == user


async def test_register_twice_with_same_email_fails(session: AuthSession, seeded_api: PortalAPI) -> None:
    await session.register("Ada", "ada@example.com", "engine", Role.STUDENT)
    before = await seeded_api.get_users()

    with pytest.raises(EmailInUseError):
        await session.register("Ada Again", "ada@example.com", "other", Role.MENTOR)

    after = await seeded_api.get_users()
    assert len(after.data) == len(before.data)


async def test_register_requires_password(session: AuthSession) -> None:
    with pytest.raises(AuthError):
        await session.register("Ada", "ada@example.com", "", Role.STUDENT)
    assert session.user is None


async def test_logout_always_succeeds(session: AuthSession, store: MemoryStore) -> None:
    session.logout()
    await session.login("student@example.com", "password")
    session.logout()

    assert session.user is None
    assert store.load_value(SESSION_KEY) is None


async def test_session_is_restored_by_a_new_component(session: AuthSession, seeded_api: PortalAPI) -> None:
    user = await session.login("student@example.com", "password")

    restored = AuthSession(seeded_api)
    assert restored.restore() == user
    assert restored.is_authenticated


async def test_malformed_session_is_discarded(seeded_api: PortalAPI, store: MemoryStore) -> None:
    store.set_item(SESSION_KEY, "{broken")
    auth = AuthSession(seeded_api)

    assert auth.restore() is None
    assert auth.loading is False
    assert store.get_item(SESSION_KEY) is None


async def test_session_with_invalid_shape_is_discarded(seeded_api: PortalAPI, store: MemoryStore) -> None:
    store.save_value(SESSION_KEY, {"id": "1", "role": "superuser"})
    auth = AuthSession(seeded_api)

    assert auth.restore() is None
    assert store.get_item(SESSION_KEY) is None


async def test_separate_session_store(seeded_api: PortalAPI, store: MemoryStore) -> None:
    cookie: dict = {}
    auth = AuthSession(seeded_api, session_store=MemoryStore(cookie))
    auth.restore()
    await auth.login("mentor@example.com", "password")

    assert SESSION_KEY in cookie
    assert store.get_item(SESSION_KEY) is None
