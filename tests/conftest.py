"""Shared fixtures for tests."""

from __future__ import annotations

import datetime
import pathlib

import pytest

from simple_forum.app import ForumApplication
from simple_forum.auth.registry import SessionRegistry
from simple_forum.auth.service import AuthService
from simple_forum.identity import passwords
from simple_forum.identity.models import PermissionTier, User
from simple_forum.identity.store import IdentityStore
from simple_forum.policy.engine import PolicyEngine
from simple_forum.settings import Settings

ROOT = pathlib.Path(__file__).resolve().parents[1]
POLICY_PATH = ROOT / "policies" / "access.yaml"
PASSWORD = "correct horse battery staple"


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, start: datetime.datetime | None = None) -> None:
        self.now = start or datetime.datetime(2025, 1, 1, 12, 0, tzinfo=datetime.UTC)

    def __call__(self) -> datetime.datetime:
        return self.now

    def advance(self, **delta: float) -> None:
        self.now += datetime.timedelta(**delta)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def registry(clock: FakeClock) -> SessionRegistry:
    return SessionRegistry(clock=clock)


@pytest.fixture
def policy_engine() -> PolicyEngine:
    """Return a PolicyEngine loaded from the real access.yaml."""
    return PolicyEngine(policy_path=POLICY_PATH)


def _user(username: str, tier: PermissionTier) -> User:
    return User(
        id=f"{username}-id",
        username=username,
        email=f"{username}@example.org",
        password_hash=passwords.hash_password(PASSWORD),
        permission_tier=tier,
    )


@pytest.fixture
def alice() -> User:
    return _user("alice", PermissionTier.REGISTERED_USER)


@pytest.fixture
def bob() -> User:
    return _user("bob", PermissionTier.REGISTERED_USER)


@pytest.fixture
def admin() -> User:
    return _user("admin", PermissionTier.ADMINISTRATOR)


@pytest.fixture
def root() -> User:
    return _user("root", PermissionTier.SUPER_USER)


@pytest.fixture
def identities(alice: User, bob: User, admin: User, root: User) -> IdentityStore:
    store = IdentityStore()
    for user in (alice, bob, admin, root):
        store.add(user)
    return store


@pytest.fixture
def auth(registry: SessionRegistry, identities: IdentityStore, clock: FakeClock) -> AuthService:
    return AuthService(registry, identities, clock=clock)


@pytest.fixture
def app(clock: FakeClock, alice: User, bob: User, admin: User):
    application = ForumApplication(Settings(policy_path=POLICY_PATH), clock=clock)
    for user in (alice, bob, admin):
        application.identities.add(user)
    with application:
        yield application
