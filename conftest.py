# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Shared fixtures: in-memory Slack and durable-store fakes, a controllable
clock and fully wired services built on top of them.
"""

from datetime import datetime, timezone
from typing import Optional

import pytest

from oncallbot.core.exceptions import ExternalError
from oncallbot.models.domain import IdentityProfile, TeamRotation
from oncallbot.services.identity_cache import IdentityCache
from oncallbot.services.messages import Messages
from oncallbot.services.oncall_service import OnCallService
from oncallbot.services.permission_service import PermissionResolver
from oncallbot.services.renderer import Renderer
from oncallbot.services.rotation_store import RotationStore

FIXED_NOW = datetime(2026, 3, 14, 9, 30, tzinfo=timezone.utc)


class FakeSlackClient:
    """Stands in for SlackClient; counts calls and can be told to fail."""

    def __init__(self) -> None:
        self.users: dict[str, IdentityProfile] = {}
        self.fail = False
        self.get_calls: list[str] = []
        self.list_calls = 0

    def add_user(self, user_id: str, name: str, phone: str = "", **flags) -> IdentityProfile:
        profile = IdentityProfile(id=user_id, name=name, phone=phone, **flags)
        self.users[user_id] = profile
        return profile

    def get_user(self, user_id: str) -> Optional[IdentityProfile]:
        self.get_calls.append(user_id)
        if self.fail:
            raise ExternalError("slack users.info failed: connection refused")
        return self.users.get(user_id)

    def list_users(self) -> list[IdentityProfile]:
        self.list_calls += 1
        if self.fail:
            raise ExternalError("slack users.list failed: connection refused")
        return list(self.users.values())


class FakeTeamRepository:
    """Stands in for TeamRepository; keeps rows in a dict keyed like the table."""

    def __init__(self) -> None:
        self.rows: dict[str, TeamRotation] = {}
        self.fail = False
        self.puts = 0
        self.deletes = 0

    def create_schema(self) -> None:
        pass

    def get_all(self) -> list[TeamRotation]:
        if self.fail:
            raise ExternalError("error loading teams: database is locked")
        return list(self.rows.values())

    def put(self, rotation: TeamRotation) -> str:
        if self.fail:
            raise ExternalError(f"error saving team {rotation.team}: database is locked")
        self.puts += 1
        key = rotation.key or rotation.team
        self.rows[key] = rotation.model_copy(update={"key": key})
        return key

    def delete(self, key: str) -> None:
        if self.fail:
            raise ExternalError(f"error deleting team {key}: database is locked")
        self.deletes += 1
        self.rows.pop(key, None)


class FakeClock:
    def __init__(self, start: float = 1_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# ── Fixtures ──

@pytest.fixture
def slack():
    client = FakeSlackClient()
    client.add_user("UADMIN", "admin", "555-0000", is_admin=True)
    client.add_user("UALICE", "alice", "555-0100")
    client.add_user("UBOB", "bob", "555-0101")
    client.add_user("UCAROL", "carol", "555-0102")
    return client


@pytest.fixture
def repo():
    return FakeTeamRepository()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def identities(slack, clock):
    return IdentityCache(slack, ttl=60.0, clock=clock)


@pytest.fixture
def store(repo):
    return RotationStore(repo, clock=lambda: FIXED_NOW)


@pytest.fixture
def messages():
    return Messages()


@pytest.fixture
def permissions(store, identities):
    return PermissionResolver(store, identities)


@pytest.fixture
def renderer(store, identities, messages):
    return Renderer(store, identities, messages, tz=timezone.utc, color="EF203D")


@pytest.fixture
def service(store, identities, permissions, renderer, messages):
    return OnCallService(store, identities, permissions, renderer, messages)
