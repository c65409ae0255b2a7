"""Shared fixtures: in-memory store, session, engine and the groups services."""

from typing import Any, Dict, List

import pytest

from infrastructure.configuration import GroupsFeatureSettings
from infrastructure.events import EventBus
from infrastructure.identity import StaticSessionProvider
from infrastructure.resilience import ExecutorRegistry, RetryPolicy
from modules.groups.core import (
    GroupAdminService,
    GroupCreationSaga,
    GroupLifecycleService,
)
from modules.groups.notes import AuditNoteRecorder
from modules.permissions import AuthorizationEngine
from tests.fakes import InMemoryDataStore


class RecordingSleep:
    """Async sleep replacement that records requested delays."""

    def __init__(self) -> None:
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def store():
    return InMemoryDataStore()


@pytest.fixture
def session():
    return StaticSessionProvider()


@pytest.fixture
def engine(store, session):
    return AuthorizationEngine(store, session)


@pytest.fixture
def bus():
    return EventBus()


@pytest.fixture
def published(bus):
    """Every event published on ``bus``, in order."""
    events: List[Any] = []

    original = bus.publish

    async def _publish(event):
        events.append(event)
        return await original(event)

    bus.publish = _publish
    return events


@pytest.fixture
def groups_config():
    return GroupsFeatureSettings()


@pytest.fixture
def lifecycle(store, engine, bus, groups_config):
    return GroupLifecycleService(store, engine, bus, groups_config)


@pytest.fixture
def saga(store, engine, bus, groups_config):
    return GroupCreationSaga(store, engine, bus, groups_config)


@pytest.fixture
def recorder(store, engine):
    return AuditNoteRecorder(store, engine)


@pytest.fixture
def sleep():
    return RecordingSleep()


@pytest.fixture
def registry(sleep):
    return ExecutorRegistry(RetryPolicy(max_retries=3, base_delay=1.0), sleep=sleep)


@pytest.fixture
def admin_service(lifecycle, registry, groups_config):
    return GroupAdminService(lifecycle, registry, groups_config)


@pytest.fixture
def sign_in(store, session, engine):
    """Seed a ``users`` row (once) and make it the signed-in caller."""

    def _sign_in(user_id: str, church_id: Any = "c1", roles=("member",)):
        if store.get("users", user_id) is None:
            store.seed("users", id=user_id, church_id=church_id, roles=list(roles))
        session.sign_in(user_id)
        engine.clear_user_cache()
        return user_id

    return _sign_in


@pytest.fixture
def seed_group(store):
    def _seed_group(
        group_id: str,
        status: str = "approved",
        church_id: Any = "c1",
        created_by: str = "creator-1",
        **extra: Any,
    ) -> Dict[str, Any]:
        return store.seed(
            "groups",
            id=group_id,
            church_id=church_id,
            service_id=extra.pop("service_id", "s1"),
            created_by=created_by,
            status=status,
            title=extra.pop("title", f"Group {group_id}"),
            **extra,
        )

    return _seed_group


@pytest.fixture
def seed_membership(store):
    def _seed_membership(
        group_id: str,
        user_id: str,
        role: str = "member",
        status: str = "active",
        **extra: Any,
    ) -> Dict[str, Any]:
        return store.seed(
            "group_memberships",
            group_id=group_id,
            user_id=user_id,
            role=role,
            status=status,
            **extra,
        )

    return _seed_membership
