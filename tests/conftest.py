"""Shared pytest fixtures."""

import pytest

from notecache.gateway.sqlite import SqliteGateway
from notecache.services.bus import NotificationBus
from notecache.services.context import build_context
from tests.fakes import FakeGateway


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def bus() -> NotificationBus:
    return NotificationBus()


@pytest.fixture
def context(gateway, bus):
    return build_context(gateway, bus)


@pytest.fixture
def notes(context):
    return context.notes


@pytest.fixture
def tags(context):
    return context.tags


@pytest.fixture
def published(bus) -> list:
    """Every event published on the shared bus, in order."""
    events = []
    bus.subscribe_all(events.append)
    return events


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "notes.db"


@pytest.fixture
def sqlite_gateway(db_path) -> SqliteGateway:
    return SqliteGateway(db_path)
