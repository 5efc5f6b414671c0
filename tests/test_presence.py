import pytest

from wlboard.models.user import Identity
from wlboard.realtime import presence as presence_module
from wlboard.realtime.presence import PresenceRegistry

ANA = Identity(id="u1", email="ana@example.com", name="Ana", role="user")


@pytest.fixture
def clock(monkeypatch):
    ticks = iter(f"2024-01-01T00:00:{i:02d}.000Z" for i in range(60))
    monkeypatch.setattr(presence_module, "utc_now_iso", lambda: next(ticks))


def test_add_builds_entry_from_identity(clock):
    registry = PresenceRegistry()
    entry = registry.add("c1", ANA)

    assert entry.id == "c1"
    assert entry.userId == "u1"
    assert entry.name == "Ana"
    assert entry.email == "ana@example.com"
    assert entry.role == "user"
    assert entry.joinedAt == entry.lastActivity
    assert registry.get("c1") is entry


def test_add_is_idempotent_per_connection(clock):
    registry = PresenceRegistry()
    first = registry.add("c1", ANA)
    second = registry.add("c1", Identity(name="Someone else"))

    assert second is first
    assert len(registry) == 1


def test_same_user_in_two_tabs_yields_two_entries():
    registry = PresenceRegistry()
    registry.add("tab-1", ANA)
    registry.add("tab-2", ANA)

    assert len(registry) == 2
    assert {e.id for e in registry.all()} == {"tab-1", "tab-2"}


def test_touch_refreshes_last_activity(clock):
    registry = PresenceRegistry()
    entry = registry.add("c1", ANA)
    joined = entry.joinedAt

    registry.touch("c1")

    assert entry.joinedAt == joined
    assert entry.lastActivity > joined


def test_touch_and_remove_unknown_are_noops():
    registry = PresenceRegistry()
    registry.touch("ghost")

    assert registry.remove("ghost") is None
    assert len(registry) == 0


def test_each_remove_decrements_by_one():
    registry = PresenceRegistry()
    for i in range(4):
        registry.add(f"c{i}", Identity(name=f"User {i}"))

    for expected in (3, 2, 1, 0):
        removed = registry.remove(f"c{expected}")
        assert removed is not None
        assert len(registry) == expected
        assert registry.get(f"c{expected}") is None
