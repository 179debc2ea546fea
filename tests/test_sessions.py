# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

"""Session store behaviour."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
import threading

import pytest

from capmcp.capabilities import negotiate
from capmcp.server import ClientInfo, SessionStore, SessionStream
from tests.helpers import FakeClock


@pytest.fixture
def store(clock: FakeClock) -> SessionStore:
    return SessionStore(clock=clock)


def test_create_session_negotiates_and_stamps_times(store: SessionStore, clock: FakeClock) -> None:
    session = store.create_session("s1", ClientInfo("cli", "1.0"), "2025-06-18", {"tools": {}, "sampling": {}})

    assert session.negotiated.tools is True
    assert session.negotiated.resources is False
    assert session.negotiated.sampling is True
    assert session.created_at == session.last_activity == clock.now
    assert session.client_info == ClientInfo("cli", "1.0")
    assert session.metadata == {}
    assert session.initialized is False


def test_get_session_updates_activity(store: SessionStore, clock: FakeClock) -> None:
    store.create_session("s1", None, None, {})
    clock.advance(30)

    session = store.get_session("s1")

    assert session is not None
    assert session.last_activity == clock.now
    assert session.created_at < session.last_activity
    assert store.get_session("missing") is None


def test_peek_does_not_touch(store: SessionStore, clock: FakeClock) -> None:
    created = store.create_session("s1", None, None, {})
    clock.advance(30)

    assert store.peek("s1").last_activity == created.last_activity


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("tools", True),
        ("resources", False),
        ("prompts", True),
        ("logging", False),
        ("sampling", True),
        ("experimental.alpha", False),
        ("bogus", False),
    ],
)
def test_has_capability_matches_negotiation(store: SessionStore, name: str, expected: bool) -> None:
    store.create_session("s1", None, None, {"tools": {}, "prompts": {}, "sampling": {}})

    assert store.has_capability("s1", name) is expected


def test_has_capability_is_false_without_session(store: SessionStore) -> None:
    assert store.has_capability("nobody", "tools") is False


def test_update_metadata_merges_and_touches(store: SessionStore, clock: FakeClock) -> None:
    store.create_session("s1", None, None, {})
    store.update_metadata("s1", {"a": 1, "b": 2})
    clock.advance(5)

    updated = store.update_metadata("s1", {"b": 3})

    assert dict(updated.metadata) == {"a": 1, "b": 3}
    assert updated.last_activity == clock.now


def test_update_metadata_on_missing_session_is_noop(store: SessionStore) -> None:
    assert store.update_metadata("missing", {"a": 1}) is None
    assert "missing" not in store


def test_snapshots_are_immutable(store: SessionStore) -> None:
    store.create_session("s1", None, None, {})
    snapshot = store.update_metadata("s1", {"a": 1})

    with pytest.raises(TypeError):
        snapshot.metadata["a"] = 2  # type: ignore[index]
    with pytest.raises(AttributeError):
        snapshot.initialized = True  # type: ignore[misc]


def test_reinitialize_replaces_record_and_keeps_stream(store: SessionStore) -> None:
    store.create_session("s1", None, None, {"tools": {}})
    stream = SessionStream("s1")
    store.bind_stream("s1", stream)
    store.update_metadata("s1", {"log_level": "debug"})
    store.mark_initialized("s1")

    replaced = store.create_session("s1", None, "2025-06-18", {"resources": {}})

    assert replaced.negotiated.tools is False
    assert replaced.negotiated.resources is True
    assert replaced.stream is stream
    assert replaced.metadata == {}
    assert replaced.initialized is False
    assert len(store) == 1


def test_remove_session_is_idempotent(store: SessionStore) -> None:
    store.create_session("s1", None, None, {})

    assert store.remove_session("s1") is not None
    assert store.remove_session("s1") is None
    assert "s1" not in store


def test_concurrent_removal_has_exactly_one_winner(store: SessionStore) -> None:
    store.create_session("s1", None, None, {})
    barrier = threading.Barrier(8)

    def remove():
        barrier.wait()
        return store.remove_session("s1")

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(lambda _: remove(), range(8)))

    assert sum(result is not None for result in results) == 1


def test_concurrent_recreate_and_metadata_updates_stay_consistent(store: SessionStore) -> None:
    capability_sets = [{"tools": {}}, {"resources": {}, "prompts": {}}, {"logging": {}, "sampling": {}}, {}]
    store.create_session("x", None, None, capability_sets[0])
    barrier = threading.Barrier(8)

    def worker(index: int) -> None:
        barrier.wait()
        for round_ in range(200):
            if index % 2:
                store.update_metadata("x", {"a": round_, "b": round_})
            else:
                store.create_session("x", None, None, capability_sets[(index + round_) % len(capability_sets)])

    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(worker, range(8)))

    final = store.peek("x")
    assert final is not None
    assert final.negotiated == negotiate(store.server_capabilities, final.client_capabilities)
    metadata = dict(final.metadata)
    assert metadata == {} or (set(metadata) == {"a", "b"} and metadata["a"] == metadata["b"])


def test_list_active_returns_snapshot_copy(store: SessionStore) -> None:
    store.create_session("s1", None, None, {})
    store.create_session("s2", None, None, {})

    active = store.list_active()
    store.remove_session("s1")

    assert sorted(session.id for session in active) == ["s1", "s2"]
    assert [session.id for session in store.list_active()] == ["s2"]


def test_clear_drops_everything(store: SessionStore) -> None:
    store.create_session("s1", None, None, {})
    store.create_session("s2", None, None, {})

    removed = store.clear()

    assert len(removed) == 2
    assert len(store) == 0


def test_client_info_from_params_is_lenient() -> None:
    assert ClientInfo.from_params(None) == ClientInfo()
    assert ClientInfo.from_params({"name": "x"}) == ClientInfo("x", "unknown")
