"""Unit tests for the in-memory backends."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from showingdesk.core.exceptions import RequestExistsError
from showingdesk.models.events import TimerMode, TimerToken
from showingdesk.models.preferences import Candidate, PreferenceList
from showingdesk.models.request import RecordPatch, RequestRecord, RequestStatus
from tests.fakes import MemoryPreferenceStore, MemoryRequestStore, MemoryTimerScheduler

NOW = datetime(2024, 1, 1, tzinfo=timezone.utc)


@pytest.fixture
def store():
    s = MemoryRequestStore()
    s.create(RequestRecord(id="sr-1", requester_id="listing-agent-1", created_at=NOW))
    return s


class TestMemoryRequestStore:
    def test_read_returns_copy(self, store):
        record = store.read("sr-1")
        record.notified_handlers.add("mallory")
        assert store.read("sr-1").notified_handlers == set()

    def test_duplicate_create_raises(self, store):
        with pytest.raises(RequestExistsError):
            store.create(RequestRecord(id="sr-1", requester_id="other", created_at=NOW))

    def test_compare_and_update_applies_and_bumps_version(self, store):
        ok = store.compare_and_update(
            "sr-1", {"current_candidate_index": None},
            RecordPatch(fields={"current_candidate_index": 0, "assigned_handler_id": "ava"},
                        notify=frozenset({"ava"})),
        )
        record = store.read("sr-1")
        assert ok
        assert record.assigned_handler_id == "ava"
        assert record.notified_handlers == {"ava"}
        assert record.version == 1

    def test_compare_and_update_conflict_leaves_record(self, store):
        ok = store.compare_and_update(
            "sr-1", {"status": RequestStatus.ACCEPTED},
            RecordPatch(fields={"assigned_handler_id": "ava"}),
        )
        assert not ok
        assert store.read("sr-1").version == 0

    def test_listeners_see_before_and_after(self, store):
        seen = []
        store.subscribe(lambda before, after: seen.append((before, after)))

        store.compare_and_update("sr-1", {}, RecordPatch(fields={"is_public": True}))
        store.create(RequestRecord(id="sr-2", requester_id="listing-agent-1", created_at=NOW))

        assert seen[0][0].is_public is False
        assert seen[0][1].is_public is True
        assert seen[1][0] is None
        assert seen[1][1].id == "sr-2"

    def test_listener_not_called_on_conflict(self, store):
        seen = []
        store.subscribe(lambda before, after: seen.append(after))
        store.compare_and_update("ghost", {}, RecordPatch(fields={"is_public": True}))
        assert seen == []


class TestMemoryPreferenceStore:
    def test_candidates_by_rank(self):
        prefs = MemoryPreferenceStore()
        prefs.put(PreferenceList(requester_id="r", candidates=[
            Candidate(handler_id="b", rank=2),
            Candidate(handler_id="a", rank=1),
        ]))
        assert [c.handler_id for c in prefs.get_candidates("r")] == ["a", "b"]
        assert prefs.get_candidates("unknown") == []


class TestMemoryTimerScheduler:
    def test_pop_due_orders_by_due_time(self):
        sched = MemoryTimerScheduler()
        late = TimerToken(request_id="sr-1", mode=TimerMode.CANDIDATE, index=0)
        early = TimerToken(request_id="sr-2", mode=TimerMode.PUBLIC, index=0)
        sched.schedule(late, NOW + timedelta(seconds=3))
        sched.schedule(early, NOW + timedelta(seconds=1))

        assert sched.pop_due(NOW) == []
        assert sched.pop_due(NOW + timedelta(seconds=3)) == [early, late]
        assert sched.pending() == {}

    def test_cancel_by_request(self):
        sched = MemoryTimerScheduler()
        sched.schedule(TimerToken(request_id="sr-1", mode=TimerMode.CANDIDATE, index=0), NOW)
        sched.schedule(TimerToken(request_id="sr-2", mode=TimerMode.CANDIDATE, index=0), NOW)

        sched.cancel("sr-1")

        assert list(sched.pending()) == [TimerToken(request_id="sr-2", mode=TimerMode.CANDIDATE, index=0)]


class TestProtocolConformance:
    def test_memory_backends_satisfy_protocols(self):
        from showingdesk.persistence import create_persistence
        from showingdesk.persistence.protocols import (
            ICacheBackend,
            IHandlerDirectory,
            IPreferenceStore,
            IRequestStore,
            ITimerScheduler,
        )

        p = create_persistence()
        assert isinstance(p.requests, IRequestStore)
        assert isinstance(p.preferences, IPreferenceStore)
        assert isinstance(p.directory, IHandlerDirectory)
        assert isinstance(p.cache, ICacheBackend)
        assert isinstance(p.scheduler, ITimerScheduler)
