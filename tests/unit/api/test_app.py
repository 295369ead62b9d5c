"""Tests for the FastAPI app against in-memory backends."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from showingdesk.api.app import create_app
from showingdesk.core.config import AppSettings, EscalationConfig
from showingdesk.engine.factory import create_runtime
from showingdesk.models.preferences import Candidate, Handler, PreferenceList
from showingdesk.persistence import create_persistence
from tests.fakes import ManualClock, RecordingNotificationSink


@pytest.fixture
def runtime():
    settings = AppSettings(
        backend="memory",
        escalation=EscalationConfig(default_response_timeout_seconds=5, max_escalation_duration_seconds=0),
    )
    persistence = create_persistence(settings)
    persistence.preferences.put(PreferenceList(
        requester_id="listing-agent-1",
        candidates=[Candidate(handler_id="ava", rank=0), Candidate(handler_id="ben", rank=1)],
    ))
    persistence.directory.add(Handler(handler_id="xia"))
    return create_runtime(settings, persistence, RecordingNotificationSink(), ManualClock())


@pytest.fixture
def client(runtime):
    with TestClient(create_app(runtime)) as c:
        yield c


def _create(client, request_id: str = "sr-1"):
    return client.post("/requests", json={
        "requesterId": "listing-agent-1", "requestId": request_id, "payload": {"address": "12 Elm St"},
    })


class TestHealth:
    def test_health(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "healthy"}

    def test_ready_reports_backend(self, client):
        assert client.get("/ready").json() == {"status": "ready", "backend": "memory"}


class TestRequests:
    def test_create_assigns_first_candidate(self, client, runtime):
        resp = _create(client)

        assert resp.status_code == 201
        body = resp.json()
        assert body["status"] == "pending"
        assert body["assignedHandlerId"] == "ava"
        assert body["currentCandidateIndex"] == 0
        assert body["notifiedHandlers"] == ["ava"]
        assert body["escalationState"] == "assigned_to_candidate"
        assert runtime.notifier.handlers_for("sr-1") == ["ava"]

    def test_duplicate_create_conflicts(self, client):
        _create(client)
        assert _create(client).status_code == 409

    def test_get_unknown_is_404(self, client):
        assert client.get("/requests/ghost").status_code == 404

    def test_accept_stops_escalation(self, client, runtime):
        _create(client)

        resp = client.post("/requests/sr-1/accept", json={"handlerId": "ava"})

        body = resp.json()
        assert resp.status_code == 200
        assert body["status"] == "accepted"
        assert body["acceptedBy"] == "ava"
        assert body["acceptedAt"] is not None
        assert body["escalationState"] == "accepted"
        assert runtime.persistence.scheduler.pending("sr-1") == {}

    def test_second_accept_conflicts(self, client):
        _create(client)
        client.post("/requests/sr-1/accept", json={"handlerId": "ava"})
        resp = client.post("/requests/sr-1/accept", json={"handlerId": "ben"})
        assert resp.status_code == 409

    def test_complete_requires_acceptance(self, client):
        _create(client)
        assert client.post("/requests/sr-1/complete").status_code == 409

        client.post("/requests/sr-1/accept", json={"handlerId": "ava"})
        body = client.post("/requests/sr-1/complete").json()
        assert body["status"] == "completed"
        assert body["completedAt"] is not None

    def test_escalate_moves_to_next_then_public(self, client):
        _create(client)

        first = client.post("/requests/sr-1/escalate").json()
        second = client.post("/requests/sr-1/escalate").json()

        assert first["outcome"] == "advanced"
        assert first["request"]["assignedHandlerId"] == "ben"
        assert second["outcome"] == "went_public"
        assert second["request"]["isPublic"] is True
        assert second["request"]["assignedHandlerId"] == "xia"

    def test_escalate_unknown_is_404(self, client):
        assert client.post("/requests/ghost/escalate").status_code == 404


class TestAdmin:
    def test_preferences_in_rank_order(self, client):
        body = client.get("/admin/preferences/listing-agent-1").json()
        assert [c["handlerId"] for c in body["candidates"]] == ["ava", "ben"]

    def test_unknown_requester_has_no_candidates(self, client):
        assert client.get("/admin/preferences/nobody").json()["candidates"] == []

    def test_directory(self, client):
        body = client.get("/admin/directory").json()
        assert body["role"] == "showing_agent"
        assert [h["handlerId"] for h in body["handlers"]] == ["xia"]
