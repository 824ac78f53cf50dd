"""HTTP surface tests through FastAPI's TestClient."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from hangouts.api.main import create_app

pytestmark = pytest.mark.unit

MONDAY_ISO = "2026-10-19"


@pytest.fixture
def client():
    with TestClient(create_app()) as test_client:
        yield test_client


def monday(hour: int, minute: int = 0) -> str:
    return f"{MONDAY_ISO}T{hour:02d}:{minute:02d}:00"


def configuration(**overrides) -> dict:
    body = {
        "dateRanges": [{"start": MONDAY_ISO, "end": MONDAY_ISO}],
        "timeRanges": [{"start": "09:00", "end": "12:00"}],
        "desiredDurationMinutes": 60,
        "desiredMarginMinutes": 0,
        "desiredMemberCount": 2,
    }
    body.update(overrides)
    return body


def add_busy(client: TestClient, user_id: str, start: str, end: str) -> str:
    response = client.post(
        f"/api/calendar/{user_id}/items",
        json={"title": "Busy", "start": start, "end": end},
    )
    assert response.status_code == 201
    return response.json()["data"]["id"]


class TestService:
    def test_root_lists_endpoints(self, client):
        body = client.get("/").json()

        assert body["service"] == "Hangout Scheduler"
        assert body["endpoints"]["hangouts"] == "/api/hangouts"

    def test_health_reports_ready_services(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


class TestCalendarRoutes:
    def test_store_list_and_delete_item(self, client):
        item_id = add_busy(client, "alice", monday(9), monday(10))

        items = client.get("/api/calendar/alice/items").json()["data"]
        assert [item["id"] for item in items] == [item_id]

        assert client.delete(f"/api/calendar/alice/items/{item_id}").status_code == 200
        missing = client.delete(f"/api/calendar/alice/items/{item_id}")
        assert missing.status_code == 404
        assert missing.json()["success"] is False
        assert missing.json()["error"]["code"] == "HTTP_ERROR"

    def test_update_item_moves_event(self, client):
        item_id = add_busy(client, "alice", monday(9), monday(10))

        response = client.put(
            f"/api/calendar/alice/items/{item_id}",
            json={"title": "Moved", "start": monday(13), "end": monday(14)},
        )

        assert response.status_code == 200
        assert response.json()["data"] == {"id": item_id}
        items = client.get("/api/calendar/alice/items").json()["data"]
        assert [(item["id"], item["title"], item["start"]) for item in items] == [
            (item_id, "Moved", monday(13))
        ]

    def test_update_unknown_item_is_not_found(self, client):
        response = client.put(
            "/api/calendar/alice/items/missing",
            json={"title": "Ghost", "start": monday(9), "end": monday(10)},
        )

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "HTTP_ERROR"
        assert client.get("/api/calendar/alice/items").json()["data"] == []

    def test_occurrences_expand_stored_stamps(self, client):
        client.post("/api/calendar/alice/items", json={
            "id": "standup",
            "title": "Standup",
            "start": monday(9),
            "end": monday(10),
            "isStamp": True,
            "repeatDays": ["MON", "WED"],
            "repeatEndDate": "2026-11-09",
        })

        response = client.get(
            "/api/calendar/alice/occurrences",
            params={"start": "2026-10-19T00:00:00", "end": "2026-10-28T00:00:00"},
        )

        ids = [occurrence["id"] for occurrence in response.json()["data"]]
        assert ids == ["standup_20261019", "standup_20261021", "standup_20261026", "standup_20261028"]

    def test_stateless_expand(self, client):
        response = client.post("/api/calendar/expand", json={
            "items": [{
                "id": "gym",
                "title": "Gym",
                "start": monday(18),
                "end": monday(19),
                "isStamp": True,
                "repeatDays": ["TUE"],
                "repeatEndDate": "2026-10-31",
            }],
            "windowStart": "2026-10-19T00:00:00",
            "windowEnd": "2026-10-25T00:00:00",
        })

        data = response.json()["data"]
        assert response.status_code == 200
        assert len(data) == 1
        assert data[0]["originalStampId"] == "gym"
        assert data[0]["occurrenceDate"] == "2026-10-20"

    def test_inverted_window_is_rejected(self, client):
        response = client.post("/api/calendar/expand", json={
            "items": [],
            "windowStart": "2026-10-25T00:00:00",
            "windowEnd": "2026-10-19T00:00:00",
        })

        assert response.status_code == 400


class TestAvailabilityRoutes:
    def test_project_clips_to_time_ranges(self, client):
        response = client.post("/api/availability/project", json={
            "items": [{"id": "dentist", "title": "Dentist", "start": monday(14), "end": monday(15)}],
            "dateRanges": [{"start": MONDAY_ISO, "end": MONDAY_ISO}],
            "timeRanges": [{"start": "14:30", "end": "17:00"}],
        })

        assert response.json()["data"] == [
            {"title": "Dentist", "start": monday(14, 30), "end": monday(15)}
        ]

    def test_project_without_time_ranges_is_rejected(self, client):
        response = client.post("/api/availability/project", json={
            "items": [],
            "dateRanges": [{"start": MONDAY_ISO, "end": MONDAY_ISO}],
            "timeRanges": [],
        })

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "INVALID_CONFIGURATION"

    def test_common_slots_around_busy_hour(self, client):
        response = client.post("/api/availability/common-slots", json={
            "configuration": configuration(
                timeRanges=[{"start": "09:00", "end": "17:00"}], desiredDurationMinutes=30
            ),
            "participants": [
                {"uid": "alice", "events": [{"title": "Busy", "start": monday(14), "end": monday(15)}]},
                {"uid": "bob"},
            ],
            "stepMinutes": 15,
        })

        slots = response.json()["data"]
        assert response.status_code == 200
        assert len(slots) == 26
        assert {"start": monday(13, 30), "end": monday(14), "availableParticipants": ["alice", "bob"]} in slots

    def test_step_below_minimum_is_rejected(self, client):
        response = client.post("/api/availability/common-slots", json={
            "configuration": configuration(),
            "participants": [{"uid": "alice"}, {"uid": "bob"}],
            "stepMinutes": 1,
        })

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "INVALID_CONFIGURATION"

    @pytest.mark.parametrize("overrides", [
        {"dateRanges": []},
        {"timeRanges": [{"start": "9am", "end": "17:00"}]},
        {"desiredDurationMinutes": 0},
        {"desiredMemberCount": 1},
        {"dateRanges": [{"start": "2026-01-01", "end": "2026-12-31"}]},
    ])
    def test_invalid_configuration_is_rejected(self, client, overrides):
        response = client.post("/api/availability/common-slots", json={
            "configuration": configuration(**overrides),
            "participants": [{"uid": "alice"}, {"uid": "bob"}],
        })

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "INVALID_CONFIGURATION"

    def test_missing_duration_fails_validation(self, client):
        body = configuration()
        del body["desiredDurationMinutes"]

        response = client.post("/api/availability/common-slots", json={"configuration": body})

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"


class TestHangoutRoutes:
    def create(self, client: TestClient) -> str:
        response = client.post("/api/hangouts", json={
            "creatorUid": "alice",
            "creatorName": "Alice",
            "requestName": "Coffee",
            "configuration": configuration(),
        })
        assert response.status_code == 201
        return response.json()["data"]["id"]

    def test_full_lifecycle(self, client):
        add_busy(client, "alice", monday(9), monday(10))
        add_busy(client, "bob", monday(11), monday(12))
        request_id = self.create(client)

        submitted = client.post(
            f"/api/hangouts/{request_id}/participants",
            json={"participantId": "bob", "displayName": "Bob"},
        ).json()["data"]
        assert submitted["status"] == "pending_calculation"

        calculated = client.post(f"/api/hangouts/{request_id}/calculate").json()["data"]
        assert calculated["status"] == "results_ready"
        slot = calculated["commonAvailabilitySlots"][0]
        assert (slot["start"], slot["end"]) == (monday(10), monday(11))

        listed = client.get("/api/hangouts", params={"user_id": "alice"}).json()["data"]
        assert [request["id"] for request in listed] == [request_id]

    def test_unknown_request_is_not_found(self, client):
        response = client.get("/api/hangouts/missing")

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "HANGOUT_NOT_FOUND"

    def test_only_creator_may_close(self, client):
        request_id = self.create(client)

        forbidden = client.post(f"/api/hangouts/{request_id}/close", json={"callerUid": "bob"})
        assert forbidden.status_code == 403
        assert forbidden.json()["error"]["code"] == "PERMISSION_DENIED"

        closed = client.post(f"/api/hangouts/{request_id}/close", json={"callerUid": "alice"})
        assert closed.json()["data"]["status"] == "closed"

        late = client.post(
            f"/api/hangouts/{request_id}/participants", json={"participantId": "carol"}
        )
        assert late.status_code == 409
        assert late.json()["error"]["code"] == "INVALID_STATE"

    def test_delete_request(self, client):
        request_id = self.create(client)

        assert client.delete(f"/api/hangouts/{request_id}", params={"caller_uid": "bob"}).status_code == 403
        assert client.delete(f"/api/hangouts/{request_id}", params={"caller_uid": "alice"}).status_code == 200
        assert client.get(f"/api/hangouts/{request_id}").status_code == 404
