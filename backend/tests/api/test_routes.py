"""
HTTP surface tests.

Each test gets its own app built around injected services; ingest
processing and SportFengur calls are replaced with mocks.
"""

from unittest.mock import AsyncMock

import pytest
import respx
from fastapi.testclient import TestClient

from ridefeed.config import Settings
from ridefeed.features.leaderboard import normalize_leaderboard
from ridefeed.features.sportfengur import SportFengurAuthError, SportFengurHTTPError
from ridefeed.features.sportfengur.starting_lists import CachedStartingList, cache_key
from ridefeed.main import create_app
from ridefeed.services import build_services
from ridefeed.shared.constants import WEBHOOK_EVENTS, WEBHOOK_SECRET_HEADER

SECRET = "hook-secret"
API_KEY = "control-key"


def make_services(mock_ingest=True, **overrides):
    options = dict(
        sportfengur_base_url="https://sportfengur.test/api/v1",
        sportfengur_username="user",
        sportfengur_password="secret",
        webhook_secret=SECRET,
        webhook_secret_required=True,
        control_api_key=API_KEY,
    )
    options.update(overrides)
    services = build_services(Settings(**options))
    if mock_ingest:
        services.ingest.process = AsyncMock(return_value="processed")
    return services


@pytest.fixture
def services():
    return make_services()


@pytest.fixture
def client(services):
    with TestClient(create_app(services=services)) as test_client:
        yield test_client


@pytest.fixture
def populated(services, raw_rider):
    second = {"keppandi_numer": 12, "vallarnumer": 1, "saeti": 2, "knapi_nafn": "Bjarni"}
    services.state.update(1, normalize_leaderboard([second, raw_rider]), 999, 789)
    return services


def full_payload(event_name):
    values = {"eventId": 999, "classId": 789, "competitionId": 1, "published": "1"}
    return {field: values[field] for field in WEBHOOK_EVENTS[event_name]}


# =============================================================================
# Webhooks
# =============================================================================

class TestWebhookRoutes:

    def test_missing_secret_rejected(self, client, services):
        response = client.post("/event_einkunn_saeti", json=full_payload("event_einkunn_saeti"))
        assert response.status_code == 401
        services.ingest.process.assert_not_awaited()

    def test_wrong_secret_rejected(self, client):
        response = client.post(
            "/event_einkunn_saeti",
            json=full_payload("event_einkunn_saeti"),
            headers={"x-webhook-secret": "nope"},
        )
        assert response.status_code == 401

    @pytest.mark.parametrize("event_name", list(WEBHOOK_EVENTS))
    def test_every_event_acknowledged(self, client, services, event_name):
        response = client.post(
            f"/{event_name}",
            json=full_payload(event_name),
            headers={"x-webhook-secret": SECRET},
        )

        assert response.status_code == 200
        assert response.text == "received"
        services.ingest.process.assert_awaited_once()
        assert services.ingest.process.await_args.args[0] == event_name

    def test_missing_fields_listed(self, client, services):
        response = client.post(
            "/event_einkunn_saeti",
            json={"eventId": 999},
            headers={"x-webhook-secret": SECRET},
        )

        assert response.status_code == 400
        assert response.text == "Missing required fields: classId, competitionId"
        services.ingest.process.assert_not_awaited()

    def test_invalid_json_treated_as_empty(self, client):
        response = client.post(
            "/event_mot_skra",
            content=b"not json",
            headers={"x-webhook-secret": SECRET, "content-type": "application/json"},
        )
        assert response.status_code == 400
        assert response.text == "Missing required fields: eventId"

    def test_payload_aliases_normalized(self, client, services):
        response = client.post(
            "/event_einkunn_saeti",
            json={"event_id": "999", "classid": "789", "competition_id": 1},
            headers={"x-webhook-secret": SECRET},
        )

        assert response.status_code == 200
        payload = services.ingest.process.await_args.args[1]
        assert (payload["eventId"], payload["classId"], payload["competitionId"]) == (999, 789, 1)

    def test_secret_not_enforced_by_default(self):
        services = make_services(webhook_secret_required=False)
        with TestClient(create_app(services=services)) as client:
            response = client.post("/event_mot_skra", json={"eventId": 999})
        assert response.status_code == 200

    def test_filtered_event_acknowledged_without_refresh(self):
        services = make_services(mock_ingest=False, event_id_filter=1000)
        with TestClient(create_app(services=services)) as client:
            response = client.post(
                "/event_einkunn_saeti",
                json={"eventId": 999, "classId": 789, "competitionId": 1},
                headers={"x-webhook-secret": SECRET},
            )

            assert response.status_code == 200
            assert services.ingest.history.items()[0]["status"] == "filtered"
            assert services.coordinator.status() == {}
            assert services.state.read(1) == []

    def test_form_encoded_body_accepted(self, client, services):
        response = client.post(
            "/event_einkunn_saeti",
            data={"eventId": "999", "classId": "789", "competitionId": "1"},
            headers={WEBHOOK_SECRET_HEADER: SECRET},
        )

        assert response.status_code == 200
        assert response.text == "received"
        payload = services.ingest.process.await_args.args[1]
        assert (payload["eventId"], payload["classId"], payload["competitionId"]) == (999, 789, 1)

    def test_form_encoded_body_missing_fields(self, client):
        response = client.post(
            "/event_raslisti_birtur",
            data={"event_id": "999", "class_id": "789"},
            headers={WEBHOOK_SECRET_HEADER: SECRET},
        )

        assert response.status_code == 400
        assert response.text == "Missing required fields: published"

    def test_test_webhook(self, client):
        response = client.post("/webhooks/test", json={"anything": 1})
        assert response.status_code == 200
        assert response.text == "received"


# =============================================================================
# Leaderboards
# =============================================================================

class TestLeaderboardRoutes:

    def test_by_number_and_by_rank(self, client, populated):
        by_number = client.get("/forkeppni")
        by_rank = client.get("/forkeppni/sorted")

        assert by_number.status_code == 200
        assert by_number.headers["cache-control"] == "no-store"
        assert [r["Nr"] for r in by_number.json()] == ["1", "3"]
        assert [r["Saeti"] for r in by_rank.json()] == ["1", "2"]

    def test_matching_event(self, client, populated):
        response = client.get("/999/forkeppni/sorted")
        assert response.status_code == 200
        assert response.json()[0]["Knapi"] == "Jóhanna Guðmundsdóttir"

    def test_stale_event_is_404(self, client, populated):
        response = client.get("/998/forkeppni")

        assert response.status_code == 404
        assert response.json() == {
            "error": "No Forkeppni data available for this event",
            "requestedEventId": 998,
            "currentEventId": 999,
        }

    def test_invalid_event_id(self, client):
        response = client.get("/abc/forkeppni")
        assert response.status_code == 400
        assert response.json() == {"error": "Invalid event ID"}

    def test_never_populated_slot_is_empty(self, client, populated):
        assert client.get("/a").json() == []
        response = client.get("/999/b")
        assert response.status_code == 200
        assert response.json() == []

    def test_current(self, client, populated):
        assert len(client.get("/current").json()) == 2
        assert client.get("/current/999").status_code == 200

        response = client.get("/current/998")
        assert response.status_code == 404
        assert response.json()["error"] == "No data available for this event"

    def test_gait_results(self, client, services, raw_rider):
        services.state.update(2, normalize_leaderboard([raw_rider]), 999, 789)

        tables = client.get("/999/results/a").json()

        assert [t["gangtegundKey"] for t in tables] == ["tolt_frjals_hradi", "brokk"]
        assert client.get("/998/results/a").status_code == 404

    def test_csv(self, client, populated):
        response = client.get("/leaderboard.csv", params={"competitionId": 1})

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        lines = response.text.strip().split("\n")
        assert lines[0].startswith("Nr,Saeti,Holl")
        assert len(lines) == 3


# =============================================================================
# Control
# =============================================================================

class TestControlRoutes:

    def test_key_required(self, client):
        assert client.post("/cache/raslisti/clear").status_code == 401
        response = client.get("/config/event-filter", headers={"X-API-Key": "wrong"})
        assert response.status_code == 401

    def test_unconfigured_key(self):
        services = make_services(control_api_key=None)
        with TestClient(create_app(services=services)) as client:
            response = client.get("/control/webhooks", headers={"X-API-Key": "x"})
        assert response.status_code == 503

    def test_clear_starting_lists(self, client):
        response = client.post("/cache/raslisti/clear", headers={"X-API-Key": API_KEY})
        assert response.json() == {"status": "cleared", "removed": 0}

    def test_clear_one_starting_list(self, client, services):
        entries = services.starting_lists._entries
        entries[cache_key(789, 1)] = CachedStartingList(data=[], timestamp=0.0)
        entries[cache_key(789, 2)] = CachedStartingList(data=[], timestamp=0.0)
        headers = {"X-API-Key": API_KEY}

        response = client.post("/cache/raslisti/789/1/clear", headers=headers)
        assert response.json() == {"status": "cleared", "classId": 789, "competitionId": 1}
        assert cache_key(789, 1) not in services.starting_lists
        assert cache_key(789, 2) in services.starting_lists

        response = client.post("/cache/raslisti/789/1/clear", headers=headers)
        assert response.json()["status"] == "not_cached"

    def test_clear_one_starting_list_requires_key(self, client):
        assert client.post("/cache/raslisti/789/1/clear").status_code == 401

    def test_event_filter(self, client, services):
        headers = {"X-API-Key": API_KEY}

        assert client.get("/config/event-filter", headers=headers).json() == {"eventIdFilter": None}

        response = client.post("/config/event-filter", json={"eventIdFilter": "999"}, headers=headers)
        assert response.json() == {"eventIdFilter": 999}
        assert services.ingest.event_id_filter == 999

        response = client.post("/config/event-filter", json={"eventId": None}, headers=headers)
        assert response.json() == {"eventIdFilter": None}

    def test_event_filter_rejects_bad_input(self, client):
        headers = {"X-API-Key": API_KEY}
        assert client.post("/config/event-filter", json={}, headers=headers).status_code == 400
        response = client.post("/config/event-filter", json={"eventIdFilter": "abc"}, headers=headers)
        assert response.status_code == 400

    def test_webhook_history(self, client, services):
        services.ingest.history.push("processed", "event_mot_skra", {"eventId": 999})

        response = client.get("/control/webhooks", headers={"X-API-Key": API_KEY})

        assert response.headers["cache-control"] == "no-store"
        body = response.json()
        assert body["total"] == 1
        assert body["items"][0]["eventName"] == "event_mot_skra"


# =============================================================================
# SportFengur pass-through
# =============================================================================

class TestPassThroughRoutes:

    def test_participants(self, client, services):
        services.client.get_participants = AsyncMock(return_value={"res": [{"id": 1}]})

        response = client.get("/event/999/participants")

        assert response.status_code == 200
        assert response.json() == {"res": [{"id": 1}]}
        assert response.headers["cache-control"] == "public, max-age=300"
        services.client.get_participants.assert_awaited_once_with(999)

    def test_invalid_id(self, client):
        assert client.get("/event/abc/tests").status_code == 400

    @pytest.mark.parametrize("error,status", [
        (SportFengurHTTPError("/is/event/tests/999", 503), 502),
        (SportFengurHTTPError("/is/event/tests/999", None), 502),
        (SportFengurHTTPError("/is/event/tests/999", 404), 404),
        (SportFengurAuthError("Missing SportFengur credentials"), 503),
    ])
    def test_upstream_failures(self, client, services, error, status):
        services.client.get_event_tests = AsyncMock(side_effect=error)

        response = client.get("/event/999/tests")

        assert response.status_code == status
        assert response.json()["error"] == "Failed to fetch event tests"

    def test_non_json_upstream_body_is_502(self):
        services = make_services(min_fetch_interval_ms=0, fetch_max_retries=0)
        with respx.mock(base_url=services.client.base_url, assert_all_called=False) as mock:
            mock.post("/login").respond(200, json={"token": "t"})
            mock.get("/is/event/tests/5").respond(200, text="<html>maintenance</html>")

            with TestClient(create_app(services=services)) as client:
                response = client.get("/event/5/tests")

        assert response.status_code == 502
        assert response.json()["error"] == "Failed to fetch event tests"

    def test_non_json_login_body_is_503(self):
        services = make_services(min_fetch_interval_ms=0, fetch_max_retries=0)
        with respx.mock(base_url=services.client.base_url, assert_all_called=False) as mock:
            mock.post("/login").respond(200, text="<html>login</html>")

            with TestClient(create_app(services=services)) as client:
                response = client.get("/event/5/tests")

        assert response.status_code == 503
        assert "invalid JSON body" in response.json()["message"]

    def test_search_forwards_known_params_only(self, client, services):
        services.client.search_events = AsyncMock(return_value={"res": []})

        response = client.get("/events/search", params={"ar": "2024", "drop_table": "x"})

        assert response.status_code == 200
        services.client.search_events.assert_awaited_once_with({"ar": "2024"})


# =============================================================================
# Health
# =============================================================================

class TestHealth:

    def test_health(self, client):
        body = client.get("/health").json()

        assert body["status"] == "ok"
        assert body["lastWebhookAt"] is None
        assert body["refresh"] == {}
