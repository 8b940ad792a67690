"""
Integration tests for the Calendar API endpoints

Block grid, week entries, upsert/delete/status/toggle, validation and
gateway failure responses.
"""
from uuid import uuid4
from services.units import miles_to_meters


def put_entry(client, day, title="Easy run", **fields):
    return client.put("/calendar/entry", json={"date": day, "title": title, **fields})


class TestBlockEndpoint:
    """GET /calendar/block"""

    def test_block_from_any_day(self, client):
        response = client.get("/calendar/block", params={"start": "2024-03-13"})
        assert response.status_code == 200
        data = response.json()

        assert data["start_date"] == "2024-03-11"
        assert data["end_date"] == "2024-03-24"
        assert data["label"] == "Mar 11 - Mar 24"
        assert len(data["days"]) == 14
        assert len(data["weeks"]) == 2

    def test_synced_runs_show_in_cells(self, client):
        data = client.get("/calendar/block", params={"start": "2024-03-11"}).json()
        assert data["days"][0]["activity_count"] == 1
        assert data["days"][0]["completed_miles"] == 6.0
        assert data["weeks"][0]["completed_runs"] == 2

    def test_custom_length(self, client):
        data = client.get("/calendar/block", params={"start": "2024-03-11", "days": 7}).json()
        assert len(data["days"]) == 7
        assert len(data["weeks"]) == 1

    def test_bad_date_is_422(self, client):
        response = client.get("/calendar/block", params={"start": "13/03/2024"})
        assert response.status_code == 422
        assert response.json()["error_code"] == "VALIDATION_ERROR_DATE"


class TestEntryEndpoints:
    """PUT/DELETE/PATCH/POST on /calendar/entry"""

    def test_upsert_then_read_week(self, client):
        response = put_entry(client, "2024-03-12", planned_distance_meters=miles_to_meters(5), planned_pace_per_km=300)
        assert response.status_code == 200
        entry = response.json()["entry"]
        assert entry["title"] == "Easy run"
        assert entry["status"] == "planned"

        week = client.get("/calendar/week", params={"start": "2024-03-11"}).json()
        assert [e["id"] for e in week["entries"]] == [entry["id"]]

        block = client.get("/calendar/block", params={"start": "2024-03-11"}).json()
        cell = block["days"][1]
        assert cell["planned_miles"] == 5.0
        assert cell["planned_pace"] == "8:03"
        assert block["block_volume_miles"] == 5.0

    def test_upsert_same_date_overwrites(self, client):
        first = put_entry(client, "2024-03-12", planned_distance_meters=8000).json()["entry"]
        second = put_entry(client, "2024-03-12", title="Intervals", workout_type="interval").json()["entry"]

        assert second["id"] == first["id"]
        assert second["planned_distance_meters"] is None
        week = client.get("/calendar/week", params={"start": "2024-03-11"}).json()
        assert len(week["entries"]) == 1

    def test_blank_title_is_422(self, client):
        response = put_entry(client, "2024-03-12", title="  ")
        assert response.status_code == 422
        assert response.json()["error_code"] == "VALIDATION_ERROR_TITLE"

    def test_non_numeric_distance_is_422(self, client):
        response = put_entry(client, "2024-03-12", planned_distance_meters="ten")
        assert response.status_code == 422

    def test_pace_entered_per_mile(self, client):
        entry = put_entry(client, "2024-03-12", planned_pace="8:03").json()["entry"]
        assert entry["planned_pace_per_km"] == 300

    def test_malformed_pace_is_422(self, client):
        response = put_entry(client, "2024-03-12", planned_pace="eight")
        assert response.status_code == 422
        assert response.json()["error_code"] == "VALIDATION_ERROR_PLANNED_PACE"

    def test_unknown_field_is_422(self, client):
        assert put_entry(client, "2024-03-12", notes="hills").status_code == 422

    def test_body_is_documented(self, client):
        operation = client.get("/openapi.json").json()["paths"]["/calendar/entry"]["put"]
        body = operation["requestBody"]["content"]["application/json"]["schema"]
        assert body["$ref"].endswith("/CalendarEntryRequest")

    def test_delete(self, client):
        entry = put_entry(client, "2024-03-12").json()["entry"]
        assert client.delete(f"/calendar/entry/{entry['id']}").status_code == 204
        week = client.get("/calendar/week", params={"start": "2024-03-11"}).json()
        assert week["entries"] == []

    def test_delete_unknown_is_404(self, client):
        response = client.delete(f"/calendar/entry/{uuid4()}")
        assert response.status_code == 404
        assert response.json()["error_code"] == "NOT_FOUND"

    def test_set_status(self, client):
        entry = put_entry(client, "2024-03-12").json()["entry"]
        response = client.patch(f"/calendar/entry/{entry['id']}/status", json={"status": "completed"})
        assert response.status_code == 204
        week = client.get("/calendar/week", params={"start": "2024-03-11"}).json()
        assert week["entries"][0]["status"] == "completed"

    def test_missed_cannot_be_stored(self, client):
        entry = put_entry(client, "2024-03-12").json()["entry"]
        response = client.patch(f"/calendar/entry/{entry['id']}/status", json={"status": "missed"})
        assert response.status_code == 422

    def test_toggle(self, client):
        entry = put_entry(client, "2024-03-12").json()["entry"]
        url = f"/calendar/entry/{entry['id']}/toggle"

        toggled = client.post(url, params={"start": "2024-03-12"}).json()["entry"]
        assert toggled["status"] == "completed"
        toggled = client.post(url, params={"start": "2024-03-12"}).json()["entry"]
        assert toggled["status"] == "planned"

    def test_toggle_outside_block_is_404(self, client):
        entry = put_entry(client, "2024-03-12").json()["entry"]
        response = client.post(f"/calendar/entry/{entry['id']}/toggle", params={"start": "2024-06-03"})
        assert response.status_code == 404


class TestGatewayFailure:
    """Gateway down surfaces as 503, nothing half-written"""

    def test_block_is_503(self, client, gateway):
        gateway.set_available(False)
        response = client.get("/calendar/block", params={"start": "2024-03-11"})
        assert response.status_code == 503
        assert response.json()["error_code"] == "GATEWAY_UNAVAILABLE"

    def test_upsert_is_503(self, client, gateway):
        gateway.set_available(False)
        assert put_entry(client, "2024-03-12").status_code == 503
        gateway.set_available(True)
        week = client.get("/calendar/week", params={"start": "2024-03-11"}).json()
        assert week["entries"] == []
