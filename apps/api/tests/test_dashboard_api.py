"""
Integration tests for the dashboard and health endpoints
"""
import pytest
from fastapi.testclient import TestClient
from main import app
from core.gateway import get_dashboard_view, get_gateway
from services.dashboard_view import DashboardView
from conftest import NOW


@pytest.fixture
def dashboard_client(gateway):
    app.dependency_overrides[get_gateway] = lambda: gateway
    app.dependency_overrides[get_dashboard_view] = lambda: DashboardView(gateway, clock=lambda: NOW)
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


class TestHealth:

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


class TestDashboardEndpoint:
    """GET /dashboard"""

    def test_dashboard_payload(self, dashboard_client):
        response = dashboard_client.get("/dashboard")
        assert response.status_code == 200
        data = response.json()

        assert data["metrics"]["weekly_mileage_miles"] == 15.0
        assert data["metrics"]["weekly_mileage_target_miles"] == 39
        assert data["metrics"]["pace_diff_sec_per_mile"] == -66
        assert data["metrics"]["current_pace_label"] == "8:03"
        assert data["metrics"]["target_pace_label"] == "9:09"
        assert data["insight"]["rule_id"] == "ahead_of_pace"
        assert data["countdown"]["race_name"] == "City Marathon"
        assert data["countdown"]["total_days"] == 84
        assert data["goal_pace"] == "9:09"
        assert [z["zone"] for z in data["zones"]] == ["Z1", "Z2", "Z3", "Z4"]
        assert data["zones"][2]["pace_range"] == "9:29 - 8:59"
        assert data["readiness_label"] == "Building"
        assert len(data["weekly_volume"]) == 8
        assert len(data["pace_trend"]) == 3
        assert "X-Process-Time" in response.headers

    def test_empty_state(self, empty_gateway):
        app.dependency_overrides[get_dashboard_view] = lambda: DashboardView(empty_gateway, clock=lambda: NOW)
        try:
            data = TestClient(app).get("/dashboard").json()
        finally:
            app.dependency_overrides.clear()

        assert data["goal"] is None
        assert data["countdown"] is None
        assert data["insight"]["rule_id"] == "no_goal"
        assert data["metrics"]["readiness_score"] == 0
        assert data["metrics"]["current_pace_label"] == "--:--"
        assert data["zones"][0]["pace_range"] == "10:30 - 10:00"
        assert data["readiness_label"] == "Behind"

    def test_gateway_down_is_503(self, dashboard_client, gateway):
        gateway.set_available(False)
        response = dashboard_client.get("/dashboard")
        assert response.status_code == 503
        assert response.json()["error_code"] == "GATEWAY_UNAVAILABLE"
        assert response.headers["Retry-After"] == "5"

    def test_default_view_uses_app_gateway(self, client):
        # Wall-clock "now": only the shape is stable
        response = client.get("/dashboard")
        assert response.status_code == 200
        assert set(response.json()["metrics"]) >= {"readiness_score", "consistency_score", "days_to_race"}
