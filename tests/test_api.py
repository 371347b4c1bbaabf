# tests/test_api.py
"""
Tests for the REST service
"""

import logging

import pytest
from fastapi.testclient import TestClient

from dronegrid.api.main import app


@pytest.fixture
def client():
    client = TestClient(app)
    client.post("/api/v1/reset")
    return client


class TestQueries:

    def test_root(self, client):
        response = client.get("/")

        assert response.status_code == 200
        assert response.json()["status"] == "operational"

    def test_health(self, client):
        data = client.get("/health").json()

        assert data["status"] == "healthy"
        assert data["simulation_running"] is False

    def test_state_after_reset(self, client):
        data = client.get("/api/v1/state").json()

        assert data["tick"] == 0
        assert len(data["drones"]) == 16
        assert data["conflicts"] == []
        assert data["metrics"]["safety_score"] == 100.0
        assert data["metrics"]["flight_efficiency_score"] == 90.0

    def test_single_drone(self, client):
        data = client.get("/api/v1/drones/5").json()

        assert data["name"] == "D5"
        assert data["position"] == {"x": 0, "y": 1}
        assert data["assigned_layer"] == 4

    def test_unknown_drone_404(self, client):
        assert client.get("/api/v1/drones/17").status_code == 404

    def test_airspace(self, client):
        data = client.get("/api/v1/airspace").json()

        assert data["grid_size"] == 4
        assert len(data["docks"]) == 16
        assert len(data["targets"]) == 8
        assert len(data["layers"]) == 5
        assert len(data["quadrants"]) == 4

    def test_statistics(self, client):
        data = client.get("/api/v1/statistics").json()

        assert "engine" in data
        assert data["simulation"]["running"] is False


class TestFlightCommands:

    def test_start_flight_by_index(self, client):
        response = client.post("/api/v1/flights/start",
                               json={"drone_id": 2, "target_index": 4, "priority": "high"})
        data = response.json()

        assert response.status_code == 200
        assert data["accepted"] is True
        assert data["notification"]["kind"] == "flight-started"
        drone = data["state"]["drones"][1]
        assert drone["status"] == "taking-off"
        assert drone["target_position"]["description"] == "East Zone"
        assert len(drone["flight_path"]) == 5

    def test_start_flight_explicit_target(self, client):
        data = client.post("/api/v1/flights/start",
                           json={"drone_id": 6, "target": {"x": -4, "y": 1}}).json()

        assert data["accepted"] is True
        assert data["state"]["drones"][5]["flight_path"][-1] == {"x": -4, "y": 1}

    def test_busy_drone_not_accepted(self, client):
        client.post("/api/v1/flights/start", json={"drone_id": 2, "target_index": 4})
        data = client.post("/api/v1/flights/start",
                           json={"drone_id": 2, "target_index": 6}).json()

        assert data["accepted"] is False
        assert data["notification"]["kind"] == "drone-unavailable"

    def test_unknown_drone_404(self, client):
        response = client.post("/api/v1/flights/start", json={"drone_id": 99, "target_index": 0})
        assert response.status_code == 404

    @pytest.mark.parametrize("payload", [
        {"drone_id": 2},
        {"drone_id": 2, "target_index": 1, "target": {"x": 1, "y": 1}},
        {"drone_id": 2, "target_index": 8},
        {"drone_id": 2, "target_index": 1, "priority": "urgent"},
    ])
    def test_invalid_payload_422(self, client, payload):
        assert client.post("/api/v1/flights/start", json=payload).status_code == 422

    def test_same_layer_conflict(self, client):
        client.post("/api/v1/flights/start", json={"drone_id": 1, "target_index": 4})
        data = client.post("/api/v1/flights/start",
                           json={"drone_id": 5, "target_index": 4}).json()

        assert len(data["state"]["conflicts"]) >= 1
        assert data["state"]["drones"][0]["status"] == "emergency"

        conflicts = client.get("/api/v1/conflicts").json()
        assert conflicts["total_conflicts"] >= 1

    def test_queue_and_end(self, client):
        queued = client.post("/api/v1/flights/queue",
                             json={"drone_id": 7, "target_index": 2}).json()
        assert queued["accepted"] is True
        assert queued["state"]["metrics"]["queued_flights"] == 1

        ended = client.post("/api/v1/flights/end", json={"drone_id": 7}).json()
        assert ended["accepted"] is False
        assert ended["notification"]["kind"] == "flight-not-active"

    def test_end_active_flight(self, client):
        client.post("/api/v1/flights/start", json={"drone_id": 3, "target_index": 1})
        data = client.post("/api/v1/flights/end", json={"drone_id": 3}).json()

        assert data["accepted"] is True
        assert data["state"]["drones"][2]["status"] == "landing"
        assert data["state"]["metrics"]["completed_flights"] == 1

    def test_reset(self, client):
        client.post("/api/v1/flights/start", json={"drone_id": 2, "target_index": 4})
        data = client.post("/api/v1/reset").json()

        assert data["notification"]["kind"] == "system-reset"
        assert all(d["status"] == "idle" for d in data["state"]["drones"])

    def test_notifications_newest_first(self, client):
        client.post("/api/v1/flights/start", json={"drone_id": 2, "target_index": 4})
        data = client.get("/api/v1/notifications", params={"limit": 2}).json()

        assert len(data["notifications"]) == 2
        assert data["notifications"][0]["kind"] == "flight-started"


class TestSimulationEndpoints:

    def test_manual_tick(self, client):
        client.post("/api/v1/flights/start", json={"drone_id": 2, "target_index": 4})
        data = client.post("/api/v1/tick").json()

        assert data["tick"] == 2
        assert data["drones"][1]["status"] == "transition-up"

    def test_speed(self, client):
        accepted = client.post("/api/v1/simulation/speed", json={"speed": 4}).json()
        assert accepted["accepted"] is True
        assert accepted["simulation"]["speed"] == 4

        rejected = client.post("/api/v1/simulation/speed", json={"speed": 9}).json()
        assert rejected["accepted"] is False
        assert rejected["simulation"]["speed"] == 4

        client.post("/api/v1/simulation/speed", json={"speed": 1})

    def test_path_overlaps(self, client):
        client.post("/api/v1/flights/start", json={"drone_id": 2, "target_index": 4})
        client.post("/api/v1/flights/start", json={"drone_id": 3, "target_index": 4})

        data = client.get("/api/v1/path_overlaps").json()
        assert data["total_overlaps"] == 1

    def test_random_flights(self, client):
        data = client.post("/api/v1/simulation/random_flights", json={"num_requests": 3}).json()

        assert data["launched"] == 3
        assert len(data["flights"]) == 3
        assert len({f["drone_id"] for f in data["flights"]}) == 3

    def test_random_flights_bounds(self, client):
        response = client.post("/api/v1/simulation/random_flights", json={"num_requests": 17})
        assert response.status_code == 422


class TestStartup:

    def test_startup_hook_runs(self, caplog):
        """Serving the app configures logging and announces the resolver seed"""
        with caplog.at_level(logging.INFO, logger="dronegrid.api.main"):
            with TestClient(app) as client:
                assert client.get("/health").status_code == 200

        assert "Coordination service started" in caplog.text
