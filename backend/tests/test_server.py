# backend/tests/test_server.py

"""
API tests for the calculator server

Tests cover:
- Health endpoint
- Calculate / preview / history routes per domain
- Classified errors surface as HTTP 400
- Unknown domain → 404
"""

import pytest
import sys
from pathlib import Path

from fastapi.testclient import TestClient

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from server import app, get_session
from calculator_session import CalculatorSession


@pytest.fixture
def session():
    return CalculatorSession()


@pytest.fixture
def client(session):
    """Test client bound to a fresh session"""
    app.dependency_overrides[get_session] = lambda: session
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestHealth:

    def test_health(self, client):
        response = client.get("/api/health")

        assert response.status_code == 200
        body = response.json()
        assert body["ok"] is True
        assert body["version"] == "1.0.0"

    def test_cors_preflight(self, client):
        headers = {
            "Origin": "http://localhost:3000",
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "Content-Type"
        }
        response = client.options("/api/length/calculate", headers=headers)

        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == "http://localhost:3000"


class TestCalculateRoutes:
    """Test calculation endpoints"""

    def test_calculate_length(self, client):
        response = client.post("/api/length/calculate", json={"expression": "2FT + 3IN"})

        assert response.status_code == 200
        body = response.json()
        assert body["result"]["status"] == "SUCCESS"
        assert body["result"]["formatted"] == "2' 3\""
        assert body["result"]["display"]["inches"] == "27.000"
        assert [entry["equation"] for entry in body["history"]] == ["2FT + 3IN"]

    def test_calculate_weight(self, client):
        response = client.post("/api/weight/calculate", json={"expression": "5 lb 8 oz"})

        assert response.status_code == 200
        assert response.json()["result"]["formatted"] == "5 lb 8.000 oz"

    def test_history_capacity(self, client):
        for expression in ("1FT", "2FT", "3FT"):
            client.post("/api/length/calculate", json={"expression": expression})

        response = client.get("/api/length/history")

        assert response.status_code == 200
        body = response.json()
        assert [entry["equation"] for entry in body["history"]] == ["3FT", "2FT"]
        assert body["last_result"]["raw_input"] == "3FT"

    def test_classified_error(self, client):
        response = client.post("/api/length/calculate", json={"expression": "1/0"})

        assert response.status_code == 400
        assert response.json()["detail"][0]["error_code"] == "INVALID_FRACTION"
        assert client.get("/api/length/history").json()["history"] == []

    def test_empty_expression_skipped(self, client):
        response = client.post("/api/length/calculate", json={"expression": ""})

        assert response.status_code == 200
        assert response.json()["result"]["status"] == "SKIPPED"
        assert response.json()["history"] == []

    def test_preview_does_not_record(self, client):
        response = client.post("/api/weight/preview", json={"expression": "1 KG"})

        assert response.status_code == 200
        assert response.json()["result"]["formatted"] == "2 lb 3.274 oz"
        assert response.json()["history"] == []

    def test_clear_history(self, client):
        client.post("/api/weight/calculate", json={"expression": "1 KG"})
        response = client.delete("/api/weight/history")

        assert response.status_code == 200
        assert client.get("/api/weight/history").json()["history"] == []

    def test_unknown_domain(self, client):
        response = client.post("/api/volume/calculate", json={"expression": "1"})

        assert response.status_code == 404
