from fastapi.testclient import TestClient

import main


def test_root(client):
    assert client.get("/").json() == {"success": True, "message": "CreatorFlow API is running!"}


def test_health_reports_connected_database(client, mongo):
    body = client.get("/api/health").json()
    assert body["backend"] == "running"
    assert body["database"] == "connected"
    assert body["database_name"] == "creatorflow_test"
    assert body["gemini"] == "not configured"
    assert body["image_storage"] == "not configured"


def test_auth_router_smoke(client):
    assert client.get("/api/auth/test").json()["success"] is True


def test_unknown_route(client):
    response = client.get("/api/nothing-here")
    assert response.status_code == 404
    assert response.json() == {"success": False, "message": "Route not found"}


def test_missing_token_envelope(client):
    response = client.get("/api/projects")
    assert response.status_code == 401
    assert response.json() == {"success": False, "message": "Not authorized, no token provided"}


def test_routes_without_database():
    with TestClient(main.app) as c:
        assert c.get("/api/health").json()["database"] == "not configured"
        response = c.post("/api/auth/register",
                          json={"name": "Ada", "email": "ada@creator.io", "password": "secret123"})
    assert response.status_code == 500
    assert response.json()["message"] == "Database not configured"
