from datetime import datetime, timedelta

from main import month_bounds
from schemas import utcnow


def test_history_records_actions_newest_first(client, auth_headers, client_id):
    client.post("/api/projects", headers=auth_headers, json={"title": "Studio tour"})
    body = client.get("/api/history", headers=auth_headers).json()
    assert [e["content"] for e in body["data"]] == ["Created project Studio tour", "Added client Acme Studios"]
    assert body["data"][0]["type"] == "project"


def test_history_filters_by_type(client, auth_headers, client_id):
    client.post("/api/projects", headers=auth_headers, json={"title": "Studio tour"})
    body = client.get("/api/history", headers=auth_headers, params={"type": "client"}).json()
    assert body["count"] == 1
    assert body["data"][0]["metadata"]["client_id"] == client_id


def test_history_rejects_unknown_type(client, auth_headers):
    assert client.get("/api/history", headers=auth_headers, params={"type": "secret"}).status_code == 400


def test_history_limit(client, auth_headers):
    for i in range(5):
        client.post("/api/projects", headers=auth_headers, json={"title": f"Project {i}"})
    body = client.get("/api/history", headers=auth_headers, params={"limit": 3}).json()
    assert body["count"] == 3
    assert body["data"][0]["content"] == "Created project Project 4"
    assert client.get("/api/history", headers=auth_headers, params={"limit": 0}).status_code == 400
    assert client.get("/api/history", headers=auth_headers, params={"limit": 500}).status_code == 400


def test_history_is_private(client, auth_headers, other_headers, client_id):
    assert client.get("/api/history", headers=other_headers).json()["count"] == 0


def test_month_bounds():
    assert month_bounds(datetime(2025, 2, 14, 9, 30)) == (datetime(2025, 2, 1), datetime(2025, 3, 1))
    assert month_bounds(datetime(2025, 12, 31, 23, 59)) == (datetime(2025, 12, 1), datetime(2026, 1, 1))


def test_analytics_for_new_user(client, auth_headers):
    body = client.get("/api/analytics", headers=auth_headers).json()
    assert body["success"] is True
    assert body["clients_count"] == 0
    assert body["tasks_due_this_month"] == 0
    assert body["pending_amount"] == 0
    assert body["projects_by_status"] == {"Idea": 0, "Scripted": 0, "Shot": 0, "Edited": 0, "Posted": 0}


def test_analytics_counts(client, auth_headers, other_headers, client_id):
    start, next_month = month_bounds(utcnow())

    for title, status in [("Idea one", "Idea"), ("Idea two", "Idea"), ("Posted one", "Posted")]:
        client.post("/api/projects", headers=auth_headers, json={"title": title, "status": status})

    this_month = (start + timedelta(hours=1)).isoformat()
    done_id = client.post("/api/tasks", headers=auth_headers,
                          json={"title": "Due soon", "due_date": this_month}).json()["data"]["id"]
    client.patch(f"/api/tasks/{done_id}/toggle", headers=auth_headers)
    client.post("/api/tasks", headers=auth_headers, json={"title": "Due this month", "due_date": this_month})
    client.post("/api/tasks", headers=auth_headers,
                json={"title": "Due next month", "due_date": next_month.isoformat()})

    for amount, due, paid in [(100, "2000-01-01T00:00:00", False), (250, "2099-01-01T00:00:00", False),
                              (400, "2000-01-01T00:00:00", True)]:
        client.post("/api/payments", headers=auth_headers,
                    json={"client_id": client_id, "amount": amount, "due_date": due, "paid": paid})

    body = client.get("/api/analytics", headers=auth_headers).json()
    assert body["clients_count"] == 1
    assert body["projects_count"] == 3
    assert body["tasks_due_this_month"] == 1
    assert body["payments_pending"] == 2
    assert body["payments_overdue"] == 1
    assert body["pending_amount"] == 350
    assert body["projects_by_status"]["Idea"] == 2
    assert body["projects_by_status"]["Posted"] == 1

    assert client.get("/api/analytics", headers=other_headers).json()["projects_count"] == 0
