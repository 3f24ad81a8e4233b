"""Tests for weekly review, stats, sync and support endpoints."""

import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))
os.environ.setdefault("DATABASE_URL", "sqlite://")

from unittest.mock import AsyncMock, patch


def test_stats_default_for_new_user(client, make_user, headers_for):
    resp = client.get("/api/v1/stats", headers=headers_for(make_user().id))
    assert resp.status_code == 200
    data = resp.json()
    assert data["points"] == 0
    assert data["level"] == "starter"
    assert data["points_to_next_level"] == 100
    assert data["achievements"] == []


def test_weekly_review_shape(client, make_user, headers_for):
    headers = headers_for(make_user().id)
    client.post("/api/v1/tasks", json={"title": "a", "lane": "soon"}, headers=headers)
    done = client.post("/api/v1/tasks", json={"title": "b"}, headers=headers).json()
    client.post(f"/api/v1/tasks/{done['id']}/complete", headers=headers)

    resp = client.get("/api/v1/review/weekly", headers=headers)
    assert resp.status_code == 200
    data = resp.json()
    assert data["counts"] == {"now": 0, "soon": 1, "later": 0, "park": 0}
    assert set(data["stale"]) == {"now", "soon", "later", "park"}
    assert data["stale_total"] == 0
    assert data["park_overloaded"] is False
    assert [t["id"] for t in data["completed_this_week"]] == [done["id"]]
    assert data["week"]["tasks_completed"] == 1
    assert data["stats"]["points"] == 10


def test_sync_first_insert_wins(client, make_user, headers_for):
    headers = headers_for(make_user().id)
    payload = {
        "tasks": [
            {
                "id": "local-1",
                "title": "Offline task",
                "lane": "later",
                "subtasks": [{"id": "local-1-s1", "title": "step"}],
            }
        ],
        "contacts": [{"id": "c-1", "name": "Sam"}],
        "stats": {"points": 99999},
    }
    first = client.post("/api/v1/sync", json=payload, headers=headers)
    assert first.status_code == 200
    data = first.json()
    assert (data["tasks_inserted"], data["contacts_inserted"]) == (1, 1)
    assert data["stats"]["points"] == 0

    second = client.post("/api/v1/sync", json=payload, headers=headers).json()
    assert (second["tasks_skipped"], second["contacts_skipped"]) == (1, 1)

    task = client.get("/api/v1/tasks/local-1", headers=headers).json()
    assert task["lane"] == "later"
    assert [s["title"] for s in task["subtasks"]] == ["step"]


def test_support_contact(client, make_user, headers_for):
    user = make_user(email="help-me@example.com")
    sender = AsyncMock(return_value=True)
    with patch("app.api.v1.support.send_support_message", sender):
        resp = client.post(
            "/api/v1/support/contact",
            json={"subject": " Bug ", "message": "It broke"},
            headers=headers_for(user.id),
        )
    assert resp.status_code == 200
    assert resp.json() == {"delivered": True}
    sender.assert_awaited_once_with("help-me@example.com", "Bug", "It broke")
