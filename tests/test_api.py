"""HTTP surface through FastAPI's TestClient, with the service container injected."""
import pytest
from fastapi.testclient import TestClient

from payday_notify.api.deps import get_services
from payday_notify.main import app

HEADERS = {"X-User-Id": "u1"}


@pytest.fixture
def client(services):
    # No lifespan: the test container (unstarted scheduler, fake channels) replaces the real one
    app.dependency_overrides[get_services] = lambda: services
    yield TestClient(app)
    app.dependency_overrides.clear()


def _publish_streak(client, count: int = 1, user_id: str = "u1"):
    return client.post(
        "/events/streak_achievement",
        json={"user_id": user_id, "streak_type": "monthly", "streak_count": count},
    )


def test_health(client) -> None:
    assert client.get("/health").json() == {"status": "ok"}


def test_publish_event_then_list_and_read(client, clock) -> None:
    r = _publish_streak(client)
    assert r.status_code == 202
    assert r.json()["type"] == "streak_achievement"
    clock.advance(seconds=1)
    _publish_streak(client, 2)

    body = client.get("/notifications", headers=HEADERS).json()
    assert body["unread_count"] == 2
    newest, oldest = body["notifications"]
    assert newest["metadata"]["streak_count"] == 2

    r = client.patch(f"/notifications/{oldest['id']}/read", headers=HEADERS)
    assert r.status_code == 200 and r.json()["ok"] is True
    assert client.get("/notifications/unread-count", headers=HEADERS).json()["unread_count"] == 1
    unread = client.get("/notifications", params={"unread_only": True}, headers=HEADERS).json()
    assert [n["id"] for n in unread["notifications"]] == [newest["id"]]

    r = client.post("/notifications/mark-all-read", headers=HEADERS)
    assert r.json()["marked_count"] == 1


def test_user_id_from_query_param(client) -> None:
    _publish_streak(client, user_id="u9")
    assert client.get("/notifications/unread-count", params={"user_id": "u9"}).json()["unread_count"] == 1


def test_other_users_notification_is_not_found(client) -> None:
    _publish_streak(client)
    [n] = client.get("/notifications", headers=HEADERS).json()["notifications"]
    assert client.patch(f"/notifications/{n['id']}/read", headers={"X-User-Id": "u2"}).status_code == 404
    assert client.delete(f"/notifications/{n['id']}", headers={"X-User-Id": "u2"}).status_code == 404
    assert client.delete(f"/notifications/{n['id']}", headers=HEADERS).json()["ok"] is True
    assert client.patch("/notifications/missing/read", headers=HEADERS).status_code == 404


def test_feed_is_drained_once(client) -> None:
    _publish_streak(client)
    body = client.get("/notifications/feed", headers=HEADERS).json()
    assert body["count"] == 1
    assert body["toasts"][0]["text"].startswith("🔥 🔥 Streak Achievement!")
    assert client.get("/notifications/feed", headers=HEADERS).json()["count"] == 0


def test_invalid_event(client) -> None:
    assert client.post("/events/birthday", json={"user_id": "u1"}).status_code == 422
    assert client.post("/events/streak_achievement", json={"user_id": "u1"}).status_code == 422


def test_missed_contribution_check(client) -> None:
    r = client.post(
        "/events/check-missed-contribution",
        json={"user_id": "u1", "expected_amount": 200, "actual_amount": 50, "month": "2025-01"},
    )
    assert r.json() == {"ok": True, "published": True}
    [n] = client.get("/notifications", headers=HEADERS).json()["notifications"]
    assert n["id"] == "missed_u1_2025-01"
    assert client.post("/events/check-missed-contribution", json={"user_id": "u1"}).status_code == 400


def test_preferences(client) -> None:
    prefs = client.get("/preferences", headers=HEADERS).json()
    assert prefs["streak_achievements"] is True
    assert prefs["quiet_hours"]["enabled"] is False

    r = client.patch("/preferences", json={"streak_achievements": False, "quiet_hours": {"enabled": True}}, headers=HEADERS)
    assert r.status_code == 200
    assert r.json()["quiet_hours"]["start_time"] == "22:00"
    _publish_streak(client)
    assert client.get("/notifications/unread-count", headers=HEADERS).json()["unread_count"] == 0

    assert client.patch("/preferences", json={"bogus": 1}, headers=HEADERS).status_code == 422
    r = client.patch("/preferences", json={"quiet_hours": {"end_time": "8am"}}, headers=HEADERS)
    assert r.status_code == 422


def test_push_registration_and_permission(client, repository) -> None:
    r = client.post("/push/register", json={"device_token": "abc123"}, headers=HEADERS)
    assert r.json() == {"ok": True, "message": "Token registered"}
    r = client.post("/push/register", json={"device_token": "abc123"}, headers=HEADERS)
    assert r.json()["message"] == "Token already registered"
    assert repository.list_push_tokens("u1") == ["abc123"]
    assert client.post("/push/permission", headers=HEADERS).json() == {"user_id": "u1", "granted": True}
    assert client.post("/push/unregister", json={"device_token": "abc123"}).json()["removed"] is True
    assert client.post("/push/register", json={"device_token": "x", "platform": "web"}).status_code == 422


def test_reminder_lifecycle(client) -> None:
    r = client.post("/reminders", json={"payday": "20", "expected_contribution": 150}, headers=HEADERS)
    assert r.status_code == 200
    body = r.json()
    assert body["state"] == "scheduled"
    assert body["reminder"]["occurrence"] == "2025-01-20"
    assert body["reminder"]["config"]["currency"] == "GBP"

    assert client.get("/reminders", headers=HEADERS).json()["state"] == "scheduled"
    assert client.delete("/reminders", headers=HEADERS).json()["state"] == "cancelled"
    assert client.delete("/reminders", headers=HEADERS).status_code == 404
    assert client.get("/reminders", headers={"X-User-Id": "nobody"}).json()["state"] == "idle"


def test_reminder_rejects_invalid_payday(client) -> None:
    assert client.post("/reminders", json={"payday": "someday"}, headers=HEADERS).status_code == 422


def test_payday_preview(client) -> None:
    r = client.get("/paydays/preview", params={"payday": "last-friday", "count": 2})
    body = r.json()
    assert body["payday"] == "last-friday"
    assert len(body["upcoming"]) == 2
    assert body["explanation"] == "You will be reminded on the last Friday of each month"
    assert client.get("/paydays/preview", params={"payday": "99"}).status_code == 422
    assert len(client.get("/paydays/options").json()["options"]) == 5


def test_profile_schedules_reminder(client) -> None:
    r = client.post(
        "/profile",
        json={"email": "u1@example.com", "payday": "last-working-day", "expected_contribution": 80},
        headers=HEADERS,
    )
    body = r.json()
    assert body["profile"]["email"] == "u1@example.com"
    assert body["reminder"]["occurrence"] == "2025-01-31"
    assert client.get("/profile", headers=HEADERS).json()["payday"] == "last-working-day"
    assert client.get("/profile", headers={"X-User-Id": "nobody"}).status_code == 404
