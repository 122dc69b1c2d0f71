from __future__ import annotations

import time
from datetime import timedelta

from push_server.models.notification import DeliveryOutcome
from push_server.utils.time import iso_utc, utc_now

SUBSCRIPTION = {
    "endpoint": "https://push.example/a",
    "expirationTime": None,
    "keys": {"p256dh": "pub", "auth": "secret"},
}


def _subscribe(client, endpoint: str = "https://push.example/a") -> str:
    response = client.post("/api/subscribe", json={**SUBSCRIPTION, "endpoint": endpoint})
    assert response.status_code == 200
    assert response.json()["success"] is True
    return response.json()["subscriptionId"]


def test_subscribe_then_push_to_target(test_ctx) -> None:
    client = test_ctx["client"]
    subscription_id = _subscribe(client)

    response = client.post("/api/push", json={"title": "Hi", "body": "There", "subscriptionId": subscription_id})

    assert response.status_code == 200
    assert response.json() == {"success": True, "sent": 1, "failed": 0}
    assert test_ctx["repository"].get(subscription_id) is not None
    assert test_ctx["provider"].calls[0][1]["body"] == "There"


def test_push_to_gone_endpoint_evicts_it(test_ctx) -> None:
    client = test_ctx["client"]
    subscription_id = _subscribe(client, "https://push.example/gone")
    test_ctx["provider"].outcomes["https://push.example/gone"] = DeliveryOutcome.PERMANENT_FAILURE

    response = client.post("/api/push", json={"subscriptionId": subscription_id})

    assert response.json() == {"success": True, "sent": 0, "failed": 1}
    assert test_ctx["repository"].get(subscription_id) is None
    assert client.get("/api/scheduled").json()["subscriptionCount"] == 0


def test_push_to_unknown_subscription_is_a_no_op(test_ctx) -> None:
    client = test_ctx["client"]
    _subscribe(client)

    response = client.post("/api/push", json={"title": "Hi", "subscriptionId": "never-registered"})

    assert response.status_code == 200
    assert response.json() == {"success": True, "sent": 0, "failed": 0}
    assert test_ctx["provider"].calls == []


def test_broadcast_push_uses_defaults(test_ctx) -> None:
    client = test_ctx["client"]
    _subscribe(client, "https://push.example/a")
    _subscribe(client, "https://push.example/b")

    response = client.post("/api/push", json={})

    assert response.json()["sent"] == 2
    assert {payload["title"] for _, payload in test_ctx["provider"].calls} == {"📬 New message"}


def test_schedule_list_and_cancel(test_ctx) -> None:
    client = test_ctx["client"]
    fires_at = utc_now() + timedelta(minutes=10)

    created = client.post(
        "/api/schedule-push",
        json={"title": "Standup", "body": "Soon", "scheduledTime": fires_at.isoformat()},
    )
    assert created.status_code == 200
    body = created.json()
    assert body["success"] is True
    assert body["scheduledTime"] == iso_utc(fires_at)
    assert 595 <= body["delaySeconds"] <= 600

    listing = client.get("/api/scheduled").json()
    assert listing["tasks"] == [{"id": body["taskId"], "scheduledTime": iso_utc(fires_at), "title": "Standup"}]
    assert client.get("/api/health").json()["scheduledTasks"] == 1

    cancelled = client.delete(f"/api/scheduled/{body['taskId']}")
    assert cancelled.status_code == 200
    assert cancelled.json() == {"success": True}
    assert client.get("/api/scheduled").json()["tasks"] == []

    again = client.delete(f"/api/scheduled/{body['taskId']}")
    assert again.status_code == 404
    assert "error" in again.json()


def test_schedule_in_the_past_is_rejected(test_ctx) -> None:
    client = test_ctx["client"]

    response = client.post(
        "/api/schedule-push",
        json={"title": "Late", "scheduledTime": (utc_now() - timedelta(seconds=1)).isoformat()},
    )

    assert response.status_code == 400
    assert response.json() == {"error": "Scheduled time must be in the future"}
    assert client.get("/api/scheduled").json()["tasks"] == []


def test_scheduled_push_fires_and_disappears(test_ctx) -> None:
    client = test_ctx["client"]
    subscription_id = _subscribe(client)

    created = client.post(
        "/api/schedule-push",
        json={
            "title": "Ping",
            "scheduledTime": (utc_now() + timedelta(milliseconds=300)).isoformat(),
            "subscriptionId": subscription_id,
        },
    )
    assert created.status_code == 200

    deadline = time.monotonic() + 5
    while client.get("/api/scheduled").json()["tasks"] and time.monotonic() < deadline:
        time.sleep(0.05)
    while not test_ctx["provider"].calls and time.monotonic() < deadline:
        time.sleep(0.05)

    assert client.get("/api/scheduled").json()["tasks"] == []
    assert len(test_ctx["provider"].calls) == 1
    assert test_ctx["provider"].calls[0][1]["title"] == "Ping"


def test_cancel_unknown_task(test_ctx) -> None:
    response = test_ctx["client"].delete("/api/scheduled/does-not-exist")
    assert response.status_code == 404
    assert response.json() == {"error": "Scheduled task not found"}


def test_subscribe_accepts_wrongly_typed_descriptor(test_ctx) -> None:
    client = test_ctx["client"]

    response = client.post("/api/subscribe", json={"endpoint": 123, "keys": "nope"})

    assert response.status_code == 200
    subscription_id = response.json()["subscriptionId"]
    stored = test_ctx["repository"].get(subscription_id)
    assert stored.endpoint == 123
    assert stored.keys == "nope"


def test_subscribe_accepts_non_object_body(test_ctx) -> None:
    client = test_ctx["client"]

    response = client.post("/api/subscribe", json=["x"])

    assert response.status_code == 200
    stored = test_ctx["repository"].get(response.json()["subscriptionId"])
    assert stored.subscription_info()["raw"] == ["x"]


def test_push_to_malformed_subscription_counts_as_failed(test_ctx) -> None:
    client = test_ctx["client"]
    subscription_id = client.post("/api/subscribe", json=["x"]).json()["subscriptionId"]
    test_ctx["provider"].outcomes[""] = DeliveryOutcome.TRANSIENT_FAILURE

    response = client.post("/api/push", json={"subscriptionId": subscription_id})

    assert response.json() == {"success": True, "sent": 0, "failed": 1}
    assert test_ctx["repository"].get(subscription_id) is not None


def test_push_accepts_non_string_title_and_body(test_ctx) -> None:
    client = test_ctx["client"]
    _subscribe(client)

    response = client.post("/api/push", json={"title": 5, "body": {"text": "hi"}})

    assert response.status_code == 200
    assert response.json() == {"success": True, "sent": 1, "failed": 0}
    assert test_ctx["provider"].calls[0][1]["title"] == "5"


def test_push_accepts_non_object_body(test_ctx) -> None:
    client = test_ctx["client"]
    _subscribe(client)

    response = client.post("/api/push", json="hello")

    assert response.status_code == 200
    assert response.json()["sent"] == 1
    assert test_ctx["provider"].calls[0][1]["title"] == "📬 New message"


def test_unparseable_schedule_time_uses_error_envelope(test_ctx) -> None:
    client = test_ctx["client"]

    response = client.post("/api/schedule-push", json={"scheduledTime": "not-a-date"})

    assert response.status_code == 400
    payload = response.json()
    assert set(payload) == {"error"}
    assert "scheduledTime" in payload["error"]
    assert client.get("/api/scheduled").json()["tasks"] == []
