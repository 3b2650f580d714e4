from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from jose import jwt

from songorders.api import deps
from songorders.config import settings
from songorders.domain.enums import OrderStatus
from songorders.main import app

SECRET = "test-jwt-secret"
SERVICE = "svc-shared-secret"


@pytest.fixture
def client(monkeypatch, pipeline, approval, transitions, dispatcher, make_sweep):
    monkeypatch.setattr(settings, "JWT_SECRET", SECRET)
    monkeypatch.setattr(settings, "SVC_TO_SVC_BEARER", f"Bearer {SERVICE}")

    app.dependency_overrides[deps.get_pipeline] = lambda: pipeline
    app.dependency_overrides[deps.get_approval] = lambda: approval
    app.dependency_overrides[deps.get_transitions] = lambda: transitions
    app.dependency_overrides[deps.get_dispatcher] = lambda: dispatcher
    app.dependency_overrides[deps.get_sweep] = lambda: make_sweep(pipeline)
    yield TestClient(app)
    app.dependency_overrides.clear()


def user_headers(user_id):
    token = jwt.encode(
        {"sub": str(user_id), "iss": settings.JWT_ISSUER, "aud": settings.JWT_AUDIENCE},
        SECRET,
        algorithm="HS256",
    )
    return {"Authorization": f"Bearer {token}"}


def service_headers(actor=None):
    headers = {"Authorization": f"Bearer {SERVICE}"}
    if actor:
        headers["X-Actor-User-Id"] = str(actor)
    return headers


BRIEF = {"occasion": "Birthday", "style": "Pop", "story_raw": "Our dog Biscuit learned to skateboard."}


def test_health(client):
    r = client.get("/api/health")
    assert r.status_code == 200
    assert r.json()["status"] == "ok"


def test_token_is_required(client):
    assert client.post("/api/orders", json=BRIEF).status_code == 401
    r = client.post("/api/orders", json=BRIEF, headers={"Authorization": "Bearer not-a-jwt"})
    assert r.status_code == 401


def test_create_and_read_order(client):
    user_id = uuid4()
    r = client.post("/api/orders", json=BRIEF, headers=user_headers(user_id))
    assert r.status_code == 201
    order = r.json()
    assert order["status"] == "DRAFT"
    assert order["user_id"] == str(user_id)

    r = client.get(f"/api/orders/{order['id']}", headers=user_headers(user_id))
    assert r.status_code == 200
    assert r.json()["lyrics"] == []

    r = client.get(f"/api/orders/{order['id']}", headers=user_headers(uuid4()))
    assert r.status_code == 404
    assert r.json()["detail"] == "order_not_found"


def test_rejected_story_maps_to_422(client):
    r = client.post("/api/orders", json={**BRIEF, "story_raw": "puta que pariu"}, headers=user_headers(uuid4()))
    assert r.status_code == 422
    assert r.json()["detail"] == "content_rejected"
    assert "puta" in r.json()["terms"]


def test_internal_routes_need_service_token(client, store):
    order = store.seed_order(status=OrderStatus.AWAITING_PAYMENT)
    r = client.post(
        f"/api/internal/orders/{order.id}/events",
        json={"target_status": "PAID"},
        headers=user_headers(order.user_id),
    )
    assert r.status_code == 403


def test_payment_event_kicks_generation(client, store):
    order = store.seed_order(status=OrderStatus.AWAITING_PAYMENT)

    r = client.post(f"/api/internal/orders/{order.id}/events", json={"target_status": "PAID"}, headers=service_headers())

    assert r.status_code == 200
    assert r.json() == {
        "order_id": str(order.id),
        "status": "PAID",
        "changed": True,
        "generation_scheduled": True,
    }
    # background task has run by the time the test client returns
    assert len(store.lyrics_for(order.id)) == 2
    assert store.orders[order.id].status == OrderStatus.LYRICS_GENERATED


def test_invalid_event_maps_to_409(client, store):
    order = store.seed_order(status=OrderStatus.DRAFT)
    r = client.post(
        f"/api/internal/orders/{order.id}/events", json={"target_status": "COMPLETED"}, headers=service_headers()
    )
    assert r.status_code == 409
    assert r.json()["detail"] == "invalid_transition"


def test_generate_then_approve_twice(client, store):
    order = store.seed_order()
    headers = user_headers(order.user_id)

    r = client.post(f"/api/orders/{order.id}/lyrics/generate", headers=headers)
    assert r.status_code == 200
    assert r.json()["created"] is True
    lyric_ids = r.json()["lyric_ids"]

    r = client.post(f"/api/orders/{order.id}/lyrics/{lyric_ids[1]}/approve", headers=headers)
    assert r.status_code == 200
    assert r.json()["version"] == 2
    assert r.json()["track"]["status"] == "queued"

    r = client.post(f"/api/orders/{order.id}/lyrics/{lyric_ids[0]}/approve", headers=headers)
    assert r.status_code == 409
    assert r.json()["detail"] == "already_approved"
    assert len(store.tracks) == 1


def test_service_token_can_act_for_a_user(client, store):
    order = store.seed_order()

    r = client.get(f"/api/orders/{order.id}", headers=service_headers(actor=order.user_id))
    assert r.status_code == 200

    r = client.get(f"/api/orders/{order.id}", headers=service_headers())
    assert r.status_code == 401


def test_recovery_sweep_route(client, store):
    store.seed_order()
    r = client.post("/api/internal/recovery/sweep", headers=service_headers())
    assert r.status_code == 200
    assert r.json()["processed"] == 1


def test_direct_push_without_subscriptions(client):
    r = client.post(
        "/api/internal/notifications/push",
        json={"recipient_id": str(uuid4()), "title": "Hello", "body": "World"},
        headers=service_headers(),
    )
    assert r.status_code == 200
    assert r.json()["status"] == "no_subscriptions"


def test_push_requires_title_and_body(client):
    r = client.post("/api/internal/notifications/push", json={"title": "only"}, headers=service_headers())
    assert r.status_code == 422


def test_vapid_public_key_is_public(client, monkeypatch):
    monkeypatch.setattr(settings, "VAPID_PUBLIC_KEY", "BPub-key")
    r = client.get("/api/notifications/vapid-public-key")
    assert r.status_code == 200
    assert r.json() == {"public_key": "BPub-key"}

    monkeypatch.setattr(settings, "VAPID_PUBLIC_KEY", "")
    r = client.get("/api/notifications/vapid-public-key")
    assert r.status_code == 404
    assert r.json()["detail"] == "push_not_configured"
