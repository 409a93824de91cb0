from __future__ import annotations


def test_health(client):
    response = client.get("/healthz")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_public_config(client):
    response = client.get("/config")
    assert response.status_code == 200
    body = response.json()
    assert body["description_min_length"] == 20
    assert body["description_max_length"] == 200
    assert body["invite_ttl_days"] == 7


def test_security_headers(client):
    response = client.get("/healthz")
    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert response.headers["X-Frame-Options"] == "DENY"
    assert response.headers["Cache-Control"] == "no-store"
