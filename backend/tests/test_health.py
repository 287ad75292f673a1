def test_health_endpoints(client):
    assert client.get("/api/v1/health").json() == {"status": "ok"}

    live = client.get("/api/v1/health/live")
    assert live.status_code == 200
    assert live.json()["status"] == "ok"

    ready = client.get("/api/v1/health/ready")
    assert ready.status_code == 200
    payload = ready.json()
    assert payload["status"] == "ok"
    assert payload["database"]["schema_ok"] is True
    assert payload["timetable"]["day_partitions"] == 6


def test_security_headers_are_set(client):
    response = client.get("/api/v1/health")

    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert response.headers["X-Frame-Options"] == "DENY"


def test_oversized_body_is_rejected(client, admin_headers):
    response = client.post(
        "/api/v1/timetable",
        content=b"x" * 2_000_000,
        headers={**admin_headers, "Content-Type": "application/json"},
    )

    assert response.status_code == 413
    assert response.json()["statusCode"] == 413
