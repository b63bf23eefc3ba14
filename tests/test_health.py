def test_healthy(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["services"] == {"database": "healthy", "auth": "healthy"}
    assert body["environment"]
    assert body["version"]


def test_degraded_when_auth_down(client, identity):
    identity.healthy = False
    response = client.get("/api/health")
    assert response.status_code == 503
    assert response.json()["services"]["auth"] == "unhealthy"


def test_degraded_when_database_down(client, db_session, monkeypatch):
    from app.domain.businesses.repository import BusinessRepository

    monkeypatch.setattr(
        BusinessRepository, "check_database_health", staticmethod(lambda db: (False, "connection refused"))
    )
    response = client.get("/api/health")
    assert response.status_code == 503
    assert response.json()["status"] == "unhealthy"
