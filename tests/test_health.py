def test_health(client):
    assert client.get("/api/health").json() == {"status": "ok"}


def test_health_needs_no_token(client):
    assert client.get("/api/health").status_code == 200
