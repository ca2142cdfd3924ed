import os

os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from todolist.db import get_db, init_db, make_engine
from todolist.main import app


@pytest.fixture()
def engine():
    eng = make_engine("sqlite://", poolclass=StaticPool)
    init_db(eng)
    yield eng
    eng.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False)


@pytest.fixture()
def client(session_factory):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture()
def register(client):
    """Register a user and return its auth headers."""

    def _register(username="alice", password="secret123"):
        resp = client.post("/api/auth/register", json={"username": username, "password": password})
        assert resp.status_code == 201, resp.text
        return {"Authorization": f"Bearer {resp.json()['token']}"}

    return _register


@pytest.fixture()
def alice(register):
    return register("alice")


@pytest.fixture()
def bob(register):
    return register("bob")


@pytest.fixture()
def make_list(client):
    def _make_list(headers, name="Work"):
        resp = client.post("/api/lists", json={"name": name}, headers=headers)
        assert resp.status_code == 201, resp.text
        return resp.json()

    return _make_list


@pytest.fixture()
def make_task(client):
    def _make_task(headers, list_id, title):
        resp = client.post(f"/api/lists/{list_id}/tasks", json={"title": title}, headers=headers)
        assert resp.status_code == 201, resp.text
        return resp.json()

    return _make_task
