"""Shared fixtures for Parley server tests."""

from __future__ import annotations

import os

import pytest
from fastapi.testclient import TestClient

from parley.server.app import create_app

_ENV = ("PARLEY_DATABASE_URL", "PARLEY_UPLOAD_DIR", "PARLEY_CORS_ORIGINS")


@pytest.fixture()
def app(tmp_path):
    """Create an app backed by a temporary database and upload dir."""
    os.environ["PARLEY_DATABASE_URL"] = f"sqlite+aiosqlite:///{tmp_path / 'test.db'}"
    os.environ["PARLEY_UPLOAD_DIR"] = str(tmp_path / "uploads")
    os.environ["PARLEY_CORS_ORIGINS"] = "http://localhost:3000"
    yield create_app()
    for name in _ENV:
        os.environ.pop(name, None)


@pytest.fixture()
def client(app):
    """Return a TestClient with lifespan triggered."""
    with TestClient(app) as c:
        yield c


def _register(client, name: str) -> dict:
    resp = client.post(
        "/api/users/register",
        json={"name": name.title(), "email": f"{name}@example.com"},
    )
    assert resp.status_code == 201, resp.text
    data = resp.json()["data"]
    return {
        "id": data["user"]["id"],
        "name": data["user"]["name"],
        "token": data["token"],
        "headers": {"Authorization": f"Bearer {data['token']}"},
    }


@pytest.fixture()
def registered_user(client):
    """Register a single user and return id, name, token and auth headers."""
    return _register(client, "alice")


@pytest.fixture()
def registered_pair(client):
    """Register alice and bob."""
    return _register(client, "alice"), _register(client, "bob")
