"""Shared pytest fixtures.

client     : TestClient on the app, backed by an in-memory mongomock database
             and a local blob store in tmp_path
auth       : query params carrying a fresh user's session token
register   : helper to sign up more users (other tenants, invitees)
"""

from __future__ import annotations

import mongomock
import pytest
from fastapi.testclient import TestClient

import database
import main
from storage import LocalFileStore


@pytest.fixture
def mongo(monkeypatch):
    db = mongomock.MongoClient().db
    monkeypatch.setattr(database, "db", db)
    return db


@pytest.fixture
def blob_store(tmp_path):
    return LocalFileStore(str(tmp_path / "blobs"))


@pytest.fixture
def client(mongo, blob_store):
    main.app.dependency_overrides[main.get_blob_store] = lambda: blob_store
    with TestClient(main.app) as c:
        yield c
    main.app.dependency_overrides.clear()


@pytest.fixture
def register(client):
    def _register(email="ana@example.com", name="Ana Durand", password="secret123", **extra):
        response = client.post("/auth/register", json={"name": name, "email": email, "password": password, **extra})
        assert response.status_code == 200, response.text
        return response.json()
    return _register


@pytest.fixture
def session(register):
    return register(company_name="Cuisines du Port")


@pytest.fixture
def auth(session):
    return {"token": session["token"]}


@pytest.fixture
def make_client(client, auth):
    def _make(**overrides):
        body = {
            "civility": "M.",
            "first_name": "Jean",
            "last_name": "Martin",
            "email": "jean.martin@example.com",
            "address": "8 Boulevard du Port 80000 Amiens",
            "city": "Amiens",
            "postcode": "80000",
            "category": "Marketing",
            "origin": "Site web",
            "sub_origin": "Chatbot",
        }
        body.update(overrides)
        response = client.post("/crm/clients", params=auth, json=body)
        assert response.status_code == 200, response.text
        return response.json()
    return _make
