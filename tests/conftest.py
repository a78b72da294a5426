import os

# Must be set before the application modules read their settings.
os.environ["DATABASE_URL"] = ""
os.environ["DATABASE_NAME"] = ""
os.environ["GEMINI_API_KEY"] = ""
os.environ["CLOUDINARY_URL"] = ""
os.environ["CLOUDINARY_CLOUD_NAME"] = ""
os.environ["ENVIRONMENT"] = "test"
os.environ["BCRYPT_ROUNDS"] = "4"

import itertools

import mongomock
import pytest
from fastapi.testclient import TestClient

import database
import gemini_client
import main
import media_storage as media_storage_module
from exceptions import StorageException


@pytest.fixture
def mongo(monkeypatch):
    mock_db = mongomock.MongoClient()["creatorflow_test"]
    monkeypatch.setattr(database, "db", mock_db)
    return mock_db


@pytest.fixture
def client(mongo):
    with TestClient(main.app) as c:
        yield c


@pytest.fixture
def make_user(client):
    def _make(email="ada@creator.io", name="Ada Creator", password="secret123"):
        response = client.post("/api/auth/register", json={"name": name, "email": email, "password": password})
        assert response.status_code == 201, response.text
        return {"Authorization": f"Bearer {response.json()['token']}"}
    return _make


@pytest.fixture
def auth_headers(make_user):
    return make_user()


@pytest.fixture
def other_headers(make_user):
    return make_user(email="grace@creator.io", name="Grace Other")


@pytest.fixture
def client_id(client, auth_headers):
    response = client.post("/api/clients", headers=auth_headers, json={
        "name": "Acme Studios",
        "niche": "Tech",
        "payment_rate": 250,
    })
    assert response.status_code == 201, response.text
    return response.json()["data"]["id"]


class FakeGemini:
    """Stands in for gemini_client.send_prompt."""

    def __init__(self):
        self.calls = []
        self.reply = []

    def __call__(self, prompt, **kwargs):
        self.calls.append((prompt, kwargs))
        if isinstance(self.reply, Exception):
            raise self.reply
        return self.reply


@pytest.fixture
def fake_gemini(monkeypatch):
    fake = FakeGemini()
    monkeypatch.setattr(gemini_client, "send_prompt", fake)
    return fake


class FakeStorage:
    def __init__(self):
        self.uploads = []
        self.deleted = []
        self.fail_delete = False
        self._ids = itertools.count(1)

    def upload(self, content, folder):
        n = next(self._ids)
        self.uploads.append((folder, len(content)))
        return {
            "secure_url": f"https://res.cloudinary.com/demo/image/upload/{folder}/pic{n}.png",
            "public_id": f"{folder}/pic{n}",
            "width": 640,
            "height": 480,
            "format": "png",
        }

    def delete(self, public_id):
        if self.fail_delete:
            raise StorageException("Failed to delete from image host", error="not found")
        self.deleted.append(public_id)
        return {"result": "ok"}


@pytest.fixture
def fake_storage(monkeypatch):
    fake = FakeStorage()
    storage = media_storage_module.media_storage
    monkeypatch.setattr(storage, "upload", fake.upload)
    monkeypatch.setattr(storage, "delete", fake.delete)
    return fake
