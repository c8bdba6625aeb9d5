import os

os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ.setdefault("JWT_SECRET", "test-secret")

import mongomock
import pytest
from fastapi.testclient import TestClient

import admin
import auth
import blog
import config
import contact
import database
import main
import notifications
import projects
import seo
import uploads

DB_MODULES = (database, auth, contact, notifications, projects, blog, seo, admin, main)


@pytest.fixture(autouse=True)
def mongo(monkeypatch):
    mock_db = mongomock.MongoClient()["interior-design-test"]
    for module in DB_MODULES:
        monkeypatch.setattr(module, "db", mock_db)
    return mock_db


@pytest.fixture(autouse=True)
def data_dir(tmp_path, monkeypatch):
    path = tmp_path / "data"
    monkeypatch.setattr(config, "DATA_DIR", str(path))
    monkeypatch.setattr(config, "UPLOAD_TMP_DIR", str(tmp_path / "tmp"))
    return path


@pytest.fixture
def cloudinary_uploads(monkeypatch):
    uploaded = []

    def fake_upload(path, **kwargs):
        name = os.path.basename(path)
        uploaded.append({"name": name, "folder": kwargs.get("folder")})
        return {"secure_url": f"https://res.cloudinary.com/studio/image/upload/{name}", "public_id": name}

    monkeypatch.setattr(uploads.cloudinary.uploader, "upload", fake_upload)
    return uploaded


@pytest.fixture
def client():
    return TestClient(main.app)


def make_user(role="user", permissions=None, username=None, email=None, is_active=True):
    username = username or f"{role}-{database.db['user'].count_documents({}) + 1}"
    email = email or f"{username}@studio.com"
    doc = auth.new_user_doc(username, email, "secret123", role, permissions)
    doc["is_active"] = is_active
    uid = database.create_document("user", doc)
    return database.get_document("user", uid)


def headers_for(user):
    return {"Authorization": f"Bearer {auth.token_for(user)}"}


@pytest.fixture
def superadmin():
    return make_user("superadmin", username="owner")


@pytest.fixture
def admin_user():
    return make_user("admin", username="staff")


@pytest.fixture
def plain_user():
    return make_user("user", username="visitor")


@pytest.fixture
def superadmin_headers(superadmin):
    return headers_for(superadmin)


@pytest.fixture
def admin_headers(admin_user):
    return headers_for(admin_user)


@pytest.fixture
def user_headers(plain_user):
    return headers_for(plain_user)
