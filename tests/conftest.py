import asyncio
import os

os.environ.setdefault("MONGODB_URI", "mongodb://localhost:27017/storefront_test")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("COD_CHECK_RATE_LIMIT", "1000")
os.environ.setdefault("COD_TIMEZONE", "Asia/Kolkata")

import pytest
from bson import ObjectId
from fastapi.testclient import TestClient
from mongomock_motor import AsyncMongoMockClient

from database import get_db
from utils.security import get_current_user


def run(coro):
    return asyncio.run(coro)


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def db():
    return AsyncMongoMockClient()["storefront_test"]


@pytest.fixture
def app(db):
    from main import app as fastapi_app

    fastapi_app.dependency_overrides[get_db] = lambda: db
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def admin_user():
    return {"_id": ObjectId(), "email": "admin@example.com", "role": "admin"}


@pytest.fixture
def buyer_user():
    return {"_id": ObjectId(), "email": "shopper@example.com", "role": "buyer"}


@pytest.fixture
def as_admin(app, admin_user):
    app.dependency_overrides[get_current_user] = lambda: admin_user
    return admin_user


@pytest.fixture
def as_buyer(app, buyer_user):
    app.dependency_overrides[get_current_user] = lambda: buyer_user
    return buyer_user


@pytest.fixture
def seed_cod(db):
    """Store a `cod` settings document the way the admin panel saves it."""

    def _seed(cod: dict, version: int = 1, **extra):
        run(db.settings.insert_one({
            "_id": "site",
            "cod": cod,
            "cod_version": version,
            **extra,
        }))

    return _seed
