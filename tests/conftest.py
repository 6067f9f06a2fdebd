import os
import sys
from pathlib import Path as _Path
sys.path.insert(0, str(_Path(__file__).resolve().parents[1] / "src"))

import mongomock
import pytest
from fastapi.testclient import TestClient
from pymongo.errors import PyMongoError

from myboard.app import create_app
from myboard.auth.session import InMemorySessionStore, SessionManager


@pytest.fixture(autouse=True)
def board_env(monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    # Keep argon2 cheap; the default work factor makes the suite crawl.
    monkeypatch.setenv("BOARD_ARGON2_TIME_COST", "1")
    monkeypatch.setenv("BOARD_ARGON2_MEMORY_COST", "1024")


@pytest.fixture()
def database():
    return mongomock.MongoClient()["myboard"]


@pytest.fixture()
def session_store():
    return InMemorySessionStore()


@pytest.fixture()
def app(database, session_store):
    return create_app(database=database, sessions=SessionManager(session_store))


@pytest.fixture()
def client(app):
    return TestClient(app)


class _BrokenCollection:
    """Every driver call fails, as with a dropped connection."""

    def __getattr__(self, name):
        def _fail(*args, **kwargs):
            raise PyMongoError("connection reset by peer")

        return _fail


class BrokenDatabase:
    def __getitem__(self, name):
        return _BrokenCollection()


@pytest.fixture()
def broken_database():
    return BrokenDatabase()
