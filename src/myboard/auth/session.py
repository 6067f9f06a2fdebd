# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import logging
import os
import secrets
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional, Protocol, Tuple

from fastapi import Request, Response
from itsdangerous import BadSignature, BadTimeSignature, URLSafeTimedSerializer
from pymongo import ASCENDING
from pymongo.database import Database
from pymongo.errors import PyMongoError

from myboard.errors import StorageFault
from myboard.infra.mongo import SESSION_COLLECTION
from myboard.infra.user_repo import UserRecord

logger = logging.getLogger(__name__)

COOKIE_NAME = os.getenv("BOARD_COOKIE_NAME", "board_session")
DEFAULT_MAX_AGE_SECONDS = int(os.getenv("BOARD_SESSION_MAX_AGE", "28800"))  # 8 hours


def _serializer() -> URLSafeTimedSerializer:
    secret = os.getenv("SECRET_KEY") or os.getenv("BOARD_SECRET_KEY")
    if not secret:
        raise RuntimeError("SECRET_KEY (or BOARD_SECRET_KEY) is not set")
    salt = os.getenv("BOARD_SESSION_SALT", "myboard.session.v1")
    return URLSafeTimedSerializer(secret_key=secret, salt=salt)


def cookie_settings() -> dict:
    secure = os.getenv("BOARD_COOKIE_SECURE", "false").lower() in {"1", "true", "yes", "y"}
    return {"httponly": True, "samesite": "lax", "secure": secure}


def new_session_id() -> str:
    return secrets.token_urlsafe(32)


def sign_session(sid: str) -> str:
    return _serializer().dumps({"sid": sid})


def verify_session(token: str, *, max_age: int = DEFAULT_MAX_AGE_SECONDS) -> Optional[str]:
    """Return the session id carried by a cookie, or None if it is not ours."""
    if not token:
        return None
    s = _serializer()
    try:
        data = s.loads(token, max_age=max_age)
    except (BadSignature, BadTimeSignature):
        return None
    sid = str((data or {}).get("sid") or "").strip()
    return sid or None


# ------------------ Stores ------------------


class SessionStore(Protocol):
    """Server-side session state, keyed by session id."""

    def get(self, sid: str) -> Optional[Dict[str, Any]]:
        ...

    def save(self, sid: str, data: Dict[str, Any], max_age: int) -> None:
        ...

    def destroy(self, sid: str) -> None:
        ...


class InMemorySessionStore:
    """Process-local store; fine for a single worker and for tests."""

    def __init__(self):
        self._sessions: Dict[str, Tuple[float, Dict[str, Any]]] = {}
        self._lock = threading.Lock()

    def get(self, sid: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            entry = self._sessions.get(sid)
            if entry is None:
                return None
            expires_at, data = entry
            if expires_at <= time.time():
                del self._sessions[sid]
                return None
            return dict(data)

    def save(self, sid: str, data: Dict[str, Any], max_age: int) -> None:
        with self._lock:
            now = time.time()
            # Abandoned sessions are never read again, so reap them on write.
            expired = [k for k, (expires_at, _) in self._sessions.items() if expires_at <= now]
            for k in expired:
                del self._sessions[k]
            self._sessions[sid] = (now + max_age, dict(data))

    def destroy(self, sid: str) -> None:
        with self._lock:
            self._sessions.pop(sid, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)


class MongoSessionStore:
    """Sessions in a collection; MongoDB's TTL monitor reaps expired ones."""

    def __init__(self, database: Database):
        self._sessions = database[SESSION_COLLECTION]

    def ensure_indexes(self) -> None:
        try:
            self._sessions.create_index([("expires_at", ASCENDING)], expireAfterSeconds=0)
        except PyMongoError as e:
            raise StorageFault(str(e)) from e

    def get(self, sid: str) -> Optional[Dict[str, Any]]:
        now = datetime.now(timezone.utc)
        try:
            doc = self._sessions.find_one({"_id": sid})
        except PyMongoError as e:
            raise StorageFault(str(e)) from e
        if not doc:
            return None
        expires_at = doc.get("expires_at")
        if isinstance(expires_at, datetime):
            # The driver hands back naive UTC datetimes unless tz_aware is set.
            if expires_at.tzinfo is None:
                expires_at = expires_at.replace(tzinfo=timezone.utc)
            if expires_at <= now:
                return None
        return dict(doc.get("data") or {})

    def save(self, sid: str, data: Dict[str, Any], max_age: int) -> None:
        expires_at = datetime.now(timezone.utc) + timedelta(seconds=max_age)
        try:
            self._sessions.replace_one(
                {"_id": sid},
                {"_id": sid, "data": data, "expires_at": expires_at},
                upsert=True,
            )
        except PyMongoError as e:
            raise StorageFault(str(e)) from e

    def destroy(self, sid: str) -> None:
        try:
            self._sessions.delete_one({"_id": sid})
        except PyMongoError as e:
            raise StorageFault(str(e)) from e


def build_session_store(database: Database) -> SessionStore:
    backend = os.getenv("BOARD_SESSION_BACKEND", "memory").strip().lower()
    if backend == "mongo":
        store = MongoSessionStore(database)
        store.ensure_indexes()
        return store
    if backend != "memory":
        raise RuntimeError(f"Unknown BOARD_SESSION_BACKEND: {backend!r}")
    return InMemorySessionStore()


# ------------------ Manager ------------------


@dataclass
class SessionContext:
    """Per-request view of the client's session."""

    sid: Optional[str] = None
    data: Dict[str, Any] = field(default_factory=dict)


class SessionManager:
    def __init__(self, store: SessionStore, *, max_age: int = DEFAULT_MAX_AGE_SECONDS):
        self.store = store
        self.max_age = max_age

    def _call(self, what: str, fn: Callable[..., Any], *args: Any) -> Any:
        try:
            return fn(*args)
        except Exception as e:
            logger.exception("Session %s error", what)
            raise StorageFault(f"Session {what} error: {e}", public=f"Session {what} error") from e

    def load(self, request: Request) -> SessionContext:
        sid = verify_session(request.cookies.get(COOKIE_NAME, ""), max_age=self.max_age)
        if not sid:
            return SessionContext()
        data = self._call("load", self.store.get, sid)
        if data is None:
            return SessionContext()
        return SessionContext(sid=sid, data=data)

    def login(self, ctx: SessionContext, user: UserRecord, response: Response) -> None:
        previous = ctx.sid
        sid = new_session_id()
        data = {"user": user.as_document()}
        if previous:
            self._call("destroy", self.store.destroy, previous)
        self._call("save", self.store.save, sid, data, self.max_age)
        ctx.sid, ctx.data = sid, data
        response.set_cookie(COOKIE_NAME, sign_session(sid), max_age=self.max_age, **cookie_settings())

    def current_user(self, ctx: SessionContext) -> Optional[UserRecord]:
        raw = ctx.data.get("user")
        if not isinstance(raw, dict) or not raw.get("username"):
            return None
        return UserRecord.from_document(raw)

    def logout(self, ctx: SessionContext, response: Response) -> None:
        """Destroy server-side state; a failing store propagates as StorageFault."""
        if ctx.sid:
            self._call("destroy", self.store.destroy, ctx.sid)
        ctx.sid, ctx.data = None, {}
        response.delete_cookie(COOKIE_NAME)
