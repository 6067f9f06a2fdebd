# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from pymongo import ASCENDING
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError, PyMongoError

from myboard.errors import DuplicateConflict, StorageFault
from myboard.infra.mongo import USER_COLLECTION

logger = logging.getLogger(__name__)

DUPLICATE_USERNAME = "Username already exists"


@dataclass(frozen=True)
class UserRecord:
    username: str
    password_hash: str

    @classmethod
    def from_document(cls, doc: dict) -> "UserRecord":
        return cls(username=str(doc["username"]), password_hash=str(doc.get("password_hash") or ""))

    def as_document(self) -> dict:
        return {"username": self.username, "password_hash": self.password_hash}

    def public(self) -> Dict[str, str]:
        return {"username": self.username}


class UserRepository:
    def __init__(self, database: Database):
        self._users = database[USER_COLLECTION]

    def ensure_indexes(self) -> None:
        """Unique index on username; the authoritative guard against racing signups."""
        try:
            self._users.create_index([("username", ASCENDING)], unique=True)
        except PyMongoError as e:
            logger.exception("Could not create user indexes")
            raise StorageFault(str(e)) from e

    def find_by_username(self, username: str) -> Optional[UserRecord]:
        try:
            doc = self._users.find_one({"username": username})
        except PyMongoError as e:
            logger.exception("Database query error")
            raise StorageFault(str(e)) from e
        return UserRecord.from_document(doc) if doc else None

    def create(self, username: str, password_hash: str) -> UserRecord:
        if self.find_by_username(username) is not None:
            raise DuplicateConflict(DUPLICATE_USERNAME)
        record = UserRecord(username=username, password_hash=password_hash)
        try:
            self._users.insert_one(record.as_document())
        except DuplicateKeyError as e:
            # Lost the race against a concurrent signup with the same name.
            raise DuplicateConflict(DUPLICATE_USERNAME) from e
        except PyMongoError as e:
            logger.exception("Database query error")
            raise StorageFault(str(e)) from e
        return record

    def list_public(self) -> List[Dict[str, str]]:
        try:
            docs = list(self._users.find({}, projection={"_id": False, "username": True}))
        except PyMongoError as e:
            logger.exception("Database query error")
            raise StorageFault(str(e)) from e
        return [{"username": str(d["username"])} for d in docs if "username" in d]
