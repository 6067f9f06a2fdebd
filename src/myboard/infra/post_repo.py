# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import ReturnDocument
from pymongo.database import Database
from pymongo.errors import PyMongoError

from myboard.errors import StorageFault, ValidationError
from myboard.infra.mongo import POST_COLLECTION

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Post:
    id: str
    title: str
    content: str

    @classmethod
    def from_document(cls, doc: dict) -> "Post":
        return cls(id=str(doc["_id"]), title=doc.get("title", ""), content=doc.get("content", ""))

    def as_dict(self) -> dict:
        return {"_id": self.id, "title": self.title, "content": self.content}


def _object_id(post_id: str) -> Optional[ObjectId]:
    """Parse a client-supplied id; malformed ids are treated as absent."""
    try:
        return ObjectId(post_id)
    except (InvalidId, TypeError):
        return None


def _require_fields(title: Optional[str], content: Optional[str]) -> None:
    if not title or not content:
        raise ValidationError("Title and content are required")


class PostRepository:
    """CRUD over the ``post`` collection.

    Driver errors are logged here and re-raised as StorageFault so callers
    never see a PyMongoError.
    """

    def __init__(self, database: Database):
        self._posts = database[POST_COLLECTION]

    def list(self) -> List[Post]:
        try:
            docs = list(self._posts.find({}))
        except PyMongoError as e:
            logger.exception("Database query error")
            raise StorageFault(str(e)) from e
        return [Post.from_document(d) for d in docs]

    def get(self, post_id: str) -> Optional[Post]:
        oid = _object_id(post_id)
        if oid is None:
            return None
        try:
            doc = self._posts.find_one({"_id": oid})
        except PyMongoError as e:
            logger.exception("Database query error")
            raise StorageFault(str(e)) from e
        return Post.from_document(doc) if doc else None

    def create(self, title: Optional[str], content: Optional[str]) -> Post:
        _require_fields(title, content)
        try:
            result = self._posts.insert_one({"title": title, "content": content})
            doc = self._posts.find_one({"_id": result.inserted_id})
        except PyMongoError as e:
            logger.exception("Database query error")
            raise StorageFault(str(e)) from e
        if not doc:
            raise StorageFault(f"Inserted post {result.inserted_id} could not be read back")
        return Post.from_document(doc)

    def update(self, post_id: str, title: Optional[str], content: Optional[str]) -> Optional[Post]:
        _require_fields(title, content)
        oid = _object_id(post_id)
        if oid is None:
            return None
        try:
            doc = self._posts.find_one_and_update(
                {"_id": oid},
                {"$set": {"title": title, "content": content}},
                return_document=ReturnDocument.AFTER,
            )
        except PyMongoError as e:
            logger.exception("Database query error")
            raise StorageFault(str(e)) from e
        return Post.from_document(doc) if doc else None

    def delete(self, post_id: str) -> bool:
        oid = _object_id(post_id)
        if oid is None:
            return False
        try:
            result = self._posts.delete_one({"_id": oid})
        except PyMongoError as e:
            logger.exception("Database query error")
            raise StorageFault(str(e)) from e
        return result.deleted_count > 0
