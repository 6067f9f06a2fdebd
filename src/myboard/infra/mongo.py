# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import logging
import os
from typing import Optional

from pymongo import MongoClient
from pymongo.database import Database

logger = logging.getLogger(__name__)

POST_COLLECTION = "post"
USER_COLLECTION = "user"
SESSION_COLLECTION = "sessions"


def database_url() -> str:
    return os.getenv("BOARD_DB_URL") or os.getenv("DB_URL") or "mongodb://localhost:27017"


def database_name() -> str:
    return os.getenv("BOARD_DB_NAME", "myboard")


def connect(url: Optional[str] = None) -> MongoClient:
    """Open a client and make sure the server answers before returning it."""
    client: MongoClient = MongoClient(url or database_url())
    try:
        client.admin.command("ping")
    except Exception:
        client.close()
        raise
    logger.info("MongoDB connected")
    return client


def get_database(client: MongoClient, name: Optional[str] = None) -> Database:
    return client[name or database_name()]
