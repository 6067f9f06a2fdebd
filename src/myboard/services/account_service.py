# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

from typing import Optional

from myboard.auth.passwords import hash_password, verify_password
from myboard.errors import DuplicateConflict, Unauthorized, ValidationError
from myboard.infra.user_repo import DUPLICATE_USERNAME, UserRecord, UserRepository

CREDENTIALS_REQUIRED = "Username and password are required"
UNKNOWN_USER = "User does not exist"
WRONG_PASSWORD = "Password does not match"


def _require_credentials(username: Optional[str], password: Optional[str]) -> None:
    if not username or not password:
        raise ValidationError(CREDENTIALS_REQUIRED)


def signup(users: UserRepository, username: Optional[str], password: Optional[str]) -> UserRecord:
    """Register a new user. Does not log them in."""
    _require_credentials(username, password)

    # Checked before hashing so duplicates fail fast; the unique index still
    # decides when two signups race.
    if users.find_by_username(username) is not None:
        raise DuplicateConflict(DUPLICATE_USERNAME)

    return users.create(username, hash_password(password))


def authenticate(users: UserRepository, username: Optional[str], password: Optional[str]) -> UserRecord:
    """Return the stored user for valid credentials.

    Unknown users and wrong passwords are both Unauthorized but carry
    different messages, matching what existing clients display.
    """
    _require_credentials(username, password)

    u = users.find_by_username(username)
    if u is None:
        raise Unauthorized(UNKNOWN_USER)
    if not verify_password(password, u.password_hash):
        raise Unauthorized(WRONG_PASSWORD)
    return u
