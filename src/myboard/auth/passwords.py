# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import os
from functools import lru_cache

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError

from myboard.errors import HashingError


@lru_cache(maxsize=None)
def _hasher(time_cost: int, memory_cost: int) -> PasswordHasher:
    return PasswordHasher(time_cost=time_cost, memory_cost=memory_cost)


def _current_hasher() -> PasswordHasher:
    time_cost = int(os.getenv("BOARD_ARGON2_TIME_COST", "3"))
    memory_cost = int(os.getenv("BOARD_ARGON2_MEMORY_COST", "65536"))
    return _hasher(time_cost, memory_cost)


def hash_password(plain: str) -> str:
    if not plain:
        raise HashingError("Empty password")
    return _current_hasher().hash(plain)


def verify_password(plain: str, hash_value: str) -> bool:
    if not hash_value or not plain:
        return False
    try:
        return _current_hasher().verify(hash_value, plain)
    except VerifyMismatchError:
        return False
    except (InvalidHashError, VerificationError) as e:
        raise HashingError(f"Stored hash could not be verified: {e}") from e
