# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Error taxonomy shared by repositories, services and routes.

Every error carries the HTTP status it maps to. Messages of 5xx errors are
kept for the server log; clients only ever see ``public_message``.
"""

from __future__ import annotations


class BoardError(Exception):
    status_code = 500

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message

    @property
    def public_message(self) -> str:
        return self.message


class ValidationError(BoardError):
    status_code = 400


class DuplicateConflict(BoardError):
    # 400 rather than 409, kept for client compatibility.
    status_code = 400


class Unauthorized(BoardError):
    status_code = 401


class NotFound(BoardError):
    status_code = 404


class StorageFault(BoardError):
    status_code = 500

    def __init__(self, message: str = "", public: str = "Database query error"):
        super().__init__(message)
        self._public = public

    @property
    def public_message(self) -> str:
        return self._public


class HashingError(BoardError):
    status_code = 500

    @property
    def public_message(self) -> str:
        return "Internal server error"
