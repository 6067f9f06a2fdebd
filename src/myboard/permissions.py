# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

from typing import Optional

from fastapi import Request

from myboard.auth.session import SessionContext, SessionManager
from myboard.errors import Unauthorized
from myboard.infra.user_repo import UserRecord

LOGIN_REQUIRED = "Login required"


def get_session_manager(request: Request) -> SessionManager:
    return request.app.state.sessions


def session_context(request: Request) -> SessionContext:
    """Load the session once per request and keep it on request.state."""
    ctx = getattr(request.state, "session", None)
    if ctx is None:
        ctx = get_session_manager(request).load(request)
        request.state.session = ctx
    return ctx


def current_user_optional(request: Request) -> Optional[UserRecord]:
    return get_session_manager(request).current_user(session_context(request))


def require_auth(request: Request) -> UserRecord:
    u = current_user_optional(request)
    if u:
        return u
    raise Unauthorized(LOGIN_REQUIRED)
