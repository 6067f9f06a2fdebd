# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from pymongo.database import Database

from myboard.auth.session import SessionManager, build_session_store
from myboard.errors import BoardError, NotFound
from myboard.infra.mongo import connect, get_database
from myboard.infra.post_repo import PostRepository
from myboard.infra.user_repo import UserRecord, UserRepository
from myboard.permissions import get_session_manager, require_auth, session_context
from myboard.services.account_service import authenticate, signup

logger = logging.getLogger(__name__)

POST_NOT_FOUND = "Post not found"


class PostPayload(BaseModel):
    title: Optional[str] = None
    content: Optional[str] = None


class CredentialsPayload(BaseModel):
    username: Optional[str] = None
    password: Optional[str] = None


def get_posts(request: Request) -> PostRepository:
    return PostRepository(request.app.state.database)


def get_users(request: Request) -> UserRepository:
    return UserRepository(request.app.state.database)


router = APIRouter()


# ------------------ Posts ------------------


@router.get("/", summary="Home")
def home():
    return {"message": "Hello, World!"}


@router.get("/list", summary="List all posts")
def list_posts(posts: PostRepository = Depends(get_posts)):
    return [p.as_dict() for p in posts.list()]


@router.get("/content/{post_id}", summary="Get one post")
def get_post(post_id: str, posts: PostRepository = Depends(get_posts)):
    post = posts.get(post_id)
    if post is None:
        raise NotFound(POST_NOT_FOUND)
    return post.as_dict()


@router.post("/content", status_code=201, summary="Create a post")
def create_post(payload: PostPayload, posts: PostRepository = Depends(get_posts)):
    return posts.create(payload.title, payload.content).as_dict()


@router.put("/content/{post_id}", summary="Replace a post's title and content")
def update_post(post_id: str, payload: PostPayload, posts: PostRepository = Depends(get_posts)):
    post = posts.update(post_id, payload.title, payload.content)
    if post is None:
        raise NotFound(POST_NOT_FOUND)
    return post.as_dict()


@router.delete("/content/{post_id}", status_code=204, response_class=Response, summary="Delete a post")
def delete_post(post_id: str, posts: PostRepository = Depends(get_posts)):
    if not posts.delete(post_id):
        raise NotFound(POST_NOT_FOUND)
    return Response(status_code=204)


# ------------------ Accounts ------------------


@router.post("/signup", status_code=201, summary="Register a user")
def signup_post(payload: CredentialsPayload, users: UserRepository = Depends(get_users)):
    signup(users, payload.username, payload.password)
    return {"message": "Signup completed"}


@router.post("/login", summary="Log in and bind the user to the session")
def login_post(
    request: Request,
    response: Response,
    payload: CredentialsPayload,
    users: UserRepository = Depends(get_users),
):
    u = authenticate(users, payload.username, payload.password)
    get_session_manager(request).login(session_context(request), u, response)
    return {"message": "Login successful", "user": u.public()}


@router.get("/users", summary="List usernames")
def list_users(users: UserRepository = Depends(get_users)):
    return users.list_public()


@router.get("/logout", summary="Destroy the current session")
def logout(request: Request, response: Response):
    get_session_manager(request).logout(session_context(request), response)
    return {"message": "Logged out"}


@router.get("/welcome", summary="Greeting for the logged-in user")
def welcome(user: UserRecord = Depends(require_auth)):
    return {"message": f"Hello, {user.username}"}


# ------------------ Errors ------------------


async def _board_error(request: Request, exc: BoardError):
    if exc.status_code >= 500:
        logger.error("%s %s: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.public_message})


async def _invalid_request(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={"error": "Invalid request body"})


async def _unexpected_error(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


# ------------------ App ------------------


@asynccontextmanager
async def _lifespan(app: FastAPI):
    client = None
    if app.state.database is None:
        client = connect()
        database = get_database(client)
        UserRepository(database).ensure_indexes()
        app.state.database = database
    if app.state.sessions is None:
        app.state.sessions = SessionManager(build_session_store(app.state.database))
    try:
        yield
    finally:
        if client is not None:
            client.close()
            logger.info("MongoDB connection closed")


def create_app(
    database: Optional[Database] = None,
    sessions: Optional[SessionManager] = None,
) -> FastAPI:
    """Build the app.

    With no database the connection is opened during startup, before any
    request is served. An injected database is used as-is.
    """
    app = FastAPI(title="myboard", docs_url="/api-docs", lifespan=_lifespan)
    app.state.database = database
    app.state.sessions = sessions
    if database is not None:
        UserRepository(database).ensure_indexes()
        if sessions is None:
            app.state.sessions = SessionManager(build_session_store(database))

    app.add_exception_handler(BoardError, _board_error)
    app.add_exception_handler(RequestValidationError, _invalid_request)
    app.add_exception_handler(Exception, _unexpected_error)
    app.include_router(router)
    return app


app = create_app()
