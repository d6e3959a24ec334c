"""FastAPI application exposing CRUD endpoints for user records."""
from __future__ import annotations

import logging
import os
from datetime import datetime
from typing import Dict, List

import anyio
from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, field_validator
from starlette.exceptions import HTTPException as StarletteHTTPException

from .database import Database, StoreError, resolve_database_path
from .models import User, UserInput
from .service import DuplicateEmailError, UserService

logger = logging.getLogger("userbook.api")

FIELDS_REQUIRED = "Name and email are required"
INVALID_ID = "Invalid user id"
USER_NOT_FOUND = "User not found"
EMAIL_EXISTS = "Email already exists"


class UserPayload(BaseModel):
    name: str
    email: str

    @field_validator("name", "email")
    @classmethod
    def _require_text(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be empty")
        return value

    def to_input(self) -> UserInput:
        return UserInput(name=self.name, email=self.email)


class UserResponse(BaseModel):
    id: int
    name: str
    email: str
    created_at: datetime


def user_to_response(user: User) -> UserResponse:
    return UserResponse(
        id=user.id,
        name=user.name,
        email=user.email,
        created_at=user.created_at,
    )


def _server_error(message: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=message)


def _not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=USER_NOT_FOUND)


def _conflict() -> HTTPException:
    return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=EMAIL_EXISTS)


async def http_error_response(_: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=exc.headers,
    )


def create_app(
    *,
    database: Database | None = None,
    service: UserService | None = None,
    initialize_database: bool = False,
) -> FastAPI:
    if database is None:
        db_path = resolve_database_path(os.getenv("USERBOOK_DB_PATH"))
        database = Database(db_path)
        database.initialize()
    elif initialize_database:
        database.initialize()

    if service is None:
        service = UserService(database)

    app = FastAPI(
        title="Userbook API",
        description="Create, list, edit and delete user records",
        version="1.0.0",
    )
    app.state.database = database
    app.state.service = service

    def get_service() -> UserService:
        return service

    app.add_exception_handler(StarletteHTTPException, http_error_response)

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(_: Request, exc: RequestValidationError):
        errors = exc.errors()
        if any(error.get("loc", ("",))[0] == "path" for error in errors):
            message = INVALID_ID
        else:
            message = FIELDS_REQUIRED
        logger.debug("Rejected request: %s", errors)
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": message})

    @app.get("/health")
    async def healthcheck() -> Dict[str, str]:
        return {"status": "ok"}

    router = APIRouter(prefix="/users", tags=["users"])

    @router.get("", response_model=List[UserResponse])
    async def list_users(svc: UserService = Depends(get_service)) -> List[UserResponse]:
        try:
            users = await anyio.to_thread.run_sync(svc.list_users)
        except StoreError as exc:
            logger.exception("Error getting users")
            raise _server_error("Failed to retrieve users") from exc
        return [user_to_response(user) for user in users]

    @router.get("/{user_id}", response_model=UserResponse)
    async def read_user(user_id: int, svc: UserService = Depends(get_service)) -> UserResponse:
        try:
            user = await anyio.to_thread.run_sync(svc.get_user, user_id)
        except StoreError as exc:
            logger.exception("Error getting user %s", user_id)
            raise _server_error("Failed to retrieve user") from exc
        if user is None:
            raise _not_found()
        return user_to_response(user)

    @router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
    async def create_user(payload: UserPayload, svc: UserService = Depends(get_service)) -> UserResponse:
        try:
            user = await anyio.to_thread.run_sync(svc.create_user, payload.to_input())
        except DuplicateEmailError as exc:
            raise _conflict() from exc
        except StoreError as exc:
            logger.exception("Error creating user")
            raise _server_error("Failed to create user") from exc
        return user_to_response(user)

    @router.put("/{user_id}", response_model=UserResponse)
    async def update_user(
        user_id: int,
        payload: UserPayload,
        svc: UserService = Depends(get_service),
    ) -> UserResponse:
        try:
            user = await anyio.to_thread.run_sync(svc.update_user, user_id, payload.to_input())
        except DuplicateEmailError as exc:
            raise _conflict() from exc
        except StoreError as exc:
            logger.exception("Error updating user %s", user_id)
            raise _server_error("Failed to update user") from exc
        if user is None:
            raise _not_found()
        return user_to_response(user)

    @router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
    async def delete_user(user_id: int, svc: UserService = Depends(get_service)) -> Response:
        try:
            deleted = await anyio.to_thread.run_sync(svc.delete_user, user_id)
        except StoreError as exc:
            logger.exception("Error deleting user %s", user_id)
            raise _server_error("Failed to delete user") from exc
        if not deleted:
            raise _not_found()
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    app.include_router(router)

    return app


__all__ = [
    "UserPayload",
    "UserResponse",
    "create_app",
    "http_error_response",
    "user_to_response",
]
