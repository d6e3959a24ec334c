"""Core package for the userbook record service."""

from __future__ import annotations

from typing import Any

from .database import ConstraintViolation, Database, StoreError, resolve_database_path
from .models import User, UserInput
from .service import DuplicateEmailError, UserService


def create_app(*args: Any, **kwargs: Any):
    """Factory function that returns the combined web + API application."""

    from .application import create_application as _create_application

    return _create_application(*args, **kwargs)


def create_api_app(*args: Any, **kwargs: Any):
    """Factory function for the API-only application."""

    from .api import create_app as _create_api_app

    return _create_api_app(*args, **kwargs)


__all__ = [
    "ConstraintViolation",
    "Database",
    "DuplicateEmailError",
    "StoreError",
    "User",
    "UserInput",
    "UserService",
    "create_api_app",
    "create_app",
    "resolve_database_path",
]
