"""Domain models for the user record service."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class User:
    """Represents a user record stored in the userbook database."""

    id: int
    name: str
    email: str
    created_at: datetime


@dataclass(frozen=True)
class UserInput:
    """Caller-supplied fields for creating or updating a user."""

    name: str
    email: str


__all__ = ["User", "UserInput"]
