"""
Core plumbing for the Training Portal backend: settings, the database
session factory and token/password helpers.
"""

from .config import settings
from .database import Base, DatabaseManager, SessionLocal, engine, get_db
from .security import (
    create_access_token,
    get_password_hash,
    verify_password,
    verify_token
)

__all__ = [
    "settings",
    "Base",
    "DatabaseManager",
    "SessionLocal",
    "engine",
    "get_db",
    "create_access_token",
    "get_password_hash",
    "verify_password",
    "verify_token"
]
