"""Relational persistence for crudapp.

This module provides:
- Async engine factory (PostgreSQL via asyncpg, SQLite via aiosqlite)
- SQLAlchemy ORM table for posts
"""

from crudapp.persistence.db import create_engine, health_check, init_db
from crudapp.persistence.tables import Base, PostTable

__all__ = [
    "Base",
    "PostTable",
    "create_engine",
    "health_check",
    "init_db",
]
