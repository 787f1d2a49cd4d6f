"""SQLAlchemy ORM models for post persistence.

One row per post, keyed by the composite primary key (user_id, post_id).
Listing a user's posts is a prefix scan on that key.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class PostTable(Base):
    """Post table."""

    __tablename__ = "post"

    user_id: Mapped[str] = mapped_column(String(255), primary_key=True)
    post_id: Mapped[str] = mapped_column(String(64), primary_key=True)

    # Opaque payload; empty string is valid, NULL is not
    data: Mapped[str] = mapped_column(Text, nullable=False, default="")

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
