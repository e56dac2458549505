"""SQLAlchemy ORM models — single source of truth for the database schema.

Learn: Declarative ORM mapping with SQLAlchemy 2.0 style (Mapped[] + mapped_column).
Each class = one table. Alembic migrations mirror these definitions.

Key concepts:
- Integer primary keys (the JSON API exposes ids as numbers)
- Emails are stored lower-case so the unique constraint is case-insensitive
- Topics and tasks are soft-deleted: deleted_at is a tombstone, and
  default queries filter tombstoned rows out
- Timestamps default on the Python side so a flushed object never needs
  a refresh round-trip to read them
"""

import hashlib
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

COORD_MIN = -100.0
COORD_MAX = 100.0

TASK_STATES = ("incomplete", "complete")


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )


class TombstoneMixin:
    """Soft-delete marker. A row with deleted_at set is in the trash."""

    deleted_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True, default=None
    )

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None


# ══════════════════════════════════════════════════════════════
# Accounts
# ══════════════════════════════════════════════════════════════


class User(TimestampMixin, Base):
    """An account. Owns topics and tasks.

    Learn: is_admin is the only role flag in the system. Changing it is
    guarded in the auth layer, never here.
    """

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(70), nullable=False, default="")
    is_admin: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    send_notifications: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True
    )
    research_participant: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True
    )
    last_login: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    @property
    def email_hash(self) -> str:
        """md5 of the address, as avatar services expect."""
        return hashlib.md5(self.email.encode("utf-8")).hexdigest()


# ══════════════════════════════════════════════════════════════
# Topics and tasks
# ══════════════════════════════════════════════════════════════


class Topic(TimestampMixin, TombstoneMixin, Base):
    """A (possibly unnamed) grouping of tasks belonging to one user."""

    __tablename__ = "topics"
    __table_args__ = (Index("ix_topics_user_id", "user_id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[Optional[str]] = mapped_column(String(70), nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )


class Task(TimestampMixin, TombstoneMixin, Base):
    """A task positioned on the priority plane.

    Learn: coord_x is urgency and coord_y is importance, both bounded to
    [-100, 100]. Bounds are enforced at the request boundary (schemas);
    the grid engine may show out-of-range historical values unclamped.
    """

    __tablename__ = "tasks"
    __table_args__ = (
        Index("ix_tasks_user_id", "user_id"),
        Index("ix_tasks_topic_id", "topic_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    state: Mapped[str] = mapped_column(String(20), nullable=False, default="incomplete")
    coord_x: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    coord_y: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    due_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    topic_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("topics.id", ondelete="CASCADE"), nullable=True
    )


# ══════════════════════════════════════════════════════════════
# Research collection
# ══════════════════════════════════════════════════════════════


class ResearchData(Base):
    """Append-only copy of user activity, recorded while a study runs.

    Learn: Written by the research observer in the same transaction as
    the write it describes. user_id is deliberately not a foreign key;
    rows outlive the account they describe.
    """

    __tablename__ = "research_data"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    study: Mapped[str] = mapped_column(String(255), nullable=False)
    source_model: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    action: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    data: Mapped[str] = mapped_column(Text, nullable=False)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False)
    method: Mapped[str] = mapped_column(
        String(50), nullable=False, default="database hook"
    )
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
