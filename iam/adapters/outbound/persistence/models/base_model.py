# iam/adapters/outbound/persistence/models/base_model.py

"""
Declarative base and shared columns for all ORM models.
"""

from datetime import datetime
from sqlalchemy import Boolean, DateTime, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Parent class of every ORM model; owns the shared metadata."""
    pass


class TimestampMixin:
    """Adds ``created_at`` and ``updated_at`` columns filled by the database."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


class SoftDeleteMixin:
    """Adds the ``is_active`` flag used for soft deletion."""

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
