# iam/adapters/outbound/persistence/models/user_model.py

"""
User model.

Group membership is stored in the ``user_groups`` association table and
is read through the association repository, not through an ORM collection.
"""

from typing import Optional
from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column
from iam.adapters.outbound.persistence.models.base_model import Base, TimestampMixin, SoftDeleteMixin


class User(Base, TimestampMixin, SoftDeleteMixin):
    """
    System user.

    Attributes:
        id: Surrogate identifier
        username: Unique login name
        email: Unique email address (used for login)
        password: bcrypt hash of the password
        first_name: Optional given name
        last_name: Optional family name
        is_active: False once the user has been deactivated
    """
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(50), unique=True, nullable=False, index=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    password: Mapped[str] = mapped_column(String(255), nullable=False)
    first_name: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    last_name: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    def __repr__(self) -> str:
        return f"<User(username={self.username}, active={self.is_active})>"
