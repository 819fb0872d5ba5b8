# iam/adapters/outbound/persistence/models/group_model.py

from typing import Optional
from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column
from iam.adapters.outbound.persistence.models.base_model import Base, TimestampMixin, SoftDeleteMixin


class Group(Base, TimestampMixin, SoftDeleteMixin):
    """
    A set of users that share the same roles.

    Attributes:
        id: Surrogate identifier
        name: Unique group name
        description: Free text description
    """
    __tablename__ = "groups"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(50), unique=True, nullable=False, index=True)
    description: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    def __repr__(self) -> str:
        return f"<Group(name={self.name})>"
