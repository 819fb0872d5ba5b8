# iam/adapters/outbound/persistence/models/role_model.py

from typing import Optional
from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column
from iam.adapters.outbound.persistence.models.base_model import Base, TimestampMixin, SoftDeleteMixin


class Role(Base, TimestampMixin, SoftDeleteMixin):
    """
    A named bundle of permissions, granted to groups.

    Attributes:
        id: Surrogate identifier
        name: Unique role name
        description: Free text description
    """
    __tablename__ = "roles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(50), unique=True, nullable=False, index=True)
    description: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    def __repr__(self) -> str:
        return f"<Role(name={self.name})>"
