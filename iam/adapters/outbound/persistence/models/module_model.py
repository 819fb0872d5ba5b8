# iam/adapters/outbound/persistence/models/module_model.py

from typing import Optional
from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column
from iam.adapters.outbound.persistence.models.base_model import Base, TimestampMixin, SoftDeleteMixin


class Module(Base, TimestampMixin, SoftDeleteMixin):
    """
    A resource category that permissions are scoped to (e.g. "Users").

    Attributes:
        id: Surrogate identifier
        name: Unique module name
        description: Free text description
    """
    __tablename__ = "modules"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(50), unique=True, nullable=False, index=True)
    description: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    def __repr__(self) -> str:
        return f"<Module(name={self.name})>"
