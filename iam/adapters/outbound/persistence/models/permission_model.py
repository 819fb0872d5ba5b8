# iam/adapters/outbound/persistence/models/permission_model.py

"""
Permission model.

A permission grants one CRUD action on one module. The (name, action,
module_id) triple is unique.
"""

from typing import Optional
from sqlalchemy import CheckConstraint, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from iam.adapters.outbound.persistence.models.base_model import Base, TimestampMixin, SoftDeleteMixin


class Permission(Base, TimestampMixin, SoftDeleteMixin):
    """
    Attributes:
        id: Surrogate identifier
        name: Readable name (e.g. "Users Read")
        description: Free text description
        action: One of create, read, update, delete
        module_id: Owning module
        module: Owning module, always loaded with the permission
    """
    __tablename__ = "permissions"
    __table_args__ = (
        UniqueConstraint("name", "action", "module_id", name="uq_permissions_name_action_module"),
        CheckConstraint(
            "action IN ('create', 'read', 'update', 'delete')",
            name="ck_permissions_action",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    action: Mapped[str] = mapped_column(String(10), nullable=False)
    module_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("modules.id", ondelete="RESTRICT"), nullable=False, index=True
    )

    module = relationship("Module", lazy="joined")

    @property
    def module_name(self) -> Optional[str]:
        return self.module.name if self.module is not None else None

    def __repr__(self) -> str:
        return f"<Permission(name={self.name}, action={self.action}, module_id={self.module_id})>"
