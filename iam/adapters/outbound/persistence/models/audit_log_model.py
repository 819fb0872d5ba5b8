# iam/adapters/outbound/persistence/models/audit_log_model.py

from datetime import datetime
from typing import Any, Dict, Optional
from sqlalchemy import JSON, DateTime, ForeignKey, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column
from iam.adapters.outbound.persistence.models.base_model import Base


class AuditLog(Base):
    """
    One audit event: who did what to which resource.

    Attributes:
        user_id: Acting user, None for anonymous actions such as registration
        action: Event name (e.g. "ASSIGN_ROLES_TO_GROUP")
        resource: Resource type (e.g. "Group")
        resource_id: Identifier of the resource touched
        details: Free-form JSON payload (per-item assignment details, etc.)
    """
    __tablename__ = "audit_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True
    )
    action: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    resource: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    resource_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    details: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True)
    ip_address: Mapped[Optional[str]] = mapped_column(String(45), nullable=True)
    user_agent: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False, index=True
    )

    def __repr__(self) -> str:
        return f"<AuditLog(action={self.action}, resource={self.resource}, resource_id={self.resource_id})>"
