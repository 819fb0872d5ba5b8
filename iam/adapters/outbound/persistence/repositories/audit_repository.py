# iam/adapters/outbound/persistence/repositories/audit_repository.py

from datetime import datetime
from typing import List, Optional
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from iam.adapters.outbound.persistence.repositories.base_repository import AsyncCRUDBase
from iam.adapters.outbound.persistence.models import AuditLog
from iam.domain.exceptions import DatabaseOperationException


class AsyncAuditLogCRUD(AsyncCRUDBase[AuditLog, dict, dict]):
    """Repository for audit events. Rows are only ever appended and queried."""

    async def search(
            self,
            db: AsyncSession,
            *,
            user_id: Optional[int] = None,
            action: Optional[str] = None,
            resource: Optional[str] = None,
            start_date: Optional[datetime] = None,
            end_date: Optional[datetime] = None,
            limit: int = 100,
    ) -> List[AuditLog]:
        """
        Filter audit events, newest first.

        Args:
            db: Async database session
            user_id: Acting user
            action: Case-insensitive substring of the action name
            resource: Exact resource type
            start_date: Lower bound on creation time
            end_date: Upper bound on creation time
            limit: Maximum number of rows

        Returns:
            Matching events
        """
        try:
            query = select(AuditLog)
            if user_id is not None:
                query = query.where(AuditLog.user_id == user_id)
            if action:
                query = query.where(AuditLog.action.ilike(f"%{action}%"))
            if resource:
                query = query.where(AuditLog.resource == resource)
            if start_date is not None:
                query = query.where(AuditLog.created_at >= start_date)
            if end_date is not None:
                query = query.where(AuditLog.created_at <= end_date)

            query = query.order_by(AuditLog.created_at.desc(), AuditLog.id.desc()).limit(limit)
            result = await db.execute(query)
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            self.logger.error(f"Error searching audit logs: {str(e)}")
            raise DatabaseOperationException(
                detail="Error searching audit logs",
                original_error=e
            )


audit_log_repository = AsyncAuditLogCRUD(AuditLog)
