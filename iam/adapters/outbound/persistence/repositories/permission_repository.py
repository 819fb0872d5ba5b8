# iam/adapters/outbound/persistence/repositories/permission_repository.py

"""
Repository for permissions.

Permissions are always loaded with their module (joined eager load), so
callers can read ``permission.module_name`` without another query.
"""

from typing import Any, Dict, List, Optional
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from iam.adapters.outbound.persistence.repositories.base_repository import AsyncCRUDBase
from iam.adapters.outbound.persistence.models import Module, Permission
from iam.application.dtos.permission_dto import PermissionCreate, PermissionUpdate
from iam.application.ports.outbound import IPermissionRepository
from iam.domain.exceptions import DatabaseOperationException


class AsyncPermissionCRUD(
    AsyncCRUDBase[Permission, PermissionCreate, PermissionUpdate],
    IPermissionRepository[Permission]
):
    """Repository for permissions."""

    async def get_by_triple(
            self, db: AsyncSession, name: str, action: str, module_id: int
    ) -> Optional[Permission]:
        """
        Get the permission identified by its natural key.

        Args:
            db: Async database session
            name: Permission name
            action: CRUD action
            module_id: Owning module

        Returns:
            Permission found or None
        """
        try:
            query = select(Permission).where(
                Permission.name == name,
                Permission.action == action,
                Permission.module_id == module_id,
            )
            result = await db.execute(query)
            return result.scalars().first()
        except SQLAlchemyError as e:
            self.logger.error(f"Error fetching permission ({name}, {action}, {module_id}): {str(e)}")
            raise DatabaseOperationException(
                detail="Error fetching permission",
                original_error=e
            )

    async def get_by_module_action(self, db: AsyncSession, module_id: int, action: str) -> List[Permission]:
        return await self._select(
            db,
            select(Permission)
            .where(Permission.module_id == module_id, Permission.action == action)
            .order_by(Permission.id)
        )

    async def get_by_module(self, db: AsyncSession, module_id: int) -> List[Permission]:
        return await self._select(
            db, select(Permission).where(Permission.module_id == module_id).order_by(Permission.id)
        )

    async def count_by_module(self, db: AsyncSession) -> Dict[str, int]:
        """Permission count per module name, including modules with none."""
        try:
            query = (
                select(Module.name, func.count(Permission.id))
                .select_from(Module)
                .outerjoin(Permission, Permission.module_id == Module.id)
                .group_by(Module.id, Module.name)
                .order_by(Module.name)
            )
            result = await db.execute(query)
            return {row[0]: row[1] for row in result.all()}
        except SQLAlchemyError as e:
            self.logger.error(f"Error counting permissions per module: {str(e)}")
            raise DatabaseOperationException(
                detail="Error counting permissions per module",
                original_error=e
            )

    async def _select(self, db: AsyncSession, query: Any) -> List[Permission]:
        try:
            result = await db.execute(query)
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing permissions: {str(e)}")
            raise DatabaseOperationException(
                detail="Error listing permissions",
                original_error=e
            )


permission_repository = AsyncPermissionCRUD(Permission)
