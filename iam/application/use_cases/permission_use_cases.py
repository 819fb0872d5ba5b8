# iam/application/use_cases/permission_use_cases.py

"""
Service for permission management.

A permission is identified by its (name, action, module) triple and must
always point at an existing module.
"""

import logging
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from fastapi_pagination import Params

from iam.adapters.outbound.persistence.models import Permission
from iam.adapters.outbound.persistence.repositories import (
    permission_repository,
    module_repository,
    role_permission_repository,
)
from iam.application.dtos.permission_dto import PermissionCreate, PermissionUpdate
from iam.application.use_cases.base_use_cases import AsyncBaseService
from iam.domain.exceptions import (
    DomainException,
    ResourceNotFoundException,
    ResourceAlreadyExistsException,
    DatabaseOperationException,
)

# Configure logger
logger = logging.getLogger(__name__)

DUPLICATE_PERMISSION_MESSAGE = "Permission with this name and action already exists for this module"


class AsyncPermissionService(AsyncBaseService[Permission]):
    """Service for permissions."""

    label = "Permission"

    def __init__(
            self,
            db_session: AsyncSession,
            *,
            repository=permission_repository,
            modules=module_repository,
            role_permissions=role_permission_repository,
    ):
        super().__init__(db_session, repository)
        self.modules = modules
        self.role_permissions = role_permissions

    async def _ensure_module_exists(self, module_id: int) -> None:
        if not await self.modules.get(self.db, id=module_id):
            logger.warning(f"Module not found: ID {module_id}")
            raise ResourceNotFoundException(
                detail=f"Module with ID {module_id} not found",
                resource_id=module_id
            )

    async def _ensure_unique(
            self, name: str, action: str, module_id: int, exclude_id: Optional[int] = None
    ) -> None:
        existing = await self.repository.get_by_triple(self.db, name, action, module_id)
        if existing and existing.id != exclude_id:
            logger.warning(f"Duplicate permission ({name}, {action}, module {module_id})")
            raise ResourceAlreadyExistsException(detail=DUPLICATE_PERMISSION_MESSAGE)

    async def list(self, params: Params, module_id: Optional[int] = None, action: Optional[str] = None):
        return await super().list(params, module_id=module_id, action=action)

    async def create(self, data: PermissionCreate) -> Permission:
        """
        Create a permission.

        Raises:
            ResourceNotFoundException: If the module does not exist
            ResourceAlreadyExistsException: If the triple is already used
        """
        try:
            await self._ensure_module_exists(data.module_id)
            await self._ensure_unique(data.name, data.action, data.module_id)

            permission = await self.repository.create(self.db, obj_in=data)
            logger.info(f"Permission created: {permission.name} ({permission.action}) ID {permission.id}")
            return permission

        except DomainException:
            raise

        except Exception as e:
            logger.exception(f"Unexpected error creating permission: {str(e)}")
            raise DatabaseOperationException(
                detail="Error creating permission",
                original_error=e
            )

    async def update(self, permission_id: int, data: PermissionUpdate) -> Permission:
        """
        Update a permission, validating the resulting triple.

        Raises:
            ResourceNotFoundException: If the permission or the new module does not exist
            ResourceAlreadyExistsException: If the resulting triple is already used
        """
        try:
            permission = await self._get_by_id(permission_id)
            update_data = data.model_dump(exclude_unset=True)

            module_id = update_data.get("module_id") or permission.module_id
            if module_id != permission.module_id:
                await self._ensure_module_exists(module_id)

            await self._ensure_unique(
                update_data.get("name") or permission.name,
                update_data.get("action") or permission.action,
                module_id,
                exclude_id=permission_id,
            )

            permission = await self.repository.update(self.db, db_obj=permission, obj_in=update_data)
            logger.info(f"Permission updated: ID {permission_id}")
            return permission

        except DomainException:
            raise

        except Exception as e:
            logger.exception(f"Unexpected error updating permission: {str(e)}")
            raise DatabaseOperationException(
                detail="Error updating permission",
                original_error=e
            )

    async def delete(self, permission_id: int) -> Permission:
        """
        Revoke the permission from every role, then delete it.

        Raises:
            ResourceNotFoundException: If the permission is not found
        """
        try:
            await self._get_by_id(permission_id)
            revoked = await self.role_permissions.remove_all_for_right(self.db, permission_id, commit=False)
            permission = await self.repository.remove(self.db, id=permission_id)

            logger.info(f"Permission {permission_id} deleted (revoked from {revoked} role(s))")
            return permission

        except DomainException:
            raise

        except Exception as e:
            await self.db.rollback()
            logger.exception(f"Unexpected error deleting permission {permission_id}: {str(e)}")
            raise DatabaseOperationException(
                detail="Error deleting permission",
                original_error=e
            )
