# iam/application/use_cases/module_use_cases.py

"""
Service for module management.

A module is a named resource area (Users, Groups, ...). Permissions are
defined per module, so a module cannot be removed while permissions still
point at it.
"""

import logging
from typing import List
from sqlalchemy.ext.asyncio import AsyncSession

from iam.adapters.outbound.persistence.models import Module, Permission
from iam.adapters.outbound.persistence.repositories import (
    module_repository,
    permission_repository,
)
from iam.application.use_cases.base_use_cases import AsyncNamedEntityService
from iam.domain.exceptions import (
    DomainException,
    ValidationException,
    DatabaseOperationException,
)
from iam.domain.models.permission_domain_model import Action

# Configure logger
logger = logging.getLogger(__name__)

MODULE_IN_USE_MESSAGE = "Cannot delete module with existing permissions. Delete permissions first."


class AsyncModuleService(AsyncNamedEntityService[Module]):
    """Service for modules."""

    label = "Module"

    def __init__(
            self,
            db_session: AsyncSession,
            *,
            repository=module_repository,
            permissions=permission_repository,
    ):
        super().__init__(db_session, repository)
        self.permissions = permissions

    async def _ensure_no_permissions(self, module_id: int) -> None:
        if await self.permissions.count(self.db, module_id=module_id) > 0:
            logger.warning(f"Refusing to delete module {module_id}: permissions exist")
            raise ValidationException(detail=MODULE_IN_USE_MESSAGE)

    async def deactivate(self, module_id: int) -> Module:
        """
        Soft delete a module.

        Raises:
            ResourceNotFoundException: If the module is not found
            ValidationException: If permissions still reference the module
        """
        await self._get_by_id(module_id)
        await self._ensure_no_permissions(module_id)
        return await self._set_active(module_id, False)

    async def hard_delete(self, module_id: int) -> Module:
        """
        Permanently delete a module.

        Raises:
            ResourceNotFoundException: If the module is not found
            ValidationException: If permissions still reference the module
        """
        await self._get_by_id(module_id)
        await self._ensure_no_permissions(module_id)
        module = await self.repository.remove(self.db, id=module_id)
        logger.info(f"Module {module_id} permanently deleted")
        return module

    async def create_standard_permissions(self, module_id: int) -> List[Permission]:
        """
        Create the create/read/update/delete permissions a module is missing.

        Permissions are named "{Module} {Action}" (e.g. "Users Read") and
        described as "{Action} {module}". An action the module already has,
        under any name, is skipped. The missing ones are stored together.

        Returns:
            The permissions created by this call

        Raises:
            ResourceNotFoundException: If the module is not found
        """
        try:
            module = await self._get_by_id(module_id)
            present = {
                permission.action for permission in await self.permissions.get_by_module(self.db, module.id)
            }

            missing = []
            for action in Action:
                if action.value in present:
                    continue
                title = action.value.capitalize()
                missing.append({
                    "name": f"{module.name} {title}",
                    "description": f"{title} {module.name.lower()}",
                    "action": action.value,
                    "module_id": module.id,
                })

            created = await self.permissions.create_many(self.db, objs_in=missing)

            logger.info(f"Created {len(created)} standard permission(s) for module '{module.name}'")
            return created

        except DomainException:
            raise

        except Exception as e:
            logger.exception(f"Error creating standard permissions for module {module_id}: {str(e)}")
            raise DatabaseOperationException(
                detail="Error creating standard permissions",
                original_error=e
            )
