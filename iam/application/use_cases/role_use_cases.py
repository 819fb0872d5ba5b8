# iam/application/use_cases/role_use_cases.py

"""
Service for role management.

Besides CRUD, roles can be cloned: the copy receives the source role's
whole permission set in a single insert.
"""

import logging
from collections import defaultdict
from typing import Any, Dict, List, Optional
from sqlalchemy.ext.asyncio import AsyncSession

from iam.adapters.outbound.persistence.models import Role
from iam.adapters.outbound.persistence.repositories import (
    role_repository,
    group_repository,
    module_repository,
    permission_repository,
    group_role_repository,
    role_permission_repository,
)
from iam.application.dtos.role_dto import RoleCreate
from iam.application.use_cases.base_use_cases import AsyncNamedEntityService
from iam.domain.exceptions import (
    DomainException,
    ResourceNotFoundException,
    ValidationException,
    DatabaseOperationException,
)

# Configure logger
logger = logging.getLogger(__name__)


class AsyncRoleService(AsyncNamedEntityService[Role]):
    """Service for roles."""

    label = "Role"

    def __init__(
            self,
            db_session: AsyncSession,
            *,
            repository=role_repository,
            groups=group_repository,
            modules=module_repository,
            permissions=permission_repository,
            group_roles=group_role_repository,
            role_permissions=role_permission_repository,
    ):
        super().__init__(db_session, repository)
        self.groups = groups
        self.modules = modules
        self.permissions = permissions
        self.group_roles = group_roles
        self.role_permissions = role_permissions

    async def deactivate(self, role_id: int) -> Role:
        """
        Soft delete a role.

        Raises:
            ResourceNotFoundException: If the role is not found
            ValidationException: If the role is still assigned to groups
        """
        await self._get_by_id(role_id)

        # group_roles is keyed by group, so the role is the right side
        if await self.group_roles.count_for_right(self.db, role_id) > 0:
            logger.warning(f"Refusing to deactivate role {role_id}: assigned to groups")
            raise ValidationException(
                detail="Cannot delete role assigned to groups. Remove from groups first."
            )

        return await self._set_active(role_id, False)

    async def hard_delete(self, role_id: int) -> Role:
        """
        Permanently delete a role, its group links and its permission links.

        Raises:
            ResourceNotFoundException: If the role is not found
        """
        try:
            await self._get_by_id(role_id)

            await self.group_roles.remove_all_for_right(self.db, role_id, commit=False)
            await self.role_permissions.remove_all_for_left(self.db, role_id, commit=False)
            role = await self.repository.remove(self.db, id=role_id)

            logger.info(f"Role {role_id} permanently deleted")
            return role

        except DomainException:
            raise

        except Exception as e:
            await self.db.rollback()
            logger.exception(f"Unexpected error deleting role {role_id}: {str(e)}")
            raise DatabaseOperationException(
                detail="Error deleting role",
                original_error=e
            )

    async def clone_role(self, source_id: int, new_name: str, description: Optional[str] = None) -> Role:
        """
        Create a new role holding the same permissions as ``source_id``.

        Args:
            source_id: Role to copy
            new_name: Name of the new role
            description: Description of the new role; defaults to the source's

        Returns:
            The new role

        Raises:
            ResourceNotFoundException: If the source role is not found
            ResourceAlreadyExistsException: If ``new_name`` is already used
        """
        source = await self._get_by_id(source_id)

        clone = await self.create(RoleCreate(
            name=new_name,
            description=description if description is not None else source.description,
        ))

        permission_ids = await self.role_permissions.right_ids_for(self.db, [source_id])
        if permission_ids:
            await self.role_permissions.add_pairs(self.db, clone.id, permission_ids)

        logger.info(
            f"Role {source_id} cloned into {clone.id} '{clone.name}' "
            f"with {len(permission_ids)} permission(s)"
        )
        return clone

    async def get_roles_by_module(self, module_id: int) -> List[Dict[str, Any]]:
        """
        Roles granting at least one permission on a module.

        Each role is reported with its permissions on that module and the
        groups holding it. Every hop is one batched query.

        Raises:
            ResourceNotFoundException: If the module is not found
        """
        if not await self.modules.get(self.db, id=module_id):
            raise ResourceNotFoundException(
                detail=f"Module with ID {module_id} not found",
                resource_id=module_id
            )

        permissions = {p.id: p for p in await self.permissions.get_by_module(self.db, module_id)}
        role_permission_pairs = await self.role_permissions.pairs_for_right(self.db, list(permissions))
        role_ids = sorted({role_id for role_id, _ in role_permission_pairs})
        roles = await self.repository.get_many(self.db, role_ids)

        group_role_pairs = await self.group_roles.pairs_for_right(self.db, role_ids)
        groups = {g.id: g for g in await self.groups.get_many(self.db, {gid for gid, _ in group_role_pairs})}

        permissions_of_role = defaultdict(list)
        for role_id, permission_id in role_permission_pairs:
            permissions_of_role[role_id].append(permissions[permission_id])
        groups_of_role = defaultdict(list)
        for group_id, role_id in group_role_pairs:
            if group_id in groups:
                groups_of_role[role_id].append(groups[group_id])

        return [
            {
                "id": role.id,
                "name": role.name,
                "description": role.description,
                "is_active": role.is_active,
                "created_at": role.created_at,
                "updated_at": role.updated_at,
                "permissions": permissions_of_role[role.id],
                "groups": groups_of_role[role.id],
                "permission_count": len(permissions_of_role[role.id]),
                "group_count": len(groups_of_role[role.id]),
            }
            for role in roles
        ]
