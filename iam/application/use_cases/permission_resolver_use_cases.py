# iam/application/use_cases/permission_resolver_use_cases.py

"""
Effective permission resolution.

A user holds a permission when some path User -> Group -> Role -> Permission
exists. The resolver walks that graph one hop per query: every hop is a
single batched ``IN`` over the ids found by the previous hop, so the number
of queries does not depend on how many groups or roles a user has.

Dead ends (unknown user, no groups, no roles, no permissions) are not
errors: they resolve to an empty permission set.
"""

import logging
from collections import defaultdict
from typing import Any, Dict, List
from sqlalchemy.ext.asyncio import AsyncSession

from iam.adapters.outbound.persistence.models import Module, Permission, User
from iam.adapters.outbound.persistence.repositories import (
    user_repository,
    group_repository,
    role_repository,
    module_repository,
    permission_repository,
    user_group_repository,
    group_role_repository,
    role_permission_repository,
)
from iam.application.ports.inbound import IPermissionResolver
from iam.domain.exceptions import InvalidInputException, ResourceNotFoundException
from iam.domain.models.permission_domain_model import Action, PermissionCheck
from iam.domain.services.permission_service import PermissionClosureService

# Configure logger
logger = logging.getLogger(__name__)


class PermissionResolver(IPermissionResolver):
    """
    Computes the permissions a user holds through groups and roles.

    Every repository is injected; the defaults are the shared module
    instances.
    """

    def __init__(
            self,
            db_session: AsyncSession,
            *,
            users=user_repository,
            groups=group_repository,
            roles=role_repository,
            modules=module_repository,
            permissions=permission_repository,
            user_groups=user_group_repository,
            group_roles=group_role_repository,
            role_permissions=role_permission_repository,
    ):
        self.db = db_session
        self.users = users
        self.groups = groups
        self.roles = roles
        self.modules = modules
        self.permissions = permissions
        self.user_groups = user_groups
        self.group_roles = group_roles
        self.role_permissions = role_permissions

    ########################################################################
    # Traversal
    ########################################################################

    async def _group_ids_for_user(self, user_id: int) -> List[int]:
        # user_groups is keyed by group: the user is on the right side
        return await self.user_groups.left_ids_for(self.db, [user_id])

    async def get_user_permissions(self, user_id: int) -> List[Permission]:
        """
        Deduplicated permissions reachable from the user.

        Args:
            user_id: User to resolve

        Returns:
            Permissions with their module loaded; empty on any dead end
        """
        user = await self.users.get(self.db, id=user_id)
        if not user:
            logger.debug(f"Permission lookup for unknown user {user_id}")
            return []

        group_ids = await self._group_ids_for_user(user_id)
        if not group_ids:
            return []

        role_ids = await self.group_roles.right_ids_for(self.db, group_ids)
        if not role_ids:
            return []

        permission_ids = await self.role_permissions.right_ids_for(self.db, role_ids)
        if not permission_ids:
            return []

        permissions = await self.permissions.get_many(self.db, permission_ids)
        return PermissionClosureService.merge_unique(permissions)

    async def check_permission(self, user_id: int, module_id: int, action: str) -> bool:
        """
        Whether the user holds ``action`` on ``module_id``.

        The action is not validated; an unknown action is simply not granted.
        """
        permissions = await self.get_user_permissions(user_id)
        allowed = PermissionClosureService.grants(permissions, module_id, action)
        logger.debug(
            f"Permission check user={user_id} module={module_id} action={action}: "
            f"{'granted' if allowed else 'denied'}"
        )
        return allowed

    async def check_permission_by_module_name(self, user_id: int, module_name: str, action: str) -> bool:
        """
        Point check addressed by module name.

        Raises:
            ResourceNotFoundException: If no module has that name
        """
        module = await self._module_named(module_name)
        return await self.check_permission(user_id, module.id, action)

    async def explain_permission_by_module_name(
            self, user_id: int, module_name: str, action: str
    ) -> PermissionCheck:
        """
        Point check by module name, reporting the resolved module.

        Raises:
            ResourceNotFoundException: If no module has that name
        """
        module = await self._module_named(module_name)
        return PermissionCheck(
            user_id=user_id,
            module_id=module.id,
            action=action,
            has_permission=await self.check_permission(user_id, module.id, action),
            module_name=module.name,
        )

    async def _module_named(self, module_name: str) -> Module:
        module = await self.modules.get_by_name(self.db, module_name)
        if not module:
            logger.warning(f"Permission check on unknown module '{module_name}'")
            raise ResourceNotFoundException(detail=f"Module {module_name} not found")
        return module

    async def simulate_action(self, user_id: int, module_id: int, action: str) -> PermissionCheck:
        """
        Validated point check, reporting the module name alongside the answer.

        Raises:
            ResourceNotFoundException: If the user or the module does not exist
            InvalidInputException: If the action is not a CRUD action
        """
        if not await self.users.get(self.db, id=user_id):
            raise ResourceNotFoundException(detail=f"User with ID {user_id} not found", resource_id=user_id)

        module = await self.modules.get(self.db, id=module_id)
        if not module:
            raise ResourceNotFoundException(detail=f"Module with ID {module_id} not found", resource_id=module_id)

        if not PermissionClosureService.is_canonical_action(action):
            raise InvalidInputException(
                detail=f"Action must be one of: {', '.join(Action.values())}"
            )

        return PermissionCheck(
            user_id=user_id,
            module_id=module_id,
            action=action,
            has_permission=await self.check_permission(user_id, module_id, action),
            module_name=module.name,
        )

    ########################################################################
    # Reporting
    ########################################################################

    @staticmethod
    def format_permission(permission: Permission) -> Dict[str, Any]:
        return {
            "id": permission.id,
            "name": permission.name,
            "module_id": permission.module_id,
            "module_name": permission.module_name or "Unknown",
            "action": permission.action,
            "description": permission.description,
            "is_active": permission.is_active,
        }

    async def get_formatted_user_permissions(self, user_id: int) -> List[Dict[str, Any]]:
        """Effective permissions as plain dicts, ordered by id."""
        permissions = await self.get_user_permissions(user_id)
        return [self.format_permission(p) for p in sorted(permissions, key=lambda p: p.id)]

    async def get_user_permission_summary(self, user_id: int) -> Dict[str, Any]:
        """
        Explain where a user's permissions come from.

        Returns:
            The user, each of their groups with its roles and the number of
            permissions every role holds, and the deduplicated union

        Raises:
            ResourceNotFoundException: If the user does not exist
        """
        user = await self.users.get(self.db, id=user_id)
        if not user:
            raise ResourceNotFoundException(detail="User not found", resource_id=user_id)

        group_ids = await self._group_ids_for_user(user_id)
        groups = await self.groups.get_many(self.db, group_ids)

        group_role_pairs = await self.group_roles.pairs_for_left(self.db, group_ids)
        role_ids = sorted({role_id for _, role_id in group_role_pairs})
        roles = {role.id: role for role in await self.roles.get_many(self.db, role_ids)}

        permission_counts: Dict[int, int] = defaultdict(int)
        for role_id, _ in await self.role_permissions.pairs_for_left(self.db, role_ids):
            permission_counts[role_id] += 1

        roles_by_group: Dict[int, List[int]] = defaultdict(list)
        for group_id, role_id in group_role_pairs:
            roles_by_group[group_id].append(role_id)

        permissions = await self.get_formatted_user_permissions(user_id)

        return {
            "user_id": user.id,
            "username": user.username,
            "email": user.email,
            "groups": [
                {
                    "id": group.id,
                    "name": group.name,
                    "roles": [
                        {
                            "id": role_id,
                            "name": roles[role_id].name,
                            "permission_count": permission_counts[role_id],
                        }
                        for role_id in roles_by_group[group.id]
                        if role_id in roles
                    ],
                }
                for group in groups
            ],
            "total_permissions": len(permissions),
            "permissions": permissions,
        }

    async def get_users_by_permission(self, module_id: int, action: str) -> List[User]:
        """
        Users holding ``action`` on ``module_id``, found by walking the graph
        backwards: permissions -> roles -> groups -> users.
        """
        permissions = await self.permissions.get_by_module_action(self.db, module_id, action)
        if not permissions:
            return []

        role_ids = await self.role_permissions.left_ids_for(self.db, [p.id for p in permissions])
        if not role_ids:
            return []

        group_ids = await self.group_roles.left_ids_for(self.db, role_ids)
        if not group_ids:
            return []

        user_ids = await self.user_groups.right_ids_for(self.db, group_ids)
        return await self.users.get_many(self.db, user_ids)
