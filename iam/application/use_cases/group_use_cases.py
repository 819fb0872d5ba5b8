# iam/application/use_cases/group_use_cases.py

"""
Service for group management.
"""

import logging
from sqlalchemy.ext.asyncio import AsyncSession

from iam.adapters.outbound.persistence.models import Group
from iam.adapters.outbound.persistence.repositories import (
    group_repository,
    user_group_repository,
    group_role_repository,
)
from iam.application.use_cases.base_use_cases import AsyncNamedEntityService
from iam.domain.exceptions import (
    DomainException,
    ValidationException,
    DatabaseOperationException,
)

# Configure logger
logger = logging.getLogger(__name__)


class AsyncGroupService(AsyncNamedEntityService[Group]):
    """
    Service for groups. A group is the only entity users are attached to.
    """

    label = "Group"

    def __init__(
            self,
            db_session: AsyncSession,
            *,
            repository=group_repository,
            user_groups=user_group_repository,
            group_roles=group_role_repository,
    ):
        super().__init__(db_session, repository)
        self.user_groups = user_groups
        self.group_roles = group_roles

    async def deactivate(self, group_id: int) -> Group:
        """
        Soft delete a group.

        Raises:
            ResourceNotFoundException: If the group is not found
            ValidationException: If users are still assigned to the group
        """
        await self._get_by_id(group_id)

        if await self.user_groups.count_for_left(self.db, group_id) > 0:
            logger.warning(f"Refusing to deactivate group {group_id}: users assigned")
            raise ValidationException(
                detail="Cannot delete group with assigned users. Remove users first."
            )

        return await self._set_active(group_id, False)

    async def hard_delete(self, group_id: int) -> Group:
        """
        Permanently delete a group together with its user and role links.

        Raises:
            ResourceNotFoundException: If the group is not found
            DatabaseOperationException: If there's an error in the process
        """
        try:
            await self._get_by_id(group_id)

            removed_users = await self.user_groups.remove_all_for_left(self.db, group_id, commit=False)
            removed_roles = await self.group_roles.remove_all_for_left(self.db, group_id, commit=False)
            group = await self.repository.remove(self.db, id=group_id)

            logger.info(
                f"Group {group_id} permanently deleted "
                f"({removed_users} user link(s), {removed_roles} role link(s))"
            )
            return group

        except DomainException:
            raise

        except Exception as e:
            await self.db.rollback()
            logger.exception(f"Unexpected error deleting group {group_id}: {str(e)}")
            raise DatabaseOperationException(
                detail="Error deleting group",
                original_error=e
            )
