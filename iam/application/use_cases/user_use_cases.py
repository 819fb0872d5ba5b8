# iam/application/use_cases/user_use_cases.py

"""
Service for user management.

This module implements the service for user operations: creation,
updates, activation and deletion. Passwords are always hashed by the
repository.
"""

import logging
from typing import Dict, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from fastapi_pagination import Params

from iam.adapters.outbound.persistence.models import User
from iam.adapters.outbound.persistence.repositories import (
    user_repository,
    user_group_repository,
)
from iam.application.dtos.user_dto import UserCreate, UserUpdate
from iam.application.use_cases.base_use_cases import AsyncBaseService
from iam.domain.exceptions import (
    DomainException,
    ResourceAlreadyExistsException,
    DatabaseOperationException,
)

# Configure logger
logger = logging.getLogger(__name__)


class AsyncUserService(AsyncBaseService[User]):
    """
    Service for user management.

    Group membership is managed by the assignment service; this class only
    cleans up memberships when a user is deleted permanently.
    """

    label = "User"

    def __init__(
            self,
            db_session: AsyncSession,
            *,
            repository=user_repository,
            user_groups=user_group_repository,
    ):
        super().__init__(db_session, repository)
        self.user_groups = user_groups

    async def _ensure_unique(
            self,
            username: Optional[str] = None,
            email: Optional[str] = None,
            exclude_id: Optional[int] = None,
    ) -> None:
        """
        Raises:
            ResourceAlreadyExistsException: If the username or email is taken
        """
        if username and await self.repository.exists(self.db, exclude_id=exclude_id, username=username):
            logger.warning(f"Username already in use: {username}")
            raise ResourceAlreadyExistsException(detail="Username already exists")

        if email and await self.repository.exists(self.db, exclude_id=exclude_id, email=email):
            logger.warning(f"Email already in use: {email}")
            raise ResourceAlreadyExistsException(detail="Email already exists")

    async def list(
            self,
            params: Params,
            is_active: Optional[bool] = None,
            search: Optional[str] = None,
    ):
        """
        Paginated list of users.

        Args:
            params: Pagination parameters
            is_active: Only active or only inactive users
            search: Substring of the username
        """
        username = f"%{search}%" if search else None
        return await super().list(params, is_active=is_active, username=username)

    async def create(self, data: UserCreate) -> User:
        """
        Create a user.

        Raises:
            ResourceAlreadyExistsException: If the username or email is taken
            DatabaseOperationException: If there's an error in the process
        """
        try:
            await self._ensure_unique(username=data.username, email=data.email)
            user = await self.repository.create_with_password(self.db, obj_in=data)
            logger.info(f"User created: {user.username} (ID {user.id})")
            return user

        except DomainException:
            raise

        except Exception as e:
            logger.exception(f"Unexpected error creating user: {str(e)}")
            raise DatabaseOperationException(
                detail="Error creating user",
                original_error=e
            )

    async def update(self, user_id: int, data: UserUpdate) -> User:
        """
        Update a user. Username and email are re-checked for uniqueness.

        Raises:
            ResourceNotFoundException: If the user is not found
            ResourceAlreadyExistsException: If the new username or email is taken
        """
        try:
            user = await self._get_by_id(user_id)
            update_data = data.model_dump(exclude_unset=True)

            await self._ensure_unique(
                username=update_data.get("username") if update_data.get("username") != user.username else None,
                email=update_data.get("email") if update_data.get("email") != user.email else None,
                exclude_id=user_id,
            )

            user = await self.repository.update_with_password(self.db, db_obj=user, obj_in=update_data)
            logger.info(f"User updated: ID {user_id}")
            return user

        except DomainException:
            raise

        except Exception as e:
            logger.exception(f"Unexpected error updating user: {str(e)}")
            raise DatabaseOperationException(
                detail="Error updating user",
                original_error=e
            )

    async def statistics(self) -> Dict[str, int]:
        """Active/inactive counts plus how many users belong to at least one group."""
        counts = await super().statistics()
        with_groups = await self.user_groups.count_distinct_right(self.db)
        counts.update(with_groups=with_groups, without_groups=counts["total"] - with_groups)
        return counts

    async def deactivate(self, user_id: int) -> User:
        return await self._set_active(user_id, False)

    async def hard_delete(self, user_id: int) -> User:
        """
        Permanently delete a user and their group memberships.

        Raises:
            ResourceNotFoundException: If the user is not found
        """
        try:
            await self._get_by_id(user_id)
            # user_groups is keyed by group, so the user is the right side
            await self.user_groups.remove_all_for_right(self.db, user_id, commit=False)
            user = await self.repository.remove(self.db, id=user_id)

            logger.info(f"User {user_id} permanently deleted")
            return user

        except DomainException:
            raise

        except Exception as e:
            await self.db.rollback()
            logger.exception(f"Unexpected error deleting user {user_id}: {str(e)}")
            raise DatabaseOperationException(
                detail="Error deleting user",
                original_error=e
            )
