# iam/adapters/outbound/persistence/repositories/user_repository.py

"""
Repository for user operations.

This module implements the repository that performs database operations
related to users, implementing the IUserRepository interface.
"""

from typing import Optional, Dict, Any, Union
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from iam.adapters.outbound.persistence.repositories.base_repository import AsyncCRUDBase
from iam.adapters.outbound.persistence.models import User
from iam.application.dtos.user_dto import UserCreate, UserUpdate
from iam.application.ports.outbound import IUserRepository
from iam.domain.exceptions import DatabaseOperationException


class AsyncUserCRUD(AsyncCRUDBase[User, UserCreate, UserUpdate], IUserRepository[User]):
    """
    Async implementation of CRUD repository for the User entity.

    Extends AsyncCRUDBase with user-specific operations,
    such as email lookup and credential verification.
    """

    async def get_by_email(self, db: AsyncSession, email: str) -> Optional[User]:
        """
        Find a user by email.

        Args:
            db: Async database session
            email: User's email

        Returns:
            User found or None if doesn't exist

        Raises:
            DatabaseOperationException: In case of database error
        """
        try:
            query = select(User).where(User.email == email.strip().lower())
            result = await db.execute(query)
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            self.logger.error(f"Error fetching user by email '{email}': {e}")
            raise DatabaseOperationException(
                detail="Error fetching user by email",
                original_error=e
            )

    async def get_by_username(self, db: AsyncSession, username: str) -> Optional[User]:
        return await self.get_by_field(db, "username", username)

    async def create_with_password(self, db: AsyncSession, *, obj_in: Union[UserCreate, Dict[str, Any]]) -> User:
        """
        Create a new user, storing only the password hash.

        Args:
            db: Async database session
            obj_in: User data to create

        Returns:
            New User created

        Raises:
            ResourceAlreadyExistsException: If username or email is already in use
            DatabaseOperationException: In case of database error
        """
        # Import password manager here to avoid import cycle
        from iam.adapters.outbound.security.auth_user_manager import UserAuthManager

        obj_in_data = dict(obj_in) if isinstance(obj_in, dict) else obj_in.model_dump()
        password = obj_in_data.pop("password")
        obj_in_data["password"] = await UserAuthManager.hash_password(password)
        return await self.create(db, obj_in=obj_in_data)

    async def update_with_password(
            self,
            db: AsyncSession,
            *,
            db_obj: User,
            obj_in: Union[UserUpdate, Dict[str, Any]]
    ) -> User:
        """
        Update a user, hashing the password when one is given.

        Args:
            db: Async database session
            db_obj: User object to update
            obj_in: Update data

        Returns:
            Updated User
        """
        from iam.adapters.outbound.security.auth_user_manager import UserAuthManager

        update_data = (
            dict(obj_in) if isinstance(obj_in, dict) else obj_in.model_dump(exclude_unset=True)
        )

        if update_data.get("password"):
            update_data["password"] = await UserAuthManager.hash_password(update_data["password"])
        else:
            update_data.pop("password", None)

        return await self.update(db, db_obj=db_obj, obj_in=update_data)

    async def authenticate(self, db: AsyncSession, *, email: str, password: str) -> Optional[User]:
        """
        Return the user if the email exists and the password matches.
        """
        from iam.adapters.outbound.security.auth_user_manager import UserAuthManager

        user = await self.get_by_email(db, email=email)
        if not user:
            return None
        if not await UserAuthManager.verify_password(password, user.password):
            return None
        return user


# Create a singleton instance of the repository
user_repository = AsyncUserCRUD(User)
