# iam/application/use_cases/auth_use_cases.py

"""
Service for user authentication.

This module implements the service for authentication operations:
registration, login, password changes and account activation.
"""

import logging
from datetime import timedelta
from sqlalchemy.ext.asyncio import AsyncSession

from iam.adapters.configuration.config import settings
from iam.adapters.outbound.persistence.models import User
from iam.adapters.outbound.persistence.repositories.user_repository import user_repository
from iam.adapters.outbound.security.auth_user_manager import UserAuthManager
from iam.application.dtos.user_dto import UserCreate, UserLogin, TokenData, UserOutput
from iam.domain.exceptions import (
    DomainException,
    InvalidCredentialsException,
    ResourceAlreadyExistsException,
    ResourceNotFoundException,
    DatabaseOperationException,
)

logger = logging.getLogger(__name__)


class AsyncAuthService:
    """
    Service for user authentication.

    This class implements the business logic related to
    user authentication and account management.
    """

    def __init__(self, db_session: AsyncSession, *, users=user_repository):
        """
        Initialize the service with a database session.

        Args:
            db_session: Active AsyncSession
            users: User repository
        """
        self.db = db_session
        self.users = users

    async def _get_user(self, user_id: int) -> User:
        user = await self.users.get(self.db, id=user_id)
        if not user:
            logger.warning(f"User not found: ID {user_id}")
            raise ResourceNotFoundException(detail="User not found", resource_id=user_id)
        return user

    async def register(self, user_input: UserCreate) -> User:
        """
        Register a new user in the system.

        Args:
            user_input: User data to register

        Returns:
            Registered user

        Raises:
            ResourceAlreadyExistsException: If the email or username is already in use
        """
        if await self.users.get_by_email(self.db, user_input.email):
            logger.warning(f"Registration with existing email: {user_input.email}")
            raise ResourceAlreadyExistsException(detail="Email already registered")

        if await self.users.get_by_username(self.db, user_input.username):
            logger.warning(f"Registration with existing username: {user_input.username}")
            raise ResourceAlreadyExistsException(detail="Username already taken")

        user = await self.users.create_with_password(self.db, obj_in=user_input)
        logger.info(f"User registered: {user.username} (ID {user.id})")
        return user

    async def login(self, credentials: UserLogin) -> TokenData:
        """
        Authenticate a user and generate an access token.

        Args:
            credentials: Email and password

        Returns:
            Token data with the access token and the user

        Raises:
            InvalidCredentialsException: If credentials are invalid or the account is deactivated
        """
        try:
            user = await self.users.authenticate(
                self.db,
                email=credentials.email,
                password=credentials.password
            )
            if not user:
                logger.warning(f"Failed login attempt for {credentials.email}")
                raise InvalidCredentialsException(detail="Invalid email or password")

            if not user.is_active:
                logger.warning(f"Login attempt on deactivated account {credentials.email}")
                raise InvalidCredentialsException(detail="Account is deactivated")

            expires_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
            access_token = await UserAuthManager.create_access_token(
                subject=user.id,
                expires_delta=expires_delta,
                additional_claims={"username": user.username, "email": user.email},
            )

            logger.info(f"User logged in: {user.username}")
            return TokenData(
                access_token=access_token,
                token_type="bearer",
                expires_in=int(expires_delta.total_seconds()),
                user=UserOutput.model_validate(user),
            )

        except DomainException:
            raise

        except Exception as e:
            logger.exception(f"Error during login: {str(e)}")
            raise DatabaseOperationException(
                detail="Error processing login",
                original_error=e
            )

    async def change_password(self, user_id: int, current_password: str, new_password: str) -> User:
        """
        Change a user's password after checking the current one.

        Raises:
            ResourceNotFoundException: If the user is not found
            InvalidCredentialsException: If the current password is incorrect
        """
        user = await self._get_user(user_id)

        if not await UserAuthManager.verify_password(current_password, user.password):
            logger.warning(f"Wrong current password for user {user_id}")
            raise InvalidCredentialsException(detail="Current password is incorrect")

        user = await self.users.update_with_password(self.db, db_obj=user, obj_in={"password": new_password})
        logger.info(f"Password changed for user {user_id}")
        return user

    async def reset_password(self, user_id: int, new_password: str) -> User:
        """Set a new password without checking the old one (administrative)."""
        user = await self._get_user(user_id)
        user = await self.users.update_with_password(self.db, db_obj=user, obj_in={"password": new_password})
        logger.info(f"Password reset for user {user_id}")
        return user

    async def activate(self, user_id: int) -> User:
        user = await self._get_user(user_id)
        user = await self.users.update(self.db, db_obj=user, obj_in={"is_active": True})
        logger.info(f"User {user_id} activated")
        return user

    async def deactivate(self, user_id: int) -> User:
        user = await self._get_user(user_id)
        user = await self.users.update(self.db, db_obj=user, obj_in={"is_active": False})
        logger.info(f"User {user_id} deactivated")
        return user
