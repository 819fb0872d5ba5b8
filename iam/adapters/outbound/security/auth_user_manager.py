# iam/adapters/outbound/security/auth_user_manager.py

from datetime import timedelta
from typing import Any, Dict, Optional

from jose import jwt, JWTError
from passlib.context import CryptContext

from iam.adapters.configuration.config import settings
from iam.domain.exceptions import InvalidCredentialsException
from iam.domain.services.auth_service import AuthService

SECRET_KEY = settings.SECRET_KEY
ALGORITHM = settings.ALGORITHM
DEFAULT_EXPIRES_MIN = settings.ACCESS_TOKEN_EXPIRE_MINUTES


class UserAuthManager:
    """
    JWT authentication manager for users.
    """

    crypt_context = CryptContext(
        schemes=["bcrypt"],
        deprecated="auto",
        bcrypt__rounds=settings.BCRYPT_ROUNDS,
    )

    @classmethod
    async def hash_password(cls, password: str) -> str:
        """Return the hash of a plain text password."""
        return cls.crypt_context.hash(password)

    @classmethod
    async def verify_password(cls, plain_password: str, hashed_password: str) -> bool:
        """Verify if the plain text password matches the stored hash."""
        try:
            return cls.crypt_context.verify(plain_password, hashed_password)
        except ValueError:
            # Malformed or unknown hash stored for the account
            return False

    @classmethod
    async def create_access_token(
            cls,
            subject: Any,
            expires_delta: Optional[timedelta] = None,
            additional_claims: Optional[Dict[str, Any]] = None,
    ) -> str:
        """
        Create a JWT access token for the authenticated user.

        - subject: the user's ID.
        - expires_delta: custom expiration time.
        - additional_claims: extra claims such as username and email.
        """
        if expires_delta is None:
            expires_delta = timedelta(minutes=DEFAULT_EXPIRES_MIN)

        payload = AuthService.create_token_payload(
            subject=subject,
            expires_delta=expires_delta,
            token_type="user",
            additional_claims=additional_claims,
        )
        return jwt.encode(payload, SECRET_KEY, algorithm=ALGORITHM)

    @classmethod
    async def verify_access_token(cls, token: str) -> dict:
        """
        Verify and decode a JWT access token.

        Raises:
            InvalidCredentialsException: If the token is malformed, expired
                or not a user token
        """
        try:
            payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
        except JWTError:
            raise InvalidCredentialsException(detail="Invalid or expired token")

        if not AuthService.is_token_valid(payload, expected_type="user"):
            raise InvalidCredentialsException(detail="Invalid token: incorrect type")

        return payload
