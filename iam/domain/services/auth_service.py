# iam/domain/services/auth_service.py

from datetime import datetime, timedelta
from typing import Optional, Dict, Any
import uuid


class AuthService:
    """
    Domain service for token-related business rules.
    """

    @staticmethod
    def create_token_payload(
            subject: Any,
            expires_delta: timedelta,
            token_type: str = "user",
            additional_claims: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """
        Create a token payload with standard claims.

        Args:
            subject: The subject of the token (user ID)
            expires_delta: Token expiration time delta
            token_type: Type of token
            additional_claims: Additional claims to include in token

        Returns:
            Dict with all token claims
        """
        expire = datetime.utcnow() + expires_delta

        payload = {
            "sub": str(subject),
            "exp": int(expire.timestamp()),
            "type": token_type,
            "jti": str(uuid.uuid4()),
        }

        if additional_claims:
            payload.update(additional_claims)

        return payload

    @staticmethod
    def is_token_valid(token_payload: Dict[str, Any], expected_type: str = "user") -> bool:
        """
        Validate a decoded token's basic properties.

        Args:
            token_payload: The decoded token payload
            expected_type: Expected token type

        Returns:
            True if the token carries the required claims and type
        """
        if not all(k in token_payload for k in ["sub", "exp", "type", "jti"]):
            return False

        return token_payload.get("type") == expected_type
