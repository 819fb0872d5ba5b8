# iam/shared/utils/input_validation.py

import re
from typing import Optional, Tuple


class InputValidator:
    """
    Validation helpers for user input, complementing the Pydantic models.

    Every validator returns a (valid, error_message) tuple.
    """

    # Length limits
    MIN_USERNAME_LENGTH = 3
    MAX_USERNAME_LENGTH = 50
    MIN_NAME_LENGTH = 3
    MAX_NAME_LENGTH = 50
    MAX_PERMISSION_NAME_LENGTH = 100
    MIN_MODULE_NAME_LENGTH = 2
    MAX_MODULE_NAME_LENGTH = 50
    MAX_DESCRIPTION_LENGTH = 255
    MIN_PASSWORD_LENGTH = 6
    MAX_PASSWORD_BYTES = 72  # bcrypt ignores anything past this

    USERNAME_PATTERN = re.compile(r'^[A-Za-z0-9_.\-]+$')
    MODULE_NAME_PATTERN = re.compile(r'^[a-zA-Z][a-zA-Z0-9\s\-_]*$')
    # Characters rejected in free-text names
    DANGEROUS_CHARS = re.compile(r'[<>"\';%{}\[\]]')

    @classmethod
    def validate_username(cls, username: str) -> Tuple[bool, Optional[str]]:
        if not username or not username.strip():
            return False, "Username cannot be empty"

        if not cls.MIN_USERNAME_LENGTH <= len(username) <= cls.MAX_USERNAME_LENGTH:
            return False, (
                f"Username must be between {cls.MIN_USERNAME_LENGTH} "
                f"and {cls.MAX_USERNAME_LENGTH} characters"
            )

        if not cls.USERNAME_PATTERN.match(username):
            return False, "Username may only contain letters, numbers, '.', '-' and '_'"

        return True, None

    @classmethod
    def validate_name(
            cls, name: str, label: str = "Name", max_length: Optional[int] = None
    ) -> Tuple[bool, Optional[str]]:
        """
        Validate a group, role or permission name.

        Args:
            name: String to validate
            label: Prefix used in the error message
            max_length: Upper bound, MAX_NAME_LENGTH when omitted

        Returns:
            Tuple (valid, error_message)
        """
        if not name or not name.strip():
            return False, f"{label} cannot be empty"

        max_length = max_length or cls.MAX_NAME_LENGTH
        if not cls.MIN_NAME_LENGTH <= len(name.strip()) <= max_length:
            return False, f"{label} must be between {cls.MIN_NAME_LENGTH} and {max_length} characters"

        if cls.DANGEROUS_CHARS.search(name):
            return False, f"{label} contains characters that are not allowed"

        return True, None

    @classmethod
    def validate_module_name(cls, name: str) -> Tuple[bool, Optional[str]]:
        """
        Validate a module name: 2-50 characters, starting with a letter,
        made of letters, numbers, spaces, hyphens and underscores.
        """
        if not name or not name.strip():
            return False, "Module name cannot be empty"

        if not cls.MIN_MODULE_NAME_LENGTH <= len(name) <= cls.MAX_MODULE_NAME_LENGTH:
            return False, (
                f"Module name must be between {cls.MIN_MODULE_NAME_LENGTH} "
                f"and {cls.MAX_MODULE_NAME_LENGTH} characters"
            )

        if not name[0].isalpha():
            return False, "Module name must start with a letter"

        if not cls.MODULE_NAME_PATTERN.match(name):
            return False, "Module name can only contain letters, numbers, spaces, hyphens, and underscores"

        return True, None

    @classmethod
    def validate_description(cls, description: Optional[str]) -> Tuple[bool, Optional[str]]:
        if description is not None and len(description) > cls.MAX_DESCRIPTION_LENGTH:
            return False, f"Description cannot exceed {cls.MAX_DESCRIPTION_LENGTH} characters"
        return True, None

    @classmethod
    def validate_password(cls, password: str) -> Tuple[bool, Optional[str]]:
        if not password:
            return False, "Password cannot be empty"

        if len(password) < cls.MIN_PASSWORD_LENGTH:
            return False, f"Password must be at least {cls.MIN_PASSWORD_LENGTH} characters long"

        if len(password.encode("utf-8")) > cls.MAX_PASSWORD_BYTES:
            return False, f"Password is too long (maximum {cls.MAX_PASSWORD_BYTES} bytes)"

        return True, None

    @staticmethod
    def sanitize_name(name: str) -> str:
        """Strip the ends and collapse inner whitespace."""
        return re.sub(r'\s+', ' ', name.strip())

    @staticmethod
    def normalize_email(email: str) -> str:
        return email.strip().lower()
