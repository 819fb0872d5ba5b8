# iam/domain/__init__.py

"""
Domain components: exceptions, permission value objects and the rules
for combining effective permissions.
"""

from iam.domain.exceptions import (
    DomainException,
    ResourceNotFoundException,
    ResourcesNotFoundException,
    ResourceAlreadyExistsException,
    ResourceInactiveException,
    PermissionDeniedException,
    InvalidCredentialsException,
    DatabaseOperationException,
    InvalidInputException,
    ValidationException,
)
