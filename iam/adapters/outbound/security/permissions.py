# iam/adapters/outbound/security/permissions.py

import logging
from sqlalchemy.ext.asyncio import AsyncSession
from fastapi import Depends

from iam.adapters.inbound.api.deps import get_session, get_current_user
from iam.adapters.outbound.persistence.models.user_model import User
from iam.application.use_cases.permission_resolver_use_cases import PermissionResolver
from iam.domain.exceptions import PermissionDeniedException

logger = logging.getLogger(__name__)


def require_permission(module_name: str, action: str):
    """
    Returns a dependency that validates if the authenticated user holds
    ``action`` on the module called ``module_name``.

    Responds 401 without a valid user, 404 when the module does not exist
    and 403 when the permission is missing.

    Usage:
        @router.get(..., dependencies=[Depends(require_permission("Users", "read"))])
    """

    async def permission_checker(
            current_user: User = Depends(get_current_user),
            db: AsyncSession = Depends(get_session),
    ) -> User:
        resolver = PermissionResolver(db)
        if not await resolver.check_permission_by_module_name(current_user.id, module_name, action):
            logger.warning(f"User {current_user.id} denied {action} on {module_name}")
            raise PermissionDeniedException(
                detail=f"Permission denied: User does not have {action} permission for this resource",
                permission=f"{module_name}:{action}"
            )

        return current_user

    return permission_checker
