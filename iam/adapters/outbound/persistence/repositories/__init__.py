# iam/adapters/outbound/persistence/repositories/__init__.py

"""
Repositories module.

Exports the repository classes and the shared instances for every entity
and association table.
"""

from iam.adapters.outbound.persistence.repositories.base_repository import AsyncCRUDBase
from iam.adapters.outbound.persistence.repositories.user_repository import AsyncUserCRUD, user_repository
from iam.adapters.outbound.persistence.repositories.group_repository import AsyncGroupCRUD, group_repository
from iam.adapters.outbound.persistence.repositories.role_repository import AsyncRoleCRUD, role_repository
from iam.adapters.outbound.persistence.repositories.module_repository import AsyncModuleCRUD, module_repository
from iam.adapters.outbound.persistence.repositories.permission_repository import (
    AsyncPermissionCRUD,
    permission_repository,
)
from iam.adapters.outbound.persistence.repositories.association_repository import (
    AsyncAssociationRepository,
    user_group_repository,
    group_role_repository,
    role_permission_repository,
)
from iam.adapters.outbound.persistence.repositories.audit_repository import (
    AsyncAuditLogCRUD,
    audit_log_repository,
)

__all__ = [
    # Classes
    "AsyncCRUDBase",
    "AsyncUserCRUD",
    "AsyncGroupCRUD",
    "AsyncRoleCRUD",
    "AsyncModuleCRUD",
    "AsyncPermissionCRUD",
    "AsyncAssociationRepository",
    "AsyncAuditLogCRUD",

    # Instances
    "user_repository",
    "group_repository",
    "role_repository",
    "module_repository",
    "permission_repository",
    "user_group_repository",
    "group_role_repository",
    "role_permission_repository",
    "audit_log_repository",
]
