# iam/adapters/outbound/persistence/models/__init__.py

"""
ORM models.

Importing this package registers every table on ``Base.metadata``.
"""

from iam.adapters.outbound.persistence.models.base_model import Base, TimestampMixin, SoftDeleteMixin

# Entities
from iam.adapters.outbound.persistence.models.user_model import User
from iam.adapters.outbound.persistence.models.group_model import Group
from iam.adapters.outbound.persistence.models.role_model import Role
from iam.adapters.outbound.persistence.models.module_model import Module
from iam.adapters.outbound.persistence.models.permission_model import Permission

# Association tables
from iam.adapters.outbound.persistence.models.association_tables import (
    user_groups,
    group_roles,
    role_permissions,
)

# Audit
from iam.adapters.outbound.persistence.models.audit_log_model import AuditLog

__all__ = [
    "Base",
    "TimestampMixin",
    "SoftDeleteMixin",

    "User",
    "Group",
    "Role",
    "Module",
    "Permission",

    "user_groups",
    "group_roles",
    "role_permissions",

    "AuditLog",
]
