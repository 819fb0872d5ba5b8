# iam/application/use_cases/__init__.py

"""
Application service module.

This package contains the application services that implement the business logic
of the application, organized according to functional domains.
"""

# Export service classes for easier imports
from iam.application.use_cases.base_use_cases import AsyncBaseService, AsyncNamedEntityService
from iam.application.use_cases.user_use_cases import AsyncUserService
from iam.application.use_cases.group_use_cases import AsyncGroupService
from iam.application.use_cases.role_use_cases import AsyncRoleService
from iam.application.use_cases.module_use_cases import AsyncModuleService
from iam.application.use_cases.permission_use_cases import AsyncPermissionService
from iam.application.use_cases.auth_use_cases import AsyncAuthService
from iam.application.use_cases.permission_resolver_use_cases import PermissionResolver
from iam.application.use_cases.assignment_use_cases import (
    AsyncAssignmentService,
    AsyncGroupRoleService,
    AsyncGroupUserService,
    AsyncRolePermissionService,
)
from iam.application.use_cases.audit_use_cases import AsyncAuditService, SessionAuditSink

# Export all services
__all__ = [
    "AsyncBaseService",
    "AsyncNamedEntityService",
    "AsyncUserService",
    "AsyncGroupService",
    "AsyncRoleService",
    "AsyncModuleService",
    "AsyncPermissionService",
    "AsyncAuthService",
    "PermissionResolver",
    "AsyncAssignmentService",
    "AsyncGroupRoleService",
    "AsyncGroupUserService",
    "AsyncRolePermissionService",
    "AsyncAuditService",
    "SessionAuditSink",
]
