# iam/adapters/inbound/api/v1/endpoints/assignment_endpoint.py

"""
Relationship endpoints: roles and users of a group, permissions of a role.

Every collection path supports GET (list), POST (add, idempotent),
PUT (replace) and DELETE with a body (bulk remove). Single items can also
be removed with DELETE on the item path.
"""

import logging
from typing import List, Optional
from fastapi import APIRouter, BackgroundTasks, Depends, Path, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from iam.adapters.inbound.api.deps import (
    RequestContext,
    get_session,
    get_audit_sink,
    request_context,
    schedule_audit,
)
from iam.adapters.outbound.persistence.models.user_model import User
from iam.adapters.outbound.security.permissions import require_permission
from iam.application.dtos.assignment_dto import (
    RoleIdsInput,
    UserIdsInput,
    PermissionIdsInput,
    AssignmentResultOutput,
    RemovalResultOutput,
)
from iam.application.dtos.base_dto import ApiResponse, EntityStatistics
from iam.application.dtos.group_dto import GroupOutput
from iam.application.dtos.permission_dto import PermissionOutput
from iam.application.dtos.role_dto import RoleOutput
from iam.application.dtos.user_dto import UserOutput
from iam.application.ports.outbound import IAuditSink
from iam.application.use_cases.assignment_use_cases import (
    AsyncGroupRoleService,
    AsyncGroupUserService,
    AsyncRolePermissionService,
)
from iam.shared.utils.responses import ok

logger = logging.getLogger(__name__)

router = APIRouter()

MODULE = "Assignments"


def _audit_change(
        background_tasks: BackgroundTasks,
        audit: IAuditSink,
        context: RequestContext,
        action: str,
        resource: str,
        resource_id: int,
        requested: List[int],
        result,
) -> None:
    schedule_audit(
        background_tasks, audit, context, action, resource, resource_id,
        {"requested_ids": requested, "result": result},
    )


########################################################################
# Group -> Roles
########################################################################

@router.get(
    "/groups/{group_id}/roles",
    response_model=ApiResponse[List[RoleOutput]],
    summary="List Group Roles",
)
async def list_group_roles(
        group_id: int = Path(..., gt=0, description="Group ID"),
        db: AsyncSession = Depends(get_session),
        current_user: User = Depends(require_permission(MODULE, "read")),
):
    return ok(await AsyncGroupRoleService(db).list(group_id), "Group roles retrieved successfully")


@router.post(
    "/groups/{group_id}/roles",
    response_model=ApiResponse[AssignmentResultOutput],
    summary="Assign Roles to Group",
    description="Adds roles to a group. Roles already assigned are reported, not duplicated.",
)
async def assign_roles_to_group(
        body: RoleIdsInput,
        request: Request,
        background_tasks: BackgroundTasks,
        group_id: int = Path(..., gt=0, description="Group ID"),
        db: AsyncSession = Depends(get_session),
        current_user: User = Depends(require_permission(MODULE, "create")),
        audit: IAuditSink = Depends(get_audit_sink),
):
    result = await AsyncGroupRoleService(db).assign(group_id, body.role_ids)
    _audit_change(
        background_tasks, audit, request_context(request, current_user),
        "ASSIGN_ROLES_TO_GROUP", "Group", group_id, body.role_ids, result,
    )
    return ok(result, "Roles assigned to group successfully")


@router.put(
    "/groups/{group_id}/roles",
    response_model=ApiResponse[AssignmentResultOutput],
    summary="Replace Group Roles",
    description="Makes the given roles the exact role set of the group. An empty list clears it.",
)
async def replace_group_roles(
        body: RoleIdsInput,
        request: Request,
        background_tasks: BackgroundTasks,
        group_id: int = Path(..., gt=0, description="Group ID"),
        db: AsyncSession = Depends(get_session),
        current_user: User = Depends(require_permission(MODULE, "update")),
        audit: IAuditSink = Depends(get_audit_sink),
):
    result = await AsyncGroupRoleService(db).replace(group_id, body.role_ids)
    _audit_change(
        background_tasks, audit, request_context(request, current_user),
        "REPLACE_GROUP_ROLES", "Group", group_id, body.role_ids, result,
    )
    return ok(result, "Group roles replaced successfully")


@router.delete(
    "/groups/{group_id}/roles",
    response_model=ApiResponse[RemovalResultOutput],
    summary="Remove Roles from Group",
)
async def remove_roles_from_group(
        body: RoleIdsInput,
        request: Request,
        background_tasks: BackgroundTasks,
        group_id: int = Path(..., gt=0, description="Group ID"),
        db: AsyncSession = Depends(get_session),
        current_user: User = Depends(require_permission(MODULE, "delete")),
        audit: IAuditSink = Depends(get_audit_sink),
):
    result = await AsyncGroupRoleService(db).remove(group_id, body.role_ids)
    _audit_change(
        background_tasks, audit, request_context(request, current_user),
        "REMOVE_ROLES_FROM_GROUP", "Group", group_id, body.role_ids, result,
    )
    return ok(result, "Roles removed from group successfully")


@router.delete(
    "/groups/{group_id}/roles/{role_id}",
    response_model=ApiResponse[RemovalResultOutput],
    summary="Remove Role from Group",
)
async def remove_role_from_group(
        request: Request,
        background_tasks: BackgroundTasks,
        group_id: int = Path(..., gt=0, description="Group ID"),
        role_id: int = Path(..., gt=0, description="Role ID"),
        db: AsyncSession = Depends(get_session),
        current_user: User = Depends(require_permission(MODULE, "delete")),
        audit: IAuditSink = Depends(get_audit_sink),
):
    result = await AsyncGroupRoleService(db).remove(group_id, [role_id])
    _audit_change(
        background_tasks, audit, request_context(request, current_user),
        "REMOVE_ROLES_FROM_GROUP", "Group", group_id, [role_id], result,
    )
    return ok(result, result.details[0].message)


@router.get(
    "/roles/{role_id}/groups",
    response_model=ApiResponse[List[GroupOutput]],
    summary="List Groups Holding a Role",
)
async def list_role_groups(
        role_id: int = Path(..., gt=0, description="Role ID"),
        db: AsyncSession = Depends(get_session),
        current_user: User = Depends(require_permission(MODULE, "read")),
):
    return ok(await AsyncGroupRoleService(db).list_reverse(role_id), "Role groups retrieved successfully")


########################################################################
# Group -> Users
########################################################################

@router.get(
    "/groups/{group_id}/users",
    response_model=ApiResponse[List[UserOutput]],
    summary="List Group Members",
)
async def list_group_users(
        group_id: int = Path(..., gt=0, description="Group ID"),
        db: AsyncSession = Depends(get_session),
        current_user: User = Depends(require_permission(MODULE, "read")),
):
    return ok(await AsyncGroupUserService(db).list(group_id), "Group users retrieved successfully")


@router.get(
    "/groups/{group_id}/users/active",
    response_model=ApiResponse[List[UserOutput]],
    summary="List Active Group Members",
)
async def list_active_group_users(
        group_id: int = Path(..., gt=0, description="Group ID"),
        db: AsyncSession = Depends(get_session),
        current_user: User = Depends(require_permission(MODULE, "read")),
):
    users = await AsyncGroupUserService(db).list_active(group_id)
    return ok(users, "Active group users retrieved successfully")


@router.get(
    "/groups/{group_id}/users/count",
    response_model=ApiResponse[EntityStatistics],
    summary="Count Group Members",
)
async def count_group_users(
        group_id: int = Path(..., gt=0, description="Group ID"),
        db: AsyncSession = Depends(get_session),
        current_user: User = Depends(require_permission(MODULE, "read")),
):
    return ok(await AsyncGroupUserService(db).count(group_id), "Group user count retrieved successfully")


@router.post(
    "/groups/{group_id}/users",
    response_model=ApiResponse[AssignmentResultOutput],
    summary="Add Users to Group",
    description="Adds active users to a group. Members already present are reported, not duplicated.",
)
async def assign_users_to_group(
        body: UserIdsInput,
        request: Request,
        background_tasks: BackgroundTasks,
        group_id: int = Path(..., gt=0, description="Group ID"),
        db: AsyncSession = Depends(get_session),
        current_user: User = Depends(require_permission(MODULE, "create")),
        audit: IAuditSink = Depends(get_audit_sink),
):
    result = await AsyncGroupUserService(db).assign(group_id, body.user_ids)
    _audit_change(
        background_tasks, audit, request_context(request, current_user),
        "ASSIGN_USERS_TO_GROUP", "Group", group_id, body.user_ids, result,
    )
    return ok(result, "Users assigned to group successfully")


@router.put(
    "/groups/{group_id}/users",
    response_model=ApiResponse[AssignmentResultOutput],
    summary="Replace Group Members",
)
async def replace_group_users(
        body: UserIdsInput,
        request: Request,
        background_tasks: BackgroundTasks,
        group_id: int = Path(..., gt=0, description="Group ID"),
        db: AsyncSession = Depends(get_session),
        current_user: User = Depends(require_permission(MODULE, "update")),
        audit: IAuditSink = Depends(get_audit_sink),
):
    result = await AsyncGroupUserService(db).replace(group_id, body.user_ids)
    _audit_change(
        background_tasks, audit, request_context(request, current_user),
        "REPLACE_GROUP_USERS", "Group", group_id, body.user_ids, result,
    )
    return ok(result, "Group users replaced successfully")


@router.delete(
    "/groups/{group_id}/users",
    response_model=ApiResponse[RemovalResultOutput],
    summary="Remove Users from Group",
)
async def remove_users_from_group(
        body: UserIdsInput,
        request: Request,
        background_tasks: BackgroundTasks,
        group_id: int = Path(..., gt=0, description="Group ID"),
        db: AsyncSession = Depends(get_session),
        current_user: User = Depends(require_permission(MODULE, "delete")),
        audit: IAuditSink = Depends(get_audit_sink),
):
    result = await AsyncGroupUserService(db).remove(group_id, body.user_ids)
    _audit_change(
        background_tasks, audit, request_context(request, current_user),
        "REMOVE_USERS_FROM_GROUP", "Group", group_id, body.user_ids, result,
    )
    return ok(result, "Users removed from group successfully")


@router.delete(
    "/groups/{group_id}/users/{user_id}",
    response_model=ApiResponse[RemovalResultOutput],
    summary="Remove User from Group",
)
async def remove_user_from_group(
        request: Request,
        background_tasks: BackgroundTasks,
        group_id: int = Path(..., gt=0, description="Group ID"),
        user_id: int = Path(..., gt=0, description="User ID"),
        db: AsyncSession = Depends(get_session),
        current_user: User = Depends(require_permission(MODULE, "delete")),
        audit: IAuditSink = Depends(get_audit_sink),
):
    result = await AsyncGroupUserService(db).remove(group_id, [user_id])
    _audit_change(
        background_tasks, audit, request_context(request, current_user),
        "REMOVE_USERS_FROM_GROUP", "Group", group_id, [user_id], result,
    )
    return ok(result, result.details[0].message)


@router.get(
    "/users/{user_id}/groups",
    response_model=ApiResponse[List[GroupOutput]],
    summary="List Groups of a User",
)
async def list_user_groups(
        user_id: int = Path(..., gt=0, description="User ID"),
        db: AsyncSession = Depends(get_session),
        current_user: User = Depends(require_permission(MODULE, "read")),
):
    return ok(await AsyncGroupUserService(db).list_reverse(user_id), "User groups retrieved successfully")


########################################################################
# Role -> Permissions
########################################################################

@router.get(
    "/roles/{role_id}/permissions",
    response_model=ApiResponse[List[PermissionOutput]],
    summary="List Role Permissions",
    description="Permissions of a role, optionally restricted to the module with the given name.",
)
async def list_role_permissions(
        role_id: int = Path(..., gt=0, description="Role ID"),
        module_name: Optional[str] = Query(None, min_length=1, description="Only permissions of this module"),
        db: AsyncSession = Depends(get_session),
        current_user: User = Depends(require_permission(MODULE, "read")),
):
    service = AsyncRolePermissionService(db)
    if module_name:
        permissions = await service.list_by_module(role_id, module_name)
    else:
        permissions = await service.list(role_id)
    return ok(permissions, "Role permissions retrieved successfully")


@router.post(
    "/roles/{role_id}/permissions",
    response_model=ApiResponse[AssignmentResultOutput],
    summary="Grant Permissions to Role",
)
async def assign_permissions_to_role(
        body: PermissionIdsInput,
        request: Request,
        background_tasks: BackgroundTasks,
        role_id: int = Path(..., gt=0, description="Role ID"),
        db: AsyncSession = Depends(get_session),
        current_user: User = Depends(require_permission(MODULE, "create")),
        audit: IAuditSink = Depends(get_audit_sink),
):
    result = await AsyncRolePermissionService(db).assign(role_id, body.permission_ids)
    _audit_change(
        background_tasks, audit, request_context(request, current_user),
        "ASSIGN_PERMISSIONS_TO_ROLE", "Role", role_id, body.permission_ids, result,
    )
    return ok(result, "Permissions assigned to role successfully")


@router.put(
    "/roles/{role_id}/permissions",
    response_model=ApiResponse[AssignmentResultOutput],
    summary="Replace Role Permissions",
)
async def replace_role_permissions(
        body: PermissionIdsInput,
        request: Request,
        background_tasks: BackgroundTasks,
        role_id: int = Path(..., gt=0, description="Role ID"),
        db: AsyncSession = Depends(get_session),
        current_user: User = Depends(require_permission(MODULE, "update")),
        audit: IAuditSink = Depends(get_audit_sink),
):
    result = await AsyncRolePermissionService(db).replace(role_id, body.permission_ids)
    _audit_change(
        background_tasks, audit, request_context(request, current_user),
        "REPLACE_ROLE_PERMISSIONS", "Role", role_id, body.permission_ids, result,
    )
    return ok(result, "Role permissions replaced successfully")


@router.delete(
    "/roles/{role_id}/permissions",
    response_model=ApiResponse[RemovalResultOutput],
    summary="Revoke Permissions from Role",
)
async def remove_permissions_from_role(
        body: PermissionIdsInput,
        request: Request,
        background_tasks: BackgroundTasks,
        role_id: int = Path(..., gt=0, description="Role ID"),
        db: AsyncSession = Depends(get_session),
        current_user: User = Depends(require_permission(MODULE, "delete")),
        audit: IAuditSink = Depends(get_audit_sink),
):
    result = await AsyncRolePermissionService(db).remove(role_id, body.permission_ids)
    _audit_change(
        background_tasks, audit, request_context(request, current_user),
        "REMOVE_PERMISSIONS_FROM_ROLE", "Role", role_id, body.permission_ids, result,
    )
    return ok(result, "Permissions removed from role successfully")


@router.delete(
    "/roles/{role_id}/permissions/{permission_id}",
    response_model=ApiResponse[RemovalResultOutput],
    summary="Revoke Permission from Role",
)
async def remove_permission_from_role(
        request: Request,
        background_tasks: BackgroundTasks,
        role_id: int = Path(..., gt=0, description="Role ID"),
        permission_id: int = Path(..., gt=0, description="Permission ID"),
        db: AsyncSession = Depends(get_session),
        current_user: User = Depends(require_permission(MODULE, "delete")),
        audit: IAuditSink = Depends(get_audit_sink),
):
    result = await AsyncRolePermissionService(db).remove(role_id, [permission_id])
    _audit_change(
        background_tasks, audit, request_context(request, current_user),
        "REMOVE_PERMISSIONS_FROM_ROLE", "Role", role_id, [permission_id], result,
    )
    return ok(result, result.details[0].message)


@router.get(
    "/permissions/{permission_id}/roles",
    response_model=ApiResponse[List[RoleOutput]],
    summary="List Roles Holding a Permission",
)
async def list_permission_roles(
        permission_id: int = Path(..., gt=0, description="Permission ID"),
        db: AsyncSession = Depends(get_session),
        current_user: User = Depends(require_permission(MODULE, "read")),
):
    return ok(
        await AsyncRolePermissionService(db).list_reverse(permission_id),
        "Permission roles retrieved successfully",
    )
