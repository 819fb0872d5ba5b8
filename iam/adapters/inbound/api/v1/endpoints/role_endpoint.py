# iam/adapters/inbound/api/v1/endpoints/role_endpoint.py

import logging
from typing import List, Optional
from fastapi import APIRouter, BackgroundTasks, Depends, Path, Query, Request, status
from fastapi_pagination import Page, Params
from sqlalchemy.ext.asyncio import AsyncSession

from iam.adapters.inbound.api.deps import (
    get_session,
    get_audit_sink,
    request_context,
    schedule_audit,
)
from iam.adapters.outbound.persistence.models.user_model import User
from iam.adapters.outbound.security.permissions import require_permission
from iam.application.dtos.base_dto import ApiResponse, EntityStatistics
from iam.application.dtos.role_dto import (
    RoleCreate,
    RoleUpdate,
    RoleClone,
    RoleOutput,
    RoleByModuleOutput,
)
from iam.application.ports.outbound import IAuditSink
from iam.application.use_cases.role_use_cases import AsyncRoleService
from iam.shared.utils.pagination import pagination_params, page_of
from iam.shared.utils.responses import ok

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get(
    "",
    response_model=ApiResponse[Page[RoleOutput]],
    summary="List Roles",
    description="Returns a paginated list of roles, optionally filtered by status or name.",
)
async def list_roles(
        params: Params = Depends(pagination_params),
        is_active: Optional[bool] = Query(None, description="Filter by active status"),
        search: Optional[str] = Query(None, description="Substring of the role name"),
        db: AsyncSession = Depends(get_session),
        current_user: User = Depends(require_permission("Roles", "read")),
):
    page = await AsyncRoleService(db).list(
        params, is_active=is_active, name=f"%{search}%" if search else None
    )
    return ok(page_of(page, RoleOutput), "Roles retrieved successfully")


@router.get(
    "/statistics",
    response_model=ApiResponse[EntityStatistics],
    summary="Role Statistics",
)
async def role_statistics(
        db: AsyncSession = Depends(get_session),
        current_user: User = Depends(require_permission("Roles", "read")),
):
    return ok(await AsyncRoleService(db).statistics(), "Role statistics retrieved successfully")


@router.get(
    "/by-module/{module_id}",
    response_model=ApiResponse[List[RoleByModuleOutput]],
    summary="Roles By Module",
    description="Roles granting any permission on the module, with those permissions and the groups holding each role.",
)
async def roles_by_module(
        module_id: int = Path(..., gt=0, description="Module ID"),
        db: AsyncSession = Depends(get_session),
        current_user: User = Depends(require_permission("Roles", "read")),
):
    return ok(await AsyncRoleService(db).get_roles_by_module(module_id), "Roles retrieved successfully")


@router.post(
    "",
    response_model=ApiResponse[RoleOutput],
    status_code=status.HTTP_201_CREATED,
    summary="Create Role",
    description="Creates a role. The name must be unique.",
)
async def create_role(
        role_in: RoleCreate,
        request: Request,
        background_tasks: BackgroundTasks,
        db: AsyncSession = Depends(get_session),
        current_user: User = Depends(require_permission("Roles", "create")),
        audit: IAuditSink = Depends(get_audit_sink),
):
    role = await AsyncRoleService(db).create(role_in)
    schedule_audit(
        background_tasks, audit, request_context(request, current_user),
        "ROLE_CREATED", "Role", role.id, {"name": role.name},
    )
    return ok(role, "Role created successfully")


@router.get(
    "/{role_id}",
    response_model=ApiResponse[RoleOutput],
    summary="Get Role",
)
async def get_role(
        role_id: int = Path(..., gt=0, description="Role ID"),
        db: AsyncSession = Depends(get_session),
        current_user: User = Depends(require_permission("Roles", "read")),
):
    return ok(await AsyncRoleService(db).get(role_id), "Role retrieved successfully")


@router.put(
    "/{role_id}",
    response_model=ApiResponse[RoleOutput],
    summary="Update Role",
)
async def update_role(
        role_in: RoleUpdate,
        request: Request,
        background_tasks: BackgroundTasks,
        role_id: int = Path(..., gt=0, description="Role ID"),
        db: AsyncSession = Depends(get_session),
        current_user: User = Depends(require_permission("Roles", "update")),
        audit: IAuditSink = Depends(get_audit_sink),
):
    role = await AsyncRoleService(db).update(role_id, role_in)
    schedule_audit(
        background_tasks, audit, request_context(request, current_user),
        "ROLE_UPDATED", "Role", role.id, role_in.model_dump(exclude_unset=True),
    )
    return ok(role, "Role updated successfully")


@router.delete(
    "/{role_id}",
    response_model=ApiResponse[RoleOutput],
    summary="Deactivate Role",
    description="Soft deletes a role. Refused while the role is assigned to groups.",
)
async def delete_role(
        request: Request,
        background_tasks: BackgroundTasks,
        role_id: int = Path(..., gt=0, description="Role ID"),
        db: AsyncSession = Depends(get_session),
        current_user: User = Depends(require_permission("Roles", "delete")),
        audit: IAuditSink = Depends(get_audit_sink),
):
    role = await AsyncRoleService(db).deactivate(role_id)
    schedule_audit(
        background_tasks, audit, request_context(request, current_user),
        "ROLE_DEACTIVATED", "Role", role_id,
    )
    return ok(role, "Role deactivated successfully")


@router.delete(
    "/{role_id}/permanent",
    response_model=ApiResponse[RoleOutput],
    summary="Delete Role Permanently",
    description="Removes the role together with its group and permission assignments.",
)
async def hard_delete_role(
        request: Request,
        background_tasks: BackgroundTasks,
        role_id: int = Path(..., gt=0, description="Role ID"),
        db: AsyncSession = Depends(get_session),
        current_user: User = Depends(require_permission("Roles", "delete")),
        audit: IAuditSink = Depends(get_audit_sink),
):
    role = await AsyncRoleService(db).hard_delete(role_id)
    schedule_audit(
        background_tasks, audit, request_context(request, current_user),
        "ROLE_DELETED", "Role", role_id, {"name": role.name},
    )
    return ok(role, "Role deleted permanently")


@router.post(
    "/{role_id}/clone",
    response_model=ApiResponse[RoleOutput],
    status_code=status.HTTP_201_CREATED,
    summary="Clone Role",
    description="Creates a new role with the same permissions as the source role.",
)
async def clone_role(
        clone_in: RoleClone,
        request: Request,
        background_tasks: BackgroundTasks,
        role_id: int = Path(..., gt=0, description="Source role ID"),
        db: AsyncSession = Depends(get_session),
        current_user: User = Depends(require_permission("Roles", "create")),
        audit: IAuditSink = Depends(get_audit_sink),
):
    role = await AsyncRoleService(db).clone_role(role_id, clone_in.name, clone_in.description)
    schedule_audit(
        background_tasks, audit, request_context(request, current_user),
        "ROLE_CLONED", "Role", role.id, {"source_role_id": role_id, "name": role.name},
    )
    return ok(role, "Role cloned successfully")
