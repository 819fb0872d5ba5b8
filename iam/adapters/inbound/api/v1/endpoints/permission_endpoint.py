# iam/adapters/inbound/api/v1/endpoints/permission_endpoint.py

import logging
from typing import Optional
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
from iam.application.dtos.base_dto import ApiResponse
from iam.application.dtos.permission_dto import PermissionCreate, PermissionUpdate, PermissionOutput
from iam.application.ports.outbound import IAuditSink
from iam.application.use_cases.permission_use_cases import AsyncPermissionService
from iam.domain.models.permission_domain_model import Action
from iam.shared.utils.pagination import pagination_params, page_of
from iam.shared.utils.responses import ok

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get(
    "",
    response_model=ApiResponse[Page[PermissionOutput]],
    summary="List Permissions",
    description="Returns a paginated list of permissions, optionally filtered by module or action.",
)
async def list_permissions(
        params: Params = Depends(pagination_params),
        module_id: Optional[int] = Query(None, gt=0, description="Filter by module"),
        action: Optional[Action] = Query(None, description="Filter by action"),
        db: AsyncSession = Depends(get_session),
        current_user: User = Depends(require_permission("Permissions", "read")),
):
    page = await AsyncPermissionService(db).list(
        params, module_id=module_id, action=action.value if action else None
    )
    return ok(page_of(page, PermissionOutput), "Permissions retrieved successfully")


@router.post(
    "",
    response_model=ApiResponse[PermissionOutput],
    status_code=status.HTTP_201_CREATED,
    summary="Create Permission",
    description="Creates a permission granting one action on one module.",
)
async def create_permission(
        permission_in: PermissionCreate,
        request: Request,
        background_tasks: BackgroundTasks,
        db: AsyncSession = Depends(get_session),
        current_user: User = Depends(require_permission("Permissions", "create")),
        audit: IAuditSink = Depends(get_audit_sink),
):
    permission = await AsyncPermissionService(db).create(permission_in)
    schedule_audit(
        background_tasks, audit, request_context(request, current_user),
        "PERMISSION_CREATED", "Permission", permission.id,
        {"name": permission.name, "action": permission.action, "module_id": permission.module_id},
    )
    return ok(permission, "Permission created successfully")


@router.get(
    "/{permission_id}",
    response_model=ApiResponse[PermissionOutput],
    summary="Get Permission",
)
async def get_permission(
        permission_id: int = Path(..., gt=0, description="Permission ID"),
        db: AsyncSession = Depends(get_session),
        current_user: User = Depends(require_permission("Permissions", "read")),
):
    return ok(await AsyncPermissionService(db).get(permission_id), "Permission retrieved successfully")


@router.put(
    "/{permission_id}",
    response_model=ApiResponse[PermissionOutput],
    summary="Update Permission",
)
async def update_permission(
        permission_in: PermissionUpdate,
        request: Request,
        background_tasks: BackgroundTasks,
        permission_id: int = Path(..., gt=0, description="Permission ID"),
        db: AsyncSession = Depends(get_session),
        current_user: User = Depends(require_permission("Permissions", "update")),
        audit: IAuditSink = Depends(get_audit_sink),
):
    permission = await AsyncPermissionService(db).update(permission_id, permission_in)
    schedule_audit(
        background_tasks, audit, request_context(request, current_user),
        "PERMISSION_UPDATED", "Permission", permission.id, permission_in.model_dump(exclude_unset=True),
    )
    return ok(permission, "Permission updated successfully")


@router.delete(
    "/{permission_id}",
    response_model=ApiResponse[PermissionOutput],
    summary="Delete Permission",
    description="Revokes the permission from every role and deletes it.",
)
async def delete_permission(
        request: Request,
        background_tasks: BackgroundTasks,
        permission_id: int = Path(..., gt=0, description="Permission ID"),
        db: AsyncSession = Depends(get_session),
        current_user: User = Depends(require_permission("Permissions", "delete")),
        audit: IAuditSink = Depends(get_audit_sink),
):
    permission = await AsyncPermissionService(db).delete(permission_id)
    schedule_audit(
        background_tasks, audit, request_context(request, current_user),
        "PERMISSION_DELETED", "Permission", permission_id, {"name": permission.name},
    )
    return ok(permission, "Permission deleted successfully")
