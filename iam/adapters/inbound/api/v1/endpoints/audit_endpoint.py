# iam/adapters/inbound/api/v1/endpoints/audit_endpoint.py

import logging
from datetime import datetime
from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from iam.adapters.inbound.api.deps import get_session
from iam.adapters.outbound.persistence.models.user_model import User
from iam.adapters.outbound.security.permissions import require_permission
from iam.application.dtos.audit_dto import (
    AuditLogOutput,
    SystemHealthOutput,
    UserPermissionAuditEntry,
    PermissionStatisticsOutput,
    OrphanedRecordsOutput,
    SystemReportOutput,
)
from iam.application.dtos.base_dto import ApiResponse
from iam.application.use_cases.audit_use_cases import AsyncAuditService
from iam.shared.utils.responses import ok

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get(
    "/logs",
    response_model=ApiResponse[List[AuditLogOutput]],
    summary="Audit Logs",
    description="Audit events, newest first, filtered by user, action, resource or date range.",
)
async def get_audit_logs(
        user_id: Optional[int] = Query(None, gt=0, description="Acting user"),
        action: Optional[str] = Query(None, description="Substring of the action name"),
        resource: Optional[str] = Query(None, description="Resource type, e.g. Group"),
        start_date: Optional[datetime] = Query(None, description="Earliest event time"),
        end_date: Optional[datetime] = Query(None, description="Latest event time"),
        limit: Optional[int] = Query(None, ge=1, description="Maximum number of events"),
        db: AsyncSession = Depends(get_session),
        current_user: User = Depends(require_permission("Audit", "read")),
):
    logs = await AsyncAuditService(db).get_audit_logs(
        user_id=user_id,
        action=action,
        resource=resource,
        start_date=start_date,
        end_date=end_date,
        limit=limit,
    )
    return ok(logs, "Audit logs retrieved successfully")


@router.get(
    "/health",
    response_model=ApiResponse[SystemHealthOutput],
    summary="System Health",
)
async def system_health(
        db: AsyncSession = Depends(get_session),
        current_user: User = Depends(require_permission("Audit", "read")),
):
    return ok(await AsyncAuditService(db).get_system_health(), "System health retrieved successfully")


@router.get(
    "/permissions",
    response_model=ApiResponse[List[UserPermissionAuditEntry]],
    summary="Permission Audit",
    description="Effective permissions of every active user.",
)
async def permission_audit(
        db: AsyncSession = Depends(get_session),
        current_user: User = Depends(require_permission("Audit", "read")),
):
    return ok(await AsyncAuditService(db).perform_permission_audit(), "Permission audit completed")


@router.get(
    "/statistics",
    response_model=ApiResponse[PermissionStatisticsOutput],
    summary="Permission Statistics",
)
async def permission_statistics(
        db: AsyncSession = Depends(get_session),
        current_user: User = Depends(require_permission("Audit", "read")),
):
    return ok(await AsyncAuditService(db).get_permission_statistics(), "Permission statistics retrieved successfully")


@router.get(
    "/orphans",
    response_model=ApiResponse[OrphanedRecordsOutput],
    summary="Orphaned Records",
    description="Join rows pointing at missing entities, and inactive users still in groups.",
)
async def orphaned_records(
        db: AsyncSession = Depends(get_session),
        current_user: User = Depends(require_permission("Audit", "read")),
):
    return ok(await AsyncAuditService(db).check_orphaned_records(), "Orphaned records check completed")


@router.get(
    "/report",
    response_model=ApiResponse[SystemReportOutput],
    summary="System Report",
    description="Health, permission statistics, integrity counters and the latest audit events.",
)
async def system_report(
        db: AsyncSession = Depends(get_session),
        current_user: User = Depends(require_permission("Audit", "read")),
):
    report = await AsyncAuditService(db).generate_system_report(user_id=current_user.id)
    return ok(report, "System report generated successfully")
