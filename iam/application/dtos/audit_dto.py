# iam/application/dtos/audit_dto.py

from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import Field

from iam.application.dtos.base_dto import CustomBaseModel


class AuditLogOutput(CustomBaseModel):
    id: int
    user_id: Optional[int] = None
    action: str
    resource: str
    resource_id: Optional[int] = None
    details: Optional[Dict[str, Any]] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    created_at: Optional[datetime] = None


class SystemHealthOutput(CustomBaseModel):
    status: str = Field(..., description="'healthy' or 'unhealthy'.")
    database: str
    timestamp: datetime
    counts: Dict[str, int] = {}


class UserPermissionAuditEntry(CustomBaseModel):
    user_id: int
    username: str
    email: str
    groups: List[str] = []
    roles: List[str] = []
    permissions: List[str] = Field([], description="Sorted 'Module:action' names.")
    permission_count: int


class PermissionUsage(CustomBaseModel):
    permission_id: int
    name: str
    module_name: Optional[str] = None
    action: str
    role_count: int


class PermissionStatisticsOutput(CustomBaseModel):
    most_common_permissions: List[PermissionUsage] = []
    roles_per_group: Dict[str, int] = {}
    users_per_group: Dict[str, int] = {}
    permissions_per_module: Dict[str, int] = {}


class OrphanedRecordsOutput(CustomBaseModel):
    orphaned_user_groups: int
    orphaned_group_roles: int
    orphaned_role_permissions: int
    inactive_users_with_groups: int = Field(..., description="Inactive users still member of a group.")


class SystemReportOutput(CustomBaseModel):
    health: SystemHealthOutput
    permission_stats: PermissionStatisticsOutput
    orphaned_records: OrphanedRecordsOutput
    recent_activity: List[AuditLogOutput] = []
    generated_at: datetime
