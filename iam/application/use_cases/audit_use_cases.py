# iam/application/use_cases/audit_use_cases.py

"""
Audit trail and administrative reports.

Audit events are written after successful mutations. Writing an event
must never fail the request that triggered it, so the session-owning sink
logs and drops any error.
"""

import logging
from collections import defaultdict
from contextlib import AbstractAsyncContextManager
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional
from sqlalchemy.ext.asyncio import AsyncSession

from iam.adapters.configuration.config import settings
from iam.adapters.outbound.persistence.models import AuditLog, User
from iam.adapters.outbound.persistence.repositories import (
    audit_log_repository,
    user_repository,
    group_repository,
    role_repository,
    module_repository,
    permission_repository,
    user_group_repository,
    group_role_repository,
    role_permission_repository,
)
from iam.application.dtos.audit_dto import AuditLogOutput
from iam.application.ports.outbound import IAuditSink
from iam.domain.services.permission_service import PermissionClosureService

# Configure logger
logger = logging.getLogger(__name__)

TOP_PERMISSIONS = 10
RECENT_ACTIVITY_LIMIT = 50


class AsyncAuditService:
    """
    Service for audit events and the reports built on the permission graph.
    """

    def __init__(
            self,
            db_session: AsyncSession,
            *,
            audit_logs=audit_log_repository,
            users=user_repository,
            groups=group_repository,
            roles=role_repository,
            modules=module_repository,
            permissions=permission_repository,
            user_groups=user_group_repository,
            group_roles=group_role_repository,
            role_permissions=role_permission_repository,
    ):
        self.db = db_session
        self.audit_logs = audit_logs
        self.users = users
        self.groups = groups
        self.roles = roles
        self.modules = modules
        self.permissions = permissions
        self.user_groups = user_groups
        self.group_roles = group_roles
        self.role_permissions = role_permissions

    async def log_event(
            self,
            action: str,
            resource: str,
            resource_id: Optional[int] = None,
            user_id: Optional[int] = None,
            details: Optional[Dict[str, Any]] = None,
            ip_address: Optional[str] = None,
            user_agent: Optional[str] = None,
    ) -> AuditLog:
        """
        Store one audit event.

        Raises:
            DatabaseOperationException: If the row cannot be written
        """
        entry = await self.audit_logs.create(self.db, obj_in={
            "action": action,
            "resource": resource,
            "resource_id": resource_id,
            "user_id": user_id,
            "details": details,
            "ip_address": ip_address,
            "user_agent": user_agent,
        })
        logger.debug(f"Audit event {action} on {resource} {resource_id} by user {user_id}")
        return entry

    async def get_audit_logs(
            self,
            user_id: Optional[int] = None,
            action: Optional[str] = None,
            resource: Optional[str] = None,
            start_date: Optional[datetime] = None,
            end_date: Optional[datetime] = None,
            limit: Optional[int] = None,
    ) -> List[AuditLog]:
        """
        Search audit events, newest first.

        Args:
            user_id: Acting user
            action: Substring of the event name, case-insensitive
            resource: Resource type
            start_date: Earliest creation time
            end_date: Latest creation time
            limit: Maximum rows; capped by ``AUDIT_LOG_LIMIT``
        """
        max_rows = settings.AUDIT_LOG_LIMIT
        limit = min(limit, max_rows) if limit else max_rows

        return await self.audit_logs.search(
            self.db,
            user_id=user_id,
            action=action,
            resource=resource,
            start_date=start_date,
            end_date=end_date,
            limit=limit,
        )

    async def get_system_health(self) -> Dict[str, Any]:
        """
        Entity counts plus database reachability.

        A database failure is reported in the payload, not raised.
        """
        timestamp = datetime.now(timezone.utc)
        try:
            counts = {
                "users": await self.users.count(self.db),
                "active_users": await self.users.count(self.db, is_active=True),
                "groups": await self.groups.count(self.db),
                "roles": await self.roles.count(self.db),
                "modules": await self.modules.count(self.db),
                "permissions": await self.permissions.count(self.db),
            }
            return {"status": "healthy", "database": "connected", "timestamp": timestamp, "counts": counts}

        except Exception as e:
            logger.exception(f"Health check failed: {str(e)}")
            return {"status": "unhealthy", "database": "disconnected", "timestamp": timestamp, "counts": {}}

    async def perform_permission_audit(self) -> List[Dict[str, Any]]:
        """
        Effective permissions of every active user.

        The whole graph is loaded with one query per hop and joined in
        memory, so the cost does not grow with the number of users.

        Returns:
            One entry per active user with their groups, roles and sorted
            "Module:action" permission names
        """
        users = await self.users.get_multi(self.db, limit=None, is_active=True)
        if not users:
            return []

        user_group_pairs = await self.user_groups.pairs_for_right(self.db, [u.id for u in users])
        group_ids = sorted({group_id for group_id, _ in user_group_pairs})
        group_role_pairs = await self.group_roles.pairs_for_left(self.db, group_ids)
        role_ids = sorted({role_id for _, role_id in group_role_pairs})
        role_permission_pairs = await self.role_permissions.pairs_for_left(self.db, role_ids)
        permission_ids = sorted({permission_id for _, permission_id in role_permission_pairs})

        groups = {g.id: g for g in await self.groups.get_many(self.db, group_ids)}
        roles = {r.id: r for r in await self.roles.get_many(self.db, role_ids)}
        permissions = {p.id: p for p in await self.permissions.get_many(self.db, permission_ids)}

        groups_of_user = defaultdict(list)
        for group_id, user_id in user_group_pairs:
            groups_of_user[user_id].append(group_id)
        roles_of_group = defaultdict(list)
        for group_id, role_id in group_role_pairs:
            roles_of_group[group_id].append(role_id)
        permissions_of_role = defaultdict(list)
        for role_id, permission_id in role_permission_pairs:
            permissions_of_role[role_id].append(permission_id)

        report = []
        for user in users:
            user_group_ids = groups_of_user[user.id]
            user_role_ids = sorted({r for g in user_group_ids for r in roles_of_group[g]})
            names = {
                PermissionClosureService.qualified_name(permissions[p].module_name, permissions[p].action)
                for r in user_role_ids
                for p in permissions_of_role[r]
                if p in permissions
            }
            report.append({
                "user_id": user.id,
                "username": user.username,
                "email": user.email,
                "groups": [groups[g].name for g in user_group_ids if g in groups],
                "roles": [roles[r].name for r in user_role_ids if r in roles],
                "permissions": sorted(names),
                "permission_count": len(names),
            })

        logger.info(f"Permission audit performed over {len(report)} active user(s)")
        return report

    async def get_permission_statistics(self) -> Dict[str, Any]:
        """
        Usage statistics of the permission graph.

        Returns:
            The most granted permissions, role and user counts per group
            name, and permission counts per module name
        """
        usage = (await self.role_permissions.count_by_right(self.db))[:TOP_PERMISSIONS]
        top = {p.id: p for p in await self.permissions.get_many(self.db, [pid for pid, _ in usage])}

        roles_per_group = await self.group_roles.count_by_left(self.db)
        users_per_group = await self.user_groups.count_by_left(self.db)
        group_ids = {gid for gid, _ in roles_per_group} | {gid for gid, _ in users_per_group}
        group_names = {g.id: g.name for g in await self.groups.get_many(self.db, group_ids)}

        return {
            "most_common_permissions": [
                {
                    "permission_id": pid,
                    "name": top[pid].name,
                    "module_name": top[pid].module_name,
                    "action": top[pid].action,
                    "role_count": count,
                }
                for pid, count in usage
                if pid in top
            ],
            "roles_per_group": {group_names[gid]: n for gid, n in roles_per_group if gid in group_names},
            "users_per_group": {group_names[gid]: n for gid, n in users_per_group if gid in group_names},
            "permissions_per_module": await self.permissions.count_by_module(self.db),
        }

    async def check_orphaned_records(self) -> Dict[str, int]:
        """
        Integrity counters of the permission graph.

        Returns:
            For each join table the rows pointing at a missing entity, and
            the number of inactive users still member of a group
        """
        orphans = {
            "orphaned_user_groups": await self.user_groups.count_orphans(self.db),
            "orphaned_group_roles": await self.group_roles.count_orphans(self.db),
            "orphaned_role_permissions": await self.role_permissions.count_orphans(self.db),
            "inactive_users_with_groups": await self.user_groups.count_distinct_right(
                self.db, User.is_active.is_(False)
            ),
        }
        if any(orphans.values()):
            logger.warning(f"Integrity check found issues: {orphans}")
        return orphans

    async def generate_system_report(self, user_id: Optional[int] = None) -> Dict[str, Any]:
        """
        Health, permission statistics, integrity counters and the latest
        audit events in one payload.

        The generation itself is recorded as SYSTEM_REPORT_GENERATED; a
        failure to record it does not fail the report.
        """
        health = await self.get_system_health()
        permission_stats = await self.get_permission_statistics()
        orphaned_records = await self.check_orphaned_records()
        # Detached before the event write, which may roll the session back
        recent_activity = [
            AuditLogOutput.model_validate(entry)
            for entry in await self.get_audit_logs(limit=RECENT_ACTIVITY_LIMIT)
        ]

        try:
            await self.log_event(
                action="SYSTEM_REPORT_GENERATED",
                resource="system",
                user_id=user_id,
                details={
                    "health_status": health["status"],
                    "total_users": health["counts"].get("users", 0),
                    "orphaned_records": sum(orphaned_records.values()),
                },
            )
        except Exception as e:
            logger.exception(f"Failed to record system report generation: {str(e)}")

        return {
            "health": health,
            "permission_stats": permission_stats,
            "orphaned_records": orphaned_records,
            "recent_activity": recent_activity,
            "generated_at": datetime.now(timezone.utc),
        }


class SessionAuditSink(IAuditSink):
    """
    Audit sink that opens its own session for every event.

    Used from background tasks, after the request session is closed.
    """

    def __init__(self, session_factory: Callable[[], AbstractAsyncContextManager]):
        self.session_factory = session_factory

    async def log_event(
            self,
            action: str,
            resource: str,
            resource_id: Optional[int] = None,
            user_id: Optional[int] = None,
            details: Optional[Dict[str, Any]] = None,
            ip_address: Optional[str] = None,
            user_agent: Optional[str] = None,
    ) -> None:
        try:
            async with self.session_factory() as db:
                await AsyncAuditService(db).log_event(
                    action=action,
                    resource=resource,
                    resource_id=resource_id,
                    user_id=user_id,
                    details=details,
                    ip_address=ip_address,
                    user_agent=user_agent,
                )
        except Exception as e:
            logger.exception(f"Failed to write audit event {action} on {resource} {resource_id}: {str(e)}")
