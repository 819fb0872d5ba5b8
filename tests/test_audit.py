# tests/test_audit.py

from contextlib import asynccontextmanager

from iam.adapters.outbound.persistence.repositories import (
    audit_log_repository,
    user_repository,
    user_group_repository,
    group_role_repository,
    role_permission_repository,
)
from iam.application.use_cases.audit_use_cases import AsyncAuditService, SessionAuditSink
from iam.domain.exceptions import DatabaseOperationException
from tests.factories import grant, make_group, make_module, make_permission, make_role, make_user

API = "/api/v1"


async def test_events_are_searched_newest_first(db):
    service = AsyncAuditService(db)
    await service.log_event("GROUP_CREATED", "Group", 1, user_id=7)
    await service.log_event("ROLE_CREATED", "Role", 2, user_id=7)
    await service.log_event("GROUP_DEACTIVATED", "Group", 1, user_id=8)

    groups = await service.get_audit_logs(resource="Group")
    assert [log.action for log in groups] == ["GROUP_DEACTIVATED", "GROUP_CREATED"]

    created = await service.get_audit_logs(action="created")
    assert {log.action for log in created} == {"GROUP_CREATED", "ROLE_CREATED"}

    by_user = await service.get_audit_logs(user_id=8)
    assert [log.resource_id for log in by_user] == [1]

    assert len(await service.get_audit_logs(limit=1)) == 1


async def test_sink_failures_do_not_reach_the_caller():
    @asynccontextmanager
    async def broken_session():
        raise RuntimeError("database is gone")
        yield

    # Must not raise
    await SessionAuditSink(broken_session).log_event("USER_LOGIN", "User", 1)


async def test_permission_audit_lists_active_users(db):
    module = await make_module(db, "Vault")
    read = await make_permission(db, module, "read")
    update = await make_permission(db, module, "update")
    holder = await make_user(db, "ursula")
    await grant(db, holder, read, update, group_name="Keepers", role_name="Keeper")
    await make_user(db, "victor", is_active=False)

    report = await AsyncAuditService(db).perform_permission_audit()

    assert [entry["username"] for entry in report] == ["ursula"]
    entry = report[0]
    assert entry["groups"] == ["Keepers"]
    assert entry["roles"] == ["Keeper"]
    assert entry["permissions"] == ["Vault:read", "Vault:update"]
    assert entry["permission_count"] == 2


async def test_permission_statistics(db):
    module = await make_module(db, "Mail")
    send = await make_permission(db, module, "create")
    first = await make_user(db, "wendy")
    second = await make_user(db, "xavier")
    await grant(db, first, send, group_name="Senders", role_name="Sender")
    await grant(db, second, send, group_name="Relays", role_name="Relay")

    stats = await AsyncAuditService(db).get_permission_statistics()

    assert stats["most_common_permissions"][0]["permission_id"] == send.id
    assert stats["most_common_permissions"][0]["role_count"] == 2
    assert stats["roles_per_group"] == {"Senders": 1, "Relays": 1}
    assert stats["users_per_group"] == {"Senders": 1, "Relays": 1}
    assert stats["permissions_per_module"] == {"Mail": 1}


async def test_mutations_are_audited_over_http(client, admin_headers):
    me = (await client.get(f"{API}/auth/me", headers=admin_headers)).json()["data"]
    created = await client.post(f"{API}/groups", json={"name": "Audited"}, headers=admin_headers)
    group_id = created.json()["data"]["id"]

    response = await client.get(
        f"{API}/audit/logs", params={"action": "GROUP_CREATED"}, headers=admin_headers
    )

    assert response.status_code == 200
    logs = response.json()["data"]
    assert len(logs) == 1
    assert logs[0]["resource"] == "Group"
    assert logs[0]["resource_id"] == group_id
    assert logs[0]["user_id"] == me["id"]
    assert logs[0]["details"] == {"name": "Audited"}


async def test_health_report(client, admin_headers):
    response = await client.get(f"{API}/audit/health", headers=admin_headers)

    data = response.json()["data"]
    assert data["status"] == "healthy"
    assert data["database"] == "connected"
    assert data["counts"]["users"] == 1
    assert data["counts"]["modules"] == 7
    assert data["counts"]["permissions"] == 28


async def test_audit_requires_permission(client, seeded, user_headers):
    response = await client.get(f"{API}/audit/health", headers=user_headers)

    assert response.status_code == 403


async def test_orphaned_records_are_counted(db):
    group = await make_group(db, "Remnants")
    role = await make_role(db, "Relic")
    member = await make_user(db, "yolanda")
    sleeper = await make_user(db, "zack")
    await user_group_repository.add_pairs(db, group.id, [member.id, sleeper.id])
    await user_repository.update(db, db_obj=sleeper, obj_in={"is_active": False})
    # SQLite does not enforce foreign keys here, so dangling rows can be written
    await user_group_repository.add_pairs(db, 6666, [member.id])
    await group_role_repository.add_pairs(db, group.id, [role.id, 9999])
    await role_permission_repository.add_pairs(db, 8888, [7777])

    orphans = await AsyncAuditService(db).check_orphaned_records()

    assert orphans == {
        "orphaned_user_groups": 1,
        "orphaned_group_roles": 1,
        "orphaned_role_permissions": 1,
        "inactive_users_with_groups": 1,
    }


async def test_system_report_bundles_the_checks_and_is_recorded(db):
    user = await make_user(db, "amber")
    service = AsyncAuditService(db)
    await service.log_event("USER_CREATED", "User", user.id, user_id=user.id)

    report = await service.generate_system_report(user_id=user.id)

    assert report["health"]["status"] == "healthy"
    assert report["health"]["counts"]["users"] == 1
    assert set(report["orphaned_records"].values()) == {0}
    assert report["permission_stats"]["most_common_permissions"] == []
    assert [entry.action for entry in report["recent_activity"]] == ["USER_CREATED"]
    assert report["generated_at"] is not None

    [event] = await service.get_audit_logs(action="SYSTEM_REPORT_GENERATED")
    assert (event.resource, event.user_id) == ("system", user.id)
    assert event.details == {"health_status": "healthy", "total_users": 1, "orphaned_records": 0}


class RefusingAuditLogs:
    def __init__(self, wrapped):
        self.wrapped = wrapped

    async def create(self, db, *, obj_in):
        raise DatabaseOperationException(detail="Audit table is read-only")

    def __getattr__(self, name):
        return getattr(self.wrapped, name)


async def test_system_report_survives_a_failed_event_write(db):
    await make_user(db, "bruno")

    report = await AsyncAuditService(
        db, audit_logs=RefusingAuditLogs(audit_log_repository)
    ).generate_system_report()

    assert report["health"]["counts"]["users"] == 1
    assert report["recent_activity"] == []


async def test_integrity_routes(client, admin_headers):
    me = (await client.get(f"{API}/auth/me", headers=admin_headers)).json()["data"]

    orphans = await client.get(f"{API}/audit/orphans", headers=admin_headers)
    assert orphans.status_code == 200
    assert orphans.json()["data"] == {
        "orphaned_user_groups": 0,
        "orphaned_group_roles": 0,
        "orphaned_role_permissions": 0,
        "inactive_users_with_groups": 0,
    }

    report = await client.get(f"{API}/audit/report", headers=admin_headers)
    assert report.status_code == 200
    data = report.json()["data"]
    assert data["health"]["counts"]["modules"] == 7
    assert data["permission_stats"]["permissions_per_module"]["Audit"] == 4
    assert data["orphaned_records"]["orphaned_group_roles"] == 0

    logs = await client.get(
        f"{API}/audit/logs", params={"action": "SYSTEM_REPORT_GENERATED"}, headers=admin_headers
    )
    [event] = logs.json()["data"]
    assert (event["resource"], event["user_id"]) == ("system", me["id"])
