# tests/test_permission_resolver.py

import pytest
from sqlalchemy import event

from iam.adapters.outbound.persistence.repositories import (
    group_role_repository,
    module_repository,
    role_permission_repository,
    user_group_repository,
)
from iam.application.use_cases.permission_resolver_use_cases import PermissionResolver
from iam.domain.exceptions import InvalidInputException, ResourceNotFoundException
from iam.domain.services.permission_service import PermissionClosureService
from tests.factories import (
    grant,
    make_group,
    make_module,
    make_permission,
    make_role,
    make_user,
)


@pytest.fixture
def resolver(db):
    return PermissionResolver(db)


async def test_permissions_flow_through_group_and_role(db, resolver):
    user = await make_user(db, "alice")
    users = await make_module(db, "Users")
    read = await make_permission(db, users, "read")
    await grant(db, user, read)

    permissions = await resolver.get_user_permissions(user.id)

    assert [p.id for p in permissions] == [read.id]
    assert await resolver.check_permission(user.id, users.id, "read") is True
    assert await resolver.check_permission(user.id, users.id, "delete") is False


async def test_permission_reached_twice_is_listed_once(db, resolver):
    user = await make_user(db, "bob")
    module = await make_module(db, "Reports")
    read = await make_permission(db, module, "read")
    update = await make_permission(db, module, "update")

    await grant(db, user, read, update, group_name="Analysts", role_name="Analyst")
    await grant(db, user, read, group_name="Readers", role_name="Reader")

    permissions = await resolver.get_user_permissions(user.id)

    assert sorted(p.id for p in permissions) == sorted([read.id, update.id])


async def test_each_hop_is_a_single_query(db, engine, resolver):
    user = await make_user(db, "carol")
    module = await make_module(db, "Ledger")
    permissions = [await make_permission(db, module, action) for action in ("create", "read", "update")]
    await grant(db, user, *permissions[:2], group_name="Ledger A", role_name="Ledger A")
    await grant(db, user, *permissions[1:], group_name="Ledger B", role_name="Ledger B")
    await grant(db, user, permissions[0], group_name="Ledger C", role_name="Ledger C")

    statements = []

    def record(conn, cursor, statement, parameters, context, executemany):
        statements.append(statement)

    event.listen(engine.sync_engine, "before_cursor_execute", record)
    try:
        resolved = await resolver.get_user_permissions(user.id)
    finally:
        event.remove(engine.sync_engine, "before_cursor_execute", record)

    assert sorted(p.id for p in resolved) == sorted(p.id for p in permissions)
    # user, groups, roles, permission ids, permissions
    assert len(statements) == 5


async def test_dead_ends_resolve_to_nothing(db, resolver):
    lonely = await make_user(db, "lonely")
    assert await resolver.get_user_permissions(lonely.id) == []
    assert await resolver.get_user_permissions(999) == []

    # A group without roles
    member = await make_user(db, "member")
    group = await make_group(db, "Empty Group")
    await user_group_repository.add_pairs(db, group.id, [member.id])
    assert await resolver.get_user_permissions(member.id) == []

    # A role without permissions
    role = await make_role(db, "Empty Role")
    await group_role_repository.add_pairs(db, group.id, [role.id])
    assert await resolver.get_user_permissions(member.id) == []


async def test_unknown_action_is_denied_not_rejected(db, resolver):
    user = await make_user(db, "carol")
    module = await make_module(db, "Billing")
    await grant(db, user, await make_permission(db, module, "read"))

    assert await resolver.check_permission(user.id, module.id, "approve") is False


async def test_check_by_module_name(db, resolver):
    user = await make_user(db, "dave")
    module = await make_module(db, "Invoices")
    await grant(db, user, await make_permission(db, module, "create"))

    assert await resolver.check_permission_by_module_name(user.id, "Invoices", "create") is True

    with pytest.raises(ResourceNotFoundException) as exc:
        await resolver.check_permission_by_module_name(user.id, "Nowhere", "create")
    assert exc.value.detail == "Module Nowhere not found"


class CountingModules:
    def __init__(self, wrapped):
        self.wrapped = wrapped
        self.name_lookups = 0

    async def get_by_name(self, db, name):
        self.name_lookups += 1
        return await self.wrapped.get_by_name(db, name)

    def __getattr__(self, name):
        return getattr(self.wrapped, name)


async def test_explained_check_resolves_the_module_once(db):
    user = await make_user(db, "dora")
    module = await make_module(db, "Shipping")
    await grant(db, user, await make_permission(db, module, "read"))
    modules = CountingModules(module_repository)

    check = await PermissionResolver(db, modules=modules).explain_permission_by_module_name(
        user.id, "Shipping", "read"
    )

    assert (check.module_id, check.module_name, check.has_permission) == (module.id, "Shipping", True)
    assert modules.name_lookups == 1


async def test_simulate_action_validates_inputs(db, resolver):
    user = await make_user(db, "erin")
    module = await make_module(db, "Orders")
    await grant(db, user, await make_permission(db, module, "update"))

    check = await resolver.simulate_action(user.id, module.id, "update")
    assert check.has_permission is True
    assert check.module_name == "Orders"

    with pytest.raises(InvalidInputException) as exc:
        await resolver.simulate_action(user.id, module.id, "approve")
    assert exc.value.detail == "Action must be one of: create, read, update, delete"

    with pytest.raises(ResourceNotFoundException) as exc:
        await resolver.simulate_action(404, module.id, "read")
    assert exc.value.detail == "User with ID 404 not found"

    with pytest.raises(ResourceNotFoundException) as exc:
        await resolver.simulate_action(user.id, 404, "read")
    assert exc.value.detail == "Module with ID 404 not found"


async def test_permission_summary_explains_the_sources(db, resolver):
    user = await make_user(db, "frank")
    module = await make_module(db, "Stock")
    read = await make_permission(db, module, "read")
    delete = await make_permission(db, module, "delete")
    group, role = await grant(db, user, read, delete, group_name="Warehouse", role_name="Keeper")

    summary = await resolver.get_user_permission_summary(user.id)

    assert summary["username"] == "frank"
    assert summary["groups"] == [{
        "id": group.id,
        "name": "Warehouse",
        "roles": [{"id": role.id, "name": "Keeper", "permission_count": 2}],
    }]
    assert summary["total_permissions"] == 2
    assert [p["module_name"] for p in summary["permissions"]] == ["Stock", "Stock"]

    with pytest.raises(ResourceNotFoundException):
        await resolver.get_user_permission_summary(12345)


async def test_users_by_permission_walks_backwards(db, resolver):
    module = await make_module(db, "Payroll")
    read = await make_permission(db, module, "read")
    holder = await make_user(db, "grace")
    await make_user(db, "heidi")
    await grant(db, holder, read)

    users = await resolver.get_users_by_permission(module.id, "read")

    assert [u.username for u in users] == ["grace"]
    assert await resolver.get_users_by_permission(module.id, "delete") == []


async def test_revoking_a_role_permission_takes_effect(db, resolver):
    user = await make_user(db, "ivan")
    module = await make_module(db, "Ledger")
    read = await make_permission(db, module, "read")
    _, role = await grant(db, user, read)
    assert await resolver.check_permission(user.id, module.id, "read")

    await role_permission_repository.remove_pairs(db, role.id, [read.id])

    assert not await resolver.check_permission(user.id, module.id, "read")


class _Perm:
    def __init__(self, id, module_id, action):
        self.id = id
        self.module_id = module_id
        self.action = action


def test_merge_unique_keeps_first_seen_order():
    a, b, c = _Perm(1, 1, "read"), _Perm(2, 1, "update"), _Perm(1, 1, "read")

    merged = PermissionClosureService.merge_unique([a, b], [c])

    assert merged == [a, b]


def test_grants_and_qualified_name():
    permissions = [_Perm(1, 7, "read")]

    assert PermissionClosureService.grants(permissions, 7, "read")
    assert not PermissionClosureService.grants(permissions, 8, "read")
    assert PermissionClosureService.qualified_name("Users", "read") == "Users:read"
    assert PermissionClosureService.qualified_name(None, "read") == "Unknown:read"
