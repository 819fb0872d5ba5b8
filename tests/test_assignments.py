# tests/test_assignments.py

import pytest

from iam.adapters.outbound.persistence.repositories import group_role_repository, user_repository
from iam.application.use_cases.assignment_use_cases import (
    AsyncGroupRoleService,
    AsyncGroupUserService,
    AsyncRolePermissionService,
)
from iam.domain.exceptions import (
    InvalidInputException,
    ResourceInactiveException,
    ResourceNotFoundException,
    ResourcesNotFoundException,
)
from tests.factories import make_group, make_module, make_permission, make_role, make_user


async def test_assign_reports_new_and_existing_pairs(db):
    group = await make_group(db, "Editors")
    writer = await make_role(db, "Writer")
    reviewer = await make_role(db, "Reviewer")
    service = AsyncGroupRoleService(db)

    first = await service.assign(group.id, [writer.id])
    second = await service.assign(group.id, [writer.id, reviewer.id])

    assert (first.assigned, first.skipped) == (1, 0)
    assert (second.assigned, second.skipped) == (1, 1)
    assert [(d.id, d.status) for d in second.details] == [
        (writer.id, "already_exists"),
        (reviewer.id, "assigned"),
    ]
    assert second.details[0].message == "Role was already assigned to this group"
    assert second.details[1].message == "Role successfully assigned to group"
    assert [r.id for r in await service.list(group.id)] == [writer.id, reviewer.id]


async def test_assigning_twice_changes_nothing(db):
    group = await make_group(db, "Support")
    role = await make_role(db, "Agent")
    service = AsyncGroupRoleService(db)

    await service.assign(group.id, [role.id])
    again = await service.assign(group.id, [role.id])

    assert again.assigned == 0
    assert await group_role_repository.count_for_left(db, group.id) == 1


class StaleReadAssociation:
    """Association whose pre-insert read misses rows written by another request."""

    def __init__(self, wrapped):
        self.wrapped = wrapped

    async def existing_right_ids(self, db, left_id, right_ids):
        return set()

    def __getattr__(self, name):
        return getattr(self.wrapped, name)


async def test_pair_inserted_concurrently_is_reported_as_existing(db):
    group = await make_group(db, "Racers")
    role = await make_role(db, "Sprinter")
    # The concurrent request wins the race
    await group_role_repository.add_pairs(db, group.id, [role.id])
    service = AsyncGroupRoleService(db, association=StaleReadAssociation(group_role_repository))

    result = await service.assign(group.id, [role.id])

    assert (result.assigned, result.skipped) == (0, 1)
    assert [d.status for d in result.details] == ["already_exists"]
    assert await group_role_repository.count_for_left(db, group.id) == 1


async def test_duplicate_ids_in_one_request_count_once(db):
    group = await make_group(db, "Ops")
    role = await make_role(db, "Operator")

    result = await AsyncGroupRoleService(db).assign(group.id, [role.id, role.id, role.id])

    assert result.assigned == 1
    assert len(result.details) == 1


async def test_missing_rights_reject_the_whole_batch(db):
    group = await make_group(db, "Finance")
    role = await make_role(db, "Accountant")
    service = AsyncGroupRoleService(db)

    with pytest.raises(ResourcesNotFoundException) as exc:
        await service.assign(group.id, [role.id, 998, 999])

    assert exc.value.missing_ids == [998, 999]
    assert exc.value.detail == "Roles not found: 998, 999"
    assert await service.list(group.id) == []


async def test_missing_left_entity(db):
    role = await make_role(db, "Orphan")

    with pytest.raises(ResourceNotFoundException) as exc:
        await AsyncGroupRoleService(db).assign(77, [role.id])

    assert exc.value.detail == "Group with ID 77 not found"


@pytest.mark.parametrize("ids, message", [
    ([], "At least one role ID must be provided"),
    ("1,2", "role_ids must be an array of role IDs"),
    (None, "role_ids must be an array of role IDs"),
])
async def test_malformed_id_lists(db, ids, message):
    group = await make_group(db, "Malformed")

    with pytest.raises(InvalidInputException) as exc:
        await AsyncGroupRoleService(db).assign(group.id, ids)

    assert exc.value.detail == message


async def test_remove_reports_pairs_that_were_not_there(db):
    group = await make_group(db, "Sales")
    kept = await make_role(db, "Seller")
    never = await make_role(db, "Buyer")
    service = AsyncGroupRoleService(db)
    await service.assign(group.id, [kept.id])

    result = await service.remove(group.id, [kept.id, never.id, 555])

    assert (result.removed, result.not_found) == (1, 2)
    assert [(d.name, d.status) for d in result.details] == [
        ("Seller", "removed"),
        ("Buyer", "not_found"),
        ("Role 555", "not_found"),
    ]
    assert await service.list(group.id) == []


async def test_replace_sets_the_exact_set(db):
    group = await make_group(db, "Legal")
    old = await make_role(db, "Paralegal")
    new = await make_role(db, "Counsel")
    service = AsyncGroupRoleService(db)
    await service.assign(group.id, [old.id])

    result = await service.replace(group.id, [new.id])

    assert result.assigned == 1
    assert [r.id for r in await service.list(group.id)] == [new.id]


async def test_replace_with_unknown_id_keeps_the_current_set(db):
    group = await make_group(db, "Audit Team")
    role = await make_role(db, "Inspector")
    group_id, role_id = group.id, role.id
    service = AsyncGroupRoleService(db)
    await service.assign(group_id, [role_id])

    with pytest.raises(ResourcesNotFoundException):
        await service.replace(group_id, [404])

    assert [r.id for r in await service.list(group_id)] == [role_id]


async def test_replace_with_empty_list_clears(db):
    group = await make_group(db, "Temporary")
    role = await make_role(db, "Temp")
    service = AsyncGroupRoleService(db)
    await service.assign(group.id, [role.id])

    result = await service.replace(group.id, [])

    assert result.assigned == 0
    assert await service.list(group.id) == []


async def test_inactive_users_cannot_join_a_group(db):
    group = await make_group(db, "Staff")
    active = await make_user(db, "active1")
    sleeper = await make_user(db, "sleeper", is_active=False)
    service = AsyncGroupUserService(db)

    with pytest.raises(ResourceInactiveException) as exc:
        await service.assign(group.id, [active.id, sleeper.id])

    assert exc.value.status_code == 400
    assert exc.value.internal_code == "RESOURCE_INACTIVE"
    assert exc.value.detail == "Cannot assign inactive users: sleeper"
    assert await service.list(group.id) == []


async def test_group_user_details_and_counts(db):
    group = await make_group(db, "Engineering")
    user = await make_user(db, "judy")
    service = AsyncGroupUserService(db)

    result = await service.assign(group.id, [user.id])

    detail = result.details[0]
    assert detail.name == "judy"
    assert detail.extra == {"email": "judy@acme.io"}
    assert detail.message == "User successfully assigned to group"
    assert await service.count(group.id) == {"total": 1, "active": 1, "inactive": 0}
    assert [g.id for g in await service.list_reverse(user.id)] == [group.id]


async def test_role_permission_details_carry_module(db):
    role = await make_role(db, "Viewer")
    module = await make_module(db, "Dashboards")
    read = await make_permission(db, module, "read")
    service = AsyncRolePermissionService(db)

    result = await service.assign(role.id, [read.id])

    assert result.details[0].extra == {"action": "read", "module_name": "Dashboards"}
    assert result.details[0].message == "Permission successfully assigned to role"
    assert await service.has(role.id, read.id)

    with pytest.raises(ResourceNotFoundException) as exc:
        await service.list_reverse(999)
    assert exc.value.detail == "Permission with ID 999 not found"


async def test_active_group_users_leave_out_deactivated_members(db):
    group = await make_group(db, "Night Shift")
    awake = await make_user(db, "owl")
    dozing = await make_user(db, "dormouse")
    service = AsyncGroupUserService(db)
    await service.assign(group.id, [awake.id, dozing.id])
    await user_repository.update(db, db_obj=dozing, obj_in={"is_active": False})

    assert [u.username for u in await service.list_active(group.id)] == ["owl"]
    assert [u.username for u in await service.list(group.id)] == ["owl", "dormouse"]

    with pytest.raises(ResourceNotFoundException):
        await service.list_active(404)


async def test_role_permissions_filtered_by_module_name(db):
    role = await make_role(db, "Clerk")
    ledger = await make_module(db, "Ledger")
    inbox = await make_module(db, "Inbox")
    read = await make_permission(db, ledger, "read")
    update = await make_permission(db, ledger, "update")
    mail = await make_permission(db, inbox, "read")
    service = AsyncRolePermissionService(db)
    await service.assign(role.id, [read.id, update.id, mail.id])

    assert [p.id for p in await service.list_by_module(role.id, "Ledger")] == [read.id, update.id]
    assert [p.id for p in await service.list_by_module(role.id, "Inbox")] == [mail.id]
    assert await service.list_by_module(role.id, "Nowhere") == []
