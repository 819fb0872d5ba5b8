# tests/test_crud_services.py

import pytest
from fastapi_pagination import Params
from pydantic import ValidationError

from iam.adapters.outbound.persistence.repositories import (
    group_role_repository,
    permission_repository,
    role_permission_repository,
    user_group_repository,
)
from iam.adapters.outbound.security.auth_user_manager import UserAuthManager
from iam.application.dtos.group_dto import GroupCreate, GroupUpdate
from iam.application.dtos.module_dto import ModuleCreate
from iam.application.dtos.permission_dto import PermissionCreate
from iam.application.dtos.user_dto import UserCreate, UserUpdate
from iam.application.use_cases import (
    AsyncGroupService,
    AsyncModuleService,
    AsyncPermissionService,
    AsyncRoleService,
    AsyncUserService,
)
from iam.domain.exceptions import (
    ResourceAlreadyExistsException,
    ResourceNotFoundException,
    ValidationException,
)
from iam.shared.utils.input_validation import InputValidator
from tests.factories import make_group, make_module, make_permission, make_role, make_user


########################################################################
# Groups
########################################################################

async def test_group_names_are_unique(db):
    service = AsyncGroupService(db)
    await service.create(GroupCreate(name="Managers"))

    with pytest.raises(ResourceAlreadyExistsException) as exc:
        await service.create(GroupCreate(name="Managers"))

    assert exc.value.detail == "Group name already exists"


async def test_group_rename_checks_other_groups_only(db):
    service = AsyncGroupService(db)
    first = await service.create(GroupCreate(name="Alpha"))
    await service.create(GroupCreate(name="Beta"))

    renamed = await service.update(first.id, GroupUpdate(name="Alpha", description="same name"))
    assert renamed.description == "same name"

    with pytest.raises(ResourceAlreadyExistsException):
        await service.update(first.id, GroupUpdate(name="Beta"))


async def test_group_with_members_cannot_be_deactivated(db):
    group = await make_group(db, "Crew")
    user = await make_user(db, "sailor")
    await user_group_repository.add_pairs(db, group.id, [user.id])

    with pytest.raises(ValidationException) as exc:
        await AsyncGroupService(db).deactivate(group.id)

    assert exc.value.detail == "Cannot delete group with assigned users. Remove users first."


async def test_empty_group_is_deactivated_then_reactivated(db):
    group = await make_group(db, "Dormant")
    service = AsyncGroupService(db)

    assert (await service.deactivate(group.id)).is_active is False
    assert await service.statistics() == {"total": 1, "active": 0, "inactive": 1}
    assert (await service.activate(group.id)).is_active is True


async def test_hard_delete_group_drops_its_associations(db):
    group = await make_group(db, "Gone")
    group_id = group.id
    user = await make_user(db, "leaver")
    await user_group_repository.add_pairs(db, group_id, [user.id])

    await AsyncGroupService(db).hard_delete(group_id)

    assert await user_group_repository.left_ids_for(db, [user.id]) == []
    with pytest.raises(ResourceNotFoundException) as exc:
        await AsyncGroupService(db).get(group_id)
    assert exc.value.detail == f"Group with ID {group_id} not found"


async def test_group_list_is_paginated(db):
    for name in ("One", "Two", "Three"):
        await make_group(db, f"Group {name}")

    page = await AsyncGroupService(db).list(Params(page=1, size=2))

    assert page.total == 3
    assert [g.name for g in page.items] == ["Group One", "Group Two"]


########################################################################
# Roles
########################################################################

async def test_role_held_by_a_group_cannot_be_deactivated(db):
    group = await make_group(db, "Holders")
    role = await make_role(db, "Held")
    await group_role_repository.add_pairs(db, group.id, [role.id])

    with pytest.raises(ValidationException) as exc:
        await AsyncRoleService(db).deactivate(role.id)

    assert exc.value.detail == "Cannot delete role assigned to groups. Remove from groups first."


async def test_roles_by_module_carry_their_permissions_and_groups(db):
    module = await make_module(db, "Warehouse")
    other = await make_module(db, "Fleet")
    read = await make_permission(db, module, "read")
    update = await make_permission(db, module, "update")
    drive = await make_permission(db, other, "update")
    keeper = await make_role(db, "Stock Keeper")
    driver = await make_role(db, "Driver")
    await role_permission_repository.add_pairs(db, keeper.id, [read.id, update.id, drive.id])
    await role_permission_repository.add_pairs(db, driver.id, [drive.id])
    depot = await make_group(db, "Depot")
    await group_role_repository.add_pairs(db, depot.id, [keeper.id])

    roles = await AsyncRoleService(db).get_roles_by_module(module.id)

    assert [r["name"] for r in roles] == ["Stock Keeper"]
    assert [p.id for p in roles[0]["permissions"]] == [read.id, update.id]
    assert [g.name for g in roles[0]["groups"]] == ["Depot"]
    assert (roles[0]["permission_count"], roles[0]["group_count"]) == (2, 1)

    with pytest.raises(ResourceNotFoundException) as exc:
        await AsyncRoleService(db).get_roles_by_module(404)
    assert exc.value.detail == "Module with ID 404 not found"


async def test_clone_role_copies_permissions(db):
    module = await make_module(db, "Catalog")
    read = await make_permission(db, module, "read")
    update = await make_permission(db, module, "update")
    source = await make_role(db, "Curator")
    await role_permission_repository.add_pairs(db, source.id, [read.id, update.id])

    clone = await AsyncRoleService(db).clone_role(source.id, "Curator Copy")

    assert clone.description == "Curator description"
    assert await role_permission_repository.right_ids_for(db, [clone.id]) == sorted([read.id, update.id])

    with pytest.raises(ResourceAlreadyExistsException):
        await AsyncRoleService(db).clone_role(source.id, "Curator Copy")


########################################################################
# Modules and permissions
########################################################################

async def test_standard_permissions_are_created_once(db):
    service = AsyncModuleService(db)
    module = await service.create(ModuleCreate(name="Projects"))

    created = await service.create_standard_permissions(module.id)
    again = await service.create_standard_permissions(module.id)

    assert sorted(p.action for p in created) == ["create", "delete", "read", "update"]
    assert {p.name for p in created} == {
        "Projects Create", "Projects Read", "Projects Update", "Projects Delete",
    }
    assert again == []


async def test_standard_permissions_skip_actions_the_module_already_has(db):
    module = await make_module(db, "Users")
    reader = await make_permission(db, module, "read", name="Users Reader")

    created = await AsyncModuleService(db).create_standard_permissions(module.id)

    assert [p.action for p in created] == ["create", "update", "delete"]
    read_permissions = await permission_repository.get_by_module_action(db, module.id, "read")
    assert [p.id for p in read_permissions] == [reader.id]


async def test_standard_permissions_fit_the_longest_module_name(db):
    long_name = "M" * InputValidator.MAX_MODULE_NAME_LENGTH
    service = AsyncModuleService(db)
    module = await service.create(ModuleCreate(name=long_name))

    created = await service.create_standard_permissions(module.id)

    assert f"{long_name} Create" in {p.name for p in created}
    # The widest generated name still passes the permission schema
    PermissionCreate(name=f"{long_name} Create", action="create", module_id=module.id)


def test_permission_names_are_capped_at_one_hundred_characters():
    PermissionCreate(name="P" * 100, action="read", module_id=1)

    with pytest.raises(ValidationError):
        PermissionCreate(name="P" * 101, action="read", module_id=1)


async def test_create_many_stores_all_or_nothing(db):
    module = await make_module(db, "Billing")
    module_id = module.id
    await make_permission(db, module, "read", name="Billing Read")

    with pytest.raises(ResourceAlreadyExistsException):
        await permission_repository.create_many(db, objs_in=[
            {"name": "Billing Create", "action": "create", "module_id": module_id},
            {"name": "Billing Read", "action": "read", "module_id": module_id},
        ])

    assert [p.name for p in await permission_repository.get_by_module(db, module_id)] == ["Billing Read"]


async def test_module_with_permissions_cannot_be_removed(db):
    module = await make_module(db, "Locked")
    await make_permission(db, module, "read")
    service = AsyncModuleService(db)

    for operation in (service.deactivate, service.hard_delete):
        with pytest.raises(ValidationException) as exc:
            await operation(module.id)
        assert exc.value.detail == "Cannot delete module with existing permissions. Delete permissions first."


async def test_permission_requires_an_existing_module(db):
    with pytest.raises(ResourceNotFoundException) as exc:
        await AsyncPermissionService(db).create(
            PermissionCreate(name="Ghost Read", action="read", module_id=321)
        )

    assert exc.value.detail == "Module with ID 321 not found"


async def test_permission_triple_is_unique(db):
    module = await make_module(db, "Tickets")
    service = AsyncPermissionService(db)
    await service.create(PermissionCreate(name="Tickets Read", action="read", module_id=module.id))

    with pytest.raises(ResourceAlreadyExistsException) as exc:
        await service.create(PermissionCreate(name="Tickets Read", action="read", module_id=module.id))

    assert exc.value.detail == "Permission with this name and action already exists for this module"


async def test_deleting_a_permission_revokes_it_from_roles(db):
    module = await make_module(db, "Files")
    permission = await make_permission(db, module, "delete")
    permission_id = permission.id
    role = await make_role(db, "Janitor")
    await role_permission_repository.add_pairs(db, role.id, [permission_id])

    await AsyncPermissionService(db).delete(permission_id)

    assert await role_permission_repository.right_ids_for(db, [role.id]) == []
    assert await permission_repository.get(db, id=permission_id) is None


async def test_permission_list_filters_by_module_and_action(db):
    first = await make_module(db, "Alpha Module")
    second = await make_module(db, "Beta Module")
    await make_permission(db, first, "read")
    await make_permission(db, first, "update")
    await make_permission(db, second, "read")

    page = await AsyncPermissionService(db).list(Params(page=1, size=50), module_id=first.id, action="read")

    assert [p.name for p in page.items] == ["Alpha Module Read"]


########################################################################
# Users
########################################################################

async def test_user_uniqueness(db):
    service = AsyncUserService(db)
    await service.create(UserCreate(username="kate", email="kate@acme.io", password="secret123"))

    with pytest.raises(ResourceAlreadyExistsException) as exc:
        await service.create(UserCreate(username="kate", email="other@acme.io", password="secret123"))
    assert exc.value.detail == "Username already exists"

    with pytest.raises(ResourceAlreadyExistsException) as exc:
        await service.create(UserCreate(username="kate2", email="KATE@acme.io", password="secret123"))
    assert exc.value.detail == "Email already exists"


async def test_user_password_is_hashed_and_updatable(db):
    service = AsyncUserService(db)
    user = await service.create(UserCreate(username="liam", email="liam@acme.io", password="secret123"))
    assert user.password != "secret123"

    user = await service.update(user.id, UserUpdate(password="newsecret"))
    assert await UserAuthManager.verify_password("newsecret", user.password)


async def test_user_search_and_hard_delete(db):
    await make_user(db, "mallory")
    target = await make_user(db, "mallet")
    target_id = target.id
    group = await make_group(db, "Hammers")
    await user_group_repository.add_pairs(db, group.id, [target_id])
    service = AsyncUserService(db)

    page = await service.list(Params(page=1, size=10), search="mall")
    assert {u.username for u in page.items} == {"mallory", "mallet"}

    await service.hard_delete(target_id)

    assert await user_group_repository.right_ids_for(db, [group.id]) == []
    page = await service.list(Params(page=1, size=10), search="mall")
    assert [u.username for u in page.items] == ["mallory"]


async def test_user_statistics_count_group_membership(db):
    member = await make_user(db, "nina")
    await make_user(db, "oscar")
    await make_user(db, "paula", is_active=False)
    group = await make_group(db, "Choir")
    await user_group_repository.add_pairs(db, group.id, [member.id])

    assert await AsyncUserService(db).statistics() == {
        "total": 3,
        "active": 2,
        "inactive": 1,
        "with_groups": 1,
        "without_groups": 2,
    }
