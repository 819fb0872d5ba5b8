# tests/factories.py

"""Builders for test data, written through the repositories."""

from iam.adapters.outbound.persistence.repositories import (
    group_repository,
    role_repository,
    module_repository,
    permission_repository,
    user_repository,
    user_group_repository,
    group_role_repository,
    role_permission_repository,
)
from iam.application.dtos.user_dto import UserCreate

PASSWORD = "secret123"


async def make_user(db, username: str, is_active: bool = True):
    user = await user_repository.create_with_password(db, obj_in=UserCreate(
        username=username,
        email=f"{username}@acme.io",
        password=PASSWORD,
    ))
    if not is_active:
        user = await user_repository.update(db, db_obj=user, obj_in={"is_active": False})
    return user


async def _make_named(repository, db, name: str):
    return await repository.create(db, obj_in={"name": name, "description": f"{name} description"})


async def make_group(db, name: str):
    return await _make_named(group_repository, db, name)


async def make_role(db, name: str):
    return await _make_named(role_repository, db, name)


async def make_module(db, name: str):
    return await _make_named(module_repository, db, name)


async def make_permission(db, module, action: str, name: str = None):
    return await permission_repository.create(db, obj_in={
        "name": name or f"{module.name} {action.capitalize()}",
        "action": action,
        "module_id": module.id,
    })


async def grant(db, user, *permissions, group_name: str = None, role_name: str = None):
    """Give ``user`` the permissions through a new group and role."""
    group = await make_group(db, group_name or f"{user.username} group")
    role = await make_role(db, role_name or f"{user.username} role")
    await user_group_repository.add_pairs(db, group.id, [user.id])
    await group_role_repository.add_pairs(db, group.id, [role.id])
    if permissions:
        await role_permission_repository.add_pairs(db, role.id, [p.id for p in permissions])
    return group, role


async def login(client, email: str, password: str = PASSWORD) -> dict:
    """Authorization header for ``email``, obtained through the login endpoint."""
    response = await client.post("/api/v1/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.text
    token = response.json()["data"]["access_token"]
    return {"Authorization": f"Bearer {token}"}
