# tests/test_api.py

from iam.adapters.outbound.persistence.repositories import module_repository
from tests.factories import grant, login, make_module, make_permission, make_user

API = "/api/v1"


async def _create(client, headers, path, payload):
    response = await client.post(f"{API}{path}", json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["data"]


########################################################################
# Authorization
########################################################################

async def test_protected_route_without_token(client):
    response = await client.get(f"{API}/groups")

    assert response.status_code == 401


async def test_user_without_permission_is_forbidden(client, seeded, user_headers):
    response = await client.get(f"{API}/groups", headers=user_headers)

    assert response.status_code == 403
    body = response.json()
    assert body["success"] is False
    assert body["code"] == "PERMISSION_DENIED"
    assert body["message"] == (
        "Permission denied: User does not have read permission for this resource "
        "(Required permission: Groups:read)"
    )


async def test_permission_granted_through_a_group(client, seeded, db):
    user = await make_user(db, "reader")
    groups_module = await module_repository.get_by_name(db, "Groups")
    read = await make_permission(db, groups_module, "read", name="Groups Reading")
    await grant(db, user, read)
    headers = await login(client, "reader@acme.io")

    assert (await client.get(f"{API}/groups", headers=headers)).status_code == 200
    assert (await client.post(f"{API}/groups", json={"name": "Nope"}, headers=headers)).status_code == 403


async def test_guard_on_an_unknown_module_is_404(client, db, user_headers):
    # Nothing seeded: the Groups module does not exist
    response = await client.get(f"{API}/groups", headers=user_headers)

    assert response.status_code == 404
    assert response.json()["message"] == "Module Groups not found"


########################################################################
# CRUD envelopes
########################################################################

async def test_group_crud_round(client, admin_headers):
    group = await _create(client, admin_headers, "/groups", {"name": "Marketing", "description": "Ads"})

    listing = await client.get(f"{API}/groups", params={"search": "Market"}, headers=admin_headers)
    assert listing.status_code == 200
    page = listing.json()["data"]
    assert page["total"] == 1
    assert page["items"][0]["name"] == "Marketing"

    updated = await client.put(
        f"{API}/groups/{group['id']}", json={"description": "Campaigns"}, headers=admin_headers
    )
    assert updated.json()["data"]["description"] == "Campaigns"

    duplicate = await client.post(f"{API}/groups", json={"name": "Marketing"}, headers=admin_headers)
    assert duplicate.status_code == 409
    assert duplicate.json()["message"] == "Group name already exists"

    deleted = await client.delete(f"{API}/groups/{group['id']}", headers=admin_headers)
    assert deleted.status_code == 200
    assert deleted.json()["data"]["is_active"] is False


async def test_missing_entity_is_404(client, admin_headers):
    response = await client.get(f"{API}/roles/9999", headers=admin_headers)

    assert response.status_code == 404
    assert response.json()["message"] == "Role with ID 9999 not found"
    assert response.json()["errors"] == {"resource_id": 9999}


async def test_module_standard_permissions(client, admin_headers):
    module = await _create(client, admin_headers, "/modules", {"name": "Inventory"})

    response = await client.post(f"{API}/modules/{module['id']}/standard-permissions", headers=admin_headers)
    assert response.status_code == 201
    assert sorted(p["action"] for p in response.json()["data"]) == ["create", "delete", "read", "update"]

    blocked = await client.delete(f"{API}/modules/{module['id']}/permanent", headers=admin_headers)
    assert blocked.status_code == 422
    assert blocked.json()["code"] == "VALIDATION_ERROR"


########################################################################
# Assignments
########################################################################

async def test_bulk_assignment_over_http(client, admin_headers):
    group = await _create(client, admin_headers, "/groups", {"name": "Designers"})
    role_a = await _create(client, admin_headers, "/roles", {"name": "Sketcher"})
    role_b = await _create(client, admin_headers, "/roles", {"name": "Painter"})
    url = f"{API}/groups/{group['id']}/roles"

    first = await client.post(url, json={"role_ids": [role_a["id"]]}, headers=admin_headers)
    assert first.status_code == 200
    assert first.json()["data"]["assigned"] == 1

    second = await client.post(url, json={"role_ids": [role_a["id"], role_b["id"]]}, headers=admin_headers)
    data = second.json()["data"]
    assert (data["assigned"], data["skipped"]) == (1, 1)
    assert [d["status"] for d in data["details"]] == ["already_exists", "assigned"]

    listed = await client.get(url, headers=admin_headers)
    assert [r["name"] for r in listed.json()["data"]] == ["Sketcher", "Painter"]

    removed = await client.request("DELETE", url, json={"role_ids": [role_a["id"], 4242]}, headers=admin_headers)
    data = removed.json()["data"]
    assert (data["removed"], data["not_found"]) == (1, 1)

    single = await client.delete(f"{url}/{role_b['id']}", headers=admin_headers)
    assert single.json()["data"]["removed"] == 1


async def test_assignment_with_unknown_ids_is_404(client, admin_headers):
    group = await _create(client, admin_headers, "/groups", {"name": "Phantoms"})

    response = await client.post(
        f"{API}/groups/{group['id']}/roles", json={"role_ids": [111, 222]}, headers=admin_headers
    )

    assert response.status_code == 404
    assert response.json()["message"] == "Roles not found: 111, 222"
    assert response.json()["errors"] == {"missing_ids": [111, 222]}


async def test_assignment_with_empty_ids_is_400(client, admin_headers):
    group = await _create(client, admin_headers, "/groups", {"name": "Empties"})

    response = await client.post(f"{API}/groups/{group['id']}/users", json={"user_ids": []}, headers=admin_headers)

    assert response.status_code == 400
    assert response.json()["message"] == "At least one user ID must be provided"


async def test_membership_and_module_views(client, admin_headers, db):
    group = await _create(client, admin_headers, "/groups", {"name": "Book Club"})
    ruth = await make_user(db, "ruth")
    sam = await make_user(db, "sam")
    members = f"{API}/groups/{group['id']}/users"
    await client.post(members, json={"user_ids": [ruth.id, sam.id]}, headers=admin_headers)
    await client.delete(f"{API}/users/{sam.id}", headers=admin_headers)

    active = await client.get(f"{members}/active", headers=admin_headers)
    assert [u["username"] for u in active.json()["data"]] == ["ruth"]

    stats = await client.get(f"{API}/users/statistics", headers=admin_headers)
    assert stats.json()["data"] == {
        "total": 3, "active": 2, "inactive": 1, "with_groups": 3, "without_groups": 0,
    }

    users_module = await module_repository.get_by_name(db, "Users")
    by_module = await client.get(f"{API}/roles/by-module/{users_module.id}", headers=admin_headers)
    [role] = by_module.json()["data"]
    assert role["name"] == "Administrator"
    assert sorted(p["action"] for p in role["permissions"]) == ["create", "delete", "read", "update"]
    assert [g["name"] for g in role["groups"]] == ["Administrators"]
    assert (role["permission_count"], role["group_count"]) == (4, 1)

    filtered = await client.get(
        f"{API}/roles/{role['id']}/permissions", params={"module_name": "Users"}, headers=admin_headers
    )
    assert {p["module_name"] for p in filtered.json()["data"]} == {"Users"}
    assert len(filtered.json()["data"]) == 4

    missing = await client.get(f"{API}/roles/by-module/999", headers=admin_headers)
    assert missing.status_code == 404
    assert missing.json()["message"] == "Module with ID 999 not found"


########################################################################
# Effective permissions
########################################################################

async def test_permission_check_route_is_not_shadowed(client, admin_headers):
    me = (await client.get(f"{API}/auth/me", headers=admin_headers)).json()["data"]

    response = await client.get(
        f"{API}/permissions/check",
        params={"user_id": me["id"], "module_name": "Users", "action": "delete"},
        headers=admin_headers,
    )

    assert response.status_code == 200
    assert response.json()["data"]["has_permission"] is True
    assert response.json()["data"]["module_name"] == "Users"


async def test_my_permissions_and_simulation(client, db):
    user = await make_user(db, "walter")
    module = await make_module(db, "Reports")
    await grant(db, user, await make_permission(db, module, "read"))
    headers = await login(client, "walter@acme.io")

    mine = await client.get(f"{API}/me/permissions", headers=headers)
    assert [(p["module_name"], p["action"]) for p in mine.json()["data"]] == [("Reports", "read")]

    allowed = await client.post(
        f"{API}/simulate-action", json={"module_id": module.id, "action": "read"}, headers=headers
    )
    assert allowed.json()["data"]["has_permission"] is True

    denied = await client.post(
        f"{API}/simulate-action", json={"module_id": module.id, "action": "delete"}, headers=headers
    )
    assert denied.json()["data"]["has_permission"] is False

    invalid = await client.post(
        f"{API}/simulate-action", json={"module_id": module.id, "action": "approve"}, headers=headers
    )
    assert invalid.status_code == 400
    assert invalid.json()["message"] == "Action must be one of: create, read, update, delete"


async def test_user_permission_summary(client, admin_headers):
    me = (await client.get(f"{API}/auth/me", headers=admin_headers)).json()["data"]

    response = await client.get(f"{API}/users/{me['id']}/permissions", headers=admin_headers)

    data = response.json()["data"]
    assert data["groups"][0]["name"] == "Administrators"
    assert data["groups"][0]["roles"][0]["name"] == "Administrator"
    assert data["total_permissions"] == 28
