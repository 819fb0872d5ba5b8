# tests/test_auth.py

from datetime import timedelta

import pytest

from iam.adapters.outbound.persistence.repositories import user_repository
from iam.adapters.outbound.security.auth_user_manager import UserAuthManager
from iam.application.dtos.user_dto import UserCreate, UserLogin
from iam.application.use_cases.auth_use_cases import AsyncAuthService
from iam.domain.exceptions import InvalidCredentialsException, ResourceAlreadyExistsException
from tests.factories import PASSWORD, login, make_user


async def test_register_rejects_taken_email_and_username(db):
    service = AsyncAuthService(db)
    await service.register(UserCreate(username="nina", email="nina@acme.io", password=PASSWORD))

    with pytest.raises(ResourceAlreadyExistsException) as exc:
        await service.register(UserCreate(username="nina2", email="nina@acme.io", password=PASSWORD))
    assert exc.value.detail == "Email already registered"

    with pytest.raises(ResourceAlreadyExistsException) as exc:
        await service.register(UserCreate(username="nina", email="nina2@acme.io", password=PASSWORD))
    assert exc.value.detail == "Username already taken"


async def test_login_returns_a_bearer_token(db):
    user = await make_user(db, "oscar")

    token = await AsyncAuthService(db).login(UserLogin(email="oscar@acme.io", password=PASSWORD))

    assert token.token_type == "bearer"
    assert token.user.id == user.id
    payload = await UserAuthManager.verify_access_token(token.access_token)
    assert payload["sub"] == str(user.id)
    assert payload["username"] == "oscar"


@pytest.mark.parametrize("email, password", [
    ("oscar@acme.io", "wrong-password"),
    ("nobody@acme.io", PASSWORD),
])
async def test_login_failures_share_one_message(db, email, password):
    await make_user(db, "oscar")

    with pytest.raises(InvalidCredentialsException) as exc:
        await AsyncAuthService(db).login(UserLogin(email=email, password=password))

    assert exc.value.detail == "Invalid email or password"


async def test_deactivated_account_cannot_login(db):
    await make_user(db, "peggy", is_active=False)

    with pytest.raises(InvalidCredentialsException) as exc:
        await AsyncAuthService(db).login(UserLogin(email="peggy@acme.io", password=PASSWORD))

    assert exc.value.detail == "Account is deactivated"


async def test_expired_token_is_rejected():
    token = await UserAuthManager.create_access_token(subject=1, expires_delta=timedelta(seconds=-5))

    with pytest.raises(InvalidCredentialsException) as exc:
        await UserAuthManager.verify_access_token(token)

    assert exc.value.detail == "Invalid or expired token"


async def test_change_password_checks_the_current_one(db):
    user = await make_user(db, "quinn")
    service = AsyncAuthService(db)

    with pytest.raises(InvalidCredentialsException) as exc:
        await service.change_password(user.id, "not-it", "another1")
    assert exc.value.detail == "Current password is incorrect"

    await service.change_password(user.id, PASSWORD, "another1")
    token = await service.login(UserLogin(email="quinn@acme.io", password="another1"))
    assert token.user.username == "quinn"


async def test_reset_password_reactivates_login(db):
    user = await make_user(db, "rhoda", is_active=False)
    service = AsyncAuthService(db)

    await service.reset_password(user.id, "fresh-pass1")
    await service.activate(user.id)

    token = await service.login(UserLogin(email="rhoda@acme.io", password="fresh-pass1"))
    assert token.user.username == "rhoda"


########################################################################
# HTTP
########################################################################

async def test_register_login_and_me(client):
    response = await client.post("/api/v1/auth/register", json={
        "username": "rupert",
        "email": "Rupert@Acme.io",
        "password": PASSWORD,
    })
    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["data"]["email"] == "rupert@acme.io"
    assert "password" not in body["data"]

    headers = await login(client, "rupert@acme.io")
    me = await client.get("/api/v1/auth/me", headers=headers)

    assert me.status_code == 200
    assert me.json()["data"]["username"] == "rupert"


async def test_missing_token_is_401(client):
    response = await client.get("/api/v1/auth/me")

    assert response.status_code == 401
    assert response.json() == {
        "success": False,
        "message": "Authentication required. No token provided.",
        "code": "INVALID_CREDENTIALS",
        "errors": None,
    }


async def test_garbage_token_is_401(client):
    response = await client.get("/api/v1/auth/me", headers={"Authorization": "Bearer not-a-jwt"})

    assert response.status_code == 401
    assert response.json()["message"] == "Invalid or expired token"


async def test_token_of_deactivated_user_is_401(client, db):
    user = await make_user(db, "sybil")
    token = await UserAuthManager.create_access_token(subject=user.id)
    await user_repository.update(db, db_obj=user, obj_in={"is_active": False})

    response = await client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401
    assert response.json()["message"] == "User not found or inactive"


async def test_login_with_wrong_password_is_401(client, db):
    await make_user(db, "trent")

    response = await client.post("/api/v1/auth/login", json={"email": "trent@acme.io", "password": "nope-nope"})

    assert response.status_code == 401
    assert response.json()["message"] == "Invalid email or password"


async def test_register_validation_errors_use_the_envelope(client):
    response = await client.post("/api/v1/auth/register", json={"username": "x", "email": "bad", "password": "1"})

    assert response.status_code == 422
    body = response.json()
    assert body["success"] is False
    assert body["code"] == "VALIDATION_ERROR"
    assert {error["field"] for error in body["errors"]} >= {"username", "email", "password"}
