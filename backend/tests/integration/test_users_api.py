"""API tests for the /users identity endpoints."""

import pytest


@pytest.mark.asyncio
async def test_register_login_me_logout(client):
    registered = await client.post(
        "/users/register",
        json={"email": "new@abv.bg", "password": "secret", "username": "Newbie"},
    )
    assert registered.status_code == 200
    assert "hashedPassword" not in registered.json()

    login = await client.post("/users/login", json={"email": "new@abv.bg", "password": "secret"})
    assert login.status_code == 200
    token = login.json()["accessToken"]

    me = await client.get("/users/me", headers={"X-Authorization": token})
    assert me.status_code == 200
    assert me.json()["email"] == "new@abv.bg"
    assert me.json()["username"] == "Newbie"
    assert "hashedPassword" not in me.json()

    logout = await client.get("/users/logout", headers={"X-Authorization": token})
    assert logout.status_code == 204

    after = await client.get("/users/me", headers={"X-Authorization": token})
    assert after.status_code == 403

    other_session = await client.get("/users/me", headers={"X-Authorization": registered.json()["accessToken"]})
    assert other_session.status_code == 200


@pytest.mark.asyncio
async def test_register_conflict_with_seeded_user(client):
    response = await client.post("/users/register", json={"email": "peter@abv.bg", "password": "123"})

    assert response.status_code == 409
    assert response.json() == {"code": 409, "message": "A user with the same email already exists"}


@pytest.mark.asyncio
async def test_register_missing_fields(client):
    response = await client.post("/users/register", json={"email": "x@abv.bg"})

    assert response.status_code == 400
    assert response.json()["message"] == "Missing fields"


@pytest.mark.asyncio
async def test_login_with_wrong_password(client):
    response = await client.post("/users/login", json={"email": "peter@abv.bg", "password": "wrong"})

    assert response.status_code == 403
    assert response.json()["message"] == "Login or password don't match"


@pytest.mark.asyncio
async def test_me_and_logout_require_a_session(client):
    me = await client.get("/users/me")
    logout = await client.get("/users/logout")

    assert me.status_code == 401
    assert logout.status_code == 403
    assert logout.json()["message"] == "User session does not exist"


@pytest.mark.asyncio
async def test_users_are_not_exposed_through_data_endpoints(client):
    response = await client.get("/data/users")

    assert response.status_code == 404
