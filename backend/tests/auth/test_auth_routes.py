REGISTER = {
    "username": "alice",
    "email": "alice@example.com",
    "password": "secret123",
}


async def test_register(client):
    response = await client.post("/api/auth/register", json=REGISTER)
    assert response.status_code == 201
    data = response.json()
    assert data["username"] == "alice"
    assert data["email"] == "alice@example.com"
    assert "id" in data
    assert "password_hash" not in data


async def test_register_duplicate_email(client):
    await client.post("/api/auth/register", json=REGISTER)

    response = await client.post("/api/auth/register", json={**REGISTER, "username": "bob"})
    assert response.status_code == 409
    assert response.json()["code"] == "conflict"


async def test_login(client):
    await client.post("/api/auth/register", json=REGISTER)
    response = await client.post(
        "/api/auth/login",
        json={"email": "alice@example.com", "password": "secret123"},
    )
    assert response.status_code == 200
    data = response.json()
    assert "access_token" in data
    assert data["token_type"] == "bearer"


async def test_login_wrong_password(client):
    await client.post("/api/auth/register", json=REGISTER)
    response = await client.post(
        "/api/auth/login",
        json={"email": "alice@example.com", "password": "wrong"},
    )
    assert response.status_code == 401


async def test_me(client, auth_headers):
    response = await client.get("/api/auth/me", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["username"] == "testuser"


async def test_me_no_token(client):
    response = await client.get("/api/auth/me")
    assert response.status_code in (401, 403)


async def test_lookup_user(client, auth_headers):
    await client.post("/api/auth/register", json=REGISTER)
    response = await client.get(
        "/api/auth/users/lookup", params={"email": "alice@example.com"}, headers=auth_headers
    )
    assert response.status_code == 200
    assert response.json()["username"] == "alice"
    assert set(response.json()) == {"id", "username"}


async def test_lookup_unknown_user(client, auth_headers):
    response = await client.get(
        "/api/auth/users/lookup", params={"email": "nobody@example.com"}, headers=auth_headers
    )
    assert response.status_code == 404
