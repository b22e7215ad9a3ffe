import pytest


def _new_user(**overrides):
    body = {
        "email": "crew@test.com",
        "password": "securepass123",
        "full_name": "Crew Member",
    }
    body.update(overrides)
    return body


@pytest.mark.asyncio
async def test_admin_creates_user(client, admin_headers):
    response = await client.post("/api/v1/auth/users", headers=admin_headers, json=_new_user())
    assert response.status_code == 201
    data = response.json()
    assert data["email"] == "crew@test.com"
    assert data["role"] == "subcontractor"
    assert data["is_active"] is True


@pytest.mark.asyncio
async def test_manager_cannot_create_admin(client, manager_headers):
    response = await client.post(
        "/api/v1/auth/users", headers=manager_headers, json=_new_user(role="admin")
    )
    assert response.status_code == 403

    response = await client.post("/api/v1/auth/users", headers=manager_headers, json=_new_user())
    assert response.status_code == 201


@pytest.mark.asyncio
async def test_subcontractor_cannot_create_users(client, sub_headers):
    response = await client.post("/api/v1/auth/users", headers=sub_headers, json=_new_user())
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_short_password_rejected(client, admin_headers):
    response = await client.post(
        "/api/v1/auth/users", headers=admin_headers, json=_new_user(password="short")
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_duplicate_email_rejected(client, admin_headers, admin_user):
    response = await client.post(
        "/api/v1/auth/users", headers=admin_headers, json=_new_user(email=admin_user.email)
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_list_users_by_role(client, manager_headers, sub_user, admin_user):
    response = await client.get(
        "/api/v1/auth/users", headers=manager_headers, params={"role": "subcontractor"}
    )
    assert response.status_code == 200
    emails = [u["email"] for u in response.json()]
    assert sub_user.email in emails
    assert admin_user.email not in emails


@pytest.mark.asyncio
async def test_login_and_refresh(client, sub_user):
    response = await client.post(
        "/api/v1/auth/login",
        json={"email": sub_user.email, "password": "testpass123"},
    )
    assert response.status_code == 200
    data = response.json()
    assert data["token_type"] == "bearer"

    response = await client.post("/api/v1/auth/refresh", json={"refresh_token": data["refresh_token"]})
    assert response.status_code == 200
    assert "access_token" in response.json()

    # access tokens cannot be used to refresh
    response = await client.post("/api/v1/auth/refresh", json={"refresh_token": data["access_token"]})
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_login_invalid_credentials(client, sub_user):
    response = await client.post(
        "/api/v1/auth/login",
        json={"email": sub_user.email, "password": "wrong"},
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_admin_resets_password(client, admin_headers, manager_headers, sub_user):
    url = f"/api/v1/auth/users/{sub_user.id}/password"
    response = await client.put(url, headers=manager_headers, json={"password": "brandnew123"})
    assert response.status_code == 403

    response = await client.put(url, headers=admin_headers, json={"password": "brandnew123"})
    assert response.status_code == 204

    response = await client.post(
        "/api/v1/auth/login", json={"email": sub_user.email, "password": "brandnew123"}
    )
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_deactivated_user_cannot_log_in(client, manager_headers, sub_user):
    response = await client.delete(f"/api/v1/auth/users/{sub_user.id}", headers=manager_headers)
    assert response.status_code == 204

    response = await client.post(
        "/api/v1/auth/login", json={"email": sub_user.email, "password": "testpass123"}
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_cannot_delete_self(client, admin_headers, admin_user):
    response = await client.delete(f"/api/v1/auth/users/{admin_user.id}", headers=admin_headers)
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_get_me(client, manager_headers, manager_user):
    response = await client.get("/api/v1/auth/me", headers=manager_headers)
    assert response.status_code == 200
    assert response.json()["role"] == "jg_management"
    assert response.json()["email"] == manager_user.email


@pytest.mark.asyncio
async def test_unauthenticated(client):
    response = await client.get("/api/v1/auth/me", headers={"Authorization": "Token abc"})
    assert response.status_code == 403
