import pytest

from app.auth.constants import UserRole
from conftest import API, DEFAULT_PASSWORD, bearer


@pytest.mark.asyncio
async def test_non_admin_is_forbidden(async_client, create_user, login) -> None:
    await create_user("ada@example.com")
    tokens = await login("ada@example.com")
    response = await async_client.get(f"{API}/admin/users", headers=bearer(tokens["access"]))
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_list_users_with_filters(async_client, create_user, login) -> None:
    await create_user("root@example.com", username="root", role=UserRole.ADMIN)
    await create_user("ada@example.com", username="ada")
    await create_user("bob@example.com", username="bob", verified=False)
    tokens = await login("root@example.com")
    auth = bearer(tokens["access"])

    everyone = await async_client.get(f"{API}/admin/users", headers=auth)
    assert everyone.status_code == 200
    assert everyone.json()["total"] == 3

    unverified = await async_client.get(f"{API}/admin/users?verified=false", headers=auth)
    assert [u["email"] for u in unverified.json()["items"]] == ["bob@example.com"]

    admins = await async_client.get(f"{API}/admin/users?role=admin", headers=auth)
    assert [u["email"] for u in admins.json()["items"]] == ["root@example.com"]

    search = await async_client.get(f"{API}/admin/users?search=AdA", headers=auth)
    assert [u["username"] for u in search.json()["items"]] == ["ada"]

    paged = await async_client.get(f"{API}/admin/users?page=2&size=2", headers=auth)
    assert paged.json()["total"] == 3
    assert len(paged.json()["items"]) == 1


@pytest.mark.asyncio
async def test_get_user_detail(async_client, create_user, login) -> None:
    await create_user("root@example.com", role=UserRole.ADMIN)
    ada = await create_user("ada@example.com")
    tokens = await login("root@example.com")

    response = await async_client.get(
        f"{API}/admin/users/{ada.id}", headers=bearer(tokens["access"])
    )
    assert response.status_code == 200
    assert response.json()["email"] == "ada@example.com"
    assert response.json()["has_pending_password_reset"] is False


@pytest.mark.asyncio
async def test_demotion_applies_to_admin_guard_immediately(async_client, create_user, login) -> None:
    await create_user("root@example.com", role=UserRole.ADMIN)
    second = await create_user("second@example.com", role=UserRole.ADMIN)
    root_tokens = await login("root@example.com")
    second_tokens = await login("second@example.com")

    demoted = await async_client.patch(
        f"{API}/admin/users/{second.id}/role",
        json={"role": "user"},
        headers=bearer(root_tokens["access"]),
    )
    assert demoted.status_code == 200
    assert demoted.json()["role"] == "user"

    # The demoted admin's access token still says "admin"
    response = await async_client.get(
        f"{API}/admin/users", headers=bearer(second_tokens["access"])
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_last_admin_cannot_be_demoted(async_client, create_user, login) -> None:
    root = await create_user("root@example.com", role=UserRole.ADMIN)
    tokens = await login("root@example.com")
    response = await async_client.patch(
        f"{API}/admin/users/{root.id}/role",
        json={"role": "user"},
        headers=bearer(tokens["access"]),
    )
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_admin_cannot_delete_self(async_client, create_user, login) -> None:
    root = await create_user("root@example.com", role=UserRole.ADMIN)
    await create_user("second@example.com", role=UserRole.ADMIN)
    tokens = await login("root@example.com")
    response = await async_client.delete(
        f"{API}/admin/users/{root.id}", headers=bearer(tokens["access"])
    )
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_delete_user(async_client, create_user, login) -> None:
    await create_user("root@example.com", role=UserRole.ADMIN)
    ada = await create_user("ada@example.com")
    ada_tokens = await login("ada@example.com")
    tokens = await login("root@example.com")

    response = await async_client.delete(
        f"{API}/admin/users/{ada.id}", headers=bearer(tokens["access"])
    )
    assert response.status_code == 200

    missing = await async_client.get(
        f"{API}/admin/users/{ada.id}", headers=bearer(tokens["access"])
    )
    assert missing.status_code == 404

    refresh = await async_client.post(
        f"{API}/auth/refresh-token", json={"refresh_token": ada_tokens["refresh"]}
    )
    assert refresh.status_code == 401


@pytest.mark.asyncio
async def test_deactivate_user_blocks_login_and_refresh(async_client, create_user, login) -> None:
    await create_user("root@example.com", role=UserRole.ADMIN)
    ada = await create_user("ada@example.com")
    ada_tokens = await login("ada@example.com")
    tokens = await login("root@example.com")

    response = await async_client.patch(
        f"{API}/admin/users/{ada.id}/active",
        json={"is_active": False},
        headers=bearer(tokens["access"]),
    )
    assert response.status_code == 200
    assert response.json()["is_active"] is False

    login_attempt = await async_client.post(
        f"{API}/auth/login", json={"email": "ada@example.com", "password": DEFAULT_PASSWORD}
    )
    assert login_attempt.status_code == 403

    refresh = await async_client.post(
        f"{API}/auth/refresh-token", json={"refresh_token": ada_tokens["refresh"]}
    )
    assert refresh.status_code == 401


@pytest.mark.asyncio
async def test_deactivated_user_cannot_change_password_for_new_tokens(
    async_client, create_user, login
) -> None:
    await create_user("root@example.com", role=UserRole.ADMIN)
    ada = await create_user("ada@example.com")
    ada_tokens = await login("ada@example.com")
    tokens = await login("root@example.com")

    await async_client.patch(
        f"{API}/admin/users/{ada.id}/active",
        json={"is_active": False},
        headers=bearer(tokens["access"]),
    )

    # Ada's access token was minted before the deactivation and is still unexpired
    response = await async_client.post(
        f"{API}/auth/change-password",
        json={"current_password": DEFAULT_PASSWORD, "new_password": "brand-new-pass"},
        headers=bearer(ada_tokens["access"]),
    )
    assert response.status_code == 403
    assert "set-cookie" not in response.headers

    old_password = await async_client.post(
        f"{API}/auth/login", json={"email": "ada@example.com", "password": DEFAULT_PASSWORD}
    )
    assert old_password.status_code == 403
