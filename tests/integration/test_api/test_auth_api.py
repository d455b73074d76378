"""Integration tests for the auth endpoints."""

from httpx import AsyncClient

from lead_intake.core.config import Settings
from lead_intake.models.user import User


class TestLogin:
    async def test_login_creates_user_and_sets_cookie(self, client: AsyncClient, settings: Settings) -> None:
        response = await client.post("/api/v1/auth/login", json={"email": "New.Agent@example.com", "name": "New"})

        assert response.status_code == 200
        body = response.json()
        assert body["token_type"] == "bearer"
        assert body["expires_in"] == settings.jwt_access_token_expire_minutes * 60
        cookie = response.headers["set-cookie"]
        assert cookie.startswith(f"{settings.session_cookie_name}=")
        assert "HttpOnly" in cookie

        me = await client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {body['access_token']}"})
        assert me.status_code == 200
        assert me.json()["email"] == "new.agent@example.com"

    async def test_login_twice_returns_same_user(self, client: AsyncClient) -> None:
        first = await client.post("/api/v1/auth/login", json={"email": "repeat@example.com"})
        second = await client.post("/api/v1/auth/login", json={"email": "REPEAT@example.com"})
        headers_1 = {"Authorization": f"Bearer {first.json()['access_token']}"}
        headers_2 = {"Authorization": f"Bearer {second.json()['access_token']}"}

        me_1 = await client.get("/api/v1/auth/me", headers=headers_1)
        me_2 = await client.get("/api/v1/auth/me", headers=headers_2)
        assert me_1.json()["id"] == me_2.json()["id"]

    async def test_login_rejects_invalid_email(self, client: AsyncClient) -> None:
        response = await client.post("/api/v1/auth/login", json={"email": "not-an-email"})
        assert response.status_code == 422
        assert response.json()["errors"][0]["field"] == "email"


class TestSession:
    async def test_me_with_cookie(
        self, client: AsyncClient, settings: Settings, sample_user: User, user_token: str
    ) -> None:
        response = await client.get(
            "/api/v1/auth/me", headers={"Cookie": f"{settings.session_cookie_name}={user_token}"}
        )
        assert response.status_code == 200
        assert response.json()["id"] == str(sample_user.id)

    async def test_me_without_token(self, client: AsyncClient) -> None:
        response = await client.get("/api/v1/auth/me")
        assert response.status_code == 401

    async def test_me_with_bad_token(self, client: AsyncClient) -> None:
        response = await client.get("/api/v1/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401

    async def test_logout_clears_cookie(self, client: AsyncClient, settings: Settings) -> None:
        response = await client.post("/api/v1/auth/logout")
        assert response.status_code == 204
        assert f'{settings.session_cookie_name}=""' in response.headers["set-cookie"]
