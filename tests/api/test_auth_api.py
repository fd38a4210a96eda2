"""Authentication endpoint tests."""

import pytest
from httpx import AsyncClient

from tests.factories import TEST_PASSWORD, make_user

SIGNUP = {"email": "New.Learner@Example.com", "password": "secret123", "full_name": "New Learner"}


async def _signup(client: AsyncClient, **overrides) -> dict:
    response = await client.post("/api/v1/auth/signup", json={**SIGNUP, **overrides})
    assert response.status_code == 201, response.text
    return response.json()


class TestSignup:
    @pytest.mark.asyncio
    async def test_signup_returns_tokens(self, client: AsyncClient):
        data = await _signup(client)
        assert data["access_token"]
        assert data["refresh_token"]
        assert data["token_type"] == "bearer"
        assert data["user"]["email"] == "new.learner@example.com"
        assert data["user"]["email_confirmed"] is False
        assert data["confirmation_token"]

    @pytest.mark.asyncio
    async def test_signup_awards_bonus_and_first_login(self, client: AsyncClient):
        data = await _signup(client)
        headers = {"Authorization": f"Bearer {data['access_token']}"}

        points = (await client.get("/api/v1/gamification/points", headers=headers)).json()
        # 10 welcome bonus + 10 for First Login
        assert points["total_points"] == 20
        assert points["level"] == 1

        mine = (await client.get("/api/v1/achievements/me", headers=headers)).json()
        assert [a["slug"] for a in mine["earned"]] == ["first_login"]

    @pytest.mark.asyncio
    async def test_duplicate_email(self, client: AsyncClient):
        await _signup(client)
        response = await client.post("/api/v1/auth/signup", json={**SIGNUP, "email": "new.learner@example.com"})
        assert response.status_code == 409
        assert response.json()["code"] == "EMAIL_TAKEN"

    @pytest.mark.asyncio
    async def test_weak_password(self, client: AsyncClient):
        response = await client.post("/api/v1/auth/signup", json={**SIGNUP, "password": "123"})
        assert response.status_code == 400
        assert response.json()["code"] == "WEAK_PASSWORD"

    @pytest.mark.asyncio
    async def test_invalid_email(self, client: AsyncClient):
        response = await client.post("/api/v1/auth/signup", json={**SIGNUP, "email": "not-an-email"})
        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_EMAIL"

    @pytest.mark.asyncio
    async def test_missing_fields(self, client: AsyncClient):
        response = await client.post("/api/v1/auth/signup", json={"email": "a@example.com"})
        assert response.status_code == 422


class TestLogin:
    @pytest.mark.asyncio
    async def test_login_success(self, client: AsyncClient, user):
        response = await client.post(
            "/api/v1/auth/login", json={"email": "LEARNER@example.com", "password": TEST_PASSWORD},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["user"]["id"] == user.id
        assert data["user"]["login_count"] == 1

    @pytest.mark.asyncio
    async def test_wrong_password(self, client: AsyncClient, user):
        response = await client.post("/api/v1/auth/login", json={"email": user.email, "password": "wrong-one"})
        assert response.status_code == 401
        assert response.json() == {"detail": "Invalid email or password", "code": "INVALID_CREDENTIALS"}

    @pytest.mark.asyncio
    async def test_unknown_email_same_error(self, client: AsyncClient):
        response = await client.post("/api/v1/auth/login", json={"email": "ghost@example.com", "password": "x" * 8})
        assert response.status_code == 401
        assert response.json()["code"] == "INVALID_CREDENTIALS"

    @pytest.mark.asyncio
    async def test_unconfirmed_email_when_required(self, client: AsyncClient, db_session, monkeypatch):
        from elp.config import get_settings

        await make_user(db_session, email="pending@example.com", email_confirmed=False)
        monkeypatch.setattr(get_settings(), "require_email_confirmation", True)

        response = await client.post(
            "/api/v1/auth/login", json={"email": "pending@example.com", "password": TEST_PASSWORD},
        )
        assert response.status_code == 403
        assert response.json()["code"] == "EMAIL_NOT_CONFIRMED"


class TestSession:
    @pytest.mark.asyncio
    async def test_session_with_token(self, client: AsyncClient):
        data = await _signup(client)
        response = await client.get(
            "/api/v1/auth/session", headers={"Authorization": f"Bearer {data['access_token']}"},
        )
        assert response.status_code == 200
        assert response.json()["authenticated"] is True
        assert response.json()["user"]["email"] == "new.learner@example.com"

    @pytest.mark.asyncio
    async def test_session_without_token(self, client: AsyncClient):
        response = await client.get("/api/v1/auth/session")
        assert response.status_code == 401
        assert response.json()["code"] == "INVALID_TOKEN"

    @pytest.mark.asyncio
    async def test_refresh_token_not_accepted_as_access(self, client: AsyncClient):
        data = await _signup(client)
        response = await client.get(
            "/api/v1/auth/session", headers={"Authorization": f"Bearer {data['refresh_token']}"},
        )
        assert response.status_code == 401


class TestRefreshAndLogout:
    @pytest.mark.asyncio
    async def test_refresh_rotates(self, client: AsyncClient):
        data = await _signup(client)
        response = await client.post("/api/v1/auth/refresh", json={"refresh_token": data["refresh_token"]})
        assert response.status_code == 200
        assert response.json()["refresh_token"] != data["refresh_token"]

    @pytest.mark.asyncio
    async def test_reuse_revokes_every_session(self, client: AsyncClient):
        data = await _signup(client)
        rotated = (await client.post("/api/v1/auth/refresh", json={"refresh_token": data["refresh_token"]})).json()

        reuse = await client.post("/api/v1/auth/refresh", json={"refresh_token": data["refresh_token"]})
        assert reuse.status_code == 401

        after = await client.post("/api/v1/auth/refresh", json={"refresh_token": rotated["refresh_token"]})
        assert after.status_code == 401

    @pytest.mark.asyncio
    async def test_logout_revokes(self, client: AsyncClient):
        data = await _signup(client)
        response = await client.post("/api/v1/auth/logout", json={"refresh_token": data["refresh_token"]})
        assert response.json() == {"status": "logged_out"}

        again = await client.post("/api/v1/auth/refresh", json={"refresh_token": data["refresh_token"]})
        assert again.status_code == 401

    @pytest.mark.asyncio
    async def test_logout_with_garbage_token(self, client: AsyncClient):
        response = await client.post("/api/v1/auth/logout", json={"refresh_token": "garbage"})
        assert response.status_code == 200


class TestConfirmEmail:
    @pytest.mark.asyncio
    async def test_confirm_once(self, client: AsyncClient):
        data = await _signup(client)
        token = data["confirmation_token"]

        response = await client.post("/api/v1/auth/confirm-email", json={"token": token})
        assert response.status_code == 200
        assert response.json() == {"status": "email_confirmed"}

        session = await client.get(
            "/api/v1/auth/session", headers={"Authorization": f"Bearer {data['access_token']}"},
        )
        assert session.json()["user"]["email_confirmed"] is True

        reused = await client.post("/api/v1/auth/confirm-email", json={"token": token})
        assert reused.status_code == 401
        assert reused.json()["code"] == "INVALID_TOKEN"
