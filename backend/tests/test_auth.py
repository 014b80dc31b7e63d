"""
MeMantra Backend — Auth Tests
===============================

What we test:
    ✅ Password hashing and JWT round trip (AuthService, no database)
    ✅ Expired and malformed tokens → UnauthenticatedError
    ✅ Register / login / me over HTTP, including duplicate and bad-credential paths
    ✅ Own account: change email (duplicate → 400), change password (current
       password re-checked), delete account (cascades to owned rows)
"""

from datetime import timedelta

import pytest

from app.exceptions import UnauthenticatedError
from app.models.collection import Collection
from app.models.conversation import Conversation
from app.models.like import Like
from app.models.mantra import Mantra
from app.models.message import Message
from app.models.user import User
from app.services.auth_service import AuthService

TEST_PASSWORD = "correct-horse-battery"


class TestPasswords:

    def test_hash_verifies_only_the_original_password(self):
        password_hash = AuthService.hash_password("s3cret-passw0rd")

        assert password_hash != "s3cret-passw0rd"
        assert AuthService.verify_password("s3cret-passw0rd", password_hash) is True
        assert AuthService.verify_password("wrong", password_hash) is False

    def test_garbage_hash_does_not_verify(self):
        assert AuthService.verify_password("anything", "not-a-hash") is False


class TestTokens:

    def test_round_trip(self):
        token = AuthService.create_access_token(42, "a@memantra.app")

        payload = AuthService.decode_token(token)

        assert payload["sub"] == "42"
        assert payload["email"] == "a@memantra.app"
        assert payload["exp"] > payload["iat"]

    def test_expired_token_is_rejected(self):
        token = AuthService.create_access_token(
            42, "a@memantra.app", expires_delta=timedelta(seconds=-10)
        )

        with pytest.raises(UnauthenticatedError):
            AuthService.decode_token(token)

    def test_malformed_token_is_rejected(self):
        with pytest.raises(UnauthenticatedError):
            AuthService.decode_token("not.a.jwt")


class TestAuthApi:

    @pytest.mark.asyncio
    async def test_register_returns_user_and_token(self, client):
        response = await client.post(
            "/api/auth/register",
            json={
                "username": "calm_cat",
                "email": "Calm@MeMantra.app",
                "password": TEST_PASSWORD,
                "first_name": "Calm",
            },
        )

        assert response.status_code == 201
        body = response.json()
        assert body["status"] == "success"
        assert body["message"] == "User registered successfully"
        assert body["data"]["user"]["email"] == "calm@memantra.app"
        assert body["data"]["user"]["first_name"] == "Calm"
        assert "password_hash" not in body["data"]["user"]
        assert body["data"]["token"]

    @pytest.mark.asyncio
    async def test_register_duplicate_email(self, client, make_user):
        await make_user(email="taken@memantra.app")

        response = await client.post(
            "/api/auth/register",
            json={"username": "someone", "email": "taken@memantra.app", "password": TEST_PASSWORD},
        )

        assert response.status_code == 400
        assert response.json() == {"status": "error", "message": "Email already in use"}

    @pytest.mark.asyncio
    async def test_register_duplicate_username(self, client, make_user):
        await make_user(username="taken")

        response = await client.post(
            "/api/auth/register",
            json={"username": "taken", "email": "fresh@memantra.app", "password": TEST_PASSWORD},
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Username already taken"

    @pytest.mark.asyncio
    async def test_register_short_password_is_validation_error(self, client):
        response = await client.post(
            "/api/auth/register",
            json={"username": "shorty", "email": "s@memantra.app", "password": "123"},
        )

        assert response.status_code == 400
        body = response.json()
        assert body["message"] == "Validation failed"
        assert any(err["field"] == "password" for err in body["data"]["errors"])

    @pytest.mark.asyncio
    async def test_login_and_me(self, client, make_user):
        user, _ = await make_user(email="me@memantra.app")

        login = await client.post(
            "/api/auth/login",
            json={"email": "ME@memantra.app", "password": TEST_PASSWORD},
        )
        assert login.status_code == 200
        assert login.json()["message"] == "Login successful"
        token = login.json()["data"]["token"]

        me = await client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})

        assert me.status_code == 200
        assert me.json()["data"]["user"]["user_id"] == user.user_id

    @pytest.mark.asyncio
    async def test_login_wrong_password(self, client, make_user):
        await make_user(email="me@memantra.app")

        response = await client.post(
            "/api/auth/login",
            json={"email": "me@memantra.app", "password": "not-the-password"},
        )

        assert response.status_code == 401
        assert response.json() == {"status": "error", "message": "Invalid credentials"}

    @pytest.mark.asyncio
    async def test_login_unknown_email_looks_the_same(self, client):
        response = await client.post(
            "/api/auth/login",
            json={"email": "nobody@memantra.app", "password": "whatever-pass"},
        )

        assert response.status_code == 401
        assert response.json()["message"] == "Invalid credentials"

    @pytest.mark.asyncio
    async def test_token_for_deleted_user_is_rejected(self, client):
        token = AuthService.create_access_token(9999, "ghost@memantra.app")

        response = await client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 401


class TestOwnAccount:

    @pytest.mark.asyncio
    async def test_update_email_then_login_with_it(self, client, make_user):
        _, headers = await make_user(email="old@memantra.app")

        response = await client.patch(
            "/api/auth/email", json={"email": "New@memantra.app"}, headers=headers
        )

        assert response.status_code == 200
        assert response.json() == {
            "status": "success",
            "message": "Email updated successfully",
            "data": {"email": "new@memantra.app"},
        }
        login = await client.post(
            "/api/auth/login",
            json={"email": "new@memantra.app", "password": TEST_PASSWORD},
        )
        assert login.status_code == 200

    @pytest.mark.asyncio
    async def test_update_email_taken_by_someone_else(self, client, make_user):
        await make_user(email="taken@memantra.app")
        _, headers = await make_user(email="mine@memantra.app")

        taken = await client.patch(
            "/api/auth/email", json={"email": "taken@memantra.app"}, headers=headers
        )
        own = await client.patch(
            "/api/auth/email", json={"email": "mine@memantra.app"}, headers=headers
        )

        assert taken.status_code == 400
        assert taken.json() == {"status": "error", "message": "Email already in use"}
        assert own.status_code == 200

    @pytest.mark.asyncio
    async def test_change_password_requires_the_current_one(self, client, make_user):
        _, headers = await make_user(email="pw@memantra.app")

        wrong = await client.patch(
            "/api/auth/password",
            json={"current_password": "not-the-password", "new_password": "brand-new-secret"},
            headers=headers,
        )
        assert wrong.status_code == 400
        assert wrong.json()["message"] == "Current password is incorrect"

        changed = await client.patch(
            "/api/auth/password",
            json={"current_password": TEST_PASSWORD, "new_password": "brand-new-secret"},
            headers=headers,
        )
        assert changed.status_code == 200
        assert changed.json() == {"status": "success", "message": "Password updated"}

        old = await client.post(
            "/api/auth/login", json={"email": "pw@memantra.app", "password": TEST_PASSWORD}
        )
        new = await client.post(
            "/api/auth/login",
            json={"email": "pw@memantra.app", "password": "brand-new-secret"},
        )
        assert old.status_code == 401
        assert new.status_code == 200

    @pytest.mark.asyncio
    async def test_change_password_short_new_password(self, client, make_user):
        _, headers = await make_user()

        response = await client.patch(
            "/api/auth/password",
            json={"current_password": TEST_PASSWORD, "new_password": "short"},
            headers=headers,
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Validation failed"

    @pytest.mark.asyncio
    async def test_delete_account_cascades(
        self, client, make_user, make_mantra, count_rows
    ):
        user, headers = await make_user()
        other, _ = await make_user()
        mantra = await make_mantra()
        await client.post("/api/collections", json={"name": "Mine"}, headers=headers)
        await client.post(f"/api/likes/{mantra.mantra_id}", headers=headers)
        await client.post(f"/api/mantras/{mantra.mantra_id}/save", headers=headers)
        started = await client.post(
            "/api/chat/conversations", json={"participant_id": other.user_id}, headers=headers
        )
        conversation_id = started.json()["data"]["conversation"]["conversation_id"]
        await client.post(
            "/api/chat/messages",
            json={"conversation_id": conversation_id, "content": "hi"},
            headers=headers,
        )

        response = await client.delete("/api/auth/account", headers=headers)

        assert response.status_code == 200
        assert response.json() == {"status": "success", "message": "Account deleted"}
        assert await count_rows(User, user_id=user.user_id) == 0
        assert await count_rows(Collection, user_id=user.user_id) == 0
        assert await count_rows(Like, user_id=user.user_id) == 0
        assert await count_rows(Conversation, conversation_id=conversation_id) == 0
        assert await count_rows(Message, sender_id=user.user_id) == 0
        assert await count_rows(Mantra, mantra_id=mantra.mantra_id) == 1
        assert await count_rows(User, user_id=other.user_id) == 1

        me = await client.get("/api/auth/me", headers=headers)
        assert me.status_code == 401

    @pytest.mark.asyncio
    async def test_own_account_routes_require_authentication(self, client):
        for method, url in (
            ("PATCH", "/api/auth/email"),
            ("PATCH", "/api/auth/password"),
            ("DELETE", "/api/auth/account"),
        ):
            response = await client.request(method, url, json={})

            assert response.status_code == 401, url
