import asyncio
import threading
from datetime import timedelta

import httpx
import jwt
import pytest

from karetek.config import settings
from karetek.main import create_app
from karetek.utils.io_helpers import AuthHelper, ValidationHelper

class TestRegistration:

    def test_register_returns_token_and_user(self, client):
        """Test registering a new account"""
        response = client.post("/api/auth/register", json={
            "email": "Jane@Example.com",
            "password": "correct-horse",
            "firstName": "Jane",
            "lastName": "Doe",
            "dateOfBirth": "1990-04-02",
        })

        assert response.status_code == 201
        data = response.json()
        assert data["message"] == "User registered successfully"
        assert data["user"]["email"] == "jane@example.com"
        assert data["user"]["date_of_birth"] == "1990-04-02"
        assert "password_hash" not in data["user"]

        payload = jwt.decode(data["token"], settings.jwt_secret, algorithms=[settings.jwt_algorithm])
        assert payload["id"] == data["user"]["id"]
        assert payload["email"] == "jane@example.com"

    def test_short_password_rejected(self, client):
        response = client.post("/api/auth/register", json={
            "email": "short@example.com",
            "password": "1234567",
            "firstName": "Short",
            "lastName": "Password",
        })

        assert response.status_code == 400
        assert "at least 8 characters" in response.json()["message"]

    def test_missing_fields_rejected(self, client):
        response = client.post("/api/auth/register", json={"email": "x@example.com", "password": "long-enough"})

        assert response.status_code == 400
        assert response.json()["message"] == "Email, password, first name, and last name are required"

    def test_duplicate_email_is_case_insensitive(self, client, register_user):
        register_user(email="dup@example.com")

        response = client.post("/api/auth/register", json={
            "email": "DUP@example.com",
            "password": "another-password",
            "firstName": "Other",
            "lastName": "Person",
        })

        assert response.status_code == 400
        assert response.json()["message"] == "User with this email already exists"

class TestLogin:

    def test_login_success(self, client, register_user):
        register_user(email="login@example.com", password="correct-horse")

        response = client.post("/api/auth/login", json={"email": "LOGIN@example.com", "password": "correct-horse"})

        assert response.status_code == 200
        data = response.json()
        assert data["message"] == "Login successful"
        assert data["token"]
        assert data["user"]["email"] == "login@example.com"

    def test_wrong_password_and_unknown_email_look_the_same(self, client, register_user):
        """Test that login failures do not reveal which part was wrong"""
        register_user(email="known@example.com", password="correct-horse")

        wrong_password = client.post("/api/auth/login", json={"email": "known@example.com", "password": "wrong-horse"})
        unknown_email = client.post("/api/auth/login", json={"email": "nobody@example.com", "password": "correct-horse"})

        assert wrong_password.status_code == 401
        assert unknown_email.status_code == 401
        assert wrong_password.json()["message"] == unknown_email.json()["message"] == "Invalid email or password"

    def test_missing_credentials(self, client):
        response = client.post("/api/auth/login", json={"email": "someone@example.com"})

        assert response.status_code == 400

    def test_oauth_only_account_cannot_password_login(self, client, repository):
        repository.find_or_create_oauth_user("google", "g-1", "oauth@example.com", "O", "Auth")

        response = client.post("/api/auth/login", json={"email": "oauth@example.com", "password": "anything-at-all"})

        assert response.status_code == 401

class TestConcurrency:

    @pytest.mark.asyncio
    async def test_password_hashing_does_not_stall_other_requests(self, services, monkeypatch):
        release = threading.Event()
        hash_password = AuthHelper.hash_password

        def slow_hash(password):
            release.wait(timeout=5)
            return hash_password(password)

        monkeypatch.setattr(AuthHelper, "hash_password", staticmethod(slow_hash))
        transport = httpx.ASGITransport(app=create_app(services))

        async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
            register = asyncio.create_task(client.post("/api/auth/register", json={
                "email": "slow@example.com",
                "password": "correct-horse",
                "firstName": "Slow",
                "lastName": "Hash",
            }))
            health = await asyncio.wait_for(client.get("/health"), timeout=2)

            assert health.status_code == 200
            assert not register.done()

            release.set()
            response = await register

        assert response.status_code == 201

class TestCurrentUser:

    def test_me_returns_user(self, client, register_user):
        headers, user = register_user()

        response = client.get("/api/auth/me", headers=headers)

        assert response.status_code == 200
        assert response.json()["user"]["id"] == user["id"]
        assert "password_hash" not in response.json()["user"]

    def test_missing_token(self, client):
        response = client.get("/api/auth/me")

        assert response.status_code == 401
        assert response.json()["message"] == "Access token required"

    def test_invalid_token(self, client):
        response = client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-token"})

        assert response.status_code == 403
        assert response.json()["message"] == "Invalid or expired token"

    def test_expired_token(self, client, register_user):
        _, user = register_user()
        token = AuthHelper.create_access_token(user["id"], user["email"], expires_delta=timedelta(seconds=-10))

        response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 403

class TestAuthHelper:

    def test_password_hash_roundtrip(self):
        hashed = AuthHelper.hash_password("correct-horse")

        assert hashed != "correct-horse"
        assert AuthHelper.verify_password("correct-horse", hashed)
        assert not AuthHelper.verify_password("wrong-horse", hashed)

    def test_verify_password_without_hash(self):
        assert not AuthHelper.verify_password("anything", None)
        assert not AuthHelper.verify_password("anything", "not-a-bcrypt-hash")

    def test_token_expires_after_seven_days(self):
        token = AuthHelper.create_access_token("user-1", "a@example.com")
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])

        assert payload["exp"] - payload["iat"] == 7 * 24 * 3600

    def test_verify_token_rejects_other_secret(self):
        token = jwt.encode({"id": "user-1"}, "some-other-secret", algorithm="HS256")

        assert AuthHelper.verify_token(token) is None

    def test_validate_registration(self):
        assert ValidationHelper.validate_registration({
            "email": "a@example.com", "password": "12345678", "firstName": "A", "lastName": "B"
        }) == {}
        assert "password" in ValidationHelper.validate_registration({
            "email": "a@example.com", "password": "1234567", "firstName": "A", "lastName": "B"
        })
