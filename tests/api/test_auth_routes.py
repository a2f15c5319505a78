"""
Tests for registration and login.
"""

from unittest.mock import AsyncMock

import jwt
import pytest
from pymongo.errors import DuplicateKeyError

from api.config import config
from api.security import verify_password

STRONG_PASSWORD = "Abcdef1!"


def decode(token):
    return jwt.decode(token, config.jwt_secret.get_secret_value(), algorithms=[config.jwt_algorithm])


def signup_body(**overrides):
    body = {"email": "a@x.com", "password": STRONG_PASSWORD, "name": "A", "role": "Admin"}
    body.update(overrides)
    return body


class TestRegister:
    """Test cases for POST /auth/register."""

    def test_register_returns_token(self, client, db_service):
        response = client.post("/auth/register", json=signup_body())

        assert response.status_code == 201
        data = response.json()
        assert data["message"] == "Registration successful"

        claims = decode(data["token"])
        user = next(iter(db_service.users.values()))
        assert claims["email"] == "a@x.com"
        assert claims["id"] == str(user["_id"])
        assert claims["role"] == "Admin"
        assert "name" not in claims
        assert claims["exp"] - claims["iat"] == 7 * 24 * 3600

    def test_password_is_hashed(self, client, db_service):
        client.post("/auth/register", json=signup_body())

        stored = next(iter(db_service.users.values()))["password"]
        assert stored != STRONG_PASSWORD
        assert stored.startswith("$2")
        assert verify_password(STRONG_PASSWORD, stored)

    def test_numeric_name_is_stored_as_text(self, client, db_service):
        response = client.post("/auth/register", json=signup_body(name=42))

        assert response.status_code == 201
        assert next(iter(db_service.users.values()))["name"] == "42"

    def test_response_never_contains_password(self, client):
        response = client.post("/auth/register", json=signup_body())
        assert STRONG_PASSWORD not in response.text
        assert "password" not in response.json()

    def test_duplicate_email(self, client, db_service):
        first = client.post("/auth/register", json=signup_body())
        second = client.post("/auth/register", json=signup_body(name="Someone Else"))

        assert first.status_code == 201
        assert second.status_code == 400
        assert second.json() == {"message": "User already registered"}
        assert len(db_service.users) == 1

    def test_duplicate_key_race_is_conflict(self, client, db_service, monkeypatch):
        monkeypatch.setattr(db_service, "get_user_by_email", AsyncMock(return_value=None))
        monkeypatch.setattr(db_service, "create_user", AsyncMock(side_effect=DuplicateKeyError("E11000")))

        response = client.post("/auth/register", json=signup_body())

        assert response.status_code == 400
        assert response.json()["message"] == "User already registered"

    @pytest.mark.parametrize("missing", ["email", "password", "name", "role"])
    def test_missing_field_is_rejected(self, client, db_service, missing):
        body = signup_body()
        del body[missing]

        response = client.post("/auth/register", json=body)

        assert response.status_code == 400
        data = response.json()
        assert data["message"] == "Validation failed"
        assert data["errors"]
        assert all(error["field"] == missing for error in data["errors"])
        assert db_service.users == {}

    @pytest.mark.parametrize("password,message", [
        ("Abc1!", "Password must be at least 8 characters long"),
        ("ABCDEFG1!", "Password must contain at least one lowercase letter"),
        ("abcdefg1!", "Password must contain at least one uppercase letter"),
        ("Abcdefgh!", "Password must contain at least one number"),
        ("Abcdefgh1", "Password must contain at least one special character"),
    ])
    def test_weak_password_is_rejected(self, client, db_service, password, message):
        response = client.post("/auth/register", json=signup_body(password=password))

        assert response.status_code == 400
        assert response.json()["errors"] == [{"field": "password", "message": message}]
        assert db_service.users == {}

    def test_every_violation_is_reported(self, client):
        response = client.post(
            "/auth/register",
            json={"email": "nope", "password": "abc", "name": "", "role": "Editor"}
        )

        assert response.status_code == 400
        assert [(e["field"], e["message"]) for e in response.json()["errors"]] == [
            ("email", "Email is not valid"),
            ("password", "Password must be at least 8 characters long"),
            ("password", "Password must contain at least one uppercase letter"),
            ("password", "Password must contain at least one number"),
            ("password", "Password must contain at least one special character"),
            ("name", "Name is required"),
            ("role", "Role must be one of: Admin, Author, Reader"),
        ]

    def test_body_must_be_an_object(self, client):
        response = client.post("/auth/register", json=["a@x.com"])

        assert response.status_code == 400
        assert response.json()["errors"] == [
            {"field": "body", "message": "Request body must be a JSON object"}
        ]

    def test_storage_failure_is_internal_error(self, client, db_service, monkeypatch):
        monkeypatch.setattr(db_service, "get_user_by_email", AsyncMock(side_effect=RuntimeError("down")))

        response = client.post("/auth/register", json=signup_body())

        assert response.status_code == 500
        assert response.json() == {"message": "Something went wrong"}


class TestLogin:
    """Test cases for POST /auth/login."""

    def test_login_returns_token_with_name(self, client, register):
        register("a@x.com", role="Author", name="A")

        response = client.post("/auth/login", json={"email": "a@x.com", "password": STRONG_PASSWORD})

        assert response.status_code == 200
        data = response.json()
        assert data["message"] == "Login successful"
        claims = decode(data["token"])
        assert claims["email"] == "a@x.com"
        assert claims["role"] == "Author"
        assert claims["name"] == "A"

    def test_wrong_password_and_unknown_email_look_the_same(self, client, register):
        register("a@x.com")

        wrong_password = client.post("/auth/login", json={"email": "a@x.com", "password": "Wrong123!"})
        unknown_email = client.post("/auth/login", json={"email": "b@x.com", "password": STRONG_PASSWORD})

        assert wrong_password.status_code == unknown_email.status_code == 400
        assert wrong_password.json() == unknown_email.json() == {"message": "Invalid credentials"}

    def test_login_validation(self, client):
        response = client.post("/auth/login", json={"email": "not-an-email", "password": ""})

        assert response.status_code == 400
        assert response.json()["errors"] == [
            {"field": "email", "message": "Email is not valid"},
            {"field": "password", "message": "Password is required"},
        ]

    def test_empty_body_reports_all_fields(self, client):
        response = client.post("/auth/login", content=b"")

        assert response.status_code == 400
        assert [e["field"] for e in response.json()["errors"]] == ["email", "password"]
