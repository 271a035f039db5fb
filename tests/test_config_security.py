import logging
from datetime import timedelta

import pytest
from fastapi import HTTPException
from pydantic import ValidationError

from schoolhub.core.config import Settings
from schoolhub.core.logging_config import JsonFormatter
from schoolhub.core.security import SecurityError, create_access_token, password_manager, token_manager

SECRET = "x" * 40


def make_settings(**overrides):
    values = {"DATABASE_URL": "sqlite:///./test.db", "JWT_SECRET": SECRET}
    values.update(overrides)
    return Settings(_env_file=None, **values)


class TestSettings:
    def test_defaults(self):
        config = make_settings(ENV="Test")

        assert config.ENV == "test"
        assert config.ATTENDANCE_DEFAULT_EDIT_WINDOW_MINUTES == 120
        assert config.ATTENDANCE_LOW_THRESHOLD == 75.0
        assert config.is_sqlite is True
        assert config.is_production is False
        assert "X-Tenant-ID" in config.get_cors_config()["allow_headers"]

    @pytest.mark.parametrize(
        "overrides",
        [
            {"ENV": "qa"},
            {"JWT_SECRET": "too-short"},
            {"DATABASE_URL": "mysql://root@localhost/school"},
            {"LOG_LEVEL": "chatty"},
            {"LOG_FORMAT": "xml"},
            {"ATTENDANCE_DEFAULT_EDIT_WINDOW_MINUTES": 5000},
        ],
    )
    def test_invalid_values_are_rejected(self, overrides):
        with pytest.raises(ValidationError):
            make_settings(**overrides)

    def test_production_secret_must_be_changed(self):
        with pytest.raises(ValidationError):
            make_settings(ENV="production", JWT_SECRET="change_me" + "0" * 32)

    def test_cors_origins_from_comma_separated_string(self):
        config = make_settings(CORS_ORIGINS="https://a.example.com, https://b.example.com")
        assert config.CORS_ORIGINS == ["https://a.example.com", "https://b.example.com"]


class TestPasswords:
    def test_hash_and_verify(self):
        hashed = password_manager.hash_password("Secret123Pass")

        assert hashed != "Secret123Pass"
        assert password_manager.verify_password("Secret123Pass", hashed) is True
        assert password_manager.verify_password("secret123pass", hashed) is False
        assert password_manager.verify_password("Secret123Pass", "not-a-hash") is False

    def test_empty_password_cannot_be_hashed(self):
        with pytest.raises(SecurityError):
            password_manager.hash_password("")

    @pytest.mark.parametrize(
        "password, valid",
        [
            ("Secret123Pass", True),
            ("short1A", False),
            ("alllowercase1", False),
            ("ALLUPPERCASE1", False),
            ("NoDigitsHere", False),
        ],
    )
    def test_strength(self, password, valid):
        assert password_manager.validate_password_strength(password)["valid"] is valid


class TestTokens:
    def test_round_trip(self):
        token = token_manager.create_access_token(subject="abc", additional_claims={"active_tenant_id": "t-1"})
        claims = token_manager.decode_token(token)

        assert claims["sub"] == "abc"
        assert claims["type"] == "access"
        assert claims["active_tenant_id"] == "t-1"

    def test_reserved_claims_cannot_be_overridden(self):
        with pytest.raises(SecurityError):
            token_manager.create_access_token(subject="abc", additional_claims={"exp": 0})

    def test_subject_is_required(self):
        with pytest.raises(SecurityError):
            create_access_token({"email": "a@b.io"})

    def test_expired_token(self):
        token = token_manager.create_access_token(subject="abc", expires_delta=timedelta(seconds=-1))
        with pytest.raises(HTTPException) as excinfo:
            token_manager.decode_token(token)
        assert excinfo.value.status_code == 401

    def test_wrong_token_type(self):
        token = token_manager.create_access_token(subject="abc")
        with pytest.raises(HTTPException) as excinfo:
            token_manager.decode_token(token, expected_type="refresh")
        assert "Invalid token type" in excinfo.value.detail


def test_json_log_formatter():
    record = logging.LogRecord("schoolhub.test", logging.INFO, __file__, 1, "marked %s", ("G4A",), None)
    line = JsonFormatter().format(record)

    assert '"message": "marked G4A"' in line
    assert '"level": "INFO"' in line


def test_health_and_root(client):
    health = client.get("/health").json()
    assert health["status"] == "healthy"
    assert health["environment"] == "test"

    assert client.get("/").json()["message"] == "SchoolHub API"


def test_request_validation_is_a_problem_document(client, school):
    response = client.post(
        "/api/v1/student-attendance/class/" + str(school.section_id),
        json={"records": [{"student_id": "nope", "status": "present"}]},
        headers=school.header("teacher"),
    )

    assert response.status_code == 422
    assert response.headers["content-type"].startswith("application/problem+json")
    assert response.json()["status"] == 422
