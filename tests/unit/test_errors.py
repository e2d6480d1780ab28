"""Unit tests for AppError hierarchy and credential error translation."""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from credentials.errors import (
    AlreadyConsumed,
    AlreadySatisfied,
    AttemptsExhausted,
    ExpiredSecret,
    InvalidSecret,
    IssueRateLimited,
    OwnerInactive,
    OwnerNotFound,
    StorageFailure,
)
from errors import (
    AppError,
    AttemptsExhaustedError,
    AuthenticationError,
    ConflictError,
    DeliveryError,
    ExpiredCodeError,
    ForbiddenError,
    InvalidCodeError,
    NotFoundError,
    RateLimitError,
    ValidationError,
    credential_error_to_app_error,
    register_error_handlers,
)


class TestAppErrorSubclasses:
    @pytest.mark.parametrize(
        "cls, status, code",
        [
            (ValidationError, 400, "validation_error"),
            (AuthenticationError, 401, "authentication_error"),
            (ForbiddenError, 403, "forbidden"),
            (NotFoundError, 404, "not_found"),
            (ConflictError, 409, "conflict"),
            (InvalidCodeError, 400, "invalid_code"),
            (ExpiredCodeError, 400, "expired_code"),
            (AttemptsExhaustedError, 429, "attempts_exhausted"),
            (DeliveryError, 502, "delivery_failed"),
            (RateLimitError, 429, "rate_limit_exceeded"),
        ],
    )
    def test_status_and_code(self, cls, status, code):
        e = cls("message")
        assert e.status_code == status
        assert e.error_code == code
        assert e.message == "message"


class TestAppErrorToDict:
    def test_basic(self):
        e = NotFoundError("user not found")
        assert e.to_dict() == {"error": "user not found", "code": "not_found"}

    @pytest.mark.parametrize(
        "kwargs, key, value",
        [
            ({"field": "phone"}, "field", "phone"),
            ({"details": {"remaining_attempts": 2}}, "details", {"remaining_attempts": 2}),
        ],
        ids=["with_field", "with_details"],
    )
    def test_optional_key_present(self, kwargs, key, value):
        e = ValidationError("invalid", **kwargs)
        assert e.to_dict()[key] == value

    def test_no_optional_keys_when_absent(self):
        d = NotFoundError("missing").to_dict()
        assert "field" not in d
        assert "details" not in d


class TestCredentialErrorTranslation:
    @pytest.mark.parametrize(
        "exc, expected_cls",
        [
            (OwnerNotFound(), NotFoundError),
            (OwnerInactive(), ForbiddenError),
            (AlreadySatisfied(), ConflictError),
            (InvalidSecret(), InvalidCodeError),
            (AlreadyConsumed(), InvalidCodeError),
            (ExpiredSecret(), ExpiredCodeError),
            (AttemptsExhausted(), AttemptsExhaustedError),
            (IssueRateLimited(), RateLimitError),
            (StorageFailure(), AppError),
        ],
    )
    def test_kind_maps_to_app_error(self, exc, expected_cls):
        assert type(credential_error_to_app_error(exc)) is expected_cls

    def test_invalid_and_consumed_share_message(self):
        invalid = credential_error_to_app_error(InvalidSecret("no match"))
        consumed = credential_error_to_app_error(AlreadyConsumed("used"))
        assert invalid.message == consumed.message

    def test_remaining_attempts_in_details(self):
        e = credential_error_to_app_error(InvalidSecret("x", remaining_attempts=3))
        assert e.details == {"remaining_attempts": 3}

    def test_exhausted_reports_zero_remaining(self):
        e = credential_error_to_app_error(AttemptsExhausted())
        assert e.status_code == 429
        assert e.details == {"remaining_attempts": 0}

    def test_no_details_without_attempt_count(self):
        assert credential_error_to_app_error(InvalidSecret()).details is None

    def test_issue_rate_limited_is_429_without_details(self):
        e = credential_error_to_app_error(IssueRateLimited("slow down"))
        assert e.status_code == 429
        assert e.to_dict() == {
            "error": "Too many requests, please try again later",
            "code": "rate_limit_exceeded",
        }

    def test_storage_failure_is_500(self):
        e = credential_error_to_app_error(StorageFailure("db down"))
        assert e.status_code == 500
        assert "db down" not in e.message


class TestErrorHandlers:
    def _client(self, exc: Exception) -> TestClient:
        app = FastAPI()
        register_error_handlers(app)

        @app.get("/boom")
        async def boom():
            raise exc

        return TestClient(app, raise_server_exceptions=False)

    def test_app_error_rendered(self):
        resp = self._client(ConflictError("taken", field="email")).get("/boom")
        assert resp.status_code == 409
        assert resp.json() == {"error": "taken", "code": "conflict", "field": "email"}

    def test_credential_error_rendered(self):
        resp = self._client(InvalidSecret("x", remaining_attempts=1)).get("/boom")
        assert resp.status_code == 400
        body = resp.json()
        assert body["code"] == "invalid_code"
        assert body["details"] == {"remaining_attempts": 1}

    def test_unhandled_exception_is_500(self):
        resp = self._client(RuntimeError("secret detail")).get("/boom")
        assert resp.status_code == 500
        assert resp.json()["code"] == "internal_error"
        assert "secret detail" not in resp.text
