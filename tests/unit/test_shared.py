"""
Unit tests for the shared/ utility modules.

Covers:
- shared.validators      (password_problems, is_hex_token, is_otp_code)
- shared.generators      (generate_otp_code, generate_hex_token, generate_secret)
- shared.phone           (normalize_vietnamese_phone, mask_phone)
- shared.ip_utils        (get_client_ip)
- shared.crypto          (hash_password, verify_password, hash_secret)
- shared.logging_config  (redact_sensitive_fields)
"""

from __future__ import annotations

import hashlib
from unittest.mock import MagicMock

import pytest

from credentials.policy import SecretFormat
from shared.crypto import hash_password, hash_secret, verify_password
from shared.generators import generate_hex_token, generate_otp_code, generate_secret
from shared.ip_utils import get_client_ip
from shared.logging import hash_prefix
from shared.logging_config import redact_sensitive_fields
from shared.phone import mask_phone, normalize_vietnamese_phone
from shared.validators import (
    is_hex_token,
    is_otp_code,
    password_problems,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _make_request(headers: dict, client_host: str = "10.0.0.1") -> MagicMock:
    """Minimal mock of a FastAPI Request."""
    req = MagicMock()
    req.headers = headers
    req.client = MagicMock()
    req.client.host = client_host
    return req


# ---------------------------------------------------------------------------
# shared.validators
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "password, expected",
    [
        ("Password1", []),
        ("Pass1", ["min_length"]),
        ("PASSWORD1", ["lowercase"]),
        ("password1", ["uppercase"]),
        ("Passwordd", ["digit"]),
        ("", ["min_length", "lowercase", "uppercase", "digit"]),
    ],
    ids=["valid", "short", "no_lower", "no_upper", "no_digit", "empty"],
)
def test_password_problems(password, expected):
    assert password_problems(password) == expected


@pytest.mark.parametrize(
    "value, expected",
    [
        ("a" * 64, True),
        ("0123456789abcdef" * 4, True),
        ("A" * 64, False),
        ("a" * 63, False),
        ("g" * 64, False),
        ("a" * 64 + "\n", False),
    ],
    ids=["all_a", "mixed_hex", "uppercase", "short", "non_hex", "trailing_newline"],
)
def test_is_hex_token(value, expected):
    assert is_hex_token(value) is expected


@pytest.mark.parametrize(
    "value, expected",
    [
        ("123456", True),
        ("004211", True),
        ("12345", False),
        ("1234567", False),
        ("12a456", False),
        ("123456\n", False),
        ("\uff11\uff12\uff13\uff14\uff15\uff16", False),
    ],
)
def test_is_otp_code(value, expected):
    assert is_otp_code(value) is expected


# ---------------------------------------------------------------------------
# shared.generators
# ---------------------------------------------------------------------------


class TestGenerateOtpCode:
    def test_six_digits_without_leading_zero(self):
        for _ in range(200):
            code = generate_otp_code()
            assert len(code) == 6
            assert code.isdigit()
            assert 100000 <= int(code) <= 999999

    def test_uses_secrets_randbelow(self, mocker):
        mocker.patch("shared.generators.secrets.randbelow", return_value=0)
        assert generate_otp_code() == "100000"
        mocker.patch("shared.generators.secrets.randbelow", return_value=899999)
        assert generate_otp_code() == "999999"


class TestGenerateHexToken:
    def test_default_is_64_hex_chars(self):
        assert is_hex_token(generate_hex_token())

    def test_produces_variety(self):
        assert len({generate_hex_token() for _ in range(10)}) == 10


@pytest.mark.parametrize(
    "secret_format, check",
    [(SecretFormat.NUMERIC_OTP, is_otp_code), (SecretFormat.HEX_TOKEN, is_hex_token)],
    ids=["otp", "hex"],
)
def test_generate_secret_follows_format(secret_format, check):
    assert check(generate_secret(secret_format))


# ---------------------------------------------------------------------------
# shared.phone
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("0912345678", "0912345678"),
        ("+84912345678", "0912345678"),
        ("84912345678", "0912345678"),
        ("091 234-5678", "0912345678"),
        ("(+84) 38 123 4567", "0381234567"),
        ("912345678", "0912345678"),
        ("0212345678", None),
        ("09123456", None),
        ("", None),
        (None, None),
    ],
    ids=[
        "local",
        "plus84",
        "84",
        "separators",
        "parentheses",
        "missing_zero",
        "landline_prefix",
        "too_short",
        "empty",
        "none",
    ],
)
def test_normalize_vietnamese_phone(raw, expected):
    assert normalize_vietnamese_phone(raw) == expected


def test_mask_phone_keeps_last_three():
    assert mask_phone("0912345678") == "*******678"
    assert mask_phone("12") == "**"


# ---------------------------------------------------------------------------
# shared.ip_utils
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "headers, client_host, expected_ip",
    [
        (
            {"CF-Connecting-IP": "1.2.3.4", "X-Real-IP": "9.9.9.9"},
            "10.0.0.1",
            "1.2.3.4",
        ),
        ({"X-Forwarded-For": "11.22.33.44, 99.99.99.99"}, "10.0.0.1", "11.22.33.44"),
        ({"X-Forwarded-For": "unknown", "X-Real-IP": "55.66.77.88"}, "10.0.0.1", "55.66.77.88"),
        ({"True-Client-IP": "5.6.7.8"}, "10.0.0.1", "10.0.0.1"),
        ({"X-Real-IP": "2001:DB8::1"}, "10.0.0.1", "2001:db8::1"),
        ({}, "testclient", None),
    ],
    ids=[
        "cloudflare_first",
        "x_forwarded_for_multi",
        "skips_unparseable",
        "untrusted_header_ignored",
        "ipv6_normalised",
        "peer_not_an_ip",
    ],
)
def test_get_client_ip(headers, client_host, expected_ip):
    assert get_client_ip(_make_request(headers, client_host)) == expected_ip


def test_get_client_ip_no_client():
    req = MagicMock()
    req.headers = {}
    req.client = None
    assert get_client_ip(req) is None


# ---------------------------------------------------------------------------
# shared.crypto
# ---------------------------------------------------------------------------


class TestHashPassword:
    def test_differs_from_input(self):
        assert hash_password("secret") != "secret"

    def test_unique_salts(self):
        # argon2 produces a new salt each call
        assert hash_password("same") != hash_password("same")


class TestVerifyPassword:
    @pytest.mark.parametrize(
        "candidate, expected",
        [("correct_password", True), ("wrong_password", False)],
        ids=["correct", "wrong"],
    )
    def test_verify(self, candidate, expected):
        h = hash_password("correct_password")
        assert verify_password(candidate, h) is expected

    def test_invalid_hash_returns_false(self):
        assert verify_password("any", "not-a-valid-hash") is False


def test_hash_secret_known_value():
    assert hash_secret("123456") == hashlib.sha256(b"123456").hexdigest()


def test_hash_secret_is_hex64_and_never_the_input():
    secret = generate_hex_token()
    digest = hash_secret(secret)
    assert is_hex_token(digest)
    assert digest != secret


def test_hash_prefix():
    assert hash_prefix("abcdef0123456789" * 4) == "abcdef012345"


# ---------------------------------------------------------------------------
# shared.logging_config
# ---------------------------------------------------------------------------


class TestRedaction:
    def test_sensitive_fields_masked(self):
        event = {
            "event": "login",
            "password": "hunter2",
            "refresh_token": "abc",
            "otp_code": "123456",
            "jwt_secret": "s",
            "user_id": "u1",
        }
        out = redact_sensitive_fields(None, "info", event)
        assert out["password"] == "***REDACTED***"
        assert out["refresh_token"] == "***REDACTED***"
        assert out["otp_code"] == "***REDACTED***"
        assert out["jwt_secret"] == "***REDACTED***"
        assert out["user_id"] == "u1"
        assert out["event"] == "login"

    def test_hash_prefix_fields_kept(self):
        out = redact_sensitive_fields(
            None, "info", {"event": "credential_issued", "token_hash_prefix": "abc123"}
        )
        assert out["token_hash_prefix"] == "abc123"
