"""
Unit test configuration.

Settings come only from what a test sets with monkeypatch: the project's
.env file is never read and credential-related variables from the developer
shell are cleared.
"""

import pytest

_SHELL_VARS = (
    "JWT_SECRET",
    "JWT_PRIVATE_KEY",
    "JWT_PUBLIC_KEY",
    "ZEPTO_API_TOKEN",
    "ESMS_API_KEY",
    "ESMS_SECRET_KEY",
    "ESMS_BRANDNAME",
    "ESMS_SANDBOX",
    "RUN_SWEEPER",
    "OTP_MAX_ATTEMPTS",
    "ISSUE_LIMIT_PER_WINDOW",
    "ISSUE_WINDOW_SECONDS",
    "SENTRY_DSN",
)


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch):
    import pydantic_settings.sources.providers.dotenv as ps_dotenv

    monkeypatch.setattr(ps_dotenv, "dotenv_values", lambda *a, **kw: {})
    for var in _SHELL_VARS:
        monkeypatch.delenv(var, raising=False)
