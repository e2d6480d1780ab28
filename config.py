"""
Application configuration via pydantic-settings.

All settings are loaded from environment variables (and .env file).

Core credential components never read the environment themselves: the app
factory builds a LifecycleConfig from CredentialSettings and injects it.
"""

from __future__ import annotations

from datetime import timedelta
from typing import Optional

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from credentials.policy import (
    DEFAULT_POLICIES,
    LifecycleConfig,
    Purpose,
    PurposePolicy,
)


class DatabaseSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    mongodb_uri: str
    db_name: str = "greengrow"


class JWTSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    jwt_issuer: str = "greengrow"
    jwt_audience: str = "greengrow.api"
    access_token_ttl_seconds: int = 900

    # RS256 keys (preferred)
    jwt_private_key: str = ""
    jwt_public_key: str = ""

    # HS256 fallback (used when RS256 keys are absent)
    jwt_secret: str = ""

    @property
    def use_rs256(self) -> bool:
        return bool(self.jwt_private_key and self.jwt_public_key)


class CredentialSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    refresh_session_ttl_seconds: int = 14 * 24 * 3600
    email_verify_ttl_seconds: int = 24 * 3600
    password_reset_ttl_seconds: int = 3600
    password_change_otp_ttl_seconds: int = 600
    password_change_grant_ttl_seconds: int = 600
    phone_verify_otp_ttl_seconds: int = 600

    otp_max_attempts: int = Field(default=5, ge=1)

    # Deliveries per owner and purpose within the issue window
    issue_limit_per_window: int = Field(default=3, ge=1)
    issue_window_seconds: int = Field(default=3600, ge=1)

    # Expiry sweeper
    sweep_interval_seconds: int = 300
    consumed_retention_seconds: int = 24 * 3600

    def _ttl_for(self, purpose: Purpose) -> int:
        return {
            Purpose.REFRESH_SESSION: self.refresh_session_ttl_seconds,
            Purpose.EMAIL_VERIFY: self.email_verify_ttl_seconds,
            Purpose.PASSWORD_RESET: self.password_reset_ttl_seconds,
            Purpose.PASSWORD_CHANGE_OTP: self.password_change_otp_ttl_seconds,
            Purpose.PASSWORD_CHANGE_GRANT: self.password_change_grant_ttl_seconds,
            Purpose.PHONE_VERIFY_OTP: self.phone_verify_otp_ttl_seconds,
        }[purpose]

    def build_policies(self) -> dict[Purpose, PurposePolicy]:
        policies: dict[Purpose, PurposePolicy] = {}
        for purpose, default in DEFAULT_POLICIES.items():
            policies[purpose] = PurposePolicy(
                ttl=timedelta(seconds=self._ttl_for(purpose)),
                secret_format=default.secret_format,
                max_attempts=(
                    self.otp_max_attempts if default.attempt_limited else None
                ),
                issue_limit=(
                    self.issue_limit_per_window if default.issue_limited else None
                ),
            )
        return policies

    @property
    def issue_window(self) -> timedelta:
        return timedelta(seconds=self.issue_window_seconds)

    def lifecycle_config(self) -> LifecycleConfig:
        return LifecycleConfig(
            policies=self.build_policies(), issue_window=self.issue_window
        )


class EmailSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    zepto_api_token: str = ""
    zepto_from_email: str = "noreply@greengrow.vn"
    zepto_from_name: str = "GreenGrow"


class SmsSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    esms_api_base_url: str = "https://rest.esms.vn/MainService.svc/json"
    esms_api_key: str = ""
    esms_secret_key: str = ""
    # Without a brandname eSMS sends from its default long code
    esms_brandname: Optional[str] = None
    esms_sandbox: bool = False

    @property
    def is_configured(self) -> bool:
        return bool(self.esms_api_key and self.esms_secret_key)


class LoggingSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    log_level: str = "INFO"
    log_format: str = "console"  # "json" in production


class SentrySettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    sentry_dsn: str = ""
    sentry_send_pii: bool = False
    sentry_traces_sample_rate: float = 0.1
    sentry_profile_sample_rate: float = 0.05


class AppSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Core
    env: str = "development"
    app_url: str = "http://localhost:3000"
    app_name: str = "GreenGrow"

    cors_origins: list[str] = ["*"]

    # OpenAPI docs URL (None disables the docs UI in production)
    docs_url: Optional[str] = "/docs"

    # Run the expiry sweeper inside the API process
    run_sweeper: bool = True

    # Outbound calls to the email and SMS gateways
    http_timeout_seconds: float = 10.0

    # Sub-configs (composed via model_validator below)
    db: Optional[DatabaseSettings] = None
    jwt: Optional[JWTSettings] = None
    credentials: Optional[CredentialSettings] = None
    email: Optional[EmailSettings] = None
    sms: Optional[SmsSettings] = None
    logging: Optional[LoggingSettings] = None
    sentry: Optional[SentrySettings] = None

    @model_validator(mode="after")
    def _populate_sub_configs(self) -> "AppSettings":
        # Populate sub-configs from the same env/dotenv source
        if self.db is None:
            self.db = DatabaseSettings()
        if self.jwt is None:
            self.jwt = JWTSettings()
        if self.credentials is None:
            self.credentials = CredentialSettings()
        if self.email is None:
            self.email = EmailSettings()
        if self.sms is None:
            self.sms = SmsSettings()
        if self.logging is None:
            self.logging = LoggingSettings()
        if self.sentry is None:
            self.sentry = SentrySettings()

        return self

    @property
    def is_production(self) -> bool:
        return self.env == "production"
