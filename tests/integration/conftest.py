"""
Route test app.

Builds the real routers and error handlers around in-memory services so the
HTTP contract (status codes, error bodies, auth) is exercised end to end
without MongoDB or outbound HTTP.
"""

from contextlib import asynccontextmanager

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from config import JWTSettings
from credentials.access import AccessGrantCodec
from errors import register_error_handlers
from routes.auth_routes import router as auth_router
from routes.password_routes import change_router, reset_router
from routes.verification_routes import email_router, phone_router
from services.auth_service import AuthService
from services.email_verification_service import EmailVerificationService
from services.password_change_service import PasswordChangeService
from services.password_reset_service import PasswordResetService
from services.phone_verification_service import PhoneVerificationService


@pytest.fixture
def codec(lifecycle_config):
    settings = JWTSettings(
        jwt_secret="integration-secret-with-32-plus-bytes",
        jwt_private_key="",
        jwt_public_key="",
    )
    return AccessGrantCodec(settings, lifecycle_config)


@pytest.fixture
def app(users, issuer, verifier, rotator, codec, email_provider, sms_provider):
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.access_codec = codec
        app.state.auth_service = AuthService(
            users, issuer, verifier, rotator, codec, email_provider
        )
        app.state.email_verification_service = EmailVerificationService(
            users, issuer, verifier, email_provider
        )
        app.state.phone_verification_service = PhoneVerificationService(
            users, issuer, verifier, sms_provider
        )
        app.state.password_reset_service = PasswordResetService(
            users, issuer, verifier, email_provider
        )
        app.state.password_change_service = PasswordChangeService(
            users, issuer, verifier, email_provider
        )
        yield

    app = FastAPI(lifespan=lifespan)
    register_error_handlers(app)
    for router in (auth_router, email_router, phone_router, reset_router, change_router):
        app.include_router(router)
    return app


@pytest.fixture
def client(app):
    with TestClient(app) as client:
        yield client


@pytest.fixture
def auth_headers(codec, user):
    token, _ = codec.mint(user.id, user.role)
    return {"Authorization": f"Bearer {token}"}
