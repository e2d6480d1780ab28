"""
FastAPI application factory.
create_app() is the single entry point for building the app.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import AsyncIterator, Optional

import sentry_sdk
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pymongo.asynchronous.mongo_client import AsyncMongoClient

from config import AppSettings
from credentials.access import AccessGrantCodec
from credentials.issuer import CredentialIssuer
from credentials.rotator import RefreshRotator
from credentials.sweeper import ExpirySweeper
from credentials.verifier import CredentialVerifier
from errors import register_error_handlers
from infrastructure.email.zeptomail import ZeptoMailProvider
from infrastructure.http_client import HttpClient
from infrastructure.sms.esms import ESmsProvider
from repositories.credential_repository import MongoCredentialStore
from repositories.user_repository import UserRepository
from routes.auth_routes import router as auth_router
from routes.health_routes import router as health_router
from routes.password_routes import change_router, reset_router
from routes.verification_routes import email_router, phone_router
from services.auth_service import AuthService
from services.email_verification_service import EmailVerificationService
from services.password_change_service import PasswordChangeService
from services.password_reset_service import PasswordResetService
from services.phone_verification_service import PhoneVerificationService
from shared.logging import get_logger
from shared.logging_config import setup_logging

log = get_logger(__name__)


def build_sweeper(store: MongoCredentialStore, settings: AppSettings, config) -> ExpirySweeper:
    return ExpirySweeper(
        store,
        config,
        interval_seconds=settings.credentials.sweep_interval_seconds,
        consumed_retention=timedelta(
            seconds=settings.credentials.consumed_retention_seconds
        ),
        expired_grace=settings.credentials.issue_window,
    )


def create_app(settings: Optional[AppSettings] = None) -> FastAPI:
    """Create and return a fully configured FastAPI application."""
    if settings is None:
        settings = AppSettings()

    setup_logging(settings.logging)

    # Initialise Sentry before anything else so it captures startup errors
    if settings.sentry.sentry_dsn:
        sentry_sdk.init(
            dsn=settings.sentry.sentry_dsn,
            send_default_pii=settings.sentry.sentry_send_pii,
            traces_sample_rate=settings.sentry.sentry_traces_sample_rate,
            profiles_sample_rate=settings.sentry.sentry_profile_sample_rate,
        )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        # ── Startup ──────────────────────────────────────────────────────────
        mongo_client: AsyncMongoClient = AsyncMongoClient(
            settings.db.mongodb_uri, tz_aware=True
        )
        db = mongo_client[settings.db.db_name]
        app.state.mongo_client = mongo_client
        app.state.db = db
        app.state.settings = settings

        users = UserRepository(db)
        store = MongoCredentialStore(
            db, expired_grace=settings.credentials.issue_window
        )
        await users.ensure_indexes()
        await store.ensure_indexes()

        config = settings.credentials.lifecycle_config()
        issuer = CredentialIssuer(store, users, config)
        verifier = CredentialVerifier(store, config)
        rotator = RefreshRotator(store, verifier, issuer, config)
        codec = AccessGrantCodec(settings.jwt, config)

        http_client = HttpClient(
            timeout=settings.http_timeout_seconds,
            user_agent=f"{settings.app_name}-credentials/1.0",
        )
        email_provider = ZeptoMailProvider(settings.email, http_client, settings.app_url)
        sms_provider = ESmsProvider(settings.sms, http_client)

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

        sweeper = None
        app.state.sweeper_task = None
        if settings.run_sweeper:
            sweeper = build_sweeper(store, settings, config)
            app.state.sweeper_task = asyncio.create_task(sweeper.run())

        log.info("app_started", env=settings.env, sweeper=settings.run_sweeper)

        yield

        # ── Shutdown ─────────────────────────────────────────────────────────
        if sweeper is not None:
            sweeper.stop()
            await app.state.sweeper_task
        await http_client.aclose()
        await mongo_client.close()

    app = FastAPI(
        title=settings.app_name,
        version="1.0.0",
        docs_url=settings.docs_url,
        redoc_url=None,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_error_handlers(app)
    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(email_router)
    app.include_router(phone_router)
    app.include_router(reset_router)
    app.include_router(change_router)

    return app
