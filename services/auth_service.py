"""
AuthService: registration, login and refresh-session handling.

Refresh sessions are refresh-session credentials issued by the lifecycle
core; access tokens are stateless grants minted by AccessGrantCodec.
Login failures use one generic message for unknown email and wrong password.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from bson import ObjectId

from credentials.access import AccessGrantCodec
from credentials.errors import CredentialError
from credentials.issuer import CredentialIssuer, IssuedCredential
from credentials.policy import Purpose
from credentials.rotator import RefreshRotator
from credentials.verifier import CredentialVerifier
from errors import (
    AuthenticationError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from infrastructure.email.protocol import EmailProvider
from repositories.user_repository import UserRepository
from schemas.models.user import UserDoc
from shared.crypto import hash_password, verify_password
from shared.logging import get_logger
from shared.validators import password_problems

log = get_logger(__name__)


@dataclass(frozen=True)
class AuthSession:
    access_token: str
    access_expires_at: datetime
    refresh_token: str
    refresh_expires_at: datetime
    user: UserDoc


@dataclass(frozen=True)
class RegistrationResult:
    session: AuthSession
    verification_sent: bool


def session_context(user_agent: Optional[str], ip: Optional[str]) -> dict:
    context = {}
    if user_agent:
        context["user_agent"] = user_agent[:256]
    if ip:
        context["ip"] = ip
    return context


class AuthService:
    def __init__(
        self,
        users: UserRepository,
        issuer: CredentialIssuer,
        verifier: CredentialVerifier,
        rotator: RefreshRotator,
        codec: AccessGrantCodec,
        email_provider: EmailProvider,
    ) -> None:
        self._users = users
        self._issuer = issuer
        self._verifier = verifier
        self._rotator = rotator
        self._codec = codec
        self._email = email_provider

    async def register(
        self,
        name: str,
        email: str,
        password: str,
        user_agent: Optional[str] = None,
        ip: Optional[str] = None,
    ) -> RegistrationResult:
        email = email.strip().lower()
        problems = password_problems(password)
        if problems:
            raise ValidationError(
                "Password does not meet requirements",
                field="password",
                details={"missing": problems},
            )
        if await self._users.find_by_email(email) is not None:
            raise ConflictError("Email is already registered", field="email")

        user = await self._users.create(
            UserDoc(name=name.strip(), email=email, password_hash=hash_password(password))
        )
        log.info("user_registered", user_id=str(user.id))

        verification_sent = False
        try:
            issued = await self._issuer.issue(user.id, Purpose.EMAIL_VERIFY)
            verification_sent = await self._email.send_verification_email(
                user.email, user.name, issued.raw_secret, str(user.id)
            )
        except CredentialError as e:
            log.error(
                "verification_issue_failed",
                user_id=str(user.id),
                error_kind=e.kind.value,
            )
        if not verification_sent:
            log.warning("verification_email_not_sent", user_id=str(user.id))

        session = await self._open_session(user, user_agent, ip)
        return RegistrationResult(session=session, verification_sent=verification_sent)

    async def login(
        self,
        email: str,
        password: str,
        user_agent: Optional[str] = None,
        ip: Optional[str] = None,
    ) -> AuthSession:
        user = await self._users.find_by_email(email)
        if (
            user is None
            or not user.password_hash
            or not verify_password(password, user.password_hash)
        ):
            log.info("login_failed", reason="invalid_credentials")
            raise AuthenticationError("Invalid credentials")
        if not user.is_active:
            log.info("login_failed", user_id=str(user.id), reason="blocked")
            raise ForbiddenError("Account is blocked")

        await self._users.touch_last_login(user.id)
        session = await self._open_session(user, user_agent, ip)
        log.info("login_success", user_id=str(user.id))
        return session

    async def refresh(
        self,
        raw_refresh: str,
        user_agent: Optional[str] = None,
        ip: Optional[str] = None,
    ) -> AuthSession:
        issued = await self._rotator.rotate(raw_refresh, session_context(user_agent, ip))
        user = await self._users.find_by_id(issued.credential.owner_id)
        if user is None:
            raise AuthenticationError("Invalid refresh token")
        return self._session(user, issued)

    async def logout(self, raw_refresh: str) -> bool:
        """Revoke the presented refresh session. Unknown tokens are ignored."""
        return await self._verifier.revoke(raw_refresh, Purpose.REFRESH_SESSION)

    async def logout_all(self, owner_id: ObjectId) -> int:
        return await self._verifier.revoke_all(owner_id, Purpose.REFRESH_SESSION)

    async def get_profile(self, owner_id: ObjectId) -> UserDoc:
        user = await self._users.find_by_id(owner_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    async def _open_session(
        self, user: UserDoc, user_agent: Optional[str], ip: Optional[str]
    ) -> AuthSession:
        issued = await self._issuer.issue(
            user.id, Purpose.REFRESH_SESSION, session_context(user_agent, ip)
        )
        return self._session(user, issued)

    def _session(self, user: UserDoc, issued: IssuedCredential) -> AuthSession:
        access_token, grant = self._codec.mint(user.id, user.role)
        return AuthSession(
            access_token=access_token,
            access_expires_at=grant.expires_at,
            refresh_token=issued.raw_secret,
            refresh_expires_at=issued.expires_at,
            user=user,
        )
