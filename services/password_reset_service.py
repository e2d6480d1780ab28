"""
PasswordResetService: forgot-password flow.

request() answers the same way for unknown, blocked and known addresses so
the endpoint cannot be used to discover accounts. A successful reset also
ends every refresh session of the account.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from bson import ObjectId

from credentials.errors import CredentialError
from credentials.issuer import CredentialIssuer
from credentials.policy import Purpose
from credentials.verifier import CredentialVerifier
from errors import NotFoundError, ValidationError
from infrastructure.email.protocol import EmailProvider
from repositories.user_repository import UserRepository
from shared.crypto import hash_password
from shared.logging import get_logger
from shared.validators import password_problems

log = get_logger(__name__)

REQUEST_ACCEPTED_MESSAGE = (
    "If the email is registered, a password reset link has been sent"
)


@dataclass(frozen=True)
class ResetTokenInfo:
    email: str
    expires_at: datetime


class PasswordResetService:
    def __init__(
        self,
        users: UserRepository,
        issuer: CredentialIssuer,
        verifier: CredentialVerifier,
        email_provider: EmailProvider,
    ) -> None:
        self._users = users
        self._issuer = issuer
        self._verifier = verifier
        self._email = email_provider

    async def request(self, email: str) -> str:
        user = await self._users.find_by_email(email)
        if user is None:
            log.info("password_reset_requested", outcome="unknown_email")
            return REQUEST_ACCEPTED_MESSAGE

        try:
            issued = await self._issuer.issue(user.id, Purpose.PASSWORD_RESET)
        except CredentialError as e:
            log.info(
                "password_reset_requested",
                user_id=str(user.id),
                outcome="refused",
                error_kind=e.kind.value,
            )
            return REQUEST_ACCEPTED_MESSAGE

        sent = await self._email.send_password_reset_email(
            user.email, user.name, issued.raw_secret, str(user.id)
        )
        log.info(
            "password_reset_requested",
            user_id=str(user.id),
            outcome="sent" if sent else "delivery_failed",
        )
        return REQUEST_ACCEPTED_MESSAGE

    async def validate(self, token: str) -> ResetTokenInfo:
        credential = await self._verifier.peek(token, Purpose.PASSWORD_RESET)
        user = await self._users.find_by_id(credential.owner_id)
        if user is None:
            raise NotFoundError("User not found")
        return ResetTokenInfo(email=user.email, expires_at=credential.expires_at)

    async def reset(self, token: str, new_password: str) -> ObjectId:
        problems = password_problems(new_password)
        if problems:
            raise ValidationError(
                "Password does not meet requirements",
                field="password",
                details={"missing": problems},
            )

        credential = await self._verifier.verify(token, Purpose.PASSWORD_RESET)
        owner_id = credential.owner_id
        await self._users.set_password_hash(owner_id, hash_password(new_password))
        revoked = await self._verifier.revoke_all(owner_id, Purpose.REFRESH_SESSION)
        log.info("password_reset_completed", user_id=str(owner_id), sessions_revoked=revoked)
        return owner_id

    async def pending(self, owner_id: ObjectId) -> int:
        return await self._verifier.count_active(owner_id, Purpose.PASSWORD_RESET)
