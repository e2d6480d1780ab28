"""
EmailVerificationService: email-verify link issuance and confirmation.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from bson import ObjectId

from credentials.issuer import CredentialIssuer
from credentials.policy import Purpose
from credentials.verifier import CredentialVerifier
from errors import DeliveryError, NotFoundError
from infrastructure.email.protocol import EmailProvider
from repositories.user_repository import UserRepository
from shared.logging import get_logger

log = get_logger(__name__)


@dataclass(frozen=True)
class VerificationSent:
    expires_at: datetime


@dataclass(frozen=True)
class EmailVerificationStatus:
    email: str
    email_verified: bool
    pending: bool


class EmailVerificationService:
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

    async def send(self, owner_id: ObjectId) -> VerificationSent:
        # Issuer refuses unknown, blocked and already-verified owners
        issued = await self._issuer.issue(owner_id, Purpose.EMAIL_VERIFY)
        user = await self._users.find_by_id(owner_id)
        if user is None:
            raise NotFoundError("User not found")

        sent = await self._email.send_verification_email(
            user.email, user.name, issued.raw_secret, str(user.id)
        )
        if not sent:
            await self._verifier.revoke(issued.raw_secret, Purpose.EMAIL_VERIFY)
            raise DeliveryError("Could not send the verification email")
        return VerificationSent(expires_at=issued.expires_at)

    async def verify(self, token: str) -> ObjectId:
        credential = await self._verifier.verify(token, Purpose.EMAIL_VERIFY)
        owner_id = credential.owner_id
        await self._users.mark_email_verified(owner_id)
        log.info("email_verified", user_id=str(owner_id))

        user = await self._users.find_by_id(owner_id)
        if user is not None and not await self._email.send_welcome_email(
            user.email, user.name
        ):
            log.warning("welcome_email_not_sent", user_id=str(owner_id))
        return owner_id

    async def status(self, owner_id: ObjectId) -> EmailVerificationStatus:
        user = await self._users.find_by_id(owner_id)
        if user is None:
            raise NotFoundError("User not found")
        pending = False
        if not user.email_verified:
            pending = await self._verifier.count_active(owner_id, Purpose.EMAIL_VERIFY) > 0
        return EmailVerificationStatus(
            email=user.email, email_verified=user.email_verified, pending=pending
        )
