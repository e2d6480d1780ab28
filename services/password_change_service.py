"""
PasswordChangeService: OTP-gated password change for signed-in users.

1. request_otp(): a 6-digit code is emailed to the account address
2. verify_otp(): the code is checked (5 attempts) and exchanged for a
   single-use password-change grant
3. change_password(): the grant plus the current password authorise the
   update
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from bson import ObjectId

from credentials.issuer import CredentialIssuer
from credentials.policy import Purpose
from credentials.verifier import CredentialVerifier
from errors import AuthenticationError, DeliveryError, NotFoundError, ValidationError
from infrastructure.email.protocol import EmailProvider
from repositories.user_repository import UserRepository
from shared.crypto import hash_password, verify_password
from shared.logging import get_logger
from shared.validators import password_problems

log = get_logger(__name__)


@dataclass(frozen=True)
class OtpSent:
    expires_at: datetime


@dataclass(frozen=True)
class ChangeGrant:
    grant_token: str
    expires_at: datetime


class PasswordChangeService:
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

    async def request_otp(self, owner_id: ObjectId) -> OtpSent:
        issued = await self._issuer.issue(owner_id, Purpose.PASSWORD_CHANGE_OTP)
        user = await self._users.find_by_id(owner_id)
        if user is None:
            raise NotFoundError("User not found")

        sent = await self._email.send_password_change_otp_email(
            user.email, user.name, issued.raw_secret
        )
        if not sent:
            await self._verifier.revoke(issued.raw_secret, Purpose.PASSWORD_CHANGE_OTP)
            raise DeliveryError("Could not send the verification code")

        log.info("password_change_otp_sent", user_id=str(owner_id))
        return OtpSent(expires_at=issued.expires_at)

    async def verify_otp(self, owner_id: ObjectId, otp: str) -> ChangeGrant:
        await self._verifier.verify(otp, Purpose.PASSWORD_CHANGE_OTP, owner_id)
        grant = await self._issuer.issue(owner_id, Purpose.PASSWORD_CHANGE_GRANT)
        log.info("password_change_otp_verified", user_id=str(owner_id))
        return ChangeGrant(grant_token=grant.raw_secret, expires_at=grant.expires_at)

    async def change_password(
        self,
        owner_id: ObjectId,
        grant_token: str,
        current_password: str,
        new_password: str,
    ) -> None:
        problems = password_problems(new_password)
        if problems:
            raise ValidationError(
                "Password does not meet requirements",
                field="new_password",
                details={"missing": problems},
            )
        if new_password == current_password:
            raise ValidationError(
                "New password must differ from the current one", field="new_password"
            )

        user = await self._users.find_by_id(owner_id)
        if user is None:
            raise NotFoundError("User not found")
        if not user.password_hash or not verify_password(
            current_password, user.password_hash
        ):
            raise AuthenticationError(
                "Current password is incorrect", field="current_password"
            )

        await self._verifier.verify(grant_token, Purpose.PASSWORD_CHANGE_GRANT, owner_id)
        await self._users.set_password_hash(owner_id, hash_password(new_password))
        log.info("password_changed", user_id=str(owner_id))
