"""
PhoneVerificationService: SMS OTP verification of a Vietnamese mobile number.

The number being verified travels in the OTP credential's context, so the
phone stored on the account only changes once a code has been accepted.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from bson import ObjectId

from credentials.issuer import CredentialIssuer
from credentials.policy import Purpose
from credentials.verifier import CredentialVerifier
from errors import ConflictError, NotFoundError, ValidationError
from infrastructure.sms.protocol import SmsProvider
from repositories.user_repository import UserRepository
from shared.logging import get_logger
from shared.phone import mask_phone, normalize_vietnamese_phone

log = get_logger(__name__)


@dataclass(frozen=True)
class PhoneOtpSent:
    phone: str
    expires_at: datetime
    sms_sent: bool


@dataclass(frozen=True)
class PhoneVerificationStatus:
    phone: Optional[str]
    phone_verified: bool


class PhoneVerificationService:
    def __init__(
        self,
        users: UserRepository,
        issuer: CredentialIssuer,
        verifier: CredentialVerifier,
        sms_provider: SmsProvider,
    ) -> None:
        self._users = users
        self._issuer = issuer
        self._verifier = verifier
        self._sms = sms_provider

    async def request_otp(self, owner_id: ObjectId, phone: str) -> PhoneOtpSent:
        normalized = normalize_vietnamese_phone(phone)
        if normalized is None:
            raise ValidationError("Invalid Vietnamese phone number", field="phone")

        user = await self._users.find_by_id(owner_id)
        if user is None:
            raise NotFoundError("User not found")
        if user.phone_verified and user.phone == normalized:
            raise ConflictError("Phone number is already verified", field="phone")

        holder = await self._users.find_verified_phone_owner(normalized)
        if holder is not None and holder.id != user.id:
            raise ConflictError(
                "Phone number is already used by another account", field="phone"
            )

        issued = await self._issuer.issue(
            owner_id, Purpose.PHONE_VERIFY_OTP, {"phone": normalized}
        )
        sms_sent = await self._sms.send_otp(normalized, issued.raw_secret)
        if not sms_sent:
            # The code stays valid; the user can ask for a new one
            log.warning(
                "phone_otp_not_delivered",
                user_id=str(owner_id),
                phone=mask_phone(normalized),
            )
        return PhoneOtpSent(
            phone=mask_phone(normalized),
            expires_at=issued.expires_at,
            sms_sent=sms_sent,
        )

    async def verify(self, owner_id: ObjectId, otp: str) -> str:
        credential = await self._verifier.verify(otp, Purpose.PHONE_VERIFY_OTP, owner_id)
        phone = credential.context.get("phone")
        if not phone:
            raise ValidationError("No phone number attached to this code")

        holder = await self._users.find_verified_phone_owner(phone)
        if holder is not None and holder.id != owner_id:
            raise ConflictError(
                "Phone number is already used by another account", field="phone"
            )

        await self._users.mark_phone_verified(owner_id, phone)
        log.info("phone_verified", user_id=str(owner_id), phone=mask_phone(phone))
        return phone

    async def status(self, owner_id: ObjectId) -> PhoneVerificationStatus:
        user = await self._users.find_by_id(owner_id)
        if user is None:
            raise NotFoundError("User not found")
        return PhoneVerificationStatus(phone=user.phone, phone_verified=user.phone_verified)
