"""eSMS.vn implementation of SmsProvider.

Sends customer-care (SmsType 2) messages through the
SendMultipleMessage_V4_post_json endpoint. CodeResult "100" means the
request was accepted. Without a configured brandname eSMS falls back to its
default long-code sender.
"""

import uuid

from config import SmsSettings
from infrastructure.http_client import HttpClient
from shared.logging import get_logger
from shared.phone import mask_phone

log = get_logger(__name__)

_SEND_FUNCTION = "SendMultipleMessage_V4_post_json"
_CODE_ACCEPTED = "100"
_SMS_TYPE_CUSTOMER_CARE = "2"

_ERROR_MESSAGES = {
    "101": "invalid ApiKey/SecretKey",
    "104": "brandname missing or not active",
    "124": "duplicate RequestId",
    "146": "customer-care template not registered",
    "99": "unknown provider error",
}

OTP_MESSAGE = (
    "GreenGrow - Ma xac thuc cua ban la: {otp}. "
    "Ma co hieu luc trong 10 phut. Khong chia se ma nay voi ai."
)


class ESmsProvider:
    def __init__(self, settings: SmsSettings, http_client: HttpClient) -> None:
        self._settings = settings
        self._http = http_client

    def _payload(self, phone: str, content: str) -> dict:
        payload = {
            "ApiKey": self._settings.esms_api_key,
            "SecretKey": self._settings.esms_secret_key,
            "Phone": phone,
            "Content": content,
            "SmsType": _SMS_TYPE_CUSTOMER_CARE,
            "IsUnicode": "0" if content.isascii() else "1",
            "RequestId": uuid.uuid4().hex,
        }
        if self._settings.esms_brandname and self._settings.esms_brandname.strip():
            payload["Brandname"] = self._settings.esms_brandname.strip()
        if self._settings.esms_sandbox:
            payload["Sandbox"] = "1"
        return payload

    async def send(self, phone: str, content: str) -> bool:
        if not self._settings.is_configured:
            log.error("sms_send_failed", reason="provider_not_configured")
            return False

        url = f"{self._settings.esms_api_base_url.rstrip('/')}/{_SEND_FUNCTION}/"
        try:
            response = await self._http.post(url, json=self._payload(phone, content))
            body = response.json()
        except Exception as e:
            log.error(
                "sms_send_error",
                phone=mask_phone(phone),
                error=str(e),
                error_type=type(e).__name__,
            )
            return False

        code = str(body.get("CodeResult", ""))
        if code == _CODE_ACCEPTED:
            log.info("sms_sent_success", phone=mask_phone(phone), sms_id=body.get("SMSID"))
            return True

        log.error(
            "sms_send_failed",
            phone=mask_phone(phone),
            code_result=code,
            reason=body.get("ErrorMessage") or _ERROR_MESSAGES.get(code, "unknown"),
        )
        return False

    async def send_otp(self, phone: str, otp_code: str) -> bool:
        return await self.send(phone, OTP_MESSAGE.format(otp=otp_code))
