"""ZeptoMail implementation of EmailProvider.

- async httpx via HttpClient
- EmailSettings + app_url injected by the app factory
- HTML bodies rendered from templates/emails with Jinja2
"""

import os
from typing import Optional
from urllib.parse import urlencode

from jinja2 import Environment, FileSystemLoader, select_autoescape

from config import EmailSettings
from infrastructure.http_client import HttpClient
from shared.logging import get_logger

log = get_logger(__name__)

_ZEPTO_API_URL = "https://api.zeptomail.com/v1.1/email"
_DEFAULT_TEMPLATE_DIR = os.path.join(
    os.path.dirname(os.path.dirname(os.path.dirname(__file__))),
    "templates",
    "emails",
)
_FOOTER = "© GreenGrow. All rights reserved."


class ZeptoMailProvider:
    def __init__(
        self,
        settings: EmailSettings,
        http_client: HttpClient,
        app_url: str = "http://localhost:3000",
        template_dir: str = _DEFAULT_TEMPLATE_DIR,
    ) -> None:
        self._settings = settings
        self._http = http_client
        self._app_url = app_url.rstrip("/")
        self._jinja = Environment(
            loader=FileSystemLoader(template_dir),
            autoescape=select_autoescape(["html", "xml"]),
        )

    def _link(self, path: str, token: str, user_id: str) -> str:
        return f"{self._app_url}{path}?{urlencode({'token': token, 'uid': user_id})}"

    async def _send(
        self,
        to_email: str,
        to_name: Optional[str],
        subject: str,
        html_body: str,
        text_body: Optional[str] = None,
    ) -> bool:
        if not self._settings.zepto_api_token:
            log.error("zepto_mail_send_failed", reason="token_not_configured")
            return False

        payload: dict = {
            "from": {
                "address": self._settings.zepto_from_email,
                "name": self._settings.zepto_from_name,
            },
            "to": [
                {
                    "email_address": {
                        "address": to_email,
                        "name": to_name or to_email,
                    }
                }
            ],
            "subject": subject,
            "htmlbody": html_body,
        }
        if text_body:
            payload["textbody"] = text_body

        auth = self._settings.zepto_api_token
        if not auth.startswith("Zoho-enczapikey "):
            auth = f"Zoho-enczapikey {auth}"

        headers = {"Authorization": auth, "Content-Type": "application/json"}

        try:
            response = await self._http.post(
                _ZEPTO_API_URL, json=payload, headers=headers
            )
            if response.status_code in (200, 201, 202):
                log.info("email_sent_success", to_email=to_email, subject=subject)
                return True
            log.error(
                "email_sent_failed",
                to_email=to_email,
                subject=subject,
                status_code=response.status_code,
                response=response.text[:200],
            )
            return False
        except Exception as e:
            log.error(
                "email_send_error",
                to_email=to_email,
                subject=subject,
                error=str(e),
                error_type=type(e).__name__,
            )
            return False

    async def send_verification_email(
        self, email: str, user_name: Optional[str], token: str, user_id: str
    ) -> bool:
        subject = "🌱 Xác thực tài khoản GreenGrow"
        verification_url = self._link("/verify-email", token, user_id)
        template = self._jinja.get_template("verification.html")
        html_body = template.render(
            user_name=user_name, verification_url=verification_url
        )
        text_body = (
            f"Verify your GreenGrow account\n\n"
            f"Hello{f' {user_name}' if user_name else ''},\n\n"
            f"Open this link to verify your email: {verification_url}\n\n"
            f"The link expires in 24 hours.\n\n"
            f"{_FOOTER}"
        )
        return await self._send(email, user_name, subject, html_body, text_body)

    async def send_welcome_email(self, email: str, user_name: Optional[str]) -> bool:
        subject = "🎉 Chào mừng đến với GreenGrow!"
        template = self._jinja.get_template("welcome.html")
        html_body = template.render(user_name=user_name, app_url=self._app_url)
        text_body = (
            f"Welcome to GreenGrow{f', {user_name}' if user_name else ''}!\n\n"
            f"Get started: {self._app_url}\n\n"
            f"{_FOOTER}"
        )
        return await self._send(email, user_name, subject, html_body, text_body)

    async def send_password_reset_email(
        self, email: str, user_name: Optional[str], token: str, user_id: str
    ) -> bool:
        subject = "🔐 Đặt lại mật khẩu GreenGrow"
        reset_url = self._link("/reset-password", token, user_id)
        template = self._jinja.get_template("password_reset.html")
        html_body = template.render(user_name=user_name, reset_url=reset_url)
        text_body = (
            f"Reset your GreenGrow password\n\n"
            f"Hello{f' {user_name}' if user_name else ''},\n\n"
            f"Open this link to choose a new password: {reset_url}\n\n"
            f"The link expires in 1 hour. Ignore this email if you did not ask for it.\n\n"
            f"{_FOOTER}"
        )
        return await self._send(email, user_name, subject, html_body, text_body)

    async def send_password_change_otp_email(
        self, email: str, user_name: Optional[str], otp_code: str
    ) -> bool:
        subject = "🔐 Mã xác thực đổi mật khẩu GreenGrow"
        template = self._jinja.get_template("password_change_otp.html")
        html_body = template.render(otp_code=otp_code, user_name=user_name)
        text_body = (
            f"Change your GreenGrow password\n\n"
            f"Hello{f' {user_name}' if user_name else ''},\n\n"
            f"Your verification code is: {otp_code}\n\n"
            f"This code expires in 10 minutes.\n\n"
            f"{_FOOTER}"
        )
        return await self._send(email, user_name, subject, html_body, text_body)
