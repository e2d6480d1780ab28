"""
Stateless access grants (short-lived JWTs).

Grants are never stored: they are checked by signature and expiry only.
RS256 is used when both PEM keys are configured, HS256 with jwt_secret
otherwise. Expiry is compared against the injected clock so grant lifetime
follows the same time source as stored credentials.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from bson import ObjectId

from config import JWTSettings
from credentials.errors import ExpiredSecret, InvalidSecret
from credentials.policy import LifecycleConfig
from shared.logging import get_logger

log = get_logger(__name__)

GRANT_TYPE = "access"


@dataclass(frozen=True)
class AccessGrant:
    owner_id: str
    role: str
    issued_at: datetime
    expires_at: datetime

    @property
    def owner_object_id(self) -> ObjectId:
        return ObjectId(self.owner_id)


class AccessGrantCodec:
    def __init__(
        self, settings: JWTSettings, config: Optional[LifecycleConfig] = None
    ) -> None:
        self._settings = settings
        self._config = config or LifecycleConfig()
        if settings.use_rs256:
            # Support keys provided via env with literal \n sequences
            self._signing_key = settings.jwt_private_key.replace("\\n", "\n")
            self._verify_key = settings.jwt_public_key.replace("\\n", "\n")
            self._algorithm = "RS256"
        else:
            if not settings.jwt_secret:
                raise RuntimeError(
                    "JWT_SECRET must be set when RS256 keys are not provided"
                )
            self._signing_key = self._verify_key = settings.jwt_secret
            self._algorithm = "HS256"

    @property
    def ttl(self) -> timedelta:
        return timedelta(seconds=self._settings.access_token_ttl_seconds)

    def mint(self, owner_id: ObjectId | str, role: str) -> tuple[str, AccessGrant]:
        # JWT times have second resolution
        now = self._config.now().replace(microsecond=0)
        grant = AccessGrant(
            owner_id=str(owner_id),
            role=role,
            issued_at=now,
            expires_at=now + self.ttl,
        )
        claims = {
            "iss": self._settings.jwt_issuer,
            "aud": self._settings.jwt_audience,
            "sub": grant.owner_id,
            "role": role,
            "type": GRANT_TYPE,
            "iat": int(now.timestamp()),
            "exp": int(grant.expires_at.timestamp()),
        }
        token = jwt.encode(claims, self._signing_key, algorithm=self._algorithm)
        return token, grant

    def decode(self, token: str) -> AccessGrant:
        try:
            claims = jwt.decode(
                token,
                self._verify_key,
                algorithms=[self._algorithm],
                audience=self._settings.jwt_audience,
                issuer=self._settings.jwt_issuer,
                options={
                    "verify_exp": False,
                    "verify_iat": False,
                    "require": ["exp", "iat", "sub"],
                },
            )
        except jwt.InvalidTokenError as e:
            log.info("access_grant_rejected", reason=type(e).__name__)
            raise InvalidSecret("Invalid access token")

        if claims.get("type") != GRANT_TYPE:
            log.info("access_grant_rejected", reason="wrong_type")
            raise InvalidSecret("Invalid access token")

        expires_at = datetime.fromtimestamp(int(claims["exp"]), tz=timezone.utc)
        if expires_at <= self._config.now():
            raise ExpiredSecret("Access token has expired, please refresh it")

        return AccessGrant(
            owner_id=str(claims["sub"]),
            role=str(claims.get("role", "user")),
            issued_at=datetime.fromtimestamp(int(claims["iat"]), tz=timezone.utc),
            expires_at=expires_at,
        )
