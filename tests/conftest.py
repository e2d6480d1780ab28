"""
Shared test fixtures.

InMemoryCredentialStore mirrors MongoCredentialStore: the two partial unique
indexes become explicit checks in insert_active(), and consume() /
record_failed_attempt() check and update without yielding to the event
loop, which makes them compare-and-set operations under asyncio. Reads
yield once so concurrent callers interleave the way they would against a
real database.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Optional
from unittest.mock import AsyncMock

import pytest
from bson import ObjectId

from credentials.errors import ActiveCredentialConflict, SecretCollision
from credentials.issuer import CredentialIssuer
from credentials.policy import LifecycleConfig, Purpose
from credentials.principals import Principal
from credentials.rotator import RefreshRotator
from credentials.verifier import CredentialVerifier
from schemas.models.credential import CredentialDoc
from schemas.models.user import STATUS_BLOCKED, UserDoc
from shared.crypto import hash_password


class FakeClock:
    def __init__(self, start: Optional[datetime] = None) -> None:
        self.now = start or datetime(2025, 3, 1, 8, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


def _purpose(value) -> str:
    return Purpose(value).value


class InMemoryCredentialStore:
    def __init__(self) -> None:
        self.docs: dict[ObjectId, CredentialDoc] = {}
        self.fail_inserts = 0

    def _live(self):
        return [d for d in self.docs.values() if not d.consumed]

    async def insert_active(self, doc: CredentialDoc) -> CredentialDoc:
        await asyncio.sleep(0)
        if self.fail_inserts:
            self.fail_inserts -= 1
            raise SecretCollision()
        for live in self._live():
            if live.token_hash == doc.token_hash:
                raise SecretCollision()
            if live.owner_id == doc.owner_id and live.purpose == doc.purpose:
                raise ActiveCredentialConflict()
        stored = doc.model_copy(update={"id": ObjectId()})
        self.docs[stored.id] = stored
        return stored

    async def revoke_active(self, owner_id, purpose, now) -> int:
        count = 0
        for doc in self._live():
            if doc.owner_id == owner_id and doc.purpose == _purpose(purpose):
                self.docs[doc.id] = doc.model_copy(
                    update={"consumed": True, "consumed_at": now}
                )
                count += 1
        return count

    async def find_by_hash(self, token_hash, purpose, owner_id=None):
        await asyncio.sleep(0)
        matches = [
            d
            for d in self.docs.values()
            if d.token_hash == token_hash
            and d.purpose == _purpose(purpose)
            and (owner_id is None or d.owner_id == owner_id)
        ]
        if not matches:
            return None
        matches.sort(key=lambda d: (d.consumed, -d.created_at.timestamp()))
        return matches[0]

    async def find_by_id(self, credential_id):
        await asyncio.sleep(0)
        return self.docs.get(credential_id)

    async def find_pending(self, owner_id, purpose):
        await asyncio.sleep(0)
        pending = [
            d
            for d in self._live()
            if d.owner_id == owner_id and d.purpose == _purpose(purpose)
        ]
        if not pending:
            return None
        return max(pending, key=lambda d: d.created_at)

    async def consume(self, credential_id, now, max_attempts=None):
        doc = self.docs.get(credential_id)
        if doc is None or doc.consumed or doc.expires_at <= now:
            return None
        if max_attempts is not None and doc.attempts >= max_attempts:
            return None
        updated = doc.model_copy(update={"consumed": True, "consumed_at": now})
        self.docs[credential_id] = updated
        return updated

    async def record_failed_attempt(self, credential_id, max_attempts):
        doc = self.docs.get(credential_id)
        if doc is None or doc.consumed or doc.attempts >= max_attempts:
            return None
        updated = doc.model_copy(update={"attempts": doc.attempts + 1})
        self.docs[credential_id] = updated
        return updated

    async def count_active(self, owner_id, purpose, now) -> int:
        return sum(
            1
            for d in self._live()
            if d.owner_id == owner_id
            and d.purpose == _purpose(purpose)
            and d.expires_at > now
        )

    async def count_recent(self, owner_id, purpose, since) -> int:
        await asyncio.sleep(0)
        return sum(
            1
            for d in self.docs.values()
            if d.owner_id == owner_id
            and d.purpose == _purpose(purpose)
            and d.created_at >= since
        )

    async def delete_expired(self, now, consumed_before) -> int:
        doomed = [
            d.id
            for d in self.docs.values()
            if d.expires_at <= now
            or (d.consumed and d.consumed_at and d.consumed_at <= consumed_before)
        ]
        for credential_id in doomed:
            del self.docs[credential_id]
        return len(doomed)


class FakeUsers:
    """In-memory stand-in for UserRepository (and the PrincipalDirectory it provides)."""

    def __init__(self) -> None:
        self.users: dict[ObjectId, UserDoc] = {}

    def add(self, **fields) -> UserDoc:
        fields.setdefault("name", "Nguyen Van A")
        fields.setdefault("email", f"user{len(self.users)}@example.com")
        user = UserDoc(_id=ObjectId(), **fields)
        self.users[user.id] = user
        return user

    def add_with_password(self, password: str = "Password1", **fields) -> UserDoc:
        return self.add(password_hash=hash_password(password), **fields)

    def block(self, user_id: ObjectId) -> None:
        self.users[user_id] = self.users[user_id].model_copy(
            update={"status": STATUS_BLOCKED}
        )

    async def resolve(self, owner_id):
        user = self.users.get(owner_id)
        if user is None:
            return None
        fulfilled = {Purpose.EMAIL_VERIFY} if user.email_verified else set()
        return Principal(
            owner_id=user.id,
            role=user.role,
            is_active=user.is_active,
            fulfilled=frozenset(fulfilled),
        )

    async def find_by_id(self, user_id):
        return self.users.get(ObjectId(user_id))

    async def find_by_email(self, email):
        email = email.strip().lower()
        return next((u for u in self.users.values() if u.email == email), None)

    async def find_verified_phone_owner(self, phone):
        return next(
            (u for u in self.users.values() if u.phone == phone and u.phone_verified),
            None,
        )

    async def create(self, user: UserDoc) -> UserDoc:
        stored = user.model_copy(update={"id": ObjectId()})
        self.users[stored.id] = stored
        return stored

    async def update_fields(self, user_id, **fields) -> bool:
        user = self.users.get(user_id)
        if user is None:
            return False
        self.users[user_id] = user.model_copy(update=fields)
        return True

    async def set_password_hash(self, user_id, password_hash):
        return await self.update_fields(user_id, password_hash=password_hash)

    async def mark_email_verified(self, user_id):
        return await self.update_fields(user_id, email_verified=True)

    async def mark_phone_verified(self, user_id, phone):
        return await self.update_fields(user_id, phone=phone, phone_verified=True)

    async def touch_last_login(self, user_id):
        return await self.update_fields(user_id, last_login_at=datetime.now(timezone.utc))


# ── Fixtures ──────────────────────────────────────────────────────────────────


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def lifecycle_config(clock) -> LifecycleConfig:
    return LifecycleConfig(clock=clock)


@pytest.fixture
def store() -> InMemoryCredentialStore:
    return InMemoryCredentialStore()


@pytest.fixture
def users() -> FakeUsers:
    return FakeUsers()


@pytest.fixture
def user(users) -> UserDoc:
    return users.add_with_password(email="lan@example.com", name="Lan")


@pytest.fixture
def issuer(store, users, lifecycle_config) -> CredentialIssuer:
    return CredentialIssuer(store, users, lifecycle_config)


@pytest.fixture
def verifier(store, lifecycle_config) -> CredentialVerifier:
    return CredentialVerifier(store, lifecycle_config)


@pytest.fixture
def rotator(store, verifier, issuer, lifecycle_config) -> RefreshRotator:
    return RefreshRotator(store, verifier, issuer, lifecycle_config)


@pytest.fixture
def email_provider() -> AsyncMock:
    provider = AsyncMock()
    provider.send_verification_email.return_value = True
    provider.send_welcome_email.return_value = True
    provider.send_password_reset_email.return_value = True
    provider.send_password_change_otp_email.return_value = True
    return provider


@pytest.fixture
def sms_provider() -> AsyncMock:
    provider = AsyncMock()
    provider.send_otp.return_value = True
    return provider
