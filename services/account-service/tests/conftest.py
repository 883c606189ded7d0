from __future__ import annotations

import asyncio
import uuid
from dataclasses import replace
from datetime import datetime, timezone

import pytest

from accounts.domain.account import Account
from accounts.domain.contracts import NewAccount
from accounts.domain.errors import StoreConflictError
from accounts.domain.service import AccountService

# Lowest bcrypt cost; keeps the suite fast.
TEST_BCRYPT_ROUNDS = 4


class FakeRepository:
    """In-memory repository mimicking the Postgres unique email index."""

    def __init__(self) -> None:
        self._accounts: dict[str, Account] = {}
        self.reads = 0
        self.writes = 0
        self.fail_with: Exception | None = None

    async def find_by_email(self, email: str) -> Account | None:
        self.reads += 1
        # yield to the loop like a real network round-trip would
        await asyncio.sleep(0)
        if self.fail_with is not None:
            raise self.fail_with
        account = self._accounts.get(email.lower())
        return replace(account) if account else None

    async def get_account(self, account_id: str) -> Account | None:
        self.reads += 1
        if self.fail_with is not None:
            raise self.fail_with
        for account in self._accounts.values():
            if account.account_id == account_id:
                return replace(account)
        return None

    async def insert(self, payload: NewAccount) -> Account:
        self.writes += 1
        await asyncio.sleep(0)
        if self.fail_with is not None:
            raise self.fail_with
        key = payload.email.lower()
        if key in self._accounts:
            raise StoreConflictError()
        now = datetime.now(timezone.utc)
        account = Account(
            account_id=str(uuid.uuid4()),
            name=payload.name,
            email=payload.email,
            password_hash=payload.password_hash,
            phone_number=payload.phone_number,
            gender=payload.gender,
            date_of_birth=payload.date_of_birth,
            membership_status=payload.membership_status,
            created_at=now,
            updated_at=now,
        )
        self._accounts[key] = account
        return replace(account)

    def stored(self, email: str) -> Account | None:
        return self._accounts.get(email.lower())


ANA = {
    "name": "Ana",
    "email": "ana@example.com",
    "password": "Str0ng!Pass",
    "phone_number": "+14155551234",
    "gender": "female",
    "date_of_birth": "1990-01-01",
    "membership_status": "active",
}


@pytest.fixture
def repository() -> FakeRepository:
    return FakeRepository()


@pytest.fixture
def service(repository: FakeRepository) -> AccountService:
    return AccountService(repository, bcrypt_rounds=TEST_BCRYPT_ROUNDS)


@pytest.fixture
def signup_fields() -> dict[str, str]:
    """Valid signup fields, copied so tests may mutate them."""
    return dict(ANA)
