"""Database repository for account data."""

from __future__ import annotations

import hashlib
import logging
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncIterator

import psycopg
from psycopg import errors
from psycopg.rows import tuple_row
from psycopg_pool import AsyncConnectionPool

from .domain.account import Account
from .domain.contracts import NewAccount
from .domain.errors import StoreConflictError, StoreError

logger = logging.getLogger(__name__)

_ACCOUNT_COLUMNS = """
    account_id, name, email, password_hash, phone_number, gender,
    date_of_birth, membership_status, created_at, updated_at
"""


class AccountRepository:
    """Postgres-backed account persistence.

    Uniqueness is enforced by the ``accounts_email_hash_key`` index, so a
    duplicate insert surfaces as :class:`StoreConflictError` even when two
    writers both passed an earlier existence check.
    """

    def __init__(self, pool: AsyncConnectionPool) -> None:
        """Store the connection pool used for all database interactions."""
        self._pool = pool

    def _hash_email(self, email: str) -> bytes:
        """Normalise an email address and return its SHA-256 digest."""
        return hashlib.sha256(email.lower().encode("utf-8")).digest()

    @asynccontextmanager
    async def _translate_errors(self, operation: str) -> AsyncIterator[None]:
        try:
            yield
        except errors.UniqueViolation as exc:
            logger.info("account store rejected duplicate email during %s", operation)
            raise StoreConflictError() from exc
        except psycopg.Error as exc:
            logger.exception("account store failure during %s", operation)
            raise StoreError() from exc

    async def find_by_email(self, email: str) -> Account | None:
        """Return the account registered under ``email`` (case-insensitive) or ``None``."""
        async with self._translate_errors("find_by_email"):
            async with self._pool.connection() as conn:
                async with conn.cursor(row_factory=tuple_row) as cur:
                    await cur.execute(
                        f"SELECT {_ACCOUNT_COLUMNS} FROM accounts WHERE email_hash = %s",
                        (self._hash_email(email),),
                    )
                    row = await cur.fetchone()
        if not row:
            return None
        return self._map_record(row)

    async def get_account(self, account_id: str) -> Account | None:
        """Fetch an account by identifier or return ``None``."""
        async with self._translate_errors("get_account"):
            async with self._pool.connection() as conn:
                async with conn.cursor(row_factory=tuple_row) as cur:
                    await cur.execute(
                        f"SELECT {_ACCOUNT_COLUMNS} FROM accounts WHERE account_id = %s",
                        (account_id,),
                    )
                    row = await cur.fetchone()
        if not row:
            return None
        return self._map_record(row)

    async def insert(self, payload: NewAccount) -> Account:
        """Persist a new account, assigning its identifier and timestamps."""
        account_id = str(uuid.uuid4())
        now = datetime.now(timezone.utc)
        async with self._translate_errors("insert"):
            async with self._pool.connection() as conn:
                async with conn.cursor(row_factory=tuple_row) as cur:
                    await cur.execute(
                        f"""
                        INSERT INTO accounts (
                            account_id, name, email, email_hash, password_hash, phone_number,
                            gender, date_of_birth, membership_status, created_at, updated_at
                        )
                        VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
                        RETURNING {_ACCOUNT_COLUMNS}
                        """,
                        (
                            account_id,
                            payload.name,
                            payload.email,
                            self._hash_email(payload.email),
                            payload.password_hash,
                            payload.phone_number,
                            payload.gender,
                            payload.date_of_birth,
                            payload.membership_status,
                            now,
                            now,
                        ),
                    )
                    record = await cur.fetchone()
                await conn.commit()
        return self._map_record(record)

    def _map_record(self, row: tuple) -> Account:
        """Convert a raw database tuple into the domain ``Account`` dataclass."""
        return Account(
            account_id=str(row[0]),
            name=row[1],
            email=row[2],
            password_hash=row[3],
            phone_number=row[4],
            gender=row[5],
            date_of_birth=row[6],
            membership_status=row[7],
            created_at=row[8],
            updated_at=row[9],
        )
