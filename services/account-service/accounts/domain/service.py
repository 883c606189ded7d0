"""Account service orchestrating validation, hashing, and persistence."""

from __future__ import annotations

import asyncio
import logging
from datetime import date

from .account import Account
from .contracts import NewAccount
from .errors import EmailInUseError, InvalidCredentialsError, StoreConflictError
from .validation import validate_login, validate_signup
from ..repository import AccountRepository
from ..security.passwords import dummy_hash, hash_password, verify_password

logger = logging.getLogger(__name__)


class AccountService:
    """Signup and login workflows backed by an injected account store."""

    def __init__(self, repository: AccountRepository, *, bcrypt_rounds: int = 10) -> None:
        """Store the repository and bcrypt cost factor, then precompute the dummy hash."""
        self._repository = repository
        self._bcrypt_rounds = bcrypt_rounds
        # built up front so the first unknown-email login costs one bcrypt check
        self._dummy_hash = dummy_hash(bcrypt_rounds)

    async def signup(
        self,
        name: str | None,
        email: str | None,
        password: str | None,
        phone_number: str | None,
        gender: str | None,
        date_of_birth: date | str | None,
        membership_status: str | None,
    ) -> Account:
        """Validate the fields, enforce email uniqueness, and create an account.

        Raises
        ------
        ValidationError
            One of its subclasses for the first failed input check.
        EmailInUseError
            When the email is already registered, including when a concurrent
            signup wins the race at the store's unique index.
        StoreError
            On any other persistence fault.
        """
        payload = validate_signup(
            name, email, password, phone_number, gender, date_of_birth, membership_status
        )

        if await self._repository.find_by_email(payload.email) is not None:
            logger.info("signup rejected: email already registered")
            raise EmailInUseError()

        password_hash = await asyncio.to_thread(
            hash_password, payload.password, self._bcrypt_rounds
        )

        try:
            account = await self._repository.insert(
                NewAccount(
                    name=payload.name,
                    email=payload.email,
                    password_hash=password_hash,
                    phone_number=payload.phone_number,
                    gender=payload.gender,
                    date_of_birth=payload.date_of_birth,
                    membership_status=payload.membership_status,
                )
            )
        except StoreConflictError as exc:
            logger.info("signup rejected: concurrent signup claimed the email first")
            raise EmailInUseError() from exc

        logger.info("account created account_id=%s", account.account_id)
        return account

    async def login(self, email: str | None, password: str | None) -> Account:
        """Return the account matching the credentials.

        Unknown emails and wrong passwords raise the same
        :class:`InvalidCredentialsError`; only the log record tells them apart.
        """
        email, password = validate_login(email, password)

        account = await self._repository.find_by_email(email)
        if account is None:
            # keep timing comparable to a real verification
            await asyncio.to_thread(verify_password, password, self._dummy_hash)
            logger.info("login rejected: unknown email")
            raise InvalidCredentialsError()

        matched = await asyncio.to_thread(verify_password, password, account.password_hash)
        if not matched:
            logger.info("login rejected: password mismatch account_id=%s", account.account_id)
            raise InvalidCredentialsError()

        logger.info("login succeeded account_id=%s", account.account_id)
        return account

    async def get_account(self, account_id: str) -> Account | None:
        """Retrieve an account by identifier."""
        return await self._repository.get_account(account_id)
