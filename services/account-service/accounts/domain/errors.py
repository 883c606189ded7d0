"""Error taxonomy raised by the account workflows."""

from __future__ import annotations


class AccountError(Exception):
    """Base class for account and credential failures."""

    default_message = "account operation failed"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(AccountError):
    """Raised when signup or login input is malformed."""


class MissingFieldError(ValidationError):
    default_message = "Please add all fields"


class InvalidEmailError(ValidationError):
    default_message = "Email not valid"


class WeakPasswordError(ValidationError):
    default_message = "Password not strong enough"


class InvalidPhoneError(ValidationError):
    default_message = "Phone number not valid"


class InvalidDateOfBirthError(ValidationError):
    default_message = "Date of birth not valid"


class EmailInUseError(AccountError):
    default_message = "Email already in use"


class InvalidCredentialsError(AccountError):
    # Same message for unknown email and wrong password.
    default_message = "Incorrect email or password"


class StoreError(AccountError):
    """Underlying persistence fault; the message never leaks driver details."""

    default_message = "Account store unavailable"


class StoreConflictError(StoreError):
    """The store rejected a write because of its unique email constraint."""

    default_message = "Account store rejected a duplicate email"
