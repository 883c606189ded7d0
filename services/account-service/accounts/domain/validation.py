"""Input checks applied before any store access or hashing work.

Checks run in a fixed order and the first violation wins; errors are never
aggregated.
"""

from __future__ import annotations

import re
from datetime import date, datetime, timezone
from typing import Any

import phonenumbers
from email_validator import EmailNotValidError, validate_email

from .contracts import SignupInput
from .errors import (
    InvalidDateOfBirthError,
    InvalidEmailError,
    InvalidPhoneError,
    MissingFieldError,
    WeakPasswordError,
)

PASSWORD_MIN_LENGTH = 8
# bcrypt only reads the first 72 bytes of its input
PASSWORD_MAX_BYTES = 72
_LOWERCASE = re.compile(r"[a-z]")
_UPPERCASE = re.compile(r"[A-Z]")
_DIGIT = re.compile(r"[0-9]")
_SYMBOL = re.compile(r"[-#!$@£%^&*()_+|~=`{}\[\]:\";'<>?,./\\ ]")

_MOBILE_TYPES = frozenset(
    {
        phonenumbers.PhoneNumberType.MOBILE,
        phonenumbers.PhoneNumberType.FIXED_LINE_OR_MOBILE,
    }
)


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return not value


def is_email(value: str) -> bool:
    """Return ``True`` for ``local@domain.tld`` addresses without whitespace."""
    try:
        validate_email(value, check_deliverability=False)
    except EmailNotValidError:
        return False
    return True


def is_strong_password(value: str) -> bool:
    """Return ``True`` when the password satisfies the composite strength policy."""
    return (
        len(value) >= PASSWORD_MIN_LENGTH
        and _LOWERCASE.search(value) is not None
        and _UPPERCASE.search(value) is not None
        and _DIGIT.search(value) is not None
        and _SYMBOL.search(value) is not None
    )


def is_mobile_phone(value: str) -> bool:
    """Return ``True`` for a valid mobile number written with a ``+`` country code.

    Any region is accepted, but the number must be in strict international
    form so the country can be derived from the number itself.
    """
    if not value.startswith("+"):
        return False
    try:
        number = phonenumbers.parse(value, None)
    except phonenumbers.NumberParseException:
        return False
    if not phonenumbers.is_valid_number(number):
        return False
    return phonenumbers.number_type(number) in _MOBILE_TYPES


def parse_date_of_birth(value: date | str) -> date:
    """Coerce a ``date`` or ``YYYY-MM-DD`` string into a past calendar date."""
    if isinstance(value, datetime):
        parsed = value.date()
    elif isinstance(value, date):
        parsed = value
    elif isinstance(value, str):
        try:
            parsed = date.fromisoformat(value.strip())
        except ValueError as exc:
            raise InvalidDateOfBirthError() from exc
    else:
        raise InvalidDateOfBirthError()

    if parsed > datetime.now(timezone.utc).date():
        raise InvalidDateOfBirthError()
    return parsed


def validate_signup(
    name: str | None,
    email: str | None,
    password: str | None,
    phone_number: str | None,
    gender: str | None,
    date_of_birth: date | str | None,
    membership_status: str | None,
) -> SignupInput:
    """Run the signup checks in order and return the normalised input."""
    fields = (name, email, password, phone_number, gender, date_of_birth, membership_status)
    if any(_is_blank(value) for value in fields):
        raise MissingFieldError()

    email = email.strip()
    phone_number = phone_number.strip()

    if not is_email(email):
        raise InvalidEmailError()
    if not is_strong_password(password):
        raise WeakPasswordError()
    if len(password.encode("utf-8")) > PASSWORD_MAX_BYTES:
        raise WeakPasswordError(f"Password must be at most {PASSWORD_MAX_BYTES} bytes")
    if not is_mobile_phone(phone_number):
        raise InvalidPhoneError()

    return SignupInput(
        name=name.strip(),
        email=email,
        password=password,
        phone_number=phone_number,
        gender=gender.strip(),
        date_of_birth=parse_date_of_birth(date_of_birth),
        membership_status=membership_status.strip(),
    )


def validate_login(email: str | None, password: str | None) -> tuple[str, str]:
    """Presence-only check for login; formats are not re-validated."""
    if _is_blank(email) or _is_blank(password):
        raise MissingFieldError("All fields must be filled")
    return email.strip(), password
