"""Domain-level request contracts shared by multiple layers."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date


@dataclass(slots=True)
class SignupInput:
    """Validated signup fields, before the password is hashed."""

    name: str
    email: str
    password: str
    phone_number: str
    gender: str
    date_of_birth: date
    membership_status: str


@dataclass(slots=True)
class NewAccount:
    """Fields handed to the repository when inserting an account."""

    name: str
    email: str
    password_hash: str
    phone_number: str
    gender: str
    date_of_birth: date
    membership_status: str
