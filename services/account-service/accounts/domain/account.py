from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime


@dataclass(slots=True)
class Account:
    """Aggregate root for a tour-platform user identity."""

    account_id: str
    name: str
    email: str
    password_hash: str
    phone_number: str
    gender: str
    date_of_birth: date
    membership_status: str
    created_at: datetime
    updated_at: datetime
