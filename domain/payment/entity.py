"""
Payment domain entities - canonical status and the enrollment payment aggregate.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional

from domain.common.exceptions import DomainValidationException


class PaymentStatus(str, Enum):
    """Canonical enrollment payment status shared by every provider."""
    ACTIVE = "active"                    # paid, enrollment released
    PENDING_PAYMENT = "pending_payment"  # awaiting payment (also the fail-safe default)
    SUSPENDED = "suspended"              # overdue / expired
    CANCELLED = "cancelled"              # refunded, deleted, charged back

    @classmethod
    def from_value(cls, value: Optional[str]) -> "PaymentStatus":
        """Parse a canonical value; anything unknown degrades to PENDING_PAYMENT."""
        try:
            return cls(value)
        except ValueError:
            return cls.PENDING_PAYMENT


# Prefixes of customer ids synthesized when a provider could not be reached.
# Kept stable so records can be found and reconciled later.
PLACEHOLDER_CUSTOMER_PREFIXES = ("cus_error_", "lytex_tmp_", "lytex_err_")


def is_placeholder_customer_id(customer_id: Optional[str]) -> bool:
    return bool(customer_id) and customer_id.startswith(PLACEHOLDER_CUSTOMER_PREFIXES)


def _ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


@dataclass
class EnrollmentPayment:
    """
    Enrollment payment aggregate.

    Business rules:
    1. (provider, external_id) is unique and never changes once issued
    2. amount must be greater than zero
    3. status is always one of the canonical values
    """

    id: Optional[int]
    enrollment_code: str
    provider: str
    external_id: str
    payment_url: str
    amount: Decimal
    status: PaymentStatus = PaymentStatus.PENDING_PAYMENT

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    activated_at: Optional[datetime] = None

    def __post_init__(self):
        if self.amount <= 0:
            raise DomainValidationException(
                f"Payment amount must be greater than zero: {self.amount}",
                field="amount",
            )
        if not self.external_id:
            raise DomainValidationException("external_id is required", field="external_id")
        self.status = PaymentStatus.from_value(self.status)
        self.created_at = _ensure_utc(self.created_at)
        self.updated_at = _ensure_utc(self.updated_at)
        self.activated_at = _ensure_utc(self.activated_at)

    def apply_status(self, status: PaymentStatus) -> bool:
        """Move to ``status``; returns False when nothing changed."""
        status = PaymentStatus.from_value(status)
        if status == self.status:
            return False
        now = datetime.now(timezone.utc)
        if status == PaymentStatus.ACTIVE and self.activated_at is None:
            self.activated_at = now
        self.status = status
        self.updated_at = now
        return True
