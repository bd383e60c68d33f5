"""
Payment gateway port (application/ports) exposing a replaceable protocol.

Application depends on this Protocol; infrastructure implements adapters.

Failure policy shared by every adapter:

- ``create_payment`` raises ``PaymentCreationError`` unless the adapter
  falls back to a simulated charge.
- ``get_payment_status`` never raises for provider errors and reports
  ``PaymentStatus.PENDING_PAYMENT`` instead.
- ``process_webhook`` raises ``WebhookParseError`` when the payload carries
  no payment id or no status.
- ``register_student`` / ``check_student_exists`` never raise for provider
  errors: a placeholder customer id, or ``exists=False``.
"""
from __future__ import annotations

from typing import Any, Mapping, Protocol, runtime_checkable

from application.dtos.payments import (
    CustomerLookup,
    CustomerRegistration,
    Enrollment,
    PaymentCreated,
    StudentLookup,
    StudentRegistration,
    WebhookResult,
)
from domain.payment.entity import PaymentStatus


@runtime_checkable
class PaymentGateway(Protocol):
    """Gateway protocol for third-party billing providers."""

    provider: str

    @property
    def simulated(self) -> bool: ...

    async def create_payment(self, enrollment: Enrollment) -> PaymentCreated: ...

    async def get_payment_status(self, external_id: str) -> PaymentStatus: ...

    def process_webhook(self, payload: Mapping[str, Any]) -> WebhookResult: ...

    async def register_student(self, user: StudentRegistration) -> CustomerRegistration: ...

    async def check_student_exists(self, lookup: StudentLookup) -> CustomerLookup: ...

    async def aclose(self) -> None: ...
