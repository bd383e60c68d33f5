"""
Payment DTOs (Pydantic v2) used at application boundaries.

Field names are snake_case; the HTTP layer also accepts the camelCase
spelling used by the admin front-end (``fullName``, ``courseId``...).
"""
from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_serializer
from pydantic.alias_generators import to_camel

from domain.payment.entity import EnrollmentPayment, PaymentStatus


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class StudentInfo(_CamelModel):
    full_name: Optional[str] = None
    email: Optional[str] = None
    cpf: Optional[str] = None


class CourseInfo(_CamelModel):
    name: str = ""
    price: Optional[Decimal] = None


class Enrollment(_CamelModel):
    """Subset of an enrollment consumed by the billing gateways."""

    code: str
    amount: Optional[Decimal] = None
    course_id: Optional[int] = None
    student_id: Optional[int] = None
    payment_method: Optional[str] = None
    student: Optional[StudentInfo] = None
    course: CourseInfo = Field(default_factory=CourseInfo)

    @field_validator("code")
    @classmethod
    def _strip_code(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("enrollment code is required")
        return v

    @property
    def payable_amount(self) -> Decimal:
        """Enrollment amount, or the course price when the enrollment has none."""
        if self.amount:
            return self.amount
        return self.course.price or Decimal("0")


class StudentRegistration(_CamelModel):
    id: int
    full_name: str
    email: str
    cpf: Optional[str] = None


class StudentLookup(_CamelModel):
    email: str
    cpf: Optional[str] = None


class PaymentCreated(_CamelModel):
    """External payment reference; immutable once issued."""

    model_config = ConfigDict(frozen=True)

    external_id: str
    payment_url: str = ""


class CustomerRegistration(_CamelModel):
    customer_id: str
    already_exists: bool = False


class CustomerLookup(_CamelModel):
    exists: bool
    customer_id: Optional[str] = None


class WebhookResult(_CamelModel):
    status: PaymentStatus
    external_id: str


class _ResponseModel(_CamelModel):
    """Response DTO base: datetimes serialized as UTC with a ``Z`` suffix."""

    @model_serializer(mode="wrap")
    def _serialize_model(self, handler):  # type: ignore[override]
        data = handler(self)

        def convert(value):
            if isinstance(value, datetime):
                ts = value if value.tzinfo else value.replace(tzinfo=timezone.utc)
                return ts.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")
            if isinstance(value, dict):
                return {k: convert(v) for k, v in value.items()}
            return value

        return convert(data)


class EnrollmentPaymentView(_ResponseModel):
    id: Optional[int] = None
    enrollment_code: str
    provider: str
    external_id: str
    payment_url: str = ""
    amount: Decimal
    status: PaymentStatus
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    activated_at: Optional[datetime] = None

    @classmethod
    def from_entity(cls, payment: EnrollmentPayment) -> "EnrollmentPaymentView":
        return cls(
            id=payment.id,
            enrollment_code=payment.enrollment_code,
            provider=payment.provider,
            external_id=payment.external_id,
            payment_url=payment.payment_url,
            amount=payment.amount,
            status=payment.status,
            created_at=payment.created_at,
            updated_at=payment.updated_at,
            activated_at=payment.activated_at,
        )


class PaymentStatusView(_ResponseModel):
    """Result of a status poll; ``recorded`` is False for refs this service never issued."""

    provider: str
    external_id: str
    status: PaymentStatus
    recorded: bool = False
    enrollment_code: Optional[str] = None
