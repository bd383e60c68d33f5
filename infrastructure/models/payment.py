"""
Enrollment payment ORM model.

Infrastructure detail only; business rules live in
domain.payment.entity.EnrollmentPayment.
"""
from sqlalchemy import (
    Column, Integer, String, Numeric, DateTime, Index, UniqueConstraint
)
from datetime import datetime, timezone

from .base import Base


class EnrollmentPaymentModel(Base):
    """Charge issued at a billing provider for an enrollment"""
    __tablename__ = "enrollment_payments"

    id = Column(Integer, primary_key=True, index=True)

    enrollment_code = Column(String(100), index=True, nullable=False, comment="Enrollment code")

    provider = Column(String(50), nullable=False, index=True, comment="Billing provider: asaas/lytex")
    external_id = Column(String(200), nullable=False, comment="Provider payment/invoice id")
    payment_url = Column(String(500), nullable=False, default="", comment="Payer-facing checkout URL")

    amount = Column(Numeric(precision=15, scale=2), nullable=False, comment="Amount in BRL")

    status = Column(
        String(50),
        nullable=False,
        default="pending_payment",
        index=True,
        comment="Canonical status: active/pending_payment/suspended/cancelled"
    )

    created_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
        index=True,
    )
    updated_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    activated_at = Column(DateTime(timezone=True), nullable=True, comment="First time seen as active")

    __table_args__ = (
        UniqueConstraint("provider", "external_id", name="uq_enrollment_payments_provider_external_id"),
        Index("ix_enrollment_payments_code_status", "enrollment_code", "status"),
    )

    def __repr__(self):
        return (
            f"<EnrollmentPaymentModel(id={self.id}, enrollment_code='{self.enrollment_code}', "
            f"provider='{self.provider}', external_id='{self.external_id}', status='{self.status}')>"
        )
