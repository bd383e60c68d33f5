"""
Application service orchestrating enrollment billing use-cases.

This class depends only on the application PaymentGateway port, the unit of
work abstraction and DTOs. Gateway implementations are provided by
infrastructure and injected from the composition root (API), keeping
dependencies one-way.
"""
from __future__ import annotations

from typing import Any, Callable, List, Mapping

from application.dtos.payments import (
    CustomerLookup,
    CustomerRegistration,
    Enrollment,
    PaymentStatusView,
    StudentLookup,
    StudentRegistration,
)
from application.ports.payment_gateway import PaymentGateway
from core.logging_config import get_logger
from domain.common.exceptions import PaymentRecordNotFoundException
from domain.common.unit_of_work import AbstractUnitOfWork
from domain.payment.entity import EnrollmentPayment, is_placeholder_customer_id


logger = get_logger(__name__)


class PaymentService:
    def __init__(self, gateway: PaymentGateway, uow_factory: Callable[..., AbstractUnitOfWork]) -> None:
        self.gateway = gateway
        self._uow_factory = uow_factory

    @property
    def provider(self) -> str:
        return self.gateway.provider

    async def create_enrollment_payment(self, enrollment: Enrollment) -> EnrollmentPayment:
        """Issue a charge at the provider and record the returned reference.

        The provider call happens outside the transaction; a failure to
        persist leaves an orphan charge, which is logged with its id.
        """
        logger.info(
            "enrollment_payment_request",
            enrollment_code=enrollment.code,
            provider=self.provider,
            simulated=self.gateway.simulated,
        )
        ref = await self.gateway.create_payment(enrollment)
        payment = EnrollmentPayment(
            id=None,
            enrollment_code=enrollment.code,
            provider=self.provider,
            external_id=ref.external_id,
            payment_url=ref.payment_url,
            amount=enrollment.payable_amount,
        )
        try:
            async with self._uow_factory() as uow:
                saved = await uow.payment_repository.create(payment)
        except Exception:
            logger.error(
                "enrollment_payment_persist_failed",
                enrollment_code=enrollment.code,
                provider=self.provider,
                external_id=ref.external_id,
            )
            raise
        logger.info(
            "enrollment_payment_issued",
            enrollment_code=enrollment.code,
            provider=self.provider,
            external_id=saved.external_id,
        )
        return saved

    async def refresh_status(self, external_id: str) -> PaymentStatusView:
        status = await self.gateway.get_payment_status(external_id)
        async with self._uow_factory() as uow:
            payment = await uow.payment_repository.get_by_external_id(self.provider, external_id)
            if payment is None:
                logger.info("payment_status_untracked", provider=self.provider, external_id=external_id, status=status.value)
                return PaymentStatusView(provider=self.provider, external_id=external_id, status=status)
            previous = payment.status
            if payment.apply_status(status):
                await uow.payment_repository.update(payment)
                logger.info(
                    "payment_status_changed",
                    provider=self.provider,
                    external_id=external_id,
                    previous=previous.value,
                    status=status.value,
                    source="poll",
                )
        return PaymentStatusView(
            provider=self.provider,
            external_id=external_id,
            status=status,
            recorded=True,
            enrollment_code=payment.enrollment_code,
        )

    async def handle_webhook(self, payload: Mapping[str, Any]) -> EnrollmentPayment:
        result = self.gateway.process_webhook(payload)
        async with self._uow_factory() as uow:
            payment = await uow.payment_repository.get_by_external_id(self.provider, result.external_id)
            if payment is None:
                logger.warning("payment_webhook_unknown_payment", provider=self.provider, external_id=result.external_id)
                raise PaymentRecordNotFoundException(result.external_id, provider=self.provider)
            previous = payment.status
            if payment.apply_status(result.status):
                payment = await uow.payment_repository.update(payment)
                logger.info(
                    "payment_status_changed",
                    provider=self.provider,
                    external_id=result.external_id,
                    previous=previous.value,
                    status=result.status.value,
                    source="webhook",
                )
            else:
                logger.info("payment_webhook_no_change", provider=self.provider, external_id=result.external_id)
        return payment

    async def list_enrollment_payments(self, enrollment_code: str) -> List[EnrollmentPayment]:
        async with self._uow_factory(readonly=True) as uow:
            return await uow.payment_repository.list_by_enrollment(enrollment_code)

    async def register_student(self, user: StudentRegistration) -> CustomerRegistration:
        registration = await self.gateway.register_student(user)
        if is_placeholder_customer_id(registration.customer_id):
            logger.warning(
                "student_registered_with_placeholder",
                provider=self.provider,
                student_id=user.id,
                customer_id=registration.customer_id,
            )
        else:
            logger.info(
                "student_registered",
                provider=self.provider,
                student_id=user.id,
                customer_id=registration.customer_id,
                already_exists=registration.already_exists,
            )
        return registration

    async def check_student_exists(self, lookup: StudentLookup) -> CustomerLookup:
        return await self.gateway.check_student_exists(lookup)
