"""
Enrollment payment repository backed by SQLAlchemy.
"""
from typing import Optional, List
from decimal import Decimal
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from domain.common.exceptions import (
    PaymentRecordAlreadyExistsException,
    PaymentRecordNotFoundException,
)
from domain.payment.entity import EnrollmentPayment, PaymentStatus
from domain.payment.repository import EnrollmentPaymentRepository
from infrastructure.models.payment import EnrollmentPaymentModel
from core.logging_config import get_logger


logger = get_logger(__name__)


class SQLAlchemyEnrollmentPaymentRepository(EnrollmentPaymentRepository):
    """SQLAlchemy implementation of the enrollment payment repository"""

    def __init__(self, session: AsyncSession):
        self.session = session

    def _to_entity(self, model: EnrollmentPaymentModel) -> EnrollmentPayment:
        return EnrollmentPayment(
            id=model.id,
            enrollment_code=model.enrollment_code,
            provider=model.provider,
            external_id=model.external_id,
            payment_url=model.payment_url or "",
            amount=Decimal(str(model.amount)),
            status=PaymentStatus.from_value(model.status),
            created_at=model.created_at,
            updated_at=model.updated_at,
            activated_at=model.activated_at,
        )

    def _to_model(self, entity: EnrollmentPayment) -> EnrollmentPaymentModel:
        model = EnrollmentPaymentModel(
            id=entity.id,
            enrollment_code=entity.enrollment_code,
            provider=entity.provider,
            external_id=entity.external_id,
            payment_url=entity.payment_url,
            amount=entity.amount,
            status=entity.status.value,
            activated_at=entity.activated_at,
        )
        # Leave unset timestamps to the column defaults
        if entity.created_at is not None:
            model.created_at = entity.created_at
        if entity.updated_at is not None:
            model.updated_at = entity.updated_at
        return model

    async def _get_model(self, provider: str, external_id: str) -> Optional[EnrollmentPaymentModel]:
        result = await self.session.execute(
            select(EnrollmentPaymentModel).where(
                EnrollmentPaymentModel.provider == provider,
                EnrollmentPaymentModel.external_id == external_id,
            )
        )
        return result.scalar_one_or_none()

    async def create(self, payment: EnrollmentPayment) -> EnrollmentPayment:
        try:
            db_payment = self._to_model(payment)
            self.session.add(db_payment)
            await self.session.flush()
            await self.session.refresh(db_payment)
            logger.info(
                "enrollment_payment_created",
                payment_id=db_payment.id,
                enrollment_code=db_payment.enrollment_code,
                provider=db_payment.provider,
                external_id=db_payment.external_id,
            )
            return self._to_entity(db_payment)
        except IntegrityError:
            await self.session.rollback()
            logger.warning(
                "enrollment_payment_create_conflict",
                provider=payment.provider,
                external_id=payment.external_id,
            )
            raise PaymentRecordAlreadyExistsException(payment.external_id, provider=payment.provider)

    async def get_by_external_id(self, provider: str, external_id: str) -> Optional[EnrollmentPayment]:
        db_payment = await self._get_model(provider, external_id)
        return self._to_entity(db_payment) if db_payment else None

    async def list_by_enrollment(self, enrollment_code: str) -> List[EnrollmentPayment]:
        result = await self.session.execute(
            select(EnrollmentPaymentModel)
            .where(EnrollmentPaymentModel.enrollment_code == enrollment_code)
            .order_by(EnrollmentPaymentModel.created_at.desc(), EnrollmentPaymentModel.id.desc())
        )
        return [self._to_entity(p) for p in result.scalars().all()]

    async def update(self, payment: EnrollmentPayment) -> EnrollmentPayment:
        db_payment = await self._get_model(payment.provider, payment.external_id)
        if not db_payment:
            raise PaymentRecordNotFoundException(payment.external_id, provider=payment.provider)

        # external_id / payment_url are immutable once issued
        db_payment.status = payment.status.value
        db_payment.updated_at = payment.updated_at
        db_payment.activated_at = payment.activated_at

        await self.session.flush()
        await self.session.refresh(db_payment)

        logger.info(
            "enrollment_payment_updated",
            payment_id=db_payment.id,
            external_id=db_payment.external_id,
            status=db_payment.status,
        )
        return self._to_entity(db_payment)
