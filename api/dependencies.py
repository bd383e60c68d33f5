"""
API dependencies - application service wiring.
"""
from typing import Callable, Optional

from fastapi import Depends, Query

from application.services.payment_service import PaymentService
from domain.common.unit_of_work import AbstractUnitOfWork
from infrastructure.external.payments import get_payment_gateway
from infrastructure.unit_of_work import SQLAlchemyUnitOfWork


def get_uow_factory() -> Callable[..., AbstractUnitOfWork]:
    return SQLAlchemyUnitOfWork


async def get_payment_service(
    provider: Optional[str] = Query(default=None, description="Billing provider; defaults to PAYMENT__DEFAULT_PROVIDER"),
    uow_factory: Callable[..., AbstractUnitOfWork] = Depends(get_uow_factory),
) -> PaymentService:
    return PaymentService(gateway=get_payment_gateway(provider), uow_factory=uow_factory)


async def get_webhook_payment_service(
    provider: str,
    uow_factory: Callable[..., AbstractUnitOfWork] = Depends(get_uow_factory),
) -> PaymentService:
    """Service for the provider named in the webhook path."""
    return PaymentService(gateway=get_payment_gateway(provider), uow_factory=uow_factory)
