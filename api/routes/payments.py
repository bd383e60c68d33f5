"""
Payments API routes.

Thin layer over PaymentService: provider webhooks, charge issuing for
enrollments, status polling and customer registration. No provider details
here.
"""
from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Request

from api.dependencies import get_payment_service, get_webhook_payment_service
from application.dtos.payments import (
    Enrollment,
    EnrollmentPaymentView,
    StudentLookup,
    StudentRegistration,
)
from application.services.payment_service import PaymentService
from core.logging_config import get_logger
from core.response import success_response
from infrastructure.external.payments.exceptions import WebhookParseError


router = APIRouter(prefix="/payments", tags=["Payments"])
logger = get_logger(__name__)


async def _json_body(request: Request, provider: str) -> Any:
    try:
        return await request.json()
    except ValueError as exc:
        raise WebhookParseError("Webhook body is not valid JSON", provider=provider) from exc


@router.post("/webhooks/{provider}", summary="Provider payment notification")
async def payments_webhook(
    provider: str,
    request: Request,
    service: PaymentService = Depends(get_webhook_payment_service),
):
    payload = await _json_body(request, service.provider)
    payment = await service.handle_webhook(payload)
    # 200 acknowledges receipt; providers retry on anything else
    return success_response(
        data={
            "provider": payment.provider,
            "external_id": payment.external_id,
            "enrollment_code": payment.enrollment_code,
            "status": payment.status.value,
        },
        message="Webhook processed",
    )


@router.post("/enrollments", summary="Issue a charge for an enrollment")
async def create_enrollment_payment(
    enrollment: Enrollment,
    service: PaymentService = Depends(get_payment_service),
):
    payment = await service.create_enrollment_payment(enrollment)
    return success_response(
        data=EnrollmentPaymentView.from_entity(payment).model_dump(mode="json"),
        message="Payment created",
    )


@router.get("/enrollments/{enrollment_code}", summary="List charges issued for an enrollment")
async def list_enrollment_payments(
    enrollment_code: str,
    service: PaymentService = Depends(get_payment_service),
):
    payments = await service.list_enrollment_payments(enrollment_code)
    return success_response(
        data=[EnrollmentPaymentView.from_entity(p).model_dump(mode="json") for p in payments],
    )


@router.get("/{external_id}/status", summary="Poll payment status")
async def get_payment_status(
    external_id: str,
    service: PaymentService = Depends(get_payment_service),
):
    view = await service.refresh_status(external_id)
    return success_response(data=view.model_dump(mode="json"))


@router.post("/customers", summary="Register a student at the provider")
async def register_student(
    user: StudentRegistration,
    service: PaymentService = Depends(get_payment_service),
):
    registration = await service.register_student(user)
    return success_response(data=registration.model_dump(mode="json"))


@router.post("/customers/lookup", summary="Check whether a student exists at the provider")
async def check_student_exists(
    lookup: StudentLookup,
    service: PaymentService = Depends(get_payment_service),
):
    result = await service.check_student_exists(lookup)
    return success_response(data=result.model_dump(mode="json"))
