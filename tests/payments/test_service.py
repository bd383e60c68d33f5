from decimal import Decimal

import pytest

from application.dtos.payments import (
    CustomerLookup,
    CustomerRegistration,
    Enrollment,
    PaymentCreated,
    StudentLookup,
    StudentRegistration,
    WebhookResult,
)
from application.services.payment_service import PaymentService
from domain.common.exceptions import PaymentRecordAlreadyExistsException, PaymentRecordNotFoundException
from domain.payment.entity import PaymentStatus


class StubGateway:
    provider = "stub"
    simulated = False

    def __init__(self):
        self.status = PaymentStatus.PENDING_PAYMENT
        self.next_id = "ext_1"

    async def create_payment(self, enrollment: Enrollment) -> PaymentCreated:
        return PaymentCreated(external_id=self.next_id, payment_url=f"https://pay.test/{self.next_id}")

    async def get_payment_status(self, external_id: str) -> PaymentStatus:
        return self.status

    def process_webhook(self, payload) -> WebhookResult:
        return WebhookResult(external_id=payload["id"], status=PaymentStatus.from_value(payload["status"]))

    async def register_student(self, user: StudentRegistration) -> CustomerRegistration:
        return CustomerRegistration(customer_id="cus_error_x1", already_exists=False)

    async def check_student_exists(self, lookup: StudentLookup) -> CustomerLookup:
        return CustomerLookup(exists=False)

    async def aclose(self) -> None:
        return None


def _enrollment(code="MAT-1"):
    return Enrollment(code=code, amount=Decimal("350.00"))


@pytest.mark.asyncio
async def test_create_enrollment_payment_persists_ref(uow_factory):
    svc = PaymentService(gateway=StubGateway(), uow_factory=uow_factory)
    payment = await svc.create_enrollment_payment(_enrollment())

    assert payment.id is not None
    assert payment.external_id == "ext_1"
    assert payment.status == PaymentStatus.PENDING_PAYMENT
    assert payment.amount == Decimal("350.00")

    [listed] = await svc.list_enrollment_payments("MAT-1")
    assert listed.payment_url == "https://pay.test/ext_1"


@pytest.mark.asyncio
async def test_duplicate_external_id_is_rejected(uow_factory):
    svc = PaymentService(gateway=StubGateway(), uow_factory=uow_factory)
    await svc.create_enrollment_payment(_enrollment())
    with pytest.raises(PaymentRecordAlreadyExistsException):
        await svc.create_enrollment_payment(_enrollment("MAT-2"))


@pytest.mark.asyncio
async def test_webhook_updates_status_and_activation(uow_factory):
    svc = PaymentService(gateway=StubGateway(), uow_factory=uow_factory)
    await svc.create_enrollment_payment(_enrollment())

    payment = await svc.handle_webhook({"id": "ext_1", "status": "active"})
    assert payment.status == PaymentStatus.ACTIVE
    assert payment.activated_at is not None

    # Redelivery of the same notification changes nothing
    again = await svc.handle_webhook({"id": "ext_1", "status": "active"})
    assert again.activated_at == payment.activated_at


@pytest.mark.asyncio
async def test_webhook_for_unknown_payment(uow_factory):
    svc = PaymentService(gateway=StubGateway(), uow_factory=uow_factory)
    with pytest.raises(PaymentRecordNotFoundException):
        await svc.handle_webhook({"id": "nope", "status": "active"})


@pytest.mark.asyncio
async def test_refresh_status_persists(uow_factory):
    gateway = StubGateway()
    svc = PaymentService(gateway=gateway, uow_factory=uow_factory)
    await svc.create_enrollment_payment(_enrollment())

    gateway.status = PaymentStatus.SUSPENDED
    view = await svc.refresh_status("ext_1")
    assert view.recorded is True
    assert view.enrollment_code == "MAT-1"
    assert view.status == PaymentStatus.SUSPENDED

    [stored] = await svc.list_enrollment_payments("MAT-1")
    assert stored.status == PaymentStatus.SUSPENDED


@pytest.mark.asyncio
async def test_refresh_status_untracked(uow_factory):
    svc = PaymentService(gateway=StubGateway(), uow_factory=uow_factory)
    view = await svc.refresh_status("ext_unknown")
    assert view.recorded is False
    assert view.status == PaymentStatus.PENDING_PAYMENT


@pytest.mark.asyncio
async def test_register_student_passes_placeholder_through(uow_factory):
    svc = PaymentService(gateway=StubGateway(), uow_factory=uow_factory)
    result = await svc.register_student(StudentRegistration(id=1, full_name="A", email="a@example.com"))
    assert result.customer_id == "cus_error_x1"
