"""
Asaas adapter (REST v3, static API key in the ``access_token`` header).

Customers are resolved by email (+ CPF/CNPJ when known) before creation;
there is a single check-then-create pass and no merge step afterwards.
"""
from __future__ import annotations

from datetime import date, timedelta
from typing import Any, Mapping, Optional

import httpx

from application.dtos.payments import (
    CustomerLookup,
    CustomerRegistration,
    Enrollment,
    PaymentCreated,
    StudentLookup,
    StudentRegistration,
    WebhookResult,
)
from core.logging_config import get_logger
from core.settings import AsaasSettings, payment_settings
from domain.payment.entity import PaymentStatus
from infrastructure.external.payments.base import BasePaymentClient, digits_only
from infrastructure.external.payments.exceptions import PaymentCreationError
from infrastructure.external.payments.simulation import (
    SimulatedCustomerBook,
    simulate_status,
    synthetic_id,
    with_simulation_fallback,
)
from infrastructure.external.payments.webhooks import parse_asaas_webhook


logger = get_logger(__name__)

DEFAULT_BILLING_TYPE = "BOLETO"


class AsaasClient(BasePaymentClient):
    provider = "asaas"

    def __init__(
        self,
        config: Optional[AsaasSettings] = None,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config or payment_settings.asaas
        super().__init__(
            base_url=self.config.api_url,
            timeouts=payment_settings.timeouts.model_dump(),
            retry={"max": payment_settings.retry.max, "base": payment_settings.retry.base_backoff},
            transport=transport,
        )
        self._simulated_customers = SimulatedCustomerBook("cus_")
        if self.simulated:
            logger.warning("asaas_simulation_mode", message="ASAAS__API_KEY not configured")
        else:
            logger.info("asaas_gateway_configured", api_url=self.base_url)

    @property
    def simulated(self) -> bool:
        return not self.config.api_key

    @property
    def _headers(self) -> dict[str, str]:
        return {"access_token": self.config.api_key or "", "Content-Type": "application/json"}

    # Payments
    @with_simulation_fallback("_simulate_payment_creation")
    async def create_payment(self, enrollment: Enrollment) -> PaymentCreated:
        amount = self._require_amount(enrollment)
        try:
            customer_id = await self._get_or_create_customer(enrollment)
            payload = {
                "customer": customer_id,
                "billingType": (enrollment.payment_method or DEFAULT_BILLING_TYPE).upper(),
                "value": float(amount),
                "dueDate": (date.today() + timedelta(days=self.config.due_days)).isoformat(),
                "description": f"Matrícula {enrollment.code} - Curso ID {enrollment.course_id}",
                "externalReference": enrollment.code,
            }
            data = self._expect_object(
                await self._request("POST", "/payments", headers=self._headers, json=payload),
                "Asaas payment response",
            )
        except PaymentCreationError:
            raise
        except Exception as exc:
            logger.error("asaas_payment_create_failed", enrollment_code=enrollment.code, error=str(exc))
            raise PaymentCreationError(
                "Failed to create payment at Asaas",
                provider=self.provider,
                enrollment_code=enrollment.code,
            ) from exc

        external_id = str(data.get("id") or "")
        if not external_id:
            raise PaymentCreationError(
                "Asaas response without payment id",
                provider=self.provider,
                enrollment_code=enrollment.code,
            )
        self._log("asaas_payment_created", enrollment_code=enrollment.code, external_id=external_id)
        return PaymentCreated(external_id=external_id, payment_url=data.get("invoiceUrl") or "")

    @with_simulation_fallback("_simulate_payment_status")
    async def get_payment_status(self, external_id: str) -> PaymentStatus:
        try:
            data = self._expect_object(
                await self._request("GET", f"/payments/{external_id}", headers=self._headers),
                "Asaas payment status response",
            )
        except Exception as exc:
            logger.warning("asaas_payment_status_failed", external_id=external_id, error=str(exc))
            return PaymentStatus.PENDING_PAYMENT
        raw = data.get("status")
        status = self._map_status(raw)
        self._log("asaas_payment_status", external_id=external_id, provider_status=raw, status=status.value)
        return status

    def process_webhook(self, payload: Mapping[str, Any]) -> WebhookResult:
        event = parse_asaas_webhook(payload)
        status = self._map_status(event.event, webhook=True)
        self._log(
            "asaas_webhook_processed",
            external_id=event.payment.id,
            provider_event=event.event,
            status=status.value,
        )
        return WebhookResult(status=status, external_id=event.payment.id)

    # Customers
    @with_simulation_fallback("_simulate_check_student")
    async def check_student_exists(self, lookup: StudentLookup) -> CustomerLookup:
        params = {"email": lookup.email}
        cpf = digits_only(lookup.cpf)
        if cpf:
            params["cpfCnpj"] = cpf
        try:
            data = self._expect_object(
                await self._request("GET", "/customers", headers=self._headers, params=params),
                "Asaas customer list",
            )
        except Exception as exc:
            logger.warning("asaas_customer_lookup_failed", email=lookup.email, error=str(exc))
            return CustomerLookup(exists=False)
        matches = data.get("data")
        if not isinstance(matches, list):
            return CustomerLookup(exists=False)
        for match in matches:
            if isinstance(match, Mapping) and match.get("id"):
                return CustomerLookup(exists=True, customer_id=str(match["id"]))
        return CustomerLookup(exists=False)

    @with_simulation_fallback("_simulate_register_student")
    async def register_student(self, user: StudentRegistration) -> CustomerRegistration:
        try:
            found = await self.check_student_exists(StudentLookup(email=user.email, cpf=user.cpf))
            if found.exists and found.customer_id:
                self._log("asaas_customer_already_exists", email=user.email, customer_id=found.customer_id)
                return CustomerRegistration(customer_id=found.customer_id, already_exists=True)
            customer_id = await self._create_customer(
                name=user.full_name,
                email=user.email,
                cpf=user.cpf,
                external_reference=f"student_{user.id}",
            )
            return CustomerRegistration(customer_id=customer_id, already_exists=False)
        except Exception as exc:
            placeholder = synthetic_id("cus_error_")
            logger.error(
                "asaas_customer_register_failed",
                email=user.email,
                placeholder_id=placeholder,
                error=str(exc),
            )
            return CustomerRegistration(customer_id=placeholder, already_exists=False)

    async def _create_customer(
        self,
        *,
        name: str,
        email: Optional[str],
        cpf: Optional[str],
        external_reference: str,
    ) -> str:
        payload: dict[str, Any] = {
            "name": name,
            "email": email,
            "externalReference": external_reference,
        }
        document = digits_only(cpf)
        if document:
            payload["cpfCnpj"] = document
        data = self._expect_object(
            await self._request("POST", "/customers", headers=self._headers, json=payload),
            "Asaas customer response",
        )
        customer_id = str(data.get("id") or "")
        if not customer_id:
            raise ValueError("Asaas customer response without id")
        self._log("asaas_customer_created", email=email, customer_id=customer_id)
        return customer_id

    async def _get_or_create_customer(self, enrollment: Enrollment) -> str:
        student = enrollment.student
        if student is None or not student.email:
            raise PaymentCreationError(
                "Enrollment without payer email",
                provider=self.provider,
                enrollment_code=enrollment.code,
            )
        found = await self.check_student_exists(StudentLookup(email=student.email, cpf=student.cpf))
        if found.exists and found.customer_id:
            return found.customer_id
        return await self._create_customer(
            name=student.full_name or student.email,
            email=student.email,
            cpf=student.cpf,
            external_reference=f"student_{enrollment.student_id}",
        )

    def _require_amount(self, enrollment: Enrollment):
        amount = enrollment.payable_amount
        if amount <= 0:
            raise PaymentCreationError(
                "Enrollment amount must be greater than zero",
                provider=self.provider,
                enrollment_code=enrollment.code,
                details={"amount": str(amount)},
            )
        return amount

    # Simulation
    def _simulate_payment_creation(self, enrollment: Enrollment) -> PaymentCreated:
        self._require_amount(enrollment)
        external_id = synthetic_id("pay_")
        self._log("asaas_simulated_payment", enrollment_code=enrollment.code, amount=str(enrollment.payable_amount), external_id=external_id)
        return PaymentCreated(external_id=external_id, payment_url=f"https://api.asaas.com/payment/{external_id}")

    def _simulate_payment_status(self, external_id: str) -> PaymentStatus:
        return simulate_status(external_id)

    def _simulate_check_student(self, lookup: StudentLookup) -> CustomerLookup:
        customer_id = self._simulated_customers.find(lookup.email, lookup.cpf)
        return CustomerLookup(exists=customer_id is not None, customer_id=customer_id)

    def _simulate_register_student(self, user: StudentRegistration) -> CustomerRegistration:
        customer_id, existed = self._simulated_customers.register(user.email, user.cpf)
        self._log("asaas_simulated_customer", email=user.email, customer_id=customer_id, already_exists=existed)
        return CustomerRegistration(customer_id=customer_id, already_exists=existed)
