"""
Lytex adapter (API v2 with OAuth-like client credentials).

Amounts travel in minor units (centavos). Invoice creation never fails the
enrollment flow: a live failure degrades to a simulated ``lytex_`` charge.
"""
from __future__ import annotations

from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Mapping, Optional

import httpx

from application.dtos.payments import (
    CustomerLookup,
    CustomerRegistration,
    Enrollment,
    PaymentCreated,
    StudentInfo,
    StudentLookup,
    StudentRegistration,
    WebhookResult,
)
from core.logging_config import get_logger
from core.settings import LytexSettings, payment_settings
from domain.payment.entity import PaymentStatus
from infrastructure.external.payments.base import BasePaymentClient, digits_only
from infrastructure.external.payments.exceptions import (
    PaymentAuthenticationError,
    PaymentCreationError,
    PaymentProviderError,
    WebhookParseError,
)
from infrastructure.external.payments.lytex_token import Clock, LytexTokenManager
from infrastructure.external.payments.simulation import (
    SimulatedCustomerBook,
    simulate_status,
    synthetic_id,
    with_simulation_fallback,
)
from infrastructure.external.payments.webhooks import parse_lytex_webhook


logger = get_logger(__name__)

CREDIT_CARD_MIN_AMOUNT = Decimal("500.00")
CREDIT_CARD_MAX_PARCELS = 6
BOLETO_DUE_DATE_DAYS = 3
SIMULATED_PREFIX = "lytex_"


def to_minor_units(amount: Any) -> int:
    """Convert a currency amount to centavos, rounding half up.

    >>> to_minor_units(199.90)
    19990
    >>> to_minor_units(10.005)
    1001
    """
    value = Decimal(str(amount)) * 100
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def credit_card_config(amount: Decimal) -> dict[str, Any]:
    if Decimal(str(amount)) >= CREDIT_CARD_MIN_AMOUNT:
        return {"enable": True, "maxParcels": CREDIT_CARD_MAX_PARCELS, "isRatesToPayer": True}
    return {"enable": False}


def payment_methods_for(amount: Decimal) -> dict[str, Any]:
    return {
        "pix": {"enable": True},
        "boleto": {"enable": True, "dueDateDays": BOLETO_DUE_DATE_DAYS},
        "creditCard": credit_card_config(amount),
    }


class LytexClient(BasePaymentClient):
    provider = "lytex"

    def __init__(
        self,
        config: Optional[LytexSettings] = None,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Optional[Clock] = None,
    ):
        self.config = config or payment_settings.lytex
        super().__init__(
            base_url=self.config.api_url,
            timeouts=payment_settings.timeouts.model_dump(),
            retry={"max": payment_settings.retry.max, "base": payment_settings.retry.base_backoff},
            transport=transport,
        )
        self.tokens = LytexTokenManager(
            self._request,
            client_id=self.config.client_id or "",
            client_secret=self.config.client_secret or "",
            safety_margin_seconds=self.config.token_safety_margin_seconds,
            default_ttl_seconds=self.config.default_token_ttl_seconds,
            clock=clock,
        )
        self._simulated_customers = SimulatedCustomerBook("lytex_cus_")
        if self.simulated:
            logger.warning("lytex_simulation_mode", message="LYTEX__CLIENT_ID or LYTEX__CLIENT_SECRET not configured")
        else:
            logger.info("lytex_gateway_configured", api_url=self.base_url, client_id=self.config.client_id)

    @property
    def simulated(self) -> bool:
        return not (self.config.client_id and self.config.client_secret)

    def _normalize_status(self, provider_status: Any) -> str:
        return super()._normalize_status(provider_status).lower()

    async def _authorized(self, method: str, path: str, **kwargs) -> Any:
        token = await self.tokens.acquire()
        headers = {"Authorization": f"Bearer {token}", "Content-Type": "application/json"}
        try:
            return await self._request(method, path, headers=headers, **kwargs)
        except PaymentAuthenticationError:
            # Revoked before expiry; next call obtains a fresh token
            self.tokens.invalidate()
            raise

    # Payments
    @with_simulation_fallback(
        "_simulate_payment_creation",
        on_error=True,
        passthrough=(PaymentCreationError,),
    )
    async def create_payment(self, enrollment: Enrollment) -> PaymentCreated:
        amount = self._require_amount(enrollment)
        client = await self._resolve_invoice_client(enrollment)
        payload = {
            "client": client,
            "items": [
                {
                    "name": f"Matrícula - {enrollment.course.name}",
                    "description": f"Matrícula {enrollment.code}",
                    "quantity": 1,
                    "value": to_minor_units(amount),
                }
            ],
            "dueDate": (date.today() + timedelta(days=self.config.due_days)).isoformat(),
            "paymentMethods": payment_methods_for(amount),
            "externalReference": enrollment.code,
        }
        data = self._expect_object(
            await self._authorized("POST", "/v2/invoices", json=payload),
            "Lytex invoice response",
        )
        external_id = str(data.get("_id") or "")
        if not external_id:
            raise PaymentProviderError("Lytex invoice response without _id", provider=self.provider)
        payment_url = data.get("linkCheckout") or f"{self.config.checkout_url.rstrip('/')}/{external_id}"
        self._log("lytex_invoice_created", enrollment_code=enrollment.code, external_id=external_id)
        return PaymentCreated(external_id=external_id, payment_url=payment_url)

    @with_simulation_fallback("_simulate_payment_status")
    async def get_payment_status(self, external_id: str) -> PaymentStatus:
        try:
            data = self._expect_object(
                await self._authorized(
                    "GET",
                    f"/v2/payments/{external_id}",
                    params={"clientId": self.config.client_id},
                ),
                "Lytex payment status response",
            )
        except Exception as exc:
            logger.warning("lytex_payment_status_failed", external_id=external_id, error=str(exc))
            return PaymentStatus.PENDING_PAYMENT
        raw = data.get("status") or data.get("paymentStatus")
        status = self._map_status(raw)
        self._log("lytex_payment_status", external_id=external_id, provider_status=raw, status=status.value)
        return status

    def process_webhook(self, payload: Mapping[str, Any]) -> WebhookResult:
        event = parse_lytex_webhook(payload)
        if not event.external_id or not event.raw_status:
            raise WebhookParseError(
                "Lytex webhook without payment id or status",
                provider=self.provider,
                details={"version": event.version},
            )
        status = self._map_status(event.raw_status, webhook=True)
        self._log(
            "lytex_webhook_processed",
            external_id=event.external_id,
            version=event.version,
            provider_status=event.raw_status,
            status=status.value,
        )
        return WebhookResult(status=status, external_id=event.external_id)

    # Customers
    @with_simulation_fallback("_simulate_check_student")
    async def check_student_exists(self, lookup: StudentLookup) -> CustomerLookup:
        try:
            customer_id = await self._find_client(lookup.email, lookup.cpf)
        except Exception as exc:
            logger.warning("lytex_client_lookup_failed", email=lookup.email, error=str(exc))
            return CustomerLookup(exists=False)
        return CustomerLookup(exists=customer_id is not None, customer_id=customer_id)

    @with_simulation_fallback("_simulate_register_student")
    async def register_student(self, user: StudentRegistration) -> CustomerRegistration:
        try:
            found = await self.check_student_exists(StudentLookup(email=user.email, cpf=user.cpf))
            if found.exists and found.customer_id:
                self._log("lytex_client_already_exists", email=user.email, customer_id=found.customer_id)
                return CustomerRegistration(customer_id=found.customer_id, already_exists=True)
            try:
                customer_id = await self._create_client(user.full_name, user.email, user.cpf)
            except PaymentProviderError as exc:
                placeholder = synthetic_id("lytex_tmp_")
                logger.warning(
                    "lytex_client_create_failed",
                    email=user.email,
                    placeholder_id=placeholder,
                    status_code=exc.status_code,
                    error=str(exc),
                )
                return CustomerRegistration(customer_id=placeholder, already_exists=False)
            return CustomerRegistration(customer_id=customer_id, already_exists=False)
        except Exception as exc:
            placeholder = synthetic_id("lytex_err_")
            logger.error("lytex_client_register_failed", email=user.email, placeholder_id=placeholder, error=str(exc))
            return CustomerRegistration(customer_id=placeholder, already_exists=False)

    async def _find_client(self, email: Optional[str], cpf: Optional[str]) -> Optional[str]:
        document = digits_only(cpf)
        params = {"cpfCnpj": document} if len(document) >= 11 else {"email": email}
        try:
            data = await self._authorized("GET", "/v2/clients", params=params)
        except PaymentProviderError as exc:
            if exc.status_code == 404:
                return None
            raise
        if isinstance(data, Mapping):
            clients = data.get("data") or data.get("results") or []
        else:
            clients = data or []
        if not isinstance(clients, list):
            return None
        for client in clients:
            if not isinstance(client, Mapping):
                continue
            client_id = client.get("_id") or client.get("id")
            if client_id:
                return str(client_id)
        return None

    async def _create_client(self, name: Optional[str], email: Optional[str], cpf: Optional[str]) -> str:
        data = self._expect_object(
            await self._authorized("POST", "/v2/clients", json=self._client_payload(name, email, cpf)),
            "Lytex client response",
        )
        customer_id = str(data.get("_id") or data.get("id") or "")
        if not customer_id:
            raise PaymentProviderError("Lytex client response without id", provider=self.provider)
        self._log("lytex_client_created", email=email, customer_id=customer_id)
        return customer_id

    @staticmethod
    def _client_payload(name: Optional[str], email: Optional[str], cpf: Optional[str]) -> dict[str, Any]:
        return {
            "name": name or email,
            "type": "pf",
            "treatmentPronoun": "you",
            "cpfCnpj": digits_only(cpf),
            "email": email,
        }

    async def _resolve_invoice_client(self, enrollment: Enrollment) -> dict[str, Any]:
        student = enrollment.student or StudentInfo()
        found = await self.check_student_exists(StudentLookup(email=student.email or "", cpf=student.cpf))
        if found.exists and found.customer_id:
            return {"_id": found.customer_id}
        try:
            return {"_id": await self._create_client(student.full_name, student.email, student.cpf)}
        except PaymentProviderError as exc:
            logger.warning("lytex_inline_client", enrollment_code=enrollment.code, error=str(exc))
        return {"_id": None, **self._client_payload(student.full_name, student.email, student.cpf)}

    def _require_amount(self, enrollment: Enrollment) -> Decimal:
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
        external_id = synthetic_id(SIMULATED_PREFIX)
        self._log("lytex_simulated_invoice", enrollment_code=enrollment.code, external_id=external_id)
        return PaymentCreated(
            external_id=external_id,
            payment_url=f"{self.config.checkout_url.rstrip('/')}/{external_id}",
        )

    def _simulate_payment_status(self, external_id: str) -> PaymentStatus:
        return simulate_status(external_id)

    def _simulate_check_student(self, lookup: StudentLookup) -> CustomerLookup:
        customer_id = self._simulated_customers.find(lookup.email, lookup.cpf)
        return CustomerLookup(exists=customer_id is not None, customer_id=customer_id)

    def _simulate_register_student(self, user: StudentRegistration) -> CustomerRegistration:
        customer_id, existed = self._simulated_customers.register(user.email, user.cpf)
        self._log("lytex_simulated_client", email=user.email, customer_id=customer_id, already_exists=existed)
        return CustomerRegistration(customer_id=customer_id, already_exists=existed)
