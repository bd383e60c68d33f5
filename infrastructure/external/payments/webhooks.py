"""
Typed webhook payloads per provider and API version.

Asaas posts a single shape: ``{"event": ..., "payment": {"id": ..., ...}}``.

Lytex has shipped two shapes over time:

- v1: flat, ``{"id"|"paymentId": ..., "status"|"paymentStatus": ...}``
- v2: the same fields wrapped under ``data`` or ``event``

``parse_lytex_webhook`` probes for the wrapper and returns the matching
variant, so the tolerance of the parser is explicit rather than scattered
field lookups.
"""
from __future__ import annotations

from typing import Any, Literal, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from infrastructure.external.payments.exceptions import WebhookParseError


def _coerce_id(v: Any) -> Any:
    # Providers send numeric ids in some notifications
    if isinstance(v, (int, float)) and not isinstance(v, bool):
        return str(v)
    return v


class AsaasWebhookPayment(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str = Field(min_length=1)
    status: Optional[str] = None
    externalReference: Optional[str] = None

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> Any:
        return _coerce_id(v)


class AsaasWebhook(BaseModel):
    model_config = ConfigDict(extra="allow")

    event: str = Field(min_length=1)
    payment: AsaasWebhookPayment


class LytexPaymentFields(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: Optional[str] = None
    payment_id: Optional[str] = Field(default=None, alias="paymentId")
    status: Optional[str] = None
    payment_status: Optional[str] = Field(default=None, alias="paymentStatus")

    @field_validator("id", "payment_id", mode="before")
    @classmethod
    def coerce_ids(cls, v: Any) -> Any:
        return _coerce_id(v)

    @property
    def external_id(self) -> Optional[str]:
        return self.id or self.payment_id

    @property
    def raw_status(self) -> Optional[str]:
        return self.status or self.payment_status


class LytexWebhookV1(LytexPaymentFields):
    version: Literal["v1"] = "v1"


class LytexWebhookV2(BaseModel):
    version: Literal["v2"] = "v2"
    wrapper: Literal["data", "event"]
    body: LytexPaymentFields

    @property
    def external_id(self) -> Optional[str]:
        return self.body.external_id

    @property
    def raw_status(self) -> Optional[str]:
        return self.body.raw_status


LytexWebhook = Union[LytexWebhookV1, LytexWebhookV2]


def _require_mapping(payload: Any, provider: str) -> Mapping[str, Any]:
    if not isinstance(payload, Mapping):
        raise WebhookParseError("Webhook payload must be a JSON object", provider=provider)
    return payload


def parse_asaas_webhook(payload: Any) -> AsaasWebhook:
    payload = _require_mapping(payload, "asaas")
    if not payload.get("event") or not isinstance(payload.get("payment"), Mapping):
        raise WebhookParseError(
            "Asaas webhook without event or payment",
            provider="asaas",
            details={"keys": sorted(payload.keys())},
        )
    try:
        return AsaasWebhook.model_validate(payload)
    except ValidationError as exc:
        raise WebhookParseError(
            "Invalid Asaas webhook payload",
            provider="asaas",
            details={"errors": exc.errors(include_url=False)},
        ) from exc


def parse_lytex_webhook(payload: Any) -> LytexWebhook:
    payload = _require_mapping(payload, "lytex")
    try:
        for wrapper in ("data", "event"):
            inner = payload.get(wrapper)
            if isinstance(inner, Mapping):
                return LytexWebhookV2(wrapper=wrapper, body=LytexPaymentFields.model_validate(inner))
        return LytexWebhookV1.model_validate(payload)
    except ValidationError as exc:
        raise WebhookParseError(
            "Invalid Lytex webhook payload",
            provider="lytex",
            details={"errors": exc.errors(include_url=False)},
        ) from exc
