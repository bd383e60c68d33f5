"""
Payment specific codes and provider status mapping.

Every table maps a provider vocabulary onto the four canonical enrollment
states: active, pending_payment, suspended, cancelled. Lookups that miss
fall back to ``DEFAULT_INTERNAL_STATUS``.
"""
from __future__ import annotations

from enum import IntEnum


class PaymentCode(IntEnum):
    # Provider/Network errors (6xxxx)
    PROVIDER_ERROR = 60000
    PROVIDER_RECOVERABLE = 60001
    AUTHENTICATION_ERROR = 60002
    PAYMENT_CREATION_FAILED = 60005
    UNSUPPORTED_PROVIDER = 60006

    # Inbound notifications (61xxx)
    WEBHOOK_PARSE_ERROR = 61000

    # Local records (62xxx)
    PAYMENT_RECORD_NOT_FOUND = 62000


DEFAULT_INTERNAL_STATUS = "pending_payment"


# Provider -> internal status mapping used when polling a charge
PROVIDER_STATUS_TO_INTERNAL = {
    "asaas": {
        # Per payment.status
        "CONFIRMED": "active",
        "RECEIVED": "active",
        "RECEIVED_IN_CASH": "active",
        "PENDING": "pending_payment",
        "AWAITING": "pending_payment",
        "OVERDUE": "suspended",
        "REFUNDED": "cancelled",
        "CHARGEBACK_REQUESTED": "cancelled",
        "CHARGEBACK_DISPUTE": "cancelled",
        "CHARGEBACK_REVERSED": "cancelled",
        "DELETED": "cancelled",
    },
    "lytex": {
        # Per invoice status (lower-cased before lookup)
        "paid": "active",
        "unpaid": "pending_payment",
        "waiting_payment": "pending_payment",
        "expired": "suspended",
        "canceled": "cancelled",
        "refunded": "cancelled",
    },
}


# Provider -> internal status mapping used when decoding webhooks
PROVIDER_WEBHOOK_TO_INTERNAL = {
    "asaas": {
        # Per event name
        "PAYMENT_CONFIRMED": "active",
        "PAYMENT_RECEIVED": "active",
        "PAYMENT_OVERDUE": "suspended",
        "PAYMENT_DELETED": "cancelled",
        "PAYMENT_REFUNDED": "cancelled",
    },
    "lytex": {
        **PROVIDER_STATUS_TO_INTERNAL["lytex"],
        # Older notification payloads use a wider vocabulary
        "approved": "active",
        "complete": "active",
        "completed": "active",
        "pending": "pending_payment",
        "processing": "pending_payment",
        "cancelled": "cancelled",
        "failed": "cancelled",
    },
}
