"""
Exceptions for payment providers mapped to unified BusinessException variants.
"""
from __future__ import annotations

from typing import Optional
from domain.common.exceptions import BusinessException
from shared.codes.payment_codes import PaymentCode


class PaymentProviderError(BusinessException):
    def __init__(
        self,
        message: str,
        *,
        provider: str,
        provider_code: str | None = None,
        status_code: int | None = None,
        details: Optional[dict] = None,
        code: int = PaymentCode.PROVIDER_ERROR,
        error_type: str = "PaymentProviderError",
    ):
        full_details = {"provider": provider, "provider_code": provider_code, "status_code": status_code}
        if details:
            full_details.update(details)
        self.provider = provider
        self.status_code = status_code
        super().__init__(
            code=code,
            message=message,
            error_type=error_type,
            details=full_details,
        )


class PaymentRecoverableError(PaymentProviderError):
    """Timeouts, 429 and 5xx: worth retrying the whole flow later."""

    def __init__(self, message: str, *, provider: str, status_code: int | None = None, details: Optional[dict] = None):
        super().__init__(
            message,
            provider=provider,
            status_code=status_code,
            details=details,
            code=PaymentCode.PROVIDER_RECOVERABLE,
            error_type="PaymentRecoverableError",
        )


class PaymentAuthenticationError(PaymentProviderError):
    def __init__(self, message: str, *, provider: str, status_code: int | None = None, details: Optional[dict] = None):
        super().__init__(
            message,
            provider=provider,
            status_code=status_code,
            details=details,
            code=PaymentCode.AUTHENTICATION_ERROR,
            error_type="PaymentAuthenticationError",
        )


class PaymentCreationError(BusinessException):
    def __init__(self, message: str, *, provider: str, enrollment_code: str | None = None, details: Optional[dict] = None):
        full_details = {"provider": provider, "enrollment_code": enrollment_code}
        if details:
            full_details.update(details)
        super().__init__(
            code=PaymentCode.PAYMENT_CREATION_FAILED,
            message=message,
            error_type="PaymentCreationError",
            details=full_details,
        )


class WebhookParseError(BusinessException):
    def __init__(self, message: str, *, provider: str, details: Optional[dict] = None):
        full_details = {"provider": provider}
        if details:
            full_details.update(details)
        super().__init__(
            code=PaymentCode.WEBHOOK_PARSE_ERROR,
            message=message,
            error_type="WebhookParseError",
            details=full_details,
        )


class UnsupportedPaymentProviderError(BusinessException):
    def __init__(self, provider: str):
        super().__init__(
            code=PaymentCode.UNSUPPORTED_PROVIDER,
            message=f"Unsupported payment provider: {provider}",
            error_type="UnsupportedPaymentProvider",
            details={"provider": provider},
            field="provider",
        )
