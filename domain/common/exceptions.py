"""Domain-level business exceptions shared by the domain and infrastructure layers.

The core layer only maps these onto HTTP responses; the domain never imports
core back.
"""
from __future__ import annotations

from typing import Optional
from shared.codes import BusinessCode
from shared.codes.payment_codes import PaymentCode


class BusinessException(Exception):
    """Base class for business exceptions."""

    def __init__(
        self,
        code: int,
        message: str,
        error_type: str = "BusinessError",
        details: Optional[dict] = None,
        field: Optional[str] = None,
    ) -> None:
        self.code = code
        self.message = message
        self.error_type = error_type
        self.details = details
        self.field = field
        super().__init__(self.message)


class DomainValidationException(BusinessException):
    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        details: dict | None = None,
    ):
        super().__init__(
            code=BusinessCode.PARAM_VALIDATION_ERROR,
            message=message,
            error_type="DomainValidationError",
            details=details,
            field=field,
        )


class PaymentRecordNotFoundException(BusinessException):
    def __init__(self, external_id: str, *, provider: Optional[str] = None):
        details = {"external_id": external_id}
        if provider:
            details["provider"] = provider
        super().__init__(
            code=PaymentCode.PAYMENT_RECORD_NOT_FOUND,
            message="Payment record not found",
            error_type="PaymentRecordNotFound",
            details=details,
        )


class PaymentRecordAlreadyExistsException(BusinessException):
    def __init__(self, external_id: str, *, provider: str):
        super().__init__(
            code=BusinessCode.BUSINESS_ERROR,
            message=f"Payment {external_id} already recorded for {provider}",
            error_type="PaymentRecordAlreadyExists",
            details={"external_id": external_id, "provider": provider},
        )
