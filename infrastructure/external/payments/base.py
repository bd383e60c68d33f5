"""
Base payment client implementing shared concerns: http, retry, logging, mapping.

Concrete providers subclass it and implement provider-specific logic.
"""
from __future__ import annotations

import re
from typing import Any, Callable, Mapping, Optional
from contextlib import asynccontextmanager

import httpx
from tenacity import AsyncRetrying, stop_after_attempt, wait_exponential, retry_if_exception_type

from core.logging_config import get_logger
from domain.payment.entity import PaymentStatus
from infrastructure.external.payments.exceptions import (
    PaymentAuthenticationError,
    PaymentProviderError,
    PaymentRecoverableError,
)
from shared.codes.payment_codes import (
    DEFAULT_INTERNAL_STATUS,
    PROVIDER_STATUS_TO_INTERNAL,
    PROVIDER_WEBHOOK_TO_INTERNAL,
)


logger = get_logger(__name__)

RECOVERABLE_STATUS_CODES = {429, 500, 502, 503, 504}
_NON_DIGITS = re.compile(r"\D")


def digits_only(value: Optional[str]) -> str:
    """Strip CPF/CNPJ formatting ("123.456.789-09" -> "12345678909")."""
    return _NON_DIGITS.sub("", value or "")


class BasePaymentClient:
    provider: str = "base"

    def __init__(
        self,
        *,
        base_url: str,
        timeouts: Optional[dict[str, float]] = None,
        retry: Optional[dict[str, Any]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._timeouts_cfg = timeouts or {"connect": 2.0, "read": 10.0, "write": 10.0, "total": 15.0}
        self._retry_cfg = retry or {"max": 2, "base": 0.2}
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def simulated(self) -> bool:
        """True when credentials are missing; every call is then synthesized."""
        raise NotImplementedError

    @property
    def timeouts(self) -> httpx.Timeout:
        return httpx.Timeout(
            connect=self._timeouts_cfg["connect"],
            read=self._timeouts_cfg["read"],
            write=self._timeouts_cfg["write"],
            timeout=self._timeouts_cfg["total"],
        )

    @asynccontextmanager
    async def client(self):
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeouts,
                transport=self._transport,
            )
        try:
            yield self._client
        finally:
            # Keep open for reuse; explicit aclose() will close.
            ...

    async def aclose(self) -> None:
        """Close underlying HTTP client if created."""
        if self._client is not None:
            try:
                await self._client.aclose()
            finally:
                self._client = None

    async def _retry(self, fn: Callable[[], Any]):
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(int(self._retry_cfg["max"]) + 1),
            wait=wait_exponential(multiplier=self._retry_cfg["base"], min=0.1, max=2.0),
            retry=retry_if_exception_type((httpx.TimeoutException, httpx.TransportError)),
            reraise=True,
        ):
            with attempt:
                return await fn()

    async def _request(
        self,
        method: str,
        path: str,
        *,
        headers: Optional[Mapping[str, str]] = None,
        params: Optional[Mapping[str, Any]] = None,
        json: Any = None,
    ) -> Any:
        """Send a request and return the decoded JSON body.

        Transport failures and timeouts are retried, then surface as
        PaymentRecoverableError. HTTP errors are never retried here.
        """
        async def _send() -> httpx.Response:
            async with self.client() as http:
                return await http.request(method, path, headers=headers, params=params, json=json)

        try:
            response = await self._retry(_send)
        except httpx.TimeoutException as exc:
            raise PaymentRecoverableError(f"{method} {path} timed out", provider=self.provider) from exc
        except httpx.TransportError as exc:
            raise PaymentRecoverableError(f"{method} {path} failed: {exc}", provider=self.provider) from exc

        if response.status_code >= 400:
            self._raise_for_status(method, path, response)

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as exc:
            raise PaymentProviderError(
                f"{method} {path} returned a non-JSON body",
                provider=self.provider,
                status_code=response.status_code,
            ) from exc

    def _raise_for_status(self, method: str, path: str, response: httpx.Response) -> None:
        status_code = response.status_code
        try:
            body = response.json()
        except ValueError:
            body = response.text[:500]
        message = f"{method} {path} failed with status {status_code}"
        details = {"body": body}
        if status_code in RECOVERABLE_STATUS_CODES:
            raise PaymentRecoverableError(message, provider=self.provider, status_code=status_code, details=details)
        if status_code in (401, 403):
            raise PaymentAuthenticationError(message, provider=self.provider, status_code=status_code, details=details)
        raise PaymentProviderError(message, provider=self.provider, status_code=status_code, details=details)

    # Helpers
    def _expect_object(self, data: Any, what: str) -> Mapping[str, Any]:
        if not isinstance(data, Mapping):
            raise PaymentProviderError(
                f"{what} is not a JSON object",
                provider=self.provider,
                details={"body_type": type(data).__name__},
            )
        return data

    def _normalize_status(self, provider_status: Any) -> str:
        return str(provider_status or "").strip()

    def _map_status(self, provider_status: Any, *, webhook: bool = False) -> PaymentStatus:
        tables = PROVIDER_WEBHOOK_TO_INTERNAL if webhook else PROVIDER_STATUS_TO_INTERNAL
        mapping = tables.get(self.provider, {})
        internal = mapping.get(self._normalize_status(provider_status), DEFAULT_INTERNAL_STATUS)
        return PaymentStatus.from_value(internal)

    def _log(self, event: str, **kwargs) -> None:
        logger.info(
            event,
            provider=self.provider,
            **kwargs,
        )
