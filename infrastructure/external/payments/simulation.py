"""
Simulation mode shared by every billing adapter.

An adapter without credentials (or, for selected operations, one whose live
call failed) answers with synthetic data instead of talking to the provider.
Synthetic ids keep a provider prefix so they can be told apart from real
charges in logs and stored records.

Simulated status is derived from the last character of the id:
``1`` active, ``2`` pending_payment, ``3`` suspended, ``4`` cancelled,
anything else pending_payment.
"""
from __future__ import annotations

import functools
import inspect
import uuid
from typing import Any, Callable, Optional

from core.logging_config import get_logger
from domain.payment.entity import PaymentStatus
from infrastructure.external.payments.base import digits_only


logger = get_logger(__name__)

_STATUS_BY_SUFFIX = {
    "1": PaymentStatus.ACTIVE,
    "2": PaymentStatus.PENDING_PAYMENT,
    "3": PaymentStatus.SUSPENDED,
    "4": PaymentStatus.CANCELLED,
}


def synthetic_id(prefix: str) -> str:
    return f"{prefix}{uuid.uuid4().hex[:13]}"


def simulate_status(external_id: str) -> PaymentStatus:
    return _STATUS_BY_SUFFIX.get((external_id or "")[-1:], PaymentStatus.PENDING_PAYMENT)


async def _maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


def with_simulation_fallback(
    fallback: str,
    *,
    on_error: bool = False,
    passthrough: tuple[type[BaseException], ...] = (),
) -> Callable:
    """Route an adapter coroutine to ``self.<fallback>`` when simulating.

    With ``on_error=True`` the fallback also answers when the live call
    raises, except for exception types listed in ``passthrough``.
    """

    def decorator(fn: Callable) -> Callable:
        @functools.wraps(fn)
        async def wrapper(self, *args, **kwargs):
            simulate = getattr(self, fallback)
            if self.simulated:
                logger.debug("simulation_mode", provider=self.provider, operation=fn.__name__)
                return await _maybe_await(simulate(*args, **kwargs))
            if not on_error:
                return await fn(self, *args, **kwargs)
            try:
                return await fn(self, *args, **kwargs)
            except passthrough:
                raise
            except Exception as exc:
                logger.warning(
                    "simulation_fallback",
                    provider=self.provider,
                    operation=fn.__name__,
                    error=str(exc),
                    error_type=type(exc).__name__,
                )
                return await _maybe_await(simulate(*args, **kwargs))

        return wrapper

    return decorator


class SimulatedCustomerBook:
    """In-memory customer directory used while an adapter is simulated.

    Keyed by (lower-cased email, CPF digits) so repeated registrations of the
    same payer resolve to the same synthetic id.
    """

    def __init__(self, prefix: str) -> None:
        self._prefix = prefix
        self._customers: dict[tuple[str, str], str] = {}

    @staticmethod
    def _key(email: Optional[str], cpf: Optional[str]) -> tuple[str, str]:
        return (email or "").strip().lower(), digits_only(cpf)

    def find(self, email: Optional[str], cpf: Optional[str] = None) -> Optional[str]:
        return self._customers.get(self._key(email, cpf))

    def register(self, email: Optional[str], cpf: Optional[str] = None) -> tuple[str, bool]:
        """Return (customer_id, already_existed)."""
        key = self._key(email, cpf)
        existing = self._customers.get(key)
        if existing:
            return existing, True
        customer_id = synthetic_id(self._prefix)
        self._customers[key] = customer_id
        return customer_id, False
