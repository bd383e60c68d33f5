"""
Factory for payment gateway clients.

Providers are registered by name (plus aliases) and instantiated lazily.
Instances are cached for the process lifetime so per-adapter state, such as
the Lytex bearer token, is shared across requests.
"""
from __future__ import annotations

from typing import Callable, Iterable, Optional

from application.ports.payment_gateway import PaymentGateway
from core.logging_config import get_logger
from core.settings import payment_settings
from infrastructure.external.payments.exceptions import UnsupportedPaymentProviderError


logger = get_logger(__name__)

GatewayFactory = Callable[[], PaymentGateway]

_factories: dict[str, GatewayFactory] = {}
_aliases: dict[str, str] = {}
_instances: dict[str, PaymentGateway] = {}


def register_payment_gateway(name: str, factory: GatewayFactory, aliases: Iterable[str] = ()) -> None:
    """Register (or replace) a provider; a replaced provider drops its cached instance."""
    key = name.strip().lower()
    _factories[key] = factory
    _aliases[key] = key
    for alias in aliases:
        _aliases[alias.strip().lower()] = key
    _instances.pop(key, None)


def resolve_provider_name(provider: Optional[str] = None) -> str:
    name = (provider or payment_settings.default_provider or "").strip().lower()
    key = _aliases.get(name)
    if key is None:
        raise UnsupportedPaymentProviderError(name)
    return key


def get_payment_gateway(provider: Optional[str] = None) -> PaymentGateway:
    key = resolve_provider_name(provider)
    gateway = _instances.get(key)
    if gateway is None:
        gateway = _factories[key]()
        _instances[key] = gateway
        logger.info("payment_gateway_created", provider=key, simulated=gateway.simulated)
    return gateway


def available_providers() -> list[str]:
    return sorted(_factories)


async def shutdown_payment_gateways() -> None:
    """Close every cached adapter and empty the cache."""
    instances = list(_instances.values())
    _instances.clear()
    for gateway in instances:
        await gateway.aclose()


def _asaas() -> PaymentGateway:
    from .asaas_client import AsaasClient
    return AsaasClient()


def _lytex() -> PaymentGateway:
    from .lytex_client import LytexClient
    return LytexClient()


register_payment_gateway("asaas", _asaas)
register_payment_gateway("lytex", _lytex)
