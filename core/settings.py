"""
Payment-related settings using pydantic-settings v2 with nested env keys.

Kept apart from core.config.Settings so billing credentials can be loaded
(and overridden in tests) independently of the application settings.
Missing credentials are not an error: the affected provider runs in
simulation mode.
"""
from __future__ import annotations

from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import BaseModel, Field


class PaymentTimeouts(BaseModel):
    connect: float = 2.0
    read: float = 10.0
    write: float = 10.0
    total: float = 15.0


class PaymentRetry(BaseModel):
    max: int = 2
    base_backoff: float = 0.2


class AsaasSettings(BaseModel):
    api_key: Optional[str] = None
    api_url: str = "https://api.asaas.com/v3"
    due_days: int = 7


class LytexSettings(BaseModel):
    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    api_url: str = "https://api-pay.lytex.com.br"
    checkout_url: str = "https://pay.lytex.com.br/checkout"
    token_safety_margin_seconds: int = 300
    default_token_ttl_seconds: int = 1800
    due_days: int = 5


class PaymentSettings(BaseSettings):
    default_provider: str = Field(default="asaas", validation_alias="PAYMENT__DEFAULT_PROVIDER")
    timeouts: PaymentTimeouts = Field(default_factory=PaymentTimeouts)
    retry: PaymentRetry = Field(default_factory=PaymentRetry)

    asaas: AsaasSettings = Field(default_factory=AsaasSettings)
    lytex: LytexSettings = Field(default_factory=LytexSettings)

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
        env_nested_delimiter="__",
    )


payment_settings = PaymentSettings()
