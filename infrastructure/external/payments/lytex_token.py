"""
Lytex bearer-token lifecycle.

Tokens come from ``POST /v2/auth/obtain_token`` (client credentials) and are
reused while ``now < expiry - margin``. For tokens that live less than twice
the configured margin, the margin shrinks to half of the token lifetime so a
freshly obtained token is always usable at least once.

Refreshes are not serialized: two concurrent callers may both obtain a token,
the last one wins.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Callable, Optional

from core.logging_config import get_logger
from infrastructure.external.payments.exceptions import (
    PaymentAuthenticationError,
    PaymentProviderError,
)


logger = get_logger(__name__)

TOKEN_PATH = "/v2/auth/obtain_token"

Clock = Callable[[], datetime]
Requester = Callable[..., Awaitable[Any]]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_expire_at(value: Any) -> Optional[datetime]:
    if not isinstance(value, str) or not value.strip():
        return None
    raw = value.strip()
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(raw)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass(frozen=True)
class AccessToken:
    token: str
    expiry: datetime
    issued_at: datetime

    @property
    def lifetime(self) -> timedelta:
        return self.expiry - self.issued_at

    def effective_margin(self, margin: timedelta) -> timedelta:
        if self.lifetime < margin * 2:
            return max(self.lifetime / 2, timedelta(0))
        return margin

    def is_valid(self, now: datetime, margin: timedelta) -> bool:
        return now < self.expiry - self.effective_margin(margin)


class LytexTokenManager:
    """Owns the current Lytex token for one adapter instance."""

    def __init__(
        self,
        request: Requester,
        *,
        client_id: str,
        client_secret: str,
        safety_margin_seconds: int = 300,
        default_ttl_seconds: int = 1800,
        clock: Optional[Clock] = None,
    ) -> None:
        self._request = request
        self._client_id = client_id
        self._client_secret = client_secret
        self._margin = timedelta(seconds=safety_margin_seconds)
        self._default_ttl = timedelta(seconds=default_ttl_seconds)
        self._clock = clock or _utcnow
        self._current: Optional[AccessToken] = None

    @property
    def token(self) -> Optional[AccessToken]:
        return self._current

    def is_valid(self) -> bool:
        return self._current is not None and self._current.is_valid(self._clock(), self._margin)

    def invalidate(self) -> None:
        self._current = None

    async def acquire(self) -> str:
        """Return a usable bearer token, obtaining a new one when needed."""
        if self.is_valid():
            return self._current.token
        self._current = await self._obtain()
        return self._current.token

    async def _obtain(self) -> AccessToken:
        payload = {
            "grantType": "clientCredentials",
            "clientId": self._client_id,
            "clientSecret": self._client_secret,
        }
        try:
            data = await self._request("POST", TOKEN_PATH, json=payload)
        except PaymentAuthenticationError:
            raise
        except PaymentProviderError as exc:
            logger.error("lytex_token_request_failed", error=str(exc), status_code=exc.status_code)
            raise PaymentAuthenticationError(
                "Failed to obtain Lytex access token",
                provider="lytex",
                status_code=exc.status_code,
                details=exc.details,
            ) from exc

        access_token = (data or {}).get("accessToken")
        if not access_token:
            raise PaymentAuthenticationError("Lytex token response without accessToken", provider="lytex")

        now = self._clock()
        expiry = self._expiry_from(data, now)
        logger.info("lytex_token_obtained", expires_at=expiry.isoformat())
        return AccessToken(token=access_token, expiry=expiry, issued_at=now)

    def _expiry_from(self, data: dict, now: datetime) -> datetime:
        expire_at = _parse_expire_at(data.get("expireAt"))
        if expire_at is not None:
            return expire_at
        expires_in = data.get("expiresIn")
        if isinstance(expires_in, (int, float)) and not isinstance(expires_in, bool) and expires_in > 0:
            return now + timedelta(seconds=expires_in)
        return now + self._default_ttl
