from datetime import datetime, timedelta, timezone

import pytest

from infrastructure.external.payments.exceptions import PaymentAuthenticationError, PaymentProviderError
from infrastructure.external.payments.lytex_token import AccessToken, LytexTokenManager


T0 = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, now=T0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


class FakeAuth:
    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    async def __call__(self, method, path, **kwargs):
        self.calls.append((method, path, kwargs.get("json")))
        response = self.responses[min(len(self.calls), len(self.responses)) - 1]
        if isinstance(response, Exception):
            raise response
        return response


def _manager(auth, clock, **kwargs):
    return LytexTokenManager(auth, client_id="cid", client_secret="secret", clock=clock, **kwargs)


@pytest.mark.asyncio
async def test_token_reused_until_margin_then_refreshed_once():
    clock = FakeClock()
    auth = FakeAuth(
        {"accessToken": "tok-1", "expireAt": (T0 + timedelta(hours=1)).isoformat()},
        {"accessToken": "tok-2", "expireAt": (T0 + timedelta(hours=2)).isoformat()},
    )
    tokens = _manager(auth, clock)

    assert await tokens.acquire() == "tok-1"
    clock.advance(minutes=30)
    assert await tokens.acquire() == "tok-1"
    assert len(auth.calls) == 1

    # inside the 5 minute safety margin
    clock.advance(minutes=26)
    assert await tokens.acquire() == "tok-2"
    assert await tokens.acquire() == "tok-2"
    assert len(auth.calls) == 2

    method, path, body = auth.calls[0]
    assert (method, path) == ("POST", "/v2/auth/obtain_token")
    assert body == {"grantType": "clientCredentials", "clientId": "cid", "clientSecret": "secret"}


@pytest.mark.asyncio
async def test_expire_at_with_zulu_suffix():
    clock = FakeClock()
    auth = FakeAuth({"accessToken": "tok", "expireAt": "2024-03-01T13:00:00.000Z"})
    tokens = _manager(auth, clock)
    await tokens.acquire()
    assert tokens.token.expiry == T0 + timedelta(hours=1)


@pytest.mark.asyncio
async def test_expires_in_and_default_ttl():
    clock = FakeClock()
    tokens = _manager(FakeAuth({"accessToken": "tok", "expiresIn": 900}), clock)
    await tokens.acquire()
    assert tokens.token.expiry == T0 + timedelta(seconds=900)

    tokens = _manager(FakeAuth({"accessToken": "tok"}), clock)
    await tokens.acquire()
    assert tokens.token.expiry == T0 + timedelta(minutes=30)


def test_short_lived_token_uses_half_lifetime_as_margin():
    token = AccessToken(token="t", expiry=T0 + timedelta(minutes=4), issued_at=T0)
    margin = timedelta(minutes=5)
    assert token.effective_margin(margin) == timedelta(minutes=2)
    assert token.is_valid(T0 + timedelta(minutes=1), margin)
    assert not token.is_valid(T0 + timedelta(minutes=2), margin)


@pytest.mark.asyncio
async def test_invalidate_forces_refresh():
    clock = FakeClock()
    auth = FakeAuth({"accessToken": "tok", "expiresIn": 3600})
    tokens = _manager(auth, clock)
    await tokens.acquire()
    assert tokens.is_valid()

    tokens.invalidate()
    assert not tokens.is_valid()
    await tokens.acquire()
    assert len(auth.calls) == 2


@pytest.mark.asyncio
async def test_failure_to_obtain_raises_authentication_error():
    clock = FakeClock()
    tokens = _manager(FakeAuth(PaymentProviderError("bad", provider="lytex", status_code=400)), clock)
    with pytest.raises(PaymentAuthenticationError):
        await tokens.acquire()

    tokens = _manager(FakeAuth({"expireAt": T0.isoformat()}), clock)
    with pytest.raises(PaymentAuthenticationError):
        await tokens.acquire()
    assert tokens.token is None
