from decimal import Decimal

import pytest

from application.dtos.payments import Enrollment, StudentLookup, StudentRegistration
from core.settings import AsaasSettings, LytexSettings
from domain.payment.entity import PaymentStatus
from infrastructure.external.payments.asaas_client import AsaasClient
from infrastructure.external.payments.exceptions import PaymentCreationError
from infrastructure.external.payments.lytex_client import LytexClient
from infrastructure.external.payments.simulation import (
    SimulatedCustomerBook,
    simulate_status,
    with_simulation_fallback,
)


def _clients():
    return [AsaasClient(AsaasSettings()), LytexClient(LytexSettings())]


@pytest.mark.parametrize(
    "external_id, expected",
    [
        ("pay_abc1", PaymentStatus.ACTIVE),
        ("pay_abc2", PaymentStatus.PENDING_PAYMENT),
        ("pay_abc3", PaymentStatus.SUSPENDED),
        ("pay_abc4", PaymentStatus.CANCELLED),
        ("pay_abc5", PaymentStatus.PENDING_PAYMENT),
        ("pay_abcf", PaymentStatus.PENDING_PAYMENT),
        ("", PaymentStatus.PENDING_PAYMENT),
    ],
)
def test_simulate_status_by_last_character(external_id, expected):
    assert simulate_status(external_id) == expected


@pytest.mark.asyncio
@pytest.mark.parametrize("client", _clients(), ids=["asaas", "lytex"])
async def test_simulated_status_is_deterministic(client):
    assert client.simulated
    for suffix, expected in (("1", "active"), ("2", "pending_payment"), ("3", "suspended"), ("4", "cancelled")):
        assert await client.get_payment_status(f"x_{suffix}") == expected
        assert await client.get_payment_status(f"x_{suffix}") == expected


@pytest.mark.asyncio
async def test_asaas_simulated_payment():
    client = AsaasClient(AsaasSettings())
    ref = await client.create_payment(Enrollment(code="MAT-1", amount=Decimal("150")))
    assert ref.external_id.startswith("pay_")
    assert ref.payment_url == f"https://api.asaas.com/payment/{ref.external_id}"


@pytest.mark.asyncio
async def test_lytex_simulated_payment_uses_course_price():
    client = LytexClient(LytexSettings())
    ref = await client.create_payment(Enrollment(code="MAT-2", course={"name": "Pedagogia", "price": "890.00"}))
    assert ref.external_id.startswith("lytex_")
    assert ref.payment_url.endswith(ref.external_id)


@pytest.mark.asyncio
@pytest.mark.parametrize("client", _clients(), ids=["asaas", "lytex"])
async def test_simulated_payment_rejects_non_positive_amount(client):
    with pytest.raises(PaymentCreationError):
        await client.create_payment(Enrollment(code="MAT-3", amount=Decimal("0")))


@pytest.mark.asyncio
@pytest.mark.parametrize("client, prefix", list(zip(_clients(), ("cus_", "lytex_cus_"))), ids=["asaas", "lytex"])
async def test_simulated_registration_is_idempotent(client, prefix):
    user = StudentRegistration(id=7, full_name="Ana Souza", email="Ana@Example.com", cpf="123.456.789-09")

    lookup = await client.check_student_exists(StudentLookup(email="ana@example.com", cpf="12345678909"))
    assert lookup.exists is False

    first = await client.register_student(user)
    second = await client.register_student(user)
    assert first.customer_id.startswith(prefix)
    assert first.already_exists is False
    assert second.customer_id == first.customer_id
    assert second.already_exists is True

    lookup = await client.check_student_exists(StudentLookup(email="ana@example.com", cpf="12345678909"))
    assert lookup.exists is True
    assert lookup.customer_id == first.customer_id


def test_customer_book_keys_on_email_and_document():
    book = SimulatedCustomerBook("cus_")
    cid, existed = book.register("a@x.com", "111.111.111-11")
    assert existed is False
    assert book.find("A@X.COM", "11111111111") == cid
    assert book.find("a@x.com", None) is None


class _Flaky:
    provider = "flaky"

    def __init__(self, simulated=False):
        self.simulated = simulated
        self.calls = 0

    def _fallback(self, value):
        return f"sim:{value}"

    @with_simulation_fallback("_fallback", on_error=True, passthrough=(KeyError,))
    async def run(self, value):
        self.calls += 1
        if value == "boom":
            raise RuntimeError("provider down")
        if value == "key":
            raise KeyError(value)
        return f"live:{value}"

    @with_simulation_fallback("_fallback")
    async def strict(self, value):
        raise RuntimeError("provider down")


@pytest.mark.asyncio
async def test_fallback_decorator_routes_by_mode():
    live = _Flaky()
    assert await live.run("ok") == "live:ok"
    assert await live.run("boom") == "sim:boom"
    with pytest.raises(KeyError):
        await live.run("key")
    with pytest.raises(RuntimeError):
        await live.strict("x")

    simulated = _Flaky(simulated=True)
    assert await simulated.run("ok") == "sim:ok"
    assert await simulated.strict("x") == "sim:x"
    assert simulated.calls == 0
