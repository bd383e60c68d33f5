import httpx
import pytest
import pytest_asyncio

from api.dependencies import get_uow_factory
from main import app


@pytest_asyncio.fixture
async def client(uow_factory, gateway_registry):
    app.dependency_overrides[get_uow_factory] = lambda: uow_factory
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


ENROLLMENT = {
    "code": "MAT-2024-010",
    "amount": "620.00",
    "courseId": 5,
    "studentId": 11,
    "student": {"fullName": "Carla Dias", "email": "carla@example.com", "cpf": "111.222.333-44"},
    "course": {"name": "Gestão Escolar"},
}


def test_payment_routes_registered():
    routes = set(app.openapi()["paths"])
    assert "/api/v1/payments/webhooks/{provider}" in routes
    assert "/api/v1/payments/enrollments" in routes
    assert "/api/v1/payments/{external_id}/status" in routes
    assert "/health" in routes


@pytest.mark.asyncio
async def test_health(client):
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["data"] == {"status": "healthy"}
    assert resp.headers["X-Request-ID"]


@pytest.mark.asyncio
async def test_enrollment_payment_then_webhook(client):
    resp = await client.post("/api/v1/payments/enrollments", json=ENROLLMENT)
    assert resp.status_code == 200
    body = resp.json()
    assert body["code"] == 0
    created = body["data"]
    assert created["provider"] == "asaas"
    assert created["external_id"].startswith("pay_")
    assert created["status"] == "pending_payment"

    resp = await client.post(
        "/api/v1/payments/webhooks/asaas",
        json={"event": "PAYMENT_CONFIRMED", "payment": {"id": created["external_id"]}},
    )
    assert resp.status_code == 200
    assert resp.json()["data"]["status"] == "active"

    resp = await client.get(f"/api/v1/payments/enrollments/{ENROLLMENT['code']}")
    [stored] = resp.json()["data"]
    assert stored["status"] == "active"
    assert stored["activated_at"]


@pytest.mark.asyncio
async def test_lytex_enrollment_payment(client):
    resp = await client.post("/api/v1/payments/enrollments", params={"provider": "lytex"}, json=ENROLLMENT)
    assert resp.status_code == 200
    assert resp.json()["data"]["external_id"].startswith("lytex_")


@pytest.mark.asyncio
async def test_status_poll_untracked(client):
    resp = await client.get("/api/v1/payments/pay_abc1/status")
    assert resp.status_code == 200
    assert resp.json()["data"] == {
        "provider": "asaas",
        "external_id": "pay_abc1",
        "status": "active",
        "recorded": False,
        "enrollment_code": None,
    }


@pytest.mark.asyncio
async def test_webhook_for_unknown_payment_is_404(client):
    resp = await client.post(
        "/api/v1/payments/webhooks/asaas",
        json={"event": "PAYMENT_RECEIVED", "payment": {"id": "pay_missing"}},
    )
    assert resp.status_code == 404
    assert resp.json()["error"]["type"] == "PaymentRecordNotFound"


@pytest.mark.asyncio
async def test_malformed_webhook_is_400(client):
    resp = await client.post("/api/v1/payments/webhooks/lytex", json={"data": {"status": "paid"}})
    assert resp.status_code == 400
    assert resp.json()["error"]["type"] == "WebhookParseError"

    resp = await client.post(
        "/api/v1/payments/webhooks/asaas",
        content=b"not json",
        headers={"content-type": "application/json"},
    )
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_unknown_provider_is_404(client):
    resp = await client.post("/api/v1/payments/webhooks/paypal", json={})
    assert resp.status_code == 404
    assert resp.json()["error"]["type"] == "UnsupportedPaymentProvider"


@pytest.mark.asyncio
async def test_register_and_lookup_customer(client):
    student = {"id": 11, "fullName": "Carla Dias", "email": "carla@example.com", "cpf": "111.222.333-44"}
    first = (await client.post("/api/v1/payments/customers", json=student)).json()["data"]
    second = (await client.post("/api/v1/payments/customers", json=student)).json()["data"]
    assert first["already_exists"] is False
    assert second == {"customer_id": first["customer_id"], "already_exists": True}

    resp = await client.post("/api/v1/payments/customers/lookup", json={"email": "carla@example.com", "cpf": "11122233344"})
    assert resp.json()["data"] == {"exists": True, "customer_id": first["customer_id"]}


@pytest.mark.asyncio
async def test_invalid_enrollment_is_422(client):
    resp = await client.post("/api/v1/payments/enrollments", json={"code": "  "})
    assert resp.status_code == 422
    assert resp.json()["error"]["type"] == "ValidationError"
