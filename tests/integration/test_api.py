"""Integration tests for API endpoints"""

import pytest
from datetime import date, timedelta
from decimal import Decimal
from unittest.mock import patch
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError


@pytest.fixture
def customer_id(client: TestClient) -> str:
    response = client.post("/v1/customers", json={"name": "Ana Costa", "phone": "21988887777"})
    assert response.status_code == 201
    return response.json()["customer_id"]


@pytest.fixture
def credit_sale(client: TestClient, customer_id: str) -> dict:
    """R$ 300.00 in 3 monthly installments"""
    response = client.post(
        "/v1/sales",
        json={
            "customer_id": customer_id,
            "total_value": "300.00",
            "payment_method": "installment",
            "installments_count": 3,
        },
    )
    assert response.status_code == 201
    return response.json()


def test_health_endpoint(client: TestClient):
    """Test health check endpoint"""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"
    assert response.json()["database"] == "ok"


def test_health_reports_unreachable_store(client: TestClient, db):
    lost = OperationalError("SELECT 1", {}, Exception("could not connect to server"))

    with patch.object(db, "execute", side_effect=lost):
        response = client.get("/health")

    assert response.status_code == 503
    assert response.json()["status"] == "degraded"
    assert response.json()["database"] == "unavailable"


def test_metrics_endpoint(client: TestClient):
    """Test Prometheus metrics endpoint"""
    response = client.get("/metrics")
    assert response.status_code == 200
    assert "shop_credit_allocation" in response.text


def test_request_id_is_propagated(client: TestClient):
    response = client.get("/health", headers={"X-Request-ID": "req-123"})
    assert response.headers["X-Request-ID"] == "req-123"


def test_create_and_get_customer(client: TestClient, customer_id: str):
    response = client.get(f"/v1/customers/{customer_id}")

    assert response.status_code == 200
    data = response.json()
    assert data["name"] == "Ana Costa"
    assert Decimal(data["total_bought"]) == Decimal("0")
    assert Decimal(data["total_paid"]) == Decimal("0")

    listing = client.get("/v1/customers").json()
    assert [c["customer_id"] for c in listing["customers"]] == [customer_id]


def test_credit_sale_generates_installments(client: TestClient, customer_id: str, credit_sale: dict):
    """Test POST /v1/sales with installment payment"""
    installments = credit_sale["installments"]

    assert len(installments) == 3
    assert [i["number"] for i in installments] == [1, 2, 3]
    assert all(i["status"] == "pending" for i in installments)
    assert sum(Decimal(i["value"]) for i in installments) == Decimal("300.00")

    customer = client.get(f"/v1/customers/{customer_id}").json()
    assert Decimal(customer["total_bought"]) == Decimal("300.00")

    fetched = client.get(f"/v1/sales/{credit_sale['sale_id']}").json()
    assert fetched["installments_count"] == 3


def test_cash_sale_has_no_installments(client: TestClient, customer_id: str):
    response = client.post(
        "/v1/sales",
        json={"customer_id": customer_id, "total_value": "49.90", "payment_method": "pix"},
    )

    assert response.status_code == 201
    assert response.json()["installments"] == []


def test_installment_sale_requires_customer(client: TestClient):
    response = client.post(
        "/v1/sales",
        json={"total_value": "100.00", "payment_method": "installment", "installments_count": 2},
    )
    assert response.status_code == 422
    assert response.json()["detail"]["kind"] == "invalid_sale"
    assert "customer" in response.json()["detail"]["message"]


def test_sale_store_failure_reports_persistence_failure(client: TestClient, customer_id: str):
    failure = OperationalError("INSERT INTO sale", {}, Exception("could not connect to server"))

    with patch("shop_credit.api.v1.sales.record_sale", side_effect=failure):
        response = client.post(
            "/v1/sales",
            json={"customer_id": customer_id, "total_value": "49.90", "payment_method": "pix"},
        )

    assert response.status_code == 503
    assert response.json()["detail"] == {"kind": "persistence_failure", "message": "Ledger store unavailable"}


def test_unknown_sale_and_customer_report_not_found(client: TestClient):
    fake_uuid = "00000000-0000-0000-0000-000000000000"

    for path in (f"/v1/sales/{fake_uuid}", f"/v1/customers/{fake_uuid}", f"/v1/customers/{fake_uuid}/payments"):
        response = client.get(path)
        assert response.status_code == 404
        assert response.json()["detail"]["kind"] == "not_found"


def test_sale_for_unknown_customer(client: TestClient):
    fake_uuid = "00000000-0000-0000-0000-000000000000"
    response = client.post(
        "/v1/sales",
        json={"customer_id": fake_uuid, "total_value": "100.00", "payment_method": "installment", "installments_count": 2},
    )
    assert response.status_code == 404
    assert response.json()["detail"]["kind"] == "not_found"


def test_pay_cascades_over_installments(client: TestClient, customer_id: str, credit_sale: dict):
    """Test POST /v1/installments/{id}/pay"""
    first = credit_sale["installments"][0]["installment_id"]

    response = client.post(f"/v1/installments/{first}/pay", json={"amount": "250.00"})

    assert response.status_code == 200
    data = response.json()
    assert data["installments_processed"] == 2
    assert Decimal(data["remaining_credit"]) == Decimal("0")
    assert len(data["settlements"]) == 3

    installments = client.get(f"/v1/installments?customer_id={customer_id}").json()["installments"]
    assert [i["status"] for i in installments] == ["paid", "paid", "pending"]
    assert Decimal(installments[2]["value"]) == Decimal("50.00")

    credit = client.get(f"/v1/customers/{customer_id}/credit").json()
    assert Decimal(credit["outstanding"]) == Decimal("50.00")
    assert credit["pending_count"] == 1
    assert Decimal(credit["informational_debt"]) == Decimal("50.00")


def test_pay_overpayment_reports_credit(client: TestClient, customer_id: str, credit_sale: dict):
    first = credit_sale["installments"][0]["installment_id"]

    response = client.post(f"/v1/installments/{first}/pay", json={"amount": "350.00"})

    data = response.json()
    assert data["installments_processed"] == 3
    assert Decimal(data["remaining_credit"]) == Decimal("50.00")

    customer = client.get(f"/v1/customers/{customer_id}").json()
    assert Decimal(customer["total_paid"]) == Decimal("350.00")


def test_pay_with_idempotency_key(client: TestClient, customer_id: str, credit_sale: dict):
    first = credit_sale["installments"][0]["installment_id"]
    body = {"amount": "100.00", "idempotency_key": "caixa-1-0001"}

    client.post(f"/v1/installments/{first}/pay", json=body)
    retry = client.post(f"/v1/installments/{first}/pay", json=body)

    assert retry.status_code == 200
    assert retry.json()["replayed"] is True

    payments = client.get(f"/v1/customers/{customer_id}/payments").json()["payments"]
    assert len(payments) == 1
    assert Decimal(payments[0]["amount"]) == Decimal("100.00")


def test_pay_with_reused_idempotency_key_is_conflict(client: TestClient, customer_id: str, credit_sale: dict):
    first, second = [i["installment_id"] for i in credit_sale["installments"][:2]]

    client.post(f"/v1/installments/{first}/pay", json={"amount": "100.00", "idempotency_key": "caixa-1-0002"})
    response = client.post(f"/v1/installments/{second}/pay", json={"amount": "40.00", "idempotency_key": "caixa-1-0002"})

    assert response.status_code == 409
    assert response.json()["detail"]["kind"] == "idempotency_conflict"

    customer = client.get(f"/v1/customers/{customer_id}").json()
    assert Decimal(customer["total_paid"]) == Decimal("100.00")


@pytest.mark.parametrize("amount", ["0", "-5", "10.999", "abc", "", None, 10.999])
def test_pay_rejects_invalid_amount(client: TestClient, credit_sale: dict, amount: str):
    first = credit_sale["installments"][0]["installment_id"]

    response = client.post(f"/v1/installments/{first}/pay", json={"amount": amount})

    assert response.status_code == 422
    assert response.json()["detail"]["kind"] == "invalid_amount"


def test_pay_unknown_installment(client: TestClient):
    fake_uuid = "00000000-0000-0000-0000-000000000000"
    response = client.post(f"/v1/installments/{fake_uuid}/pay", json={"amount": "10.00"})

    assert response.status_code == 404
    assert response.json()["detail"]["kind"] == "not_found"


def test_pay_malformed_installment_id(client: TestClient):
    response = client.post("/v1/installments/not-a-uuid/pay", json={"amount": "10.00"})
    assert response.status_code == 400


def test_overdue_flag_is_derived(client: TestClient, customer_id: str):
    """Sale backdated three months leaves its first installments overdue"""
    sale_date = (date.today() - timedelta(days=75)).isoformat()
    client.post(
        "/v1/sales",
        json={
            "customer_id": customer_id,
            "total_value": "90.00",
            "payment_method": "installment",
            "installments_count": 3,
            "sale_date": sale_date,
        },
    )

    installments = client.get(f"/v1/installments?customer_id={customer_id}&status=pending").json()["installments"]

    assert installments[0]["overdue"] is True
    assert installments[2]["overdue"] is False

    credit = client.get(f"/v1/customers/{customer_id}/credit").json()
    assert credit["overdue_count"] >= 1
