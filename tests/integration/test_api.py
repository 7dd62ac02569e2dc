"""Integration tests for API endpoints"""

from datetime import date
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session
from ledger_core.domain.models import DuplicateConfidence, DuplicateSuggestion
from ledger_core.services.transactions import TransactionService

TXN_DATE = date(2024, 3, 2)


def test_health_endpoint(client: TestClient):
    """Test health check endpoint"""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {
        "status": "ok",
        "service": "ledger-core",
        "database": "sqlite",
        "max_installments": 12,
        "default_installment_mode": "divide",
    }


def test_metrics_endpoint(client: TestClient):
    """Test Prometheus metrics endpoint"""
    response = client.get("/metrics")
    assert response.status_code == 200
    assert "ledger_installment_plans_total" in response.text


def test_request_id_is_echoed(client: TestClient):
    response = client.get("/health", headers={"X-Request-ID": "req-123"})
    assert response.headers["X-Request-ID"] == "req-123"


def test_create_installments(client: TestClient, card_account):
    """Test POST /v1/transactions with a divided installment plan"""
    response = client.post(
        "/v1/transactions",
        json={
            "account_id": card_account.id,
            "name": "Laptop",
            "date": "2024-03-12",
            "amount": "100.00",
            "nature": "outflow",
            "installments_count": 3,
            "installment_mode": "divide",
        },
    )

    assert response.status_code == 201
    transactions = response.json()["transactions"]
    assert len(transactions) == 3
    assert [t["name"] for t in transactions] == ["Laptop (1/3)", "Laptop (2/3)", "Laptop (3/3)"]
    assert [t["amount"] for t in transactions] == ["33.34", "33.33", "33.33"]
    assert all(t["cycle_locked"] for t in transactions)
    assert transactions[0]["pending"] is False
    assert transactions[0]["payment_due_date"] == "2024-04-15"
    assert transactions[0]["deferred_badge"] is True
    assert transactions[0]["installment"]["total"] == 3
    assert len({t["installment"]["group_id"] for t in transactions}) == 1


def test_create_rejects_thirteen_installments(client: TestClient, card_account):
    response = client.post(
        "/v1/transactions",
        json={
            "account_id": card_account.id,
            "name": "TV",
            "date": "2024-03-12",
            "amount": "1300.00",
            "nature": "outflow",
            "installments_count": 13,
        },
    )

    assert response.status_code == 422
    assert "between 1 and 12" in response.json()["detail"]


def test_create_rejects_unknown_nature(client: TestClient, card_account):
    response = client.post(
        "/v1/transactions",
        json={
            "account_id": card_account.id,
            "name": "Odd",
            "date": "2024-03-12",
            "amount": "10.00",
            "nature": "sideways",
        },
    )

    assert response.status_code == 422
    assert response.json()["detail"] == "Invalid transaction type"


def test_create_unknown_account(client: TestClient):
    response = client.post(
        "/v1/transactions",
        json={"account_id": "nope", "date": "2024-03-12", "amount": "10.00", "nature": "outflow"},
    )
    assert response.status_code == 404


def test_patch_deferral_moves_payment(client: TestClient, card_account):
    created = client.post(
        "/v1/transactions",
        json={
            "account_id": card_account.id,
            "name": "Dinner",
            "date": "2024-03-05",
            "amount": "80.00",
            "nature": "outflow",
        },
    ).json()["transactions"][0]
    assert created["payment_due_date"] == "2024-03-15"
    assert created["deferred_badge"] is False

    response = client.patch(f"/v1/transactions/{created['id']}", json={"deferred_to_next_cycle": True})

    assert response.status_code == 200
    body = response.json()
    assert body["billing_cycle_month"] == "2024-04-01"
    assert body["payment_due_date"] == "2024-04-15"
    assert body["deferred_badge"] is True


def test_get_missing_transaction(client: TestClient):
    assert client.get("/v1/transactions/missing").status_code == 404


def test_duplicate_merge_and_dismiss_flow(client: TestClient, card_account, db: Session):
    service = TransactionService(db)
    [posted] = service.create_transaction(
        account_id=card_account.id, name="Coffee", txn_date=TXN_DATE, amount="4.50", nature="outflow"
    )
    [pending] = service.create_transaction(
        account_id=card_account.id, name="Coffee pending", txn_date=TXN_DATE, amount="4.50", nature="outflow"
    )
    [other] = service.create_transaction(
        account_id=card_account.id, name="Tea", txn_date=TXN_DATE, amount="3.00", nature="outflow"
    )
    service.attach_duplicate(pending.id, DuplicateSuggestion(entry_id=posted.id, reason="amount match"))
    service.attach_duplicate(other.id, DuplicateSuggestion(entry_id=posted.id, reason="same day"))

    suggestion = client.get(f"/v1/transactions/{pending.id}").json()["duplicate_suggestion"]
    assert suggestion["confidence"] == "medium"
    assert suggestion["low_confidence"] is False
    assert suggestion["entry_id"] == posted.id

    merged = client.post(f"/v1/transactions/{pending.id}/merge_duplicate")
    assert merged.status_code == 200
    assert merged.json() == {"merged": True, "pending_id": pending.id, "posted_id": posted.id}
    assert client.post(f"/v1/transactions/{pending.id}/merge_duplicate").status_code == 404

    dismissed = client.post(f"/v1/transactions/{other.id}/dismiss_duplicate")
    assert dismissed.status_code == 200
    assert dismissed.json()["duplicate_suggestion"]["dismissed"] is True
    assert client.post(f"/v1/transactions/{other.id}/dismiss_duplicate").status_code == 200
    assert client.post(f"/v1/transactions/{other.id}/merge_duplicate").status_code == 404


def test_dismiss_without_suggestion(client: TestClient, card_account, db: Session):
    [txn] = TransactionService(db).create_transaction(
        account_id=card_account.id, name="Books", txn_date=TXN_DATE, amount="30.00", nature="outflow"
    )
    assert client.post(f"/v1/transactions/{txn.id}/dismiss_duplicate").status_code == 404


def test_billing_cycle_endpoint(client: TestClient, card_account, checking_account):
    response = client.get(f"/v1/accounts/{card_account.id}/billing_cycle", params={"reference_date": "2024-03-20"})

    assert response.status_code == 200
    assert response.json() == {
        "account_id": card_account.id,
        "reference_date": "2024-03-20",
        "cutoff_date": "2024-03-10",
        "payment_due_date": "2024-03-15",
        "cycle_start": "2024-02-11",
        "cycle_end": "2024-03-10",
    }

    plain = client.get(f"/v1/accounts/{checking_account.id}/billing_cycle", params={"reference_date": "2024-03-20"})
    assert plain.json()["payment_due_date"] is None
    assert client.get("/v1/accounts/missing/billing_cycle").status_code == 404


def test_installment_group_endpoint(client: TestClient, card_account):
    created = client.post(
        "/v1/transactions",
        json={
            "account_id": card_account.id,
            "name": "Phone",
            "date": "2024-03-12",
            "amount": "100.00",
            "nature": "outflow",
            "installments_count": 3,
        },
    ).json()["transactions"]
    group_id = created[0]["installment"]["group_id"]

    response = client.get(f"/v1/accounts/{card_account.id}/installments/{group_id}")

    assert response.status_code == 200
    body = response.json()
    assert body["group_id"] == group_id
    assert body["total_amount"] == "100.00"
    assert [t["payment_due_date"] for t in body["transactions"]] == ["2024-04-15", "2024-05-15", "2024-06-15"]
    assert client.get(f"/v1/accounts/{card_account.id}/installments/unknown").status_code == 404


def test_patch_inflow_amount_keeps_sign(client: TestClient, checking_account):
    [salary] = client.post(
        "/v1/transactions",
        json={
            "account_id": checking_account.id,
            "name": "Salary",
            "date": "2024-03-01",
            "amount": "3000",
            "nature": "inflow",
        },
    ).json()["transactions"]
    assert salary["amount"] == "-3000.00"
    assert salary["cycle_locked"] is False

    edited = client.patch(f"/v1/transactions/{salary['id']}", json={"amount": "3100.00"})
    assert edited.status_code == 200
    assert edited.json()["amount"] == "-3100.00"

    flipped = client.patch(f"/v1/transactions/{salary['id']}", json={"nature": "outflow"})
    assert flipped.json()["amount"] == "3100.00"

    rejected = client.patch(f"/v1/transactions/{salary['id']}", json={"nature": "sideways"})
    assert rejected.status_code == 422


def test_pending_and_low_confidence_flags(client: TestClient, card_account, db: Session):
    service = TransactionService(db)
    [txn] = service.create_transaction(
        account_id=card_account.id, name="Lyft", txn_date=TXN_DATE, amount="9.00", nature="outflow"
    )
    row = service.transactions.get(txn.id)
    row.extra = {"plaid": {"pending": True}}
    db.commit()
    service.attach_duplicate(
        txn.id, DuplicateSuggestion(entry_id="posted_3", confidence=DuplicateConfidence.LOW)
    )

    body = client.get(f"/v1/transactions/{txn.id}").json()

    assert body["pending"] is True
    assert body["duplicate_suggestion"]["low_confidence"] is True


def test_invalid_card_settings_are_rejected(client: TestClient, card_account, db: Session):
    card_account.due_day = 0
    db.commit()

    response = client.post(
        "/v1/transactions",
        json={
            "account_id": card_account.id,
            "name": "Hotel",
            "date": "2024-03-12",
            "amount": "200.00",
            "nature": "outflow",
        },
    )

    assert response.status_code == 422
    assert "Due day" in response.json()["detail"]
    assert client.get(f"/v1/accounts/{card_account.id}/billing_cycle").status_code == 422
