from datetime import datetime
from decimal import Decimal

import pytest

from lendfi.exceptions import BadRequestError, NotFoundError
from lendfi.models.loan_models import Loan, LoanStatus
from lendfi.models.transaction_models import Transaction, TransactionSubType
from lendfi.models.user_models import User
from lendfi.services import loan_service
from lendfi.services.loan_service import LoanService


def test_loan_request_requires_kyc(client, make_user):
    unverified = make_user(verified=False)

    response = client.post(
        "/api/loans/request",
        json={"amount": 1, "interestRate": 5, "duration": 6, "collateral": "NFT", "description": "Rent"},
        headers=unverified["headers"],
    )

    assert response.status_code == 403
    assert response.json()["message"] == "KYC verification required"


def test_loan_request_computes_flat_interest_terms(make_user, request_loan):
    borrower = make_user()

    loan = request_loan(borrower, amount=0.5, interestRate=8.5, duration=12)

    assert loan["status"] == "pending"
    assert loan["userId"] == borrower["id"]
    assert loan["lenderId"] is None
    assert loan["totalAmount"] == pytest.approx(0.5425)
    assert loan["monthlyPayment"] == pytest.approx(0.04520833)
    assert loan["remainingBalance"] == pytest.approx(0.5425)
    assert loan["totalRepaid"] == 0
    assert loan["borrower"]["name"] == borrower["name"]


@pytest.mark.parametrize("field, value", [
    ("amount", 0.0001),
    ("interestRate", 101),
    ("duration", 0),
    ("duration", 61),
    ("collateral", ""),
])
def test_loan_request_validation(client, make_user, field, value):
    borrower = make_user()
    payload = {"amount": 1, "interestRate": 10, "duration": 6, "collateral": "NFT", "description": "Rent"}
    payload[field] = value

    response = client.post("/api/loans/request", json=payload, headers=borrower["headers"])

    assert response.status_code == 400
    assert response.json()["message"] == "Validation error"


def test_loan_request_rounds_precision_instead_of_rejecting(make_user, request_loan):
    borrower = make_user()

    loan = request_loan(borrower, amount=0.1 + 0.2, interestRate=8.125, duration=12)

    assert loan["amount"] == pytest.approx(0.3)
    assert loan["interestRate"] == 8.125
    assert loan["totalAmount"] == pytest.approx(0.324375)
    assert loan["monthlyPayment"] == pytest.approx(0.02703125)


def test_marketplace_lists_only_other_users_pending_loans(client, make_user, request_loan):
    borrower = make_user()
    lender = make_user()
    mine = request_loan(lender, description="Lender's own request")
    theirs = request_loan(borrower)

    response = client.get("/api/loans", params={"type": "marketplace"}, headers=lender["headers"])

    assert response.status_code == 200
    data = response.json()["data"]
    ids = [loan["id"] for loan in data["loans"]]
    assert theirs["id"] in ids
    assert mine["id"] not in ids
    assert data["pagination"] == {"total": 1, "page": 1, "limit": 10, "totalPages": 1}


def test_list_loans_by_role(client, make_user, request_loan):
    borrower = make_user()
    lender = make_user()
    loan = request_loan(borrower)
    client.post(f"/api/loans/{loan['id']}/fund", headers=lender["headers"])

    borrowed = client.get("/api/loans", params={"type": "borrowed"}, headers=borrower["headers"]).json()
    lent = client.get("/api/loans", params={"type": "lent"}, headers=lender["headers"]).json()
    everything = client.get("/api/loans", headers=lender["headers"]).json()
    pending = client.get("/api/loans", params={"status": "pending"}, headers=borrower["headers"]).json()

    assert [item["id"] for item in borrowed["data"]["loans"]] == [loan["id"]]
    assert [item["id"] for item in lent["data"]["loans"]] == [loan["id"]]
    assert [item["id"] for item in everything["data"]["loans"]] == [loan["id"]]
    assert pending["data"]["loans"] == []


def test_fund_loan_activates_it(client, make_user, request_loan):
    borrower = make_user()
    lender = make_user()
    loan = request_loan(borrower)

    response = client.post(f"/api/loans/{loan['id']}/fund", headers=lender["headers"])

    assert response.status_code == 200
    funded = response.json()["data"]["loan"]
    assert funded["status"] == "active"
    assert funded["lenderId"] == lender["id"]
    assert funded["lender"]["id"] == lender["id"]
    assert funded["fundedAt"] is not None
    assert funded["nextPaymentDate"] is not None
    assert funded["dueDate"] > funded["nextPaymentDate"]


def test_loan_can_only_be_funded_once(client, make_user, request_loan):
    borrower = make_user()
    first = make_user()
    second = make_user()
    loan = request_loan(borrower)

    assert client.post(f"/api/loans/{loan['id']}/fund", headers=first["headers"]).status_code == 200
    response = client.post(f"/api/loans/{loan['id']}/fund", headers=second["headers"])

    assert response.status_code == 404
    assert response.json()["message"] == "Loan not found or already funded"
    detail = client.get(f"/api/loans/{loan['id']}", headers=borrower["headers"]).json()["data"]["loan"]
    assert detail["lenderId"] == first["id"]


def test_cannot_fund_own_loan_in_any_status(client, make_user, request_loan):
    borrower = make_user()
    lender = make_user()
    loan = request_loan(borrower)

    response = client.post(f"/api/loans/{loan['id']}/fund", headers=borrower["headers"])
    assert response.status_code == 400
    assert response.json()["message"] == "Cannot fund your own loan"

    client.post(f"/api/loans/{loan['id']}/fund", headers=lender["headers"])
    response = client.post(f"/api/loans/{loan['id']}/fund", headers=borrower["headers"])
    assert response.status_code == 400
    assert response.json()["message"] == "Cannot fund your own loan"


def test_fund_unknown_loan(client, make_user):
    lender = make_user()

    response = client.post("/api/loans/9999/fund", headers=lender["headers"])

    assert response.status_code == 404


def test_payments_until_repaid(client, make_user, request_loan):
    borrower = make_user()
    lender = make_user()
    loan = request_loan(borrower, amount=1.0, interestRate=25, duration=4)
    client.post(f"/api/loans/{loan['id']}/fund", headers=lender["headers"])
    url = f"/api/loans/{loan['id']}/payment"

    response = client.post(url, json={"amount": 0.25}, headers=borrower["headers"])
    assert response.status_code == 200
    partial = response.json()["data"]["loan"]
    assert partial["status"] == "active"
    assert partial["totalRepaid"] == pytest.approx(0.25)
    assert partial["remainingBalance"] == pytest.approx(1.0)

    response = client.post(url, json={"amount": 1.0}, headers=borrower["headers"])
    assert response.status_code == 200
    repaid = response.json()["data"]["loan"]
    assert repaid["status"] == "repaid"
    assert repaid["remainingBalance"] == 0
    assert repaid["totalRepaid"] == pytest.approx(1.25)
    assert repaid["nextPaymentDate"] is None

    response = client.post(url, json={"amount": 0.25}, headers=borrower["headers"])
    assert response.status_code == 404
    assert response.json()["message"] == "Loan not found or not active"


@pytest.mark.parametrize("amount", [0, -1, 1.5])
def test_payment_amount_must_be_within_balance(client, make_user, request_loan, amount):
    borrower = make_user()
    lender = make_user()
    loan = request_loan(borrower, amount=1.0, interestRate=25, duration=4)
    client.post(f"/api/loans/{loan['id']}/fund", headers=lender["headers"])

    response = client.post(f"/api/loans/{loan['id']}/payment", json={"amount": amount}, headers=borrower["headers"])

    assert response.status_code == 400
    assert response.json()["message"] == "Invalid payment amount"


def test_only_borrower_pays_active_loans(client, make_user, request_loan):
    borrower = make_user()
    lender = make_user()
    loan = request_loan(borrower)
    url = f"/api/loans/{loan['id']}/payment"

    response = client.post(url, json={"amount": 0.25}, headers=borrower["headers"])
    assert response.status_code == 404

    client.post(f"/api/loans/{loan['id']}/fund", headers=lender["headers"])
    response = client.post(url, json={"amount": 0.25}, headers=lender["headers"])
    assert response.status_code == 404


def test_loan_visibility(client, make_user, request_loan):
    borrower = make_user()
    lender = make_user()
    stranger = make_user()
    loan = request_loan(borrower)
    url = f"/api/loans/{loan['id']}"

    assert client.get(url, headers=stranger["headers"]).status_code == 200

    client.post(f"/api/loans/{loan['id']}/fund", headers=lender["headers"])
    assert client.get(url, headers=borrower["headers"]).status_code == 200
    assert client.get(url, headers=lender["headers"]).status_code == 200
    response = client.get(url, headers=stranger["headers"])
    assert response.status_code == 404
    assert response.json()["message"] == "Loan not found"


def test_loan_lifecycle_is_recorded_in_ledger(client, make_user, request_loan):
    borrower = make_user()
    lender = make_user()
    loan = request_loan(borrower, amount=1.0, interestRate=25, duration=4)
    client.post(f"/api/loans/{loan['id']}/fund", headers=lender["headers"])
    client.post(f"/api/loans/{loan['id']}/payment", json={"amount": 0.25}, headers=borrower["headers"])

    borrower_txs = client.get("/api/transactions", headers=borrower["headers"]).json()["data"]["transactions"]
    lender_txs = client.get("/api/transactions", headers=lender["headers"]).json()["data"]["transactions"]

    assert [tx["subType"] for tx in borrower_txs] == ["repayment", "request"]
    assert [tx["subType"] for tx in lender_txs] == ["funded"]
    for tx in borrower_txs + lender_txs:
        assert tx["type"] == "loan"
        assert tx["status"] == "completed"
        assert tx["referenceType"] == "loan"
        assert tx["referenceId"] == loan["id"]


def test_funding_and_payment_dates(client, monkeypatch, make_user, request_loan):
    borrower = make_user()
    lender = make_user()
    loan = request_loan(borrower, amount=1.0, interestRate=25, duration=4)

    monkeypatch.setattr(loan_service, "utcnow", lambda: datetime(2024, 1, 31, 9, 30))
    funded = client.post(f"/api/loans/{loan['id']}/fund", headers=lender["headers"]).json()["data"]["loan"]

    assert funded["fundedAt"] == "2024-01-31T09:30:00"
    assert funded["nextPaymentDate"] == "2024-02-29T09:30:00"
    assert funded["dueDate"] == "2024-05-31T09:30:00"

    monkeypatch.setattr(loan_service, "utcnow", lambda: datetime(2024, 3, 15, 18, 0))
    response = client.post(f"/api/loans/{loan['id']}/payment", json={"amount": 0.25}, headers=borrower["headers"])

    paid = response.json()["data"]["loan"]
    assert paid["nextPaymentDate"] == "2024-04-15T18:00:00"
    assert paid["fundedAt"] == "2024-01-31T09:30:00"
    assert paid["dueDate"] == "2024-05-31T09:30:00"


def test_funding_that_loses_the_race_keeps_one_lender(client, database, make_user, request_loan):
    borrower = make_user()
    winner = make_user()
    late = make_user()
    loan = request_loan(borrower)

    session = database.session()
    try:
        # Read the loan while it is pending, then let another lender fund it
        stale = session.get(Loan, loan["id"])
        lender = session.get(User, late["id"])
        assert stale.status == LoanStatus.PENDING
        assert client.post(f"/api/loans/{loan['id']}/fund", headers=winner["headers"]).status_code == 200

        with pytest.raises(NotFoundError, match="Loan not found or already funded"):
            LoanService(session).fund_loan(lender, loan["id"])
    finally:
        session.close()

    detail = client.get(f"/api/loans/{loan['id']}", headers=borrower["headers"]).json()["data"]["loan"]
    assert detail["lenderId"] == winner["id"]
    with database.session() as check:
        funded = check.query(Transaction).filter(
            Transaction.reference_id == loan["id"],
            Transaction.sub_type == TransactionSubType.FUNDED,
        ).all()
        assert [tx.user_id for tx in funded] == [winner["id"]]


def test_payment_that_loses_the_race_leaves_balance_alone(client, database, make_user, request_loan):
    borrower = make_user()
    lender = make_user()
    loan = request_loan(borrower, amount=1.0, interestRate=25, duration=4)
    client.post(f"/api/loans/{loan['id']}/fund", headers=lender["headers"])

    session = database.session()
    try:
        stale = session.get(Loan, loan["id"])
        payer = session.get(User, borrower["id"])
        assert stale.remaining_balance == Decimal("1.25")
        response = client.post(f"/api/loans/{loan['id']}/payment", json={"amount": 1.0}, headers=borrower["headers"])
        assert response.status_code == 200

        with pytest.raises(BadRequestError, match="Invalid payment amount"):
            LoanService(session).make_payment(payer, loan["id"], Decimal("0.5"))
    finally:
        session.close()

    detail = client.get(f"/api/loans/{loan['id']}", headers=borrower["headers"]).json()["data"]["loan"]
    assert detail["status"] == "active"
    assert detail["totalRepaid"] == pytest.approx(1.0)
    assert detail["remainingBalance"] == pytest.approx(0.25)
