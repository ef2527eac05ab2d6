"""HTTP surface of the commissions router, including error mapping."""
from decimal import Decimal
from uuid import uuid4

import pytest

BASE = "/api/v1/commissions"


def _payment(seller_id, amount="1000", order_item_id=None):
    return {
        "order_id": str(uuid4()),
        "order_item_id": order_item_id or str(uuid4()),
        "seller_id": str(seller_id) if seller_id else None,
        "order_item_amount": amount,
    }


def _record_approved(client, seller_id, amount="1000"):
    response = client.post(f"{BASE}/payment-confirmed", json=_payment(seller_id, amount))
    assert response.status_code == 201
    commission_id = response.json()["commission"]["id"]
    response = client.post(f"{BASE}/{commission_id}/approve")
    assert response.status_code == 200
    return commission_id


@pytest.fixture
def standard_tier(client):
    response = client.post(f"{BASE}/tiers", json={
        "name": "Standard",
        "min_sales": "0",
        "max_sales": "10000000",
        "commission_rate": "10",
        "platform_fee_rate": "2",
    })
    assert response.status_code == 201
    return response.json()


def test_payment_confirmed_is_idempotent(client, standard_tier):
    seller_id = uuid4()
    payload = _payment(seller_id)

    first = client.post(f"{BASE}/payment-confirmed", json=payload)
    replay = client.post(f"{BASE}/payment-confirmed", json=payload)

    assert first.status_code == 201
    assert first.json()["created"] is True
    commission = first.json()["commission"]
    assert Decimal(commission["net_amount"]) == Decimal("80")
    assert commission["rate_source"] == "TIER"
    assert commission["tier_id"] == standard_tier["id"]
    assert commission["status"] == "PENDING"

    assert replay.status_code == 200
    assert replay.json()["created"] is False
    assert replay.json()["commission"]["id"] == commission["id"]


def test_payment_without_seller_is_rejected(client):
    response = client.post(f"{BASE}/payment-confirmed", json=_payment(None))

    assert response.status_code == 400
    assert response.json()["type"] == "BusinessRuleError"


def test_unknown_commission_is_404(client):
    response = client.get(f"{BASE}/{uuid4()}")

    assert response.status_code == 404
    body = response.json()
    assert body["type"] == "NotFoundError"
    assert body["details"]["entity"] == "Commission"


def test_illegal_transition_is_409(client, standard_tier):
    seller_id = uuid4()
    commission_id = _record_approved(client, seller_id)

    assert client.post(f"{BASE}/{commission_id}/cancel", json={"reason": "Refund"}).status_code == 200
    response = client.post(f"{BASE}/{commission_id}/approve")

    assert response.status_code == 409
    assert response.json()["type"] == "InvalidStateTransitionError"
    assert response.json()["details"]["current_status"] == "CANCELLED"


def test_payout_below_minimum_is_422(client, standard_tier):
    seller_id = uuid4()
    commission_id = _record_approved(client, seller_id, "100")

    response = client.post(f"{BASE}/payouts", json={
        "seller_id": str(seller_id),
        "commission_ids": [commission_id],
    })

    assert response.status_code == 422
    assert response.json()["type"] == "BelowMinimumPayoutError"
    assert client.get(f"{BASE}/{commission_id}").json()["status"] == "APPROVED"


def test_payout_without_approved_commissions_is_400(client, standard_tier):
    seller_id = uuid4()
    pending = client.post(f"{BASE}/payment-confirmed", json=_payment(seller_id)).json()["commission"]

    response = client.post(f"{BASE}/payouts", json={
        "seller_id": str(seller_id),
        "commission_ids": [pending["id"]],
    })

    assert response.status_code == 400
    assert response.json()["type"] == "NoEligibleCommissionsError"
    assert response.json()["error"] == "No approved commissions"


def test_payout_lifecycle(client, notifier, standard_tier):
    seller_id = uuid4()
    commission_ids = [_record_approved(client, seller_id, amount) for amount in ("625", "750")]

    response = client.post(f"{BASE}/payouts", json={
        "seller_id": str(seller_id),
        "commission_ids": commission_ids,
        "notes": "March settlement",
    })
    assert response.status_code == 201
    payout = response.json()
    assert payout["payout_number"] == "PAY-000001"
    assert Decimal(payout["total_amount"]) == Decimal("110")
    assert Decimal(payout["transaction_fee"]) == Decimal("1.10")
    assert Decimal(payout["net_amount"]) == Decimal("108.90")
    assert len(payout["items"]) == 2

    balance = client.get(f"{BASE}/sellers/{seller_id}/balance").json()
    assert Decimal(balance["in_transit_balance"]) == Decimal("110")
    assert balance["is_reconciled"] is True

    response = client.post(f"{BASE}/payouts/{payout['id']}/process", json={"transaction_reference": "UTR-42"})
    assert response.status_code == 200
    assert response.json()["status"] == "PROCESSING"

    response = client.post(f"{BASE}/payouts/{payout['id']}/complete")
    assert response.status_code == 200
    assert response.json()["status"] == "COMPLETED"
    assert [e.payout_number for e in notifier.events] == ["PAY-000001"]

    response = client.post(f"{BASE}/payouts/{payout['id']}/complete")
    assert response.status_code == 409
    assert response.json()["type"] == "InvalidStateTransitionError"

    balance = client.get(f"{BASE}/sellers/{seller_id}/balance").json()
    assert Decimal(balance["total_paid"]) == Decimal("108.90")
    assert Decimal(balance["total_transaction_fees"]) == Decimal("1.10")
    assert balance["is_reconciled"] is True

    listed = client.get(f"{BASE}/sellers/{seller_id}/payouts").json()
    assert [p["payout_number"] for p in listed] == ["PAY-000001"]
    assert client.get(f"{BASE}/payouts", params={"status": "COMPLETED"}).json()["total"] == 1


def test_failed_payout_releases_commissions(client, standard_tier):
    seller_id = uuid4()
    commission_id = _record_approved(client, seller_id, "2000")
    payout = client.post(f"{BASE}/payouts", json={
        "seller_id": str(seller_id),
        "commission_ids": [commission_id],
    }).json()
    client.post(f"{BASE}/payouts/{payout['id']}/process", json={"transaction_reference": "UTR-7"})

    response = client.post(f"{BASE}/payouts/{payout['id']}/fail", json={"reason": "Invalid IBAN"})

    assert response.status_code == 200
    assert response.json()["failure_reason"] == "Invalid IBAN"
    commission = client.get(f"{BASE}/{commission_id}").json()
    assert commission["status"] == "APPROVED"
    assert commission["payment_reference"] is None


def test_overlapping_tier_is_422(client, standard_tier):
    response = client.post(f"{BASE}/tiers", json={
        "name": "Overlap",
        "min_sales": "100",
        "max_sales": "200",
        "commission_rate": "5",
    })

    assert response.status_code == 422
    assert response.json()["type"] == "ValidationError"


def test_seller_settings_roundtrip(client):
    seller_id = uuid4()

    assert client.get(f"{BASE}/sellers/{seller_id}/settings").status_code == 404

    response = client.put(f"{BASE}/sellers/{seller_id}/settings", json={
        "use_custom_rate": True,
        "custom_commission_rate": "15",
    })
    assert response.status_code == 200
    assert Decimal(response.json()["minimum_payout_amount"]) == Decimal("100")

    recorded = client.post(f"{BASE}/payment-confirmed", json=_payment(seller_id)).json()["commission"]
    assert recorded["rate_source"] == "CUSTOM"
    assert Decimal(recorded["net_amount"]) == Decimal("150")


def test_commission_listing_and_stats(client, standard_tier):
    seller_id = uuid4()
    _record_approved(client, seller_id)
    client.post(f"{BASE}/payment-confirmed", json=_payment(seller_id, "500"))
    refunded = client.post(f"{BASE}/payment-confirmed", json=_payment(seller_id, "250")).json()["commission"]
    client.post(f"{BASE}/{refunded['id']}/cancel")

    listed = client.get(BASE, params={"status": "APPROVED", "limit": 10}).json()
    assert listed["total"] == 1
    assert listed["limit"] == 10

    mine = client.get(f"{BASE}/sellers/{seller_id}/commissions").json()
    assert len(mine) == 3

    stats = client.get(f"{BASE}/sellers/{seller_id}/stats").json()
    # Gross commission of every recorded row, the cancelled one included
    assert stats["total_commissions"] == 3
    assert Decimal(stats["total_earnings"]) == Decimal("175")
    assert Decimal(stats["total_platform_fees"]) == Decimal("35")
    assert Decimal(stats["pending_commissions"]) == Decimal("40")
    assert Decimal(stats["available_for_payout"]) == Decimal("80")

    assert client.get(f"{BASE}/stats").json()["total_commissions"] == 3


def test_available_payout_amount(client, standard_tier):
    seller_id = uuid4()
    _record_approved(client, seller_id, "1000")
    larger = _record_approved(client, seller_id, "1500")
    client.post(f"{BASE}/payment-confirmed", json=_payment(seller_id, "400"))

    response = client.get(f"{BASE}/sellers/{seller_id}/available-payout")

    assert response.status_code == 200
    assert response.json()["seller_id"] == str(seller_id)
    assert Decimal(response.json()["available_amount"]) == Decimal("200")

    payout = client.post(f"{BASE}/payouts", json={"seller_id": str(seller_id), "commission_ids": [larger]})
    assert payout.status_code == 201
    remaining = client.get(f"{BASE}/sellers/{seller_id}/available-payout").json()
    assert Decimal(remaining["available_amount"]) == Decimal("80")


def test_available_payout_for_unknown_seller_is_zero(client):
    response = client.get(f"{BASE}/sellers/{uuid4()}/available-payout")

    assert response.status_code == 200
    assert Decimal(response.json()["available_amount"]) == Decimal("0")
