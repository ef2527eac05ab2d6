import asyncio
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import select, update

from seller_payouts.config import settings
from seller_payouts.core.exceptions import (
    BelowMinimumPayoutError, ConcurrencyConflictError, NoEligibleCommissionsError,
)
from seller_payouts.models.commission import (
    CommissionPayout, CommissionStatus, PayoutStatus, SellerCommission,
)
from seller_payouts.services.payout_batcher import PayoutBatcher

from factories import add_commission, load_commission, set_seller_settings


def test_payout_claims_approved_commissions(session_factory):
    seller_id = uuid4()

    async def scenario():
        async with session_factory() as db:
            await set_seller_settings(db, seller_id, minimum_payout_amount="100")
            a = await add_commission(db, seller_id, "50")
            b = await add_commission(db, seller_id, "60")
            payout = await PayoutBatcher(db).request_payout(seller_id, [a.id, b.id], notes="Weekly")
        async with session_factory() as db:
            stored = [await load_commission(db, c.id) for c in (a, b)]
        return payout, stored

    payout, stored = asyncio.run(scenario())

    assert payout.payout_number == "PAY-000001"
    assert payout.status == PayoutStatus.PENDING.value
    assert payout.total_amount == Decimal("110.00")
    assert payout.transaction_fee == Decimal("1.10")
    assert payout.net_amount == Decimal("108.90")
    assert payout.payment_method == "BANK_TRANSFER"
    assert payout.notes == "Weekly"
    assert sorted(item.amount for item in payout.items) == [Decimal("50.00"), Decimal("60.00")]
    for commission in stored:
        assert commission.status == CommissionStatus.PAID.value
        assert commission.payment_reference == "PAY-000001"
        assert commission.paid_at is not None


def test_below_minimum_leaves_commission_approved(session_factory):
    seller_id = uuid4()

    async def scenario():
        async with session_factory() as db:
            await set_seller_settings(db, seller_id, minimum_payout_amount="100")
            commission_id = (await add_commission(db, seller_id, "30")).id
            with pytest.raises(BelowMinimumPayoutError) as exc_info:
                await PayoutBatcher(db).request_payout(seller_id, [commission_id])
        async with session_factory() as db:
            stored = await load_commission(db, commission_id)
            payouts = (await db.execute(select(CommissionPayout))).scalars().all()
        return exc_info.value, stored, payouts

    error, stored, payouts = asyncio.run(scenario())

    assert Decimal(error.details["minimum_payout_amount"]) == Decimal("100")
    assert stored.status == CommissionStatus.APPROVED.value
    assert stored.payment_reference is None
    assert payouts == []


def test_default_minimum_without_seller_settings(session_factory):
    seller_id = uuid4()

    async def scenario():
        async with session_factory() as db:
            commission = await add_commission(db, seller_id, "99.99")
            await PayoutBatcher(db).request_payout(seller_id, [commission.id])

    assert settings.DEFAULT_MINIMUM_PAYOUT_AMOUNT == Decimal("100")
    with pytest.raises(BelowMinimumPayoutError):
        asyncio.run(scenario())


def test_ineligible_ids_are_skipped(session_factory):
    seller_id = uuid4()

    async def scenario():
        async with session_factory() as db:
            await set_seller_settings(db, seller_id, minimum_payout_amount="0")
            approved = await add_commission(db, seller_id, "40")
            pending = await add_commission(db, seller_id, "40", status=CommissionStatus.PENDING)
            foreign = await add_commission(db, uuid4(), "40")
            payout = await PayoutBatcher(db).request_payout(
                seller_id, [approved.id, pending.id, foreign.id, uuid4()],
            )
        async with session_factory() as db:
            stored_pending = await load_commission(db, pending.id)
            stored_foreign = await load_commission(db, foreign.id)
        return approved, payout, stored_pending, stored_foreign

    approved, payout, stored_pending, stored_foreign = asyncio.run(scenario())

    assert [item.commission_id for item in payout.items] == [approved.id]
    assert payout.total_amount == Decimal("40.00")
    assert stored_pending.status == CommissionStatus.PENDING.value
    assert stored_foreign.status == CommissionStatus.APPROVED.value


def test_nothing_eligible(session_factory):
    seller_id = uuid4()

    async def scenario():
        async with session_factory() as db:
            pending = await add_commission(db, seller_id, "400", status=CommissionStatus.PENDING)
            await PayoutBatcher(db).request_payout(seller_id, [pending.id])

    with pytest.raises(NoEligibleCommissionsError) as exc_info:
        asyncio.run(scenario())
    assert exc_info.value.message == "No approved commissions"


def test_second_request_skips_already_claimed_commission(session_factory):
    seller_id = uuid4()

    async def scenario():
        async with session_factory() as db:
            await set_seller_settings(db, seller_id, minimum_payout_amount="100")
            c = await add_commission(db, seller_id, "150")
            d = await add_commission(db, seller_id, "120")
        async with session_factory() as db:
            first = await PayoutBatcher(db).request_payout(seller_id, [c.id])
        async with session_factory() as db:
            second = await PayoutBatcher(db).request_payout(seller_id, [c.id, d.id])
        return c, d, first, second

    c, d, first, second = asyncio.run(scenario())

    assert [item.commission_id for item in first.items] == [c.id]
    assert [item.commission_id for item in second.items] == [d.id]
    assert second.payout_number == "PAY-000002"


def _bump_version(commission_id, mark_paid=True):
    values = {"version": SellerCommission.version + 1}
    if mark_paid:
        values.update(status=CommissionStatus.PAID.value, payment_reference="PAY-999999")
    return (
        update(SellerCommission)
        .where(SellerCommission.id == commission_id)
        .values(**values)
        .execution_options(synchronize_session=False)
    )


def _race_on_first_load(monkeypatch, session_factory, contested, calls, mark_paid=True, every_time=False):
    """A competing payout claims the contested commission right after candidates are read."""
    original = PayoutBatcher._load_candidates

    async def racing_load(self, seller_id, commission_ids):
        candidates = await original(self, seller_id, commission_ids)
        calls.append(len(candidates))
        if every_time or len(calls) == 1:
            async with session_factory() as other:
                await other.execute(_bump_version(contested["id"], mark_paid))
                await other.commit()
        return candidates

    monkeypatch.setattr(PayoutBatcher, "_load_candidates", racing_load)


def test_lost_race_retries_without_taken_commission(session_factory, monkeypatch):
    seller_id = uuid4()
    contested = {}
    calls = []
    _race_on_first_load(monkeypatch, session_factory, contested, calls)

    async def scenario():
        async with session_factory() as db:
            await set_seller_settings(db, seller_id, minimum_payout_amount="100")
            c_id = (await add_commission(db, seller_id, "50")).id
            d_id = (await add_commission(db, seller_id, "120")).id
            contested["id"] = c_id
            payout = await PayoutBatcher(db).request_payout(seller_id, [c_id, d_id])
        async with session_factory() as db:
            stored_c = await load_commission(db, c_id)
            stored_d = await load_commission(db, d_id)
        return d_id, payout, stored_c, stored_d

    d_id, payout, stored_c, stored_d = asyncio.run(scenario())

    assert calls == [2, 1]
    assert [item.commission_id for item in payout.items] == [d_id]
    assert payout.total_amount == Decimal("120.00")
    # The failed attempt's number was rolled back with it
    assert payout.payout_number == "PAY-000001"
    assert stored_c.payment_reference == "PAY-999999"
    assert stored_d.payment_reference == "PAY-000001"


def test_lost_race_on_only_commission_is_a_conflict(session_factory, monkeypatch):
    seller_id = uuid4()
    contested = {}
    calls = []
    _race_on_first_load(monkeypatch, session_factory, contested, calls)

    async def scenario():
        async with session_factory() as db:
            await set_seller_settings(db, seller_id, minimum_payout_amount="10")
            c = await add_commission(db, seller_id, "50")
            contested["id"] = c.id
            await PayoutBatcher(db).request_payout(seller_id, [c.id])

    with pytest.raises(ConcurrencyConflictError) as exc_info:
        asyncio.run(scenario())

    assert calls == [1, 0]
    assert isinstance(exc_info.value.__cause__, NoEligibleCommissionsError)
    assert exc_info.value.retryable is True


def test_conflict_after_exhausting_attempts(session_factory, monkeypatch):
    seller_id = uuid4()
    contested = {}
    calls = []
    _race_on_first_load(monkeypatch, session_factory, contested, calls, mark_paid=False, every_time=True)

    async def scenario():
        async with session_factory() as db:
            await set_seller_settings(db, seller_id, minimum_payout_amount="10")
            c = await add_commission(db, seller_id, "50")
            contested["id"] = c.id
            await PayoutBatcher(db).request_payout(seller_id, [c.id])

    with pytest.raises(ConcurrencyConflictError):
        asyncio.run(scenario())

    assert len(calls) == settings.PAYOUT_CLAIM_MAX_ATTEMPTS
