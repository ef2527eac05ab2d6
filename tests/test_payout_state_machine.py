import asyncio
from decimal import Decimal
from uuid import uuid4

import pytest

from seller_payouts.core.exceptions import InvalidStateTransitionError, NotFoundError
from seller_payouts.models.commission import CommissionStatus, PayoutStatus
from seller_payouts.services.payout_batcher import PayoutBatcher
from seller_payouts.services.payout_state_machine import PayoutStateMachine

from factories import RecordingNotifier, add_commission, load_commission, set_seller_settings


async def _pending_payout(session_factory, seller_id, *net_amounts):
    async with session_factory() as db:
        await set_seller_settings(db, seller_id, minimum_payout_amount="100")
        commissions = [await add_commission(db, seller_id, amount) for amount in net_amounts]
        payout = await PayoutBatcher(db).request_payout(seller_id, [c.id for c in commissions])
    return payout, commissions


def test_process_then_complete_notifies(session_factory):
    seller_id = uuid4()
    notifier = RecordingNotifier()

    async def scenario():
        payout, _ = await _pending_payout(session_factory, seller_id, "50", "60")
        async with session_factory() as db:
            machine = PayoutStateMachine(db, notifier=notifier)
            processing = await machine.process(payout.id, "UTR-0001")
            assert processing.status == PayoutStatus.PROCESSING.value
            assert processing.processed_at is not None
            return await machine.complete(payout.id)

    completed = asyncio.run(scenario())

    assert completed.status == PayoutStatus.COMPLETED.value
    assert completed.completed_at is not None
    assert len(notifier.events) == 1
    event = notifier.events[0]
    assert event.payout_number == "PAY-000001"
    assert event.seller_id == seller_id
    assert event.net_amount == Decimal("108.90")
    assert event.transaction_reference == "UTR-0001"


def test_notifier_failure_does_not_undo_completion(session_factory):
    seller_id = uuid4()
    notifier = RecordingNotifier(error=RuntimeError("webhook down"))

    async def scenario():
        payout, _ = await _pending_payout(session_factory, seller_id, "150")
        async with session_factory() as db:
            machine = PayoutStateMachine(db, notifier=notifier)
            await machine.process(payout.id, "UTR-0002")
            await machine.complete(payout.id)
        async with session_factory() as db:
            return await PayoutStateMachine(db, notifier=notifier).get(payout.id)

    stored = asyncio.run(scenario())

    assert stored.status == PayoutStatus.COMPLETED.value
    assert len(notifier.events) == 1


def test_fail_releases_commissions_for_a_new_payout(session_factory):
    seller_id = uuid4()

    async def scenario():
        payout, commissions = await _pending_payout(session_factory, seller_id, "50", "60")
        async with session_factory() as db:
            machine = PayoutStateMachine(db, notifier=RecordingNotifier())
            await machine.process(payout.id, "UTR-0003")
            failed = await machine.fail(payout.id, "Bank account closed")
        async with session_factory() as db:
            released = [await load_commission(db, c.id) for c in commissions]
        async with session_factory() as db:
            retry = await PayoutBatcher(db).request_payout(seller_id, [c.id for c in commissions])
        return failed, released, retry

    failed, released, retry = asyncio.run(scenario())

    assert failed.status == PayoutStatus.FAILED.value
    assert failed.failure_reason == "Bank account closed"
    assert failed.failed_at is not None
    # Items stay on the failed payout for audit
    assert len(failed.items) == 2
    for commission in released:
        assert commission.status == CommissionStatus.APPROVED.value
        assert commission.payment_reference is None
        assert commission.paid_at is None
    assert retry.payout_number == "PAY-000002"
    assert retry.total_amount == Decimal("110.00")


@pytest.mark.parametrize("action", ["complete", "fail"])
def test_pending_payout_must_be_processed_first(session_factory, action):
    seller_id = uuid4()

    async def scenario():
        payout, commissions = await _pending_payout(session_factory, seller_id, "150")
        async with session_factory() as db:
            machine = PayoutStateMachine(db, notifier=RecordingNotifier())
            with pytest.raises(InvalidStateTransitionError):
                if action == "complete":
                    await machine.complete(payout.id)
                else:
                    await machine.fail(payout.id, "Rejected")
        async with session_factory() as db:
            payout = await PayoutStateMachine(db).get(payout.id)
            commission = await load_commission(db, commissions[0].id)
        return payout, commission

    payout, commission = asyncio.run(scenario())
    assert payout.status == PayoutStatus.PENDING.value
    assert commission.status == CommissionStatus.PAID.value


def test_completed_payout_cannot_fail(session_factory):
    seller_id = uuid4()

    async def scenario():
        payout, commissions = await _pending_payout(session_factory, seller_id, "150")
        async with session_factory() as db:
            machine = PayoutStateMachine(db, notifier=RecordingNotifier())
            await machine.process(payout.id, "UTR-0004")
            await machine.complete(payout.id)
            with pytest.raises(InvalidStateTransitionError):
                await machine.fail(payout.id, "Too late")
        async with session_factory() as db:
            return await load_commission(db, commissions[0].id)

    commission = asyncio.run(scenario())
    assert commission.status == CommissionStatus.PAID.value


def test_payout_queries(session_factory):
    seller_id = uuid4()

    async def scenario():
        first, _ = await _pending_payout(session_factory, seller_id, "150")
        await _pending_payout(session_factory, uuid4(), "200")
        async with session_factory() as db:
            machine = PayoutStateMachine(db)
            await machine.process(first.id, "UTR-0005")
            mine = await machine.list_for_seller(seller_id)
            processing, processing_total = await machine.list_all(PayoutStatus.PROCESSING)
            everything, total = await machine.list_all()
            with pytest.raises(NotFoundError):
                await machine.get(uuid4())
        return mine, processing, processing_total, everything, total

    mine, processing, processing_total, everything, total = asyncio.run(scenario())
    assert [p.payout_number for p in mine] == ["PAY-000001"]
    assert len(mine[0].items) == 1
    assert processing_total == 1
    assert processing[0].payout_number == "PAY-000001"
    assert total == 2
    assert len(everything) == 2
