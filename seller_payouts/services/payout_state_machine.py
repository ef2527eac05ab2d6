"""
Payout State Machine

Drives a payout through settlement:

    PENDING -> process -> PROCESSING -> complete -> COMPLETED
                                     \\-> fail   -> FAILED

A failed payout releases every member commission back to APPROVED in the
same commit that marks it FAILED, so the commissions can be claimed again.
Completion is announced to the notifier only after it has been committed.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Optional, List, Tuple

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from sqlalchemy.orm.exc import StaleDataError

from seller_payouts.core.exceptions import CommissionError, ConcurrencyConflictError, NotFoundError
from seller_payouts.models.commission import (
    CommissionPayout, CommissionPayoutItem, PayoutStatus,
)
from seller_payouts.schemas.commission import PayoutCompletedEvent
from seller_payouts.services.commission_ledger import CommissionLedger
from seller_payouts.services.commission_state_machine import validate_payout_transition
from seller_payouts.services.notification_service import PayoutNotifier


logger = logging.getLogger(__name__)


class PayoutStateMachine:
    """Settlement lifecycle of commission payouts."""

    def __init__(
        self,
        db: AsyncSession,
        notifier: Optional[PayoutNotifier] = None,
        ledger: Optional[CommissionLedger] = None,
    ):
        self.db = db
        self.notifier = notifier or PayoutNotifier()
        self.ledger = ledger or CommissionLedger(db)

    # ==================== Queries ====================

    async def get(
        self,
        payout_id: uuid.UUID,
        for_update: bool = False,
        with_commissions: bool = False,
    ) -> CommissionPayout:
        """Load a payout with its items or raise NotFoundError."""
        items_loader = selectinload(CommissionPayout.items)
        if with_commissions:
            items_loader = items_loader.selectinload(CommissionPayoutItem.commission)

        query = (
            select(CommissionPayout)
            .where(CommissionPayout.id == payout_id)
            .options(items_loader)
        )
        if for_update:
            query = query.with_for_update().execution_options(populate_existing=True)

        result = await self.db.execute(query)
        payout = result.scalar_one_or_none()
        if not payout:
            raise NotFoundError("Payout", payout_id)
        return payout

    async def list_for_seller(
        self,
        seller_id: uuid.UUID,
        status: Optional[PayoutStatus] = None,
    ) -> List[CommissionPayout]:
        query = (
            select(CommissionPayout)
            .where(CommissionPayout.seller_id == seller_id)
            .options(selectinload(CommissionPayout.items))
        )
        if status:
            query = query.where(CommissionPayout.status == status.value)
        result = await self.db.execute(query.order_by(CommissionPayout.created_at.desc()))
        return list(result.scalars().all())

    async def list_all(
        self,
        status: Optional[PayoutStatus] = None,
        skip: int = 0,
        limit: int = 20,
    ) -> Tuple[List[CommissionPayout], int]:
        query = select(CommissionPayout).options(selectinload(CommissionPayout.items))
        count_query = select(func.count(CommissionPayout.id))
        if status:
            query = query.where(CommissionPayout.status == status.value)
            count_query = count_query.where(CommissionPayout.status == status.value)

        total_result = await self.db.execute(count_query)
        total = total_result.scalar() or 0

        result = await self.db.execute(
            query.order_by(CommissionPayout.created_at.desc()).offset(skip).limit(limit)
        )
        return list(result.scalars().all()), total

    # ==================== Transitions ====================

    async def process(self, payout_id: uuid.UUID, transaction_reference: str) -> CommissionPayout:
        """PENDING -> PROCESSING: the payout was handed to the settlement system."""
        payout = await self.get(payout_id, for_update=True)

        validate_payout_transition(payout.status, PayoutStatus.PROCESSING.value)
        payout.status = PayoutStatus.PROCESSING.value
        payout.transaction_reference = transaction_reference
        payout.processed_at = datetime.now(timezone.utc)

        await self._commit(payout_id)
        logger.info(f"Payout {payout.payout_number} processing, reference {transaction_reference}")
        return payout

    async def complete(self, payout_id: uuid.UUID) -> CommissionPayout:
        """PROCESSING -> COMPLETED, then notify."""
        payout = await self.get(payout_id, for_update=True)

        validate_payout_transition(payout.status, PayoutStatus.COMPLETED.value)
        payout.status = PayoutStatus.COMPLETED.value
        payout.completed_at = datetime.now(timezone.utc)

        await self._commit(payout_id)
        logger.info(f"Payout {payout.payout_number} completed, net {payout.net_amount}")

        event = PayoutCompletedEvent(
            payout_number=payout.payout_number,
            seller_id=payout.seller_id,
            net_amount=payout.net_amount,
            transaction_reference=payout.transaction_reference,
        )
        try:
            await self.notifier.payout_completed(event)
        except Exception as e:
            logger.error(f"Failed to deliver completion of payout {payout.payout_number}: {e}")

        return payout

    async def fail(self, payout_id: uuid.UUID, reason: str) -> CommissionPayout:
        """PROCESSING -> FAILED, releasing every member commission to APPROVED."""
        payout = await self.get(payout_id, for_update=True, with_commissions=True)

        try:
            validate_payout_transition(payout.status, PayoutStatus.FAILED.value)
            payout.status = PayoutStatus.FAILED.value
            payout.failed_at = datetime.now(timezone.utc)
            payout.failure_reason = reason

            for item in payout.items:
                self.ledger.revert_to_approved(item.commission)
        except CommissionError:
            await self.db.rollback()
            raise

        await self._commit(payout_id)
        logger.warning(
            f"Payout {payout.payout_number} failed ({reason}); "
            f"{len(payout.items)} commissions released"
        )
        return payout

    async def _commit(self, payout_id: uuid.UUID) -> None:
        try:
            await self.db.commit()
        except StaleDataError:
            await self.db.rollback()
            raise ConcurrencyConflictError(
                "Payout was modified concurrently",
                {"payout_id": str(payout_id)},
            )
