"""
Payout Batcher

Turns a seller's request for a set of approved commissions into a single
PENDING payout. A claim is all-or-nothing: the payout, its items, the PAY
number and every APPROVED -> PAID move are committed together.

Two requests racing for the same commission are separated by the
commission version column. The loser's flush fails with StaleDataError,
its whole attempt is rolled back and it starts over, at which point the
already-claimed commission is no longer APPROVED and drops out of the
candidate set.
"""

import logging
import uuid
from decimal import Decimal
from typing import Optional, List, Sequence, Tuple

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from seller_payouts.config import settings
from seller_payouts.core.exceptions import (
    BelowMinimumPayoutError, CommissionError, ConcurrencyConflictError, NoEligibleCommissionsError,
)
from seller_payouts.models.commission import (
    CommissionPayout, CommissionPayoutItem, CommissionStatus, PayoutStatus,
    SellerCommission, SellerCommissionSettings,
)
from seller_payouts.services.commission_calculator import calculate_transaction_fee
from seller_payouts.services.commission_ledger import CommissionLedger
from seller_payouts.services.document_sequence_service import DocumentSequenceService


logger = logging.getLogger(__name__)


class PayoutBatcher:
    """Claims approved commissions into payout batches."""

    def __init__(self, db: AsyncSession, ledger: Optional[CommissionLedger] = None):
        self.db = db
        self.ledger = ledger or CommissionLedger(db)

    async def request_payout(
        self,
        seller_id: uuid.UUID,
        commission_ids: Sequence[uuid.UUID],
        notes: Optional[str] = None,
    ) -> CommissionPayout:
        """
        Create a payout for the approved commissions among commission_ids.

        Ids that are not APPROVED or not owned by the seller are skipped.

        Raises:
            NoEligibleCommissionsError: Nothing claimable was requested
            BelowMinimumPayoutError: Claimed total is under the seller minimum
            ConcurrencyConflictError: Concurrent payouts kept taking the
                requested commissions
        """
        commission_ids = list(dict.fromkeys(commission_ids))
        max_attempts = max(1, settings.PAYOUT_CLAIM_MAX_ATTEMPTS)
        lost_race = False

        for attempt in range(1, max_attempts + 1):
            try:
                return await self._claim(seller_id, commission_ids, notes)
            except (StaleDataError, IntegrityError) as e:
                await self.db.rollback()
                lost_race = True
                logger.warning(
                    f"Payout claim for seller {seller_id} lost a concurrent race "
                    f"(attempt {attempt}/{max_attempts}): {type(e).__name__}"
                )
            except NoEligibleCommissionsError as e:
                await self.db.rollback()
                if lost_race:
                    raise ConcurrencyConflictError(
                        "Requested commissions were claimed by a concurrent payout",
                        {"seller_id": str(seller_id), "attempts": attempt},
                    ) from e
                raise
            except CommissionError:
                await self.db.rollback()
                raise

        raise ConcurrencyConflictError(
            "Could not claim commissions after repeated concurrent conflicts",
            {"seller_id": str(seller_id), "attempts": max_attempts},
        )

    async def _claim(
        self,
        seller_id: uuid.UUID,
        commission_ids: List[uuid.UUID],
        notes: Optional[str],
    ) -> CommissionPayout:
        candidates = await self._load_candidates(seller_id, commission_ids)
        if not candidates:
            raise NoEligibleCommissionsError(seller_id, len(commission_ids))

        total_amount = sum((c.net_amount for c in candidates), Decimal("0"))

        minimum_amount, seller_settings = await self._get_minimum_payout(seller_id)
        if total_amount < minimum_amount:
            raise BelowMinimumPayoutError(total_amount, minimum_amount)

        transaction_fee = calculate_transaction_fee(total_amount, settings.PAYOUT_TRANSACTION_FEE_RATE)

        sequence_service = DocumentSequenceService(self.db)
        payout_number = await sequence_service.get_next_number(settings.PAYOUT_NUMBER_PREFIX)

        payout = CommissionPayout(
            seller_id=seller_id,
            payout_number=payout_number,
            total_amount=total_amount,
            transaction_fee=transaction_fee,
            net_amount=total_amount - transaction_fee,
            status=PayoutStatus.PENDING.value,
            payment_method=(
                seller_settings.payment_method if seller_settings and seller_settings.payment_method
                else settings.DEFAULT_PAYMENT_METHOD
            ),
            payment_details=seller_settings.payment_details if seller_settings else None,
            notes=notes,
            items=[
                CommissionPayoutItem(commission_id=c.id, amount=c.net_amount)
                for c in candidates
            ],
        )
        self.db.add(payout)

        for commission in candidates:
            self.ledger.mark_paid(commission, payout_number)

        await self.db.commit()

        logger.info(
            f"Created payout {payout_number} for seller {seller_id}: "
            f"{len(candidates)} commissions, total {total_amount}, fee {transaction_fee}"
        )
        return payout

    async def _load_candidates(
        self,
        seller_id: uuid.UUID,
        commission_ids: List[uuid.UUID],
    ) -> List[SellerCommission]:
        """Requested commissions that are APPROVED and owned by the seller, row-locked."""
        result = await self.db.execute(
            select(SellerCommission)
            .where(
                SellerCommission.id.in_(commission_ids),
                SellerCommission.seller_id == seller_id,
                SellerCommission.status == CommissionStatus.APPROVED.value,
            )
            .order_by(SellerCommission.id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def _get_minimum_payout(
        self,
        seller_id: uuid.UUID,
    ) -> Tuple[Decimal, Optional[SellerCommissionSettings]]:
        result = await self.db.execute(
            select(SellerCommissionSettings)
            .where(SellerCommissionSettings.seller_id == seller_id)
        )
        seller_settings = result.scalar_one_or_none()
        if seller_settings is None:
            return settings.DEFAULT_MINIMUM_PAYOUT_AMOUNT, None
        return seller_settings.minimum_payout_amount, seller_settings
