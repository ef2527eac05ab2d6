"""
Commission Ledger

Owns the lifecycle of the one commission record per (order, order item):

    record -> PENDING -> approve -> APPROVED -> mark_paid -> PAID
                    \\-> cancel  -> CANCELLED
    PAID -> revert_to_approved -> APPROVED (payout rollback only)

Guarantees:
- At most one non-cancelled commission per order item, enforced by a
  partial unique index. A concurrent duplicate insert surfaces as
  AlreadyExistsError carrying the winning record.
- Every status change is validated by the commission state machine and
  guarded by the row's version column, so two writers can never both
  move the same commission.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Optional, List, Tuple

from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from seller_payouts.core.exceptions import (
    AlreadyExistsError, BusinessRuleError, ConcurrencyConflictError,
    InvalidStateTransitionError, NotFoundError,
)
from seller_payouts.models.commission import (
    CommissionStatus, SellerCommission, SellerCommissionSettings,
)
from seller_payouts.schemas.commission import PaymentConfirmed
from seller_payouts.services.commission_calculator import CommissionCalculator
from seller_payouts.services.commission_state_machine import validate_commission_transition
from seller_payouts.services.tier_resolver import TierResolver


logger = logging.getLogger(__name__)


class CommissionLedger:
    """Commission ledger operations for one database session."""

    def __init__(
        self,
        db: AsyncSession,
        tier_resolver: Optional[TierResolver] = None,
        calculator: Optional[CommissionCalculator] = None,
    ):
        self.db = db
        self.tier_resolver = tier_resolver or TierResolver(db)
        self.calculator = calculator or CommissionCalculator()

    # ==================== Queries ====================

    async def get(self, commission_id: uuid.UUID, for_update: bool = False) -> SellerCommission:
        """Load a commission or raise NotFoundError."""
        query = select(SellerCommission).where(SellerCommission.id == commission_id)
        if for_update:
            query = query.with_for_update().execution_options(populate_existing=True)
        result = await self.db.execute(query)
        commission = result.scalar_one_or_none()
        if not commission:
            raise NotFoundError("Commission", commission_id)
        return commission

    async def find_active_for_order_item(self, order_item_id: uuid.UUID) -> Optional[SellerCommission]:
        """The non-cancelled commission of an order item, if any."""
        result = await self.db.execute(
            select(SellerCommission)
            .where(
                SellerCommission.order_item_id == order_item_id,
                SellerCommission.status != CommissionStatus.CANCELLED.value,
            )
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def list_for_seller(
        self,
        seller_id: uuid.UUID,
        status: Optional[CommissionStatus] = None,
    ) -> List[SellerCommission]:
        query = select(SellerCommission).where(SellerCommission.seller_id == seller_id)
        if status:
            query = query.where(SellerCommission.status == status.value)
        result = await self.db.execute(query.order_by(SellerCommission.created_at.desc()))
        return list(result.scalars().all())

    async def list_all(
        self,
        status: Optional[CommissionStatus] = None,
        skip: int = 0,
        limit: int = 20,
    ) -> Tuple[List[SellerCommission], int]:
        query = select(SellerCommission)
        count_query = select(func.count(SellerCommission.id))
        if status:
            query = query.where(SellerCommission.status == status.value)
            count_query = count_query.where(SellerCommission.status == status.value)

        total_result = await self.db.execute(count_query)
        total = total_result.scalar() or 0

        result = await self.db.execute(
            query.order_by(SellerCommission.created_at.desc()).offset(skip).limit(limit)
        )
        return list(result.scalars().all()), total

    # ==================== Recording ====================

    async def record(self, event: PaymentConfirmed) -> SellerCommission:
        """
        Record the commission for a paid order item.

        Raises:
            BusinessRuleError: The order item has no assigned seller
            AlreadyExistsError: A non-cancelled commission already exists for
                the order item; the existing record is on ``.existing``
        """
        if event.seller_id is None:
            raise BusinessRuleError(
                "No seller is assigned to the order item",
                {"order_item_id": str(event.order_item_id)},
            )

        existing = await self.find_active_for_order_item(event.order_item_id)
        if existing:
            raise AlreadyExistsError(existing)

        settings_result = await self.db.execute(
            select(SellerCommissionSettings)
            .where(SellerCommissionSettings.seller_id == event.seller_id)
        )
        seller_settings = settings_result.scalar_one_or_none()

        rates = await self.tier_resolver.resolve(
            event.seller_id,
            seller_settings,
            order_amount=event.order_item_amount,
        )
        breakdown = self.calculator.calculate(
            event.order_item_amount,
            rates.commission_rate,
            rates.platform_fee_rate,
        )

        commission = SellerCommission(
            seller_id=event.seller_id,
            order_id=event.order_id,
            order_item_id=event.order_item_id,
            order_amount=breakdown.order_amount,
            commission_rate=breakdown.commission_rate,
            platform_fee_rate=breakdown.platform_fee_rate,
            commission_amount=breakdown.commission_amount,
            platform_fee=breakdown.platform_fee,
            net_amount=breakdown.net_amount,
            rate_source=rates.source.value,
            tier_id=rates.tier_id,
            status=CommissionStatus.PENDING.value,
        )
        self.db.add(commission)

        try:
            await self.db.commit()
        except IntegrityError:
            # Lost an insert race for the same order item
            await self.db.rollback()
            existing = await self.find_active_for_order_item(event.order_item_id)
            if existing is None:
                raise
            logger.info(f"Concurrent duplicate commission for order item {event.order_item_id}")
            raise AlreadyExistsError(existing)

        logger.info(
            f"Recorded commission {commission.id} for order item {event.order_item_id}: "
            f"net {commission.net_amount} ({commission.rate_source} {commission.commission_rate}%)"
        )
        return commission

    async def record_or_get(self, event: PaymentConfirmed) -> Tuple[SellerCommission, bool]:
        """Idempotent form of record(): returns (commission, created)."""
        try:
            return await self.record(event), True
        except AlreadyExistsError as e:
            return e.existing, False

    # ==================== Operator Transitions ====================

    async def approve(self, commission_id: uuid.UUID) -> SellerCommission:
        """PENDING -> APPROVED. Approving an approved commission is a no-op."""
        commission = await self.get(commission_id, for_update=True)
        if commission.status == CommissionStatus.APPROVED.value:
            return commission
        # PAID -> APPROVED is reserved for payout rollback
        if commission.status != CommissionStatus.PENDING.value:
            raise InvalidStateTransitionError("Commission", commission.status, CommissionStatus.APPROVED.value)

        commission.status = CommissionStatus.APPROVED.value
        commission.approved_at = datetime.now(timezone.utc)

        await self._commit(commission_id)
        logger.info(f"Approved commission {commission_id}")
        return commission

    async def cancel(self, commission_id: uuid.UUID, reason: Optional[str] = None) -> SellerCommission:
        """PENDING | APPROVED -> CANCELLED. Illegal once paid."""
        commission = await self.get(commission_id, for_update=True)

        validate_commission_transition(commission.status, CommissionStatus.CANCELLED.value)
        commission.status = CommissionStatus.CANCELLED.value
        commission.cancelled_at = datetime.now(timezone.utc)
        commission.cancellation_reason = reason

        await self._commit(commission_id)
        logger.info(f"Cancelled commission {commission_id}")
        return commission

    async def _commit(self, commission_id: uuid.UUID) -> None:
        try:
            await self.db.commit()
        except StaleDataError:
            await self.db.rollback()
            raise ConcurrencyConflictError(
                "Commission was modified concurrently",
                {"commission_id": str(commission_id)},
            )

    # ==================== Payout Transitions ====================
    # Called only inside PayoutBatcher / PayoutStateMachine units of work,
    # which own the flush and commit.

    def mark_paid(self, commission: SellerCommission, payment_reference: str) -> None:
        """APPROVED -> PAID, referencing the claiming payout."""
        validate_commission_transition(commission.status, CommissionStatus.PAID.value)
        commission.status = CommissionStatus.PAID.value
        commission.paid_at = datetime.now(timezone.utc)
        commission.payment_reference = payment_reference

    def revert_to_approved(self, commission: SellerCommission) -> None:
        """PAID -> APPROVED, releasing the commission after a failed payout."""
        validate_commission_transition(commission.status, CommissionStatus.APPROVED.value)
        commission.status = CommissionStatus.APPROVED.value
        commission.paid_at = None
        commission.payment_reference = None
