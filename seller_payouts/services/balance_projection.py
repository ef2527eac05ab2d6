"""
Seller balance projection.

Balances are never stored on the seller. They are aggregated from the
commission ledger and payout table on every read, so they cannot drift
from the records they summarize.

Every recorded net amount sits in exactly one bucket:

    PENDING commission    -> pending_balance
    APPROVED commission   -> available_balance
    CANCELLED commission  -> cancelled_amount
    PAID commission       -> in_transit_balance (payout PENDING/PROCESSING)
                          -> total_paid + total_transaction_fees (payout COMPLETED)

so the buckets always add back up to total_recorded.
"""

import logging
import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Optional, Dict

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from seller_payouts.models.commission import (
    CommissionPayout, CommissionStatus, PayoutStatus, SellerCommission,
)
from seller_payouts.schemas.commission import CommissionStatsResponse, SellerBalance
from seller_payouts.services.commission_calculator import quantize_money


logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")
STATS_MONTHS = 12


def _money(value) -> Decimal:
    if value is None:
        return ZERO
    return quantize_money(Decimal(str(value)))


class SellerBalanceProjection:
    """Read-side aggregates over the commission ledger."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _commission_totals(self, seller_id: Optional[uuid.UUID] = None) -> Dict[str, Decimal]:
        """Σ net_amount per commission status."""
        query = select(
            SellerCommission.status,
            func.coalesce(func.sum(SellerCommission.net_amount), 0),
        ).group_by(SellerCommission.status)
        if seller_id is not None:
            query = query.where(SellerCommission.seller_id == seller_id)

        result = await self.db.execute(query)
        return {status: _money(amount) for status, amount in result.all()}

    async def _payout_totals(self, seller_id: uuid.UUID) -> Dict[str, Dict[str, Decimal]]:
        """Σ total/fee/net per payout status."""
        result = await self.db.execute(
            select(
                CommissionPayout.status,
                func.coalesce(func.sum(CommissionPayout.total_amount), 0),
                func.coalesce(func.sum(CommissionPayout.transaction_fee), 0),
                func.coalesce(func.sum(CommissionPayout.net_amount), 0),
            )
            .where(CommissionPayout.seller_id == seller_id)
            .group_by(CommissionPayout.status)
        )
        return {
            status: {"total": _money(total), "fee": _money(fee), "net": _money(net)}
            for status, total, fee, net in result.all()
        }

    async def get_balance(self, seller_id: uuid.UUID) -> SellerBalance:
        """Compute the seller's balances from the ledger."""
        commissions = await self._commission_totals(seller_id)
        payouts = await self._payout_totals(seller_id)

        empty = {"total": ZERO, "fee": ZERO, "net": ZERO}
        pending_payouts = payouts.get(PayoutStatus.PENDING.value, empty)
        processing_payouts = payouts.get(PayoutStatus.PROCESSING.value, empty)
        completed_payouts = payouts.get(PayoutStatus.COMPLETED.value, empty)

        pending_balance = commissions.get(CommissionStatus.PENDING.value, ZERO)
        available_balance = commissions.get(CommissionStatus.APPROVED.value, ZERO)
        cancelled_amount = commissions.get(CommissionStatus.CANCELLED.value, ZERO)
        in_transit_balance = pending_payouts["total"] + processing_payouts["total"]
        total_paid = completed_payouts["net"]
        total_transaction_fees = completed_payouts["fee"]
        total_recorded = sum(commissions.values(), ZERO)

        is_reconciled = (
            pending_balance + available_balance + in_transit_balance
            + total_paid + total_transaction_fees + cancelled_amount
        ) == total_recorded
        if not is_reconciled:
            logger.error(f"Ledger for seller {seller_id} does not reconcile to {total_recorded}")

        return SellerBalance(
            seller_id=seller_id,
            pending_balance=pending_balance,
            available_balance=available_balance,
            in_transit_balance=in_transit_balance,
            total_paid=total_paid,
            total_transaction_fees=total_transaction_fees,
            cancelled_amount=cancelled_amount,
            total_recorded=total_recorded,
            is_reconciled=is_reconciled,
        )

    async def available_payout_amount(self, seller_id: uuid.UUID) -> Decimal:
        """Σ net_amount of the seller's APPROVED commissions."""
        result = await self.db.execute(
            select(func.coalesce(func.sum(SellerCommission.net_amount), 0))
            .where(
                SellerCommission.seller_id == seller_id,
                SellerCommission.status == CommissionStatus.APPROVED.value,
            )
        )
        return _money(result.scalar())

    async def commission_stats(self, seller_id: Optional[uuid.UUID] = None) -> CommissionStatsResponse:
        """
        Commission statistics for one seller, or the whole marketplace.

        Counts and sums cover every recorded commission, cancelled included;
        total_earnings is the gross commission before platform fees.
        commissions_by_month covers the last 12 months keyed "YYYY-MM".
        """
        seller_filter = []
        if seller_id is not None:
            seller_filter.append(SellerCommission.seller_id == seller_id)

        result = await self.db.execute(
            select(
                func.count(SellerCommission.id),
                func.coalesce(func.sum(SellerCommission.commission_amount), 0),
                func.coalesce(func.sum(SellerCommission.platform_fee), 0),
                func.avg(SellerCommission.commission_rate),
            ).where(*seller_filter)
        )
        count, total_earnings, total_platform_fees, average_rate = result.one()

        by_status = await self._commission_totals(seller_id)

        cutoff = datetime.now(timezone.utc) - timedelta(days=365)
        month_result = await self.db.execute(
            select(SellerCommission.created_at, SellerCommission.net_amount)
            .where(*seller_filter, SellerCommission.created_at >= cutoff)
        )
        by_month: Dict[str, Decimal] = {}
        for created_at, net_amount in month_result.all():
            key = created_at.strftime("%Y-%m")
            by_month[key] = by_month.get(key, ZERO) + _money(net_amount)

        # Keep only the most recent months
        months = sorted(by_month)[-STATS_MONTHS:]

        return CommissionStatsResponse(
            total_commissions=count or 0,
            total_earnings=_money(total_earnings),
            pending_commissions=by_status.get(CommissionStatus.PENDING.value, ZERO),
            approved_commissions=by_status.get(CommissionStatus.APPROVED.value, ZERO),
            paid_commissions=by_status.get(CommissionStatus.PAID.value, ZERO),
            available_for_payout=by_status.get(CommissionStatus.APPROVED.value, ZERO),
            average_commission_rate=_money(average_rate),
            total_platform_fees=_money(total_platform_fees),
            commissions_by_month={month: by_month[month] for month in months},
        )
