"""
Commission rate resolution for a seller.

Resolution order:
1. Seller custom rate (use_custom_rate) -> (custom rate, 0% platform fee)
2. First active tier covering the seller's cumulative sales, by priority
3. Configured default rate pair

Falling through to the default is an explicit decision: it is logged and
the returned RateSource is persisted on the commission so it can be told
apart from a tier match during audits.
"""

import logging
import uuid
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from seller_payouts.config import settings
from seller_payouts.core.exceptions import BusinessRuleError
from seller_payouts.models.commission import (
    CommissionTier, CommissionStatus, RateSource,
    SellerCommission, SellerCommissionSettings,
)


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedRates:
    commission_rate: Decimal
    platform_fee_rate: Decimal
    source: RateSource
    tier_id: Optional[uuid.UUID] = None
    cumulative_sales: Optional[Decimal] = None


class TierResolver:
    """Selects the commission/platform-fee rate pair for a seller."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_cumulative_sales(self, seller_id: uuid.UUID) -> Decimal:
        """
        Lifetime paid sales of a seller.

        Every non-cancelled commission exists because its order item was
        paid, so the ledger doubles as the seller's sales history.
        """
        result = await self.db.execute(
            select(func.coalesce(func.sum(SellerCommission.order_amount), 0))
            .where(
                SellerCommission.seller_id == seller_id,
                SellerCommission.status != CommissionStatus.CANCELLED.value,
            )
        )
        return Decimal(result.scalar() or 0)

    async def find_tier(self, cumulative_sales: Decimal) -> Optional[CommissionTier]:
        """First active tier covering the sales amount, ordered by priority."""
        result = await self.db.execute(
            select(CommissionTier)
            .where(
                CommissionTier.is_active == True,
                CommissionTier.min_sales <= cumulative_sales,
                CommissionTier.max_sales >= cumulative_sales,
            )
            .order_by(CommissionTier.priority.asc(), CommissionTier.id.asc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def resolve(
        self,
        seller_id: uuid.UUID,
        seller_settings: Optional[SellerCommissionSettings] = None,
        order_amount: Decimal = Decimal("0"),
        cumulative_sales: Optional[Decimal] = None,
    ) -> ResolvedRates:
        """
        Resolve the rate pair for a seller.

        Args:
            seller_id: Seller being paid
            seller_settings: The seller's commission settings, if any
            order_amount: Amount of the order item being recorded; counted
                towards the seller's sales volume
            cumulative_sales: Precomputed sales volume; skips the ledger query

        Returns:
            ResolvedRates with the rate pair and where it came from
        """
        if seller_settings is not None and seller_settings.use_custom_rate:
            if seller_settings.custom_commission_rate is None:
                raise BusinessRuleError(
                    "Seller uses a custom rate but no custom commission rate is set",
                    {"seller_id": str(seller_id)},
                )
            return ResolvedRates(
                commission_rate=Decimal(seller_settings.custom_commission_rate),
                platform_fee_rate=Decimal("0"),
                source=RateSource.CUSTOM,
            )

        if cumulative_sales is None:
            cumulative_sales = await self.get_cumulative_sales(seller_id) + Decimal(order_amount)

        tier = await self.find_tier(cumulative_sales)
        if tier is not None:
            return ResolvedRates(
                commission_rate=Decimal(tier.commission_rate),
                platform_fee_rate=Decimal(tier.platform_fee_rate),
                source=RateSource.TIER,
                tier_id=tier.id,
                cumulative_sales=cumulative_sales,
            )

        logger.warning(
            f"No commission tier covers sales {cumulative_sales} for seller {seller_id}; "
            f"applying default {settings.DEFAULT_COMMISSION_RATE}%/{settings.DEFAULT_PLATFORM_FEE_RATE}%"
        )
        return ResolvedRates(
            commission_rate=settings.DEFAULT_COMMISSION_RATE,
            platform_fee_rate=settings.DEFAULT_PLATFORM_FEE_RATE,
            source=RateSource.DEFAULT,
            cumulative_sales=cumulative_sales,
        )
