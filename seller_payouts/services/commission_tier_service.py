"""
Commission tier administration.

Tier ranges may overlap, but two active tiers that overlap must differ in
priority, otherwise resolution for sales inside the overlap would be
ambiguous.
"""

import logging
import uuid
from typing import Optional, List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from seller_payouts.core.exceptions import NotFoundError, ValidationError
from seller_payouts.models.commission import CommissionTier
from seller_payouts.schemas.commission import CommissionTierCreate, CommissionTierUpdate


logger = logging.getLogger(__name__)


class CommissionTierService:
    """Create, update and retire commission tiers."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, tier_id: uuid.UUID) -> CommissionTier:
        result = await self.db.execute(
            select(CommissionTier).where(CommissionTier.id == tier_id)
        )
        tier = result.scalar_one_or_none()
        if not tier:
            raise NotFoundError("Commission tier", tier_id)
        return tier

    async def list_active(self) -> List[CommissionTier]:
        """Active tiers in resolution order."""
        result = await self.db.execute(
            select(CommissionTier)
            .where(CommissionTier.is_active == True)
            .order_by(CommissionTier.priority.asc(), CommissionTier.min_sales.asc())
        )
        return list(result.scalars().all())

    async def create(self, data: CommissionTierCreate) -> CommissionTier:
        await self._check_ambiguous_overlap(data)

        tier = CommissionTier(**data.model_dump(), is_active=True)
        self.db.add(tier)
        await self.db.commit()

        logger.info(
            f"Created commission tier '{tier.name}' "
            f"[{tier.min_sales}, {tier.max_sales}] at {tier.commission_rate}%/{tier.platform_fee_rate}%"
        )
        return tier

    async def update(self, tier_id: uuid.UUID, data: CommissionTierUpdate) -> CommissionTier:
        tier = await self.get(tier_id)
        if tier.is_active:
            await self._check_ambiguous_overlap(data, exclude_id=tier_id)

        for field, value in data.model_dump().items():
            setattr(tier, field, value)

        await self.db.commit()
        logger.info(f"Updated commission tier {tier_id}")
        return tier

    async def deactivate(self, tier_id: uuid.UUID) -> CommissionTier:
        """Retire a tier. Existing commissions keep their tier reference."""
        tier = await self.get(tier_id)
        tier.is_active = False

        await self.db.commit()
        logger.info(f"Deactivated commission tier {tier_id}")
        return tier

    async def _check_ambiguous_overlap(
        self,
        data: CommissionTierCreate,
        exclude_id: Optional[uuid.UUID] = None,
    ) -> None:
        query = select(CommissionTier).where(
            CommissionTier.is_active == True,
            CommissionTier.priority == data.priority,
            CommissionTier.min_sales <= data.max_sales,
            CommissionTier.max_sales >= data.min_sales,
        )
        if exclude_id is not None:
            query = query.where(CommissionTier.id != exclude_id)

        result = await self.db.execute(query.limit(1))
        clash = result.scalar_one_or_none()
        if clash:
            raise ValidationError(
                f"Tier range overlaps active tier '{clash.name}' with the same priority",
                {"conflicting_tier_id": str(clash.id), "priority": data.priority},
            )
