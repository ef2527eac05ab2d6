"""Per-seller commission settings."""

import logging
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from seller_payouts.config import settings
from seller_payouts.core.exceptions import NotFoundError, ValidationError
from seller_payouts.models.commission import SellerCommissionSettings
from seller_payouts.schemas.commission import SellerCommissionSettingsUpdate


logger = logging.getLogger(__name__)

# Non-nullable columns; an explicit null keeps the stored value
REQUIRED_FIELDS = {"use_custom_rate", "minimum_payout_amount"}


class SellerSettingsService:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, seller_id: uuid.UUID) -> SellerCommissionSettings:
        result = await self.db.execute(
            select(SellerCommissionSettings)
            .where(SellerCommissionSettings.seller_id == seller_id)
        )
        seller_settings = result.scalar_one_or_none()
        if not seller_settings:
            raise NotFoundError("Seller commission settings", seller_id)
        return seller_settings

    async def upsert(
        self,
        seller_id: uuid.UUID,
        data: SellerCommissionSettingsUpdate,
    ) -> SellerCommissionSettings:
        """Apply a partial update, creating the settings row on first write."""
        result = await self.db.execute(
            select(SellerCommissionSettings)
            .where(SellerCommissionSettings.seller_id == seller_id)
            .with_for_update()
        )
        seller_settings = result.scalar_one_or_none()

        if seller_settings is None:
            seller_settings = SellerCommissionSettings(
                seller_id=seller_id,
                use_custom_rate=False,
                minimum_payout_amount=settings.DEFAULT_MINIMUM_PAYOUT_AMOUNT,
                payment_method=settings.DEFAULT_PAYMENT_METHOD,
            )
            self.db.add(seller_settings)
            logger.info(f"Creating commission settings for seller {seller_id}")

        for field, value in data.model_dump(exclude_unset=True).items():
            if value is None and field in REQUIRED_FIELDS:
                continue
            setattr(seller_settings, field, value)

        if seller_settings.use_custom_rate and seller_settings.custom_commission_rate is None:
            await self.db.rollback()
            raise ValidationError(
                "custom_commission_rate is required when use_custom_rate is enabled",
                {"seller_id": str(seller_id)},
            )

        await self.db.commit()
        return seller_settings
