import asyncio
from decimal import Decimal
from uuid import uuid4

import pytest
from pydantic import ValidationError as SchemaValidationError

from seller_payouts.core.exceptions import NotFoundError, ValidationError
from seller_payouts.schemas.commission import (
    CommissionTierCreate, CommissionTierUpdate, SellerCommissionSettingsUpdate,
)
from seller_payouts.services.commission_tier_service import CommissionTierService
from seller_payouts.services.seller_settings_service import SellerSettingsService


def _tier(name, min_sales, max_sales, rate="10", priority=0):
    return CommissionTierCreate(
        name=name,
        min_sales=Decimal(min_sales),
        max_sales=Decimal(max_sales),
        commission_rate=Decimal(rate),
        platform_fee_rate=Decimal("2"),
        priority=priority,
    )


def test_overlapping_tiers_need_distinct_priorities(session_factory):
    async def scenario():
        async with session_factory() as db:
            service = CommissionTierService(db)
            await service.create(_tier("Bronze", "0", "1000"))
            with pytest.raises(ValidationError) as exc_info:
                await service.create(_tier("Clash", "500", "2000"))
            await service.create(_tier("Promo", "500", "2000", priority=1))
            await service.create(_tier("Silver", "1000.01", "5000"))
            return exc_info.value, await service.list_active()

    error, active = asyncio.run(scenario())
    assert "conflicting_tier_id" in error.details
    assert [t.name for t in active] == ["Bronze", "Silver", "Promo"]


def test_deactivated_tier_no_longer_blocks_overlap(session_factory):
    async def scenario():
        async with session_factory() as db:
            service = CommissionTierService(db)
            old = await service.create(_tier("Old", "0", "1000"))
            await service.deactivate(old.id)
            await service.create(_tier("New", "0", "1000", rate="9"))
            return await service.list_active()

    active = asyncio.run(scenario())
    assert [t.name for t in active] == ["New"]


def test_update_tier_checks_against_other_tiers_only(session_factory):
    async def scenario():
        async with session_factory() as db:
            service = CommissionTierService(db)
            bronze = await service.create(_tier("Bronze", "0", "1000"))
            await service.create(_tier("Silver", "1000.01", "5000"))
            updated = await service.update(bronze.id, CommissionTierUpdate(**_tier("Bronze", "0", "1000", rate="11").model_dump()))
            with pytest.raises(ValidationError):
                await service.update(bronze.id, CommissionTierUpdate(**_tier("Bronze", "0", "2000").model_dump()))
            with pytest.raises(NotFoundError):
                await service.update(uuid4(), CommissionTierUpdate(**_tier("Ghost", "0", "1").model_dump()))
            return updated

    updated = asyncio.run(scenario())
    assert updated.commission_rate == Decimal("11")


def test_tier_schema_rejects_inverted_range():
    with pytest.raises(SchemaValidationError):
        _tier("Backwards", "100", "50")


def test_settings_created_lazily_with_defaults(session_factory):
    seller_id = uuid4()

    async def scenario():
        async with session_factory() as db:
            service = SellerSettingsService(db)
            with pytest.raises(NotFoundError):
                await service.get(seller_id)
            created = await service.upsert(
                seller_id, SellerCommissionSettingsUpdate(payment_details={"iban": "DE89370400440532013000"}),
            )
            updated = await service.upsert(
                seller_id, SellerCommissionSettingsUpdate(minimum_payout_amount=Decimal("250")),
            )
            return created, updated, await service.get(seller_id)

    created, updated, stored = asyncio.run(scenario())
    assert created.id == updated.id == stored.id
    assert stored.minimum_payout_amount == Decimal("250")
    assert stored.payment_method == "BANK_TRANSFER"
    assert stored.payment_details == {"iban": "DE89370400440532013000"}
    assert stored.use_custom_rate is False


def test_custom_rate_flag_requires_rate(session_factory):
    seller_id = uuid4()

    async def scenario():
        async with session_factory() as db:
            service = SellerSettingsService(db)
            with pytest.raises(ValidationError):
                await service.upsert(seller_id, SellerCommissionSettingsUpdate(use_custom_rate=True))
            return await service.upsert(
                seller_id,
                SellerCommissionSettingsUpdate(use_custom_rate=True, custom_commission_rate=Decimal("12.5")),
            )

    stored = asyncio.run(scenario())
    assert stored.use_custom_rate is True
    assert stored.custom_commission_rate == Decimal("12.5")
