from typing import Annotated

from fastapi import Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from seller_payouts.config import settings
from seller_payouts.database import get_db
from seller_payouts.services.balance_projection import SellerBalanceProjection
from seller_payouts.services.commission_ledger import CommissionLedger
from seller_payouts.services.commission_tier_service import CommissionTierService
from seller_payouts.services.notification_service import PayoutNotifier
from seller_payouts.services.payout_batcher import PayoutBatcher
from seller_payouts.services.payout_state_machine import PayoutStateMachine
from seller_payouts.services.seller_settings_service import SellerSettingsService


DB = Annotated[AsyncSession, Depends(get_db)]


def get_notifier() -> PayoutNotifier:
    return PayoutNotifier()


def get_ledger(db: DB) -> CommissionLedger:
    return CommissionLedger(db)


def get_payout_batcher(db: DB) -> PayoutBatcher:
    return PayoutBatcher(db)


def get_payout_state_machine(
    db: DB,
    notifier: Annotated[PayoutNotifier, Depends(get_notifier)],
) -> PayoutStateMachine:
    return PayoutStateMachine(db, notifier=notifier)


def get_balance_projection(db: DB) -> SellerBalanceProjection:
    return SellerBalanceProjection(db)


def get_tier_service(db: DB) -> CommissionTierService:
    return CommissionTierService(db)


def get_settings_service(db: DB) -> SellerSettingsService:
    return SellerSettingsService(db)


class Pagination:
    """Common skip/limit query parameters."""

    def __init__(
        self,
        skip: int = Query(0, ge=0),
        limit: int = Query(20, ge=1, le=settings.MAX_PAGE_SIZE),
    ):
        self.skip = skip
        self.limit = limit


Ledger = Annotated[CommissionLedger, Depends(get_ledger)]
Batcher = Annotated[PayoutBatcher, Depends(get_payout_batcher)]
Payouts = Annotated[PayoutStateMachine, Depends(get_payout_state_machine)]
Balances = Annotated[SellerBalanceProjection, Depends(get_balance_projection)]
Tiers = Annotated[CommissionTierService, Depends(get_tier_service)]
SellerSettings = Annotated[SellerSettingsService, Depends(get_settings_service)]
Page = Annotated[Pagination, Depends()]
