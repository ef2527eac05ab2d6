# Services module
from seller_payouts.services.commission_calculator import CommissionCalculator
from seller_payouts.services.tier_resolver import TierResolver
from seller_payouts.services.commission_ledger import CommissionLedger
from seller_payouts.services.payout_batcher import PayoutBatcher
from seller_payouts.services.payout_state_machine import PayoutStateMachine
from seller_payouts.services.balance_projection import SellerBalanceProjection

# Administration
from seller_payouts.services.commission_tier_service import CommissionTierService
from seller_payouts.services.seller_settings_service import SellerSettingsService

__all__ = [
    "CommissionCalculator",
    "TierResolver",
    "CommissionLedger",
    "PayoutBatcher",
    "PayoutStateMachine",
    "SellerBalanceProjection",
    # Administration
    "CommissionTierService",
    "SellerSettingsService",
]
