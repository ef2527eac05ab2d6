from seller_payouts.models.commission import (
    CommissionStatus,
    PayoutStatus,
    RateSource,
    CommissionTier,
    SellerCommissionSettings,
    SellerCommission,
    CommissionPayout,
    CommissionPayoutItem,
)
from seller_payouts.models.document_sequence import DocumentSequence

__all__ = [
    "CommissionStatus",
    "PayoutStatus",
    "RateSource",
    "CommissionTier",
    "SellerCommissionSettings",
    "SellerCommission",
    "CommissionPayout",
    "CommissionPayoutItem",
    "DocumentSequence",
]
