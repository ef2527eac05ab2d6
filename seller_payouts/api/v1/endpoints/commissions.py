"""API endpoints for seller commissions and payouts."""
from typing import Optional, List
from uuid import UUID

from fastapi import APIRouter, Response, status

from seller_payouts.api.deps import (
    Balances, Batcher, Ledger, Page, Payouts, SellerSettings, Tiers,
)
from seller_payouts.models.commission import CommissionStatus, PayoutStatus
from seller_payouts.schemas.commission import (
    # Events
    PaymentConfirmed, CommissionRecordResponse,
    # Tiers
    CommissionTierCreate, CommissionTierUpdate, CommissionTierResponse,
    # Settings
    SellerCommissionSettingsUpdate, SellerCommissionSettingsResponse,
    # Commissions
    SellerCommissionResponse, SellerCommissionListResponse, CommissionCancelRequest,
    # Payouts
    PayoutRequest, PayoutProcessRequest, PayoutFailRequest,
    CommissionPayoutResponse, CommissionPayoutListResponse,
    # Reports
    SellerBalance, AvailablePayoutResponse, CommissionStatsResponse,
)


router = APIRouter()


# ==================== Order Events ====================

@router.post("/payment-confirmed", response_model=CommissionRecordResponse)
async def payment_confirmed(
    event: PaymentConfirmed,
    ledger: Ledger,
    response: Response,
):
    """
    Record the commission for a paid order item.

    Replays of the same order item return the existing commission with 200.
    """
    commission, created = await ledger.record_or_get(event)
    if created:
        response.status_code = status.HTTP_201_CREATED
    return CommissionRecordResponse(
        commission=SellerCommissionResponse.model_validate(commission),
        created=created,
    )


# ==================== Commission Tiers ====================

@router.post("/tiers", response_model=CommissionTierResponse, status_code=status.HTTP_201_CREATED)
async def create_commission_tier(data: CommissionTierCreate, tiers: Tiers):
    """Create a sales-volume commission tier."""
    return await tiers.create(data)


@router.get("/tiers", response_model=List[CommissionTierResponse])
async def list_commission_tiers(tiers: Tiers):
    """List active tiers in resolution order."""
    return await tiers.list_active()


@router.put("/tiers/{tier_id}", response_model=CommissionTierResponse)
async def update_commission_tier(tier_id: UUID, data: CommissionTierUpdate, tiers: Tiers):
    return await tiers.update(tier_id, data)


@router.post("/tiers/{tier_id}/deactivate", response_model=CommissionTierResponse)
async def deactivate_commission_tier(tier_id: UUID, tiers: Tiers):
    return await tiers.deactivate(tier_id)


# ==================== Seller Views ====================

@router.get("/sellers/{seller_id}/settings", response_model=SellerCommissionSettingsResponse)
async def get_seller_settings(seller_id: UUID, seller_settings: SellerSettings):
    return await seller_settings.get(seller_id)


@router.put("/sellers/{seller_id}/settings", response_model=SellerCommissionSettingsResponse)
async def update_seller_settings(
    seller_id: UUID,
    data: SellerCommissionSettingsUpdate,
    seller_settings: SellerSettings,
):
    """Create or partially update a seller's commission settings."""
    return await seller_settings.upsert(seller_id, data)


@router.get("/sellers/{seller_id}/commissions", response_model=List[SellerCommissionResponse])
async def list_seller_commissions(
    seller_id: UUID,
    ledger: Ledger,
    status: Optional[CommissionStatus] = None,
):
    return await ledger.list_for_seller(seller_id, status)


@router.get("/sellers/{seller_id}/payouts", response_model=List[CommissionPayoutResponse])
async def list_seller_payouts(
    seller_id: UUID,
    payouts: Payouts,
    status: Optional[PayoutStatus] = None,
):
    return await payouts.list_for_seller(seller_id, status)


@router.get("/sellers/{seller_id}/balance", response_model=SellerBalance)
async def get_seller_balance(seller_id: UUID, balances: Balances):
    """Seller balances computed from the commission ledger."""
    return await balances.get_balance(seller_id)


@router.get("/sellers/{seller_id}/available-payout", response_model=AvailablePayoutResponse)
async def get_available_payout(seller_id: UUID, balances: Balances):
    """Sum of the seller's approved commissions not yet claimed by a payout."""
    return AvailablePayoutResponse(
        seller_id=seller_id,
        available_amount=await balances.available_payout_amount(seller_id),
    )


@router.get("/sellers/{seller_id}/stats", response_model=CommissionStatsResponse)
async def get_seller_stats(seller_id: UUID, balances: Balances):
    return await balances.commission_stats(seller_id)


@router.get("/stats", response_model=CommissionStatsResponse)
async def get_commission_stats(balances: Balances):
    """Marketplace-wide commission statistics."""
    return await balances.commission_stats()


# ==================== Payouts ====================

@router.post("/payouts", response_model=CommissionPayoutResponse, status_code=status.HTTP_201_CREATED)
async def request_payout(data: PayoutRequest, batcher: Batcher):
    """Claim approved commissions into a new payout."""
    return await batcher.request_payout(data.seller_id, data.commission_ids, data.notes)


@router.get("/payouts", response_model=CommissionPayoutListResponse)
async def list_payouts(
    payouts: Payouts,
    page: Page,
    status: Optional[PayoutStatus] = None,
):
    items, total = await payouts.list_all(status, page.skip, page.limit)
    return CommissionPayoutListResponse(
        items=[CommissionPayoutResponse.model_validate(p) for p in items],
        total=total,
        skip=page.skip,
        limit=page.limit,
    )


@router.get("/payouts/{payout_id}", response_model=CommissionPayoutResponse)
async def get_payout(payout_id: UUID, payouts: Payouts):
    return await payouts.get(payout_id)


@router.post("/payouts/{payout_id}/process", response_model=CommissionPayoutResponse)
async def process_payout(payout_id: UUID, data: PayoutProcessRequest, payouts: Payouts):
    """Hand a pending payout to the settlement system."""
    return await payouts.process(payout_id, data.transaction_reference)


@router.post("/payouts/{payout_id}/complete", response_model=CommissionPayoutResponse)
async def complete_payout(payout_id: UUID, payouts: Payouts):
    return await payouts.complete(payout_id)


@router.post("/payouts/{payout_id}/fail", response_model=CommissionPayoutResponse)
async def fail_payout(payout_id: UUID, data: PayoutFailRequest, payouts: Payouts):
    """Mark a processing payout failed and release its commissions."""
    return await payouts.fail(payout_id, data.reason)


# ==================== Commissions ====================

@router.get("", response_model=SellerCommissionListResponse)
async def list_commissions(
    ledger: Ledger,
    page: Page,
    status: Optional[CommissionStatus] = None,
):
    items, total = await ledger.list_all(status, page.skip, page.limit)
    return SellerCommissionListResponse(
        items=[SellerCommissionResponse.model_validate(c) for c in items],
        total=total,
        skip=page.skip,
        limit=page.limit,
    )


@router.get("/{commission_id}", response_model=SellerCommissionResponse)
async def get_commission(commission_id: UUID, ledger: Ledger):
    return await ledger.get(commission_id)


@router.post("/{commission_id}/approve", response_model=SellerCommissionResponse)
async def approve_commission(commission_id: UUID, ledger: Ledger):
    """Approve a pending commission, making it claimable by a payout."""
    return await ledger.approve(commission_id)


@router.post("/{commission_id}/cancel", response_model=SellerCommissionResponse)
async def cancel_commission(
    commission_id: UUID,
    ledger: Ledger,
    data: Optional[CommissionCancelRequest] = None,
):
    return await ledger.cancel(commission_id, data.reason if data else None)
