"""Pydantic schemas for the seller commission and payout module."""
from datetime import datetime
from typing import Optional, List, Dict
from decimal import Decimal
from uuid import UUID
from pydantic import BaseModel, Field, model_validator

from seller_payouts.schemas.base import BaseResponseSchema, BaseCreateSchema

from seller_payouts.models.commission import CommissionStatus, PayoutStatus


# ==================== Inbound Events ====================

class PaymentConfirmed(BaseCreateSchema):
    """Order-management signal: an order item's payment was confirmed."""
    order_id: UUID
    order_item_id: UUID
    seller_id: Optional[UUID] = None  # Items without an assigned seller are rejected
    order_item_amount: Decimal


# ==================== CommissionTier Schemas ====================

class CommissionTierBase(BaseModel):
    """Base schema for CommissionTier."""
    name: str = Field(..., min_length=1, max_length=100)
    min_sales: Decimal = Field(..., ge=0)
    max_sales: Decimal = Field(..., ge=0)
    commission_rate: Decimal = Field(..., ge=0, le=100)
    platform_fee_rate: Decimal = Field(Decimal("0"), ge=0, le=100)
    priority: int = 0

    @model_validator(mode="after")
    def check_range(self):
        if self.min_sales > self.max_sales:
            raise ValueError("min_sales must not exceed max_sales")
        return self


class CommissionTierCreate(CommissionTierBase):
    """Schema for creating CommissionTier."""
    pass


class CommissionTierUpdate(CommissionTierBase):
    """Schema for replacing CommissionTier details."""
    pass


class CommissionTierResponse(BaseResponseSchema):
    """Response schema for CommissionTier."""
    id: UUID
    name: str
    min_sales: Decimal
    max_sales: Decimal
    commission_rate: Decimal
    platform_fee_rate: Decimal
    priority: int
    is_active: bool
    created_at: datetime


# ==================== Seller Settings Schemas ====================

class SellerCommissionSettingsUpdate(BaseModel):
    """Partial update of seller commission settings. Omitted fields are kept."""
    custom_commission_rate: Optional[Decimal] = Field(None, ge=0, le=100)
    use_custom_rate: Optional[bool] = None
    minimum_payout_amount: Optional[Decimal] = Field(None, ge=0)
    payment_method: Optional[str] = Field(None, max_length=30)
    payment_details: Optional[dict] = None


class SellerCommissionSettingsResponse(BaseResponseSchema):
    """Response schema for SellerCommissionSettings."""
    id: UUID
    seller_id: UUID
    custom_commission_rate: Optional[Decimal] = None
    use_custom_rate: bool
    minimum_payout_amount: Decimal
    payment_method: Optional[str] = None
    payment_details: Optional[dict] = None
    updated_at: datetime


# ==================== SellerCommission Schemas ====================

class SellerCommissionResponse(BaseResponseSchema):
    """Response schema for a commission ledger entry."""
    id: UUID
    seller_id: UUID
    order_id: UUID
    order_item_id: UUID
    order_amount: Decimal
    commission_rate: Decimal
    platform_fee_rate: Decimal
    commission_amount: Decimal
    platform_fee: Decimal
    net_amount: Decimal
    rate_source: str
    tier_id: Optional[UUID] = None
    status: CommissionStatus
    approved_at: Optional[datetime] = None
    paid_at: Optional[datetime] = None
    payment_reference: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    cancellation_reason: Optional[str] = None
    created_at: datetime


class SellerCommissionListResponse(BaseModel):
    """Response for listing commissions."""
    items: List[SellerCommissionResponse]
    total: int
    skip: int = 0
    limit: int = 20


class CommissionRecordResponse(BaseModel):
    """Result of handling a payment-confirmed event."""
    commission: SellerCommissionResponse
    created: bool


class CommissionCancelRequest(BaseModel):
    """Request to cancel a commission."""
    reason: Optional[str] = Field(None, max_length=500)


# ==================== CommissionPayout Schemas ====================

class PayoutRequest(BaseModel):
    """Seller request to pay out a set of approved commissions."""
    seller_id: UUID
    commission_ids: List[UUID] = Field(..., min_length=1)
    notes: Optional[str] = None


class PayoutProcessRequest(BaseModel):
    """Hand a payout to the settlement system."""
    transaction_reference: str = Field(..., min_length=1, max_length=100)


class PayoutFailRequest(BaseModel):
    """Settlement failure report."""
    reason: str = Field(..., min_length=1, max_length=500)


class CommissionPayoutItemResponse(BaseResponseSchema):
    """Response schema for payout item."""
    id: UUID
    commission_id: UUID
    amount: Decimal


class CommissionPayoutResponse(BaseResponseSchema):
    """Response schema for CommissionPayout."""
    id: UUID
    seller_id: UUID
    payout_number: str
    total_amount: Decimal
    transaction_fee: Decimal
    net_amount: Decimal
    status: PayoutStatus
    payment_method: str
    transaction_reference: Optional[str] = None
    processed_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    failed_at: Optional[datetime] = None
    failure_reason: Optional[str] = None
    notes: Optional[str] = None
    items: List[CommissionPayoutItemResponse] = []
    created_at: datetime


class CommissionPayoutListResponse(BaseModel):
    """Response for listing payouts."""
    items: List[CommissionPayoutResponse]
    total: int
    skip: int = 0
    limit: int = 20


# ==================== Outbound Events ====================

class PayoutCompletedEvent(BaseModel):
    """Emitted once a payout reaches COMPLETED."""
    payout_number: str
    seller_id: UUID
    net_amount: Decimal
    transaction_reference: Optional[str] = None


# ==================== Report Schemas ====================

class SellerBalance(BaseModel):
    """Ledger-derived balances of one seller."""
    seller_id: UUID
    pending_balance: Decimal
    available_balance: Decimal
    in_transit_balance: Decimal
    total_paid: Decimal
    total_transaction_fees: Decimal
    cancelled_amount: Decimal
    total_recorded: Decimal
    is_reconciled: bool  # every bucket sums back to total_recorded


class AvailablePayoutResponse(BaseModel):
    """Amount a seller can currently request as a payout."""
    seller_id: UUID
    available_amount: Decimal


class CommissionStatsResponse(BaseModel):
    """Commission statistics, optionally for one seller."""
    total_commissions: int
    total_earnings: Decimal
    pending_commissions: Decimal
    approved_commissions: Decimal
    paid_commissions: Decimal
    available_for_payout: Decimal
    average_commission_rate: Decimal
    total_platform_fees: Decimal
    commissions_by_month: Dict[str, Decimal]  # {"2026-01": Decimal("120.00"), ...}
