"""Seller commission and payout models.

Supports:
- Sales-volume commission tiers
- Per-seller commission settings (custom rate, payout threshold)
- One commission ledger entry per paid order item
- Payout batches with one item per claimed commission
"""
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, List
from decimal import Decimal

from sqlalchemy import String, Boolean, DateTime, ForeignKey, Integer, Text
from sqlalchemy import UniqueConstraint, Index, CheckConstraint, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from seller_payouts.database import Base
from seller_payouts.db_types import JSONType, MoneyType, RateType, UUIDType


class CommissionStatus(str, Enum):
    """Commission ledger entry status."""
    PENDING = "PENDING"             # Recorded, awaiting approval
    APPROVED = "APPROVED"           # Claimable by a payout
    PAID = "PAID"                   # Claimed by an active payout
    CANCELLED = "CANCELLED"         # Terminal


class PayoutStatus(str, Enum):
    """Payout batch status."""
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class RateSource(str, Enum):
    """Where the commission rate of an entry came from."""
    CUSTOM = "CUSTOM"     # Seller custom rate override
    TIER = "TIER"         # Matched a sales tier
    DEFAULT = "DEFAULT"   # No tier matched, configured fallback


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CommissionTier(Base):
    """
    Sales-volume tier mapping cumulative seller sales to a rate pair.
    Ranges are inclusive and may overlap; lower priority wins.
    """
    __tablename__ = "commission_tiers"
    __table_args__ = (
        CheckConstraint("min_sales <= max_sales", name="ck_commission_tiers_range"),
        Index("ix_commission_tiers_active_priority", "is_active", "priority"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4
    )

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    min_sales: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    max_sales: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    commission_rate: Mapped[Decimal] = mapped_column(
        RateType,
        nullable=False,
        comment="Commission %"
    )
    platform_fee_rate: Mapped[Decimal] = mapped_column(
        RateType,
        nullable=False,
        default=Decimal("0"),
        comment="Platform fee %"
    )
    priority: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        onupdate=_utcnow,
        nullable=False
    )

    def __repr__(self) -> str:
        return f"<CommissionTier(name='{self.name}', priority={self.priority})>"


class SellerCommissionSettings(Base):
    """
    Per-seller commission configuration.
    Created lazily on the first settings write.
    """
    __tablename__ = "seller_commission_settings"

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4
    )

    seller_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        unique=True,
        nullable=False,
        index=True
    )

    custom_commission_rate: Mapped[Optional[Decimal]] = mapped_column(RateType, nullable=True)
    use_custom_rate: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    minimum_payout_amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)

    payment_method: Mapped[Optional[str]] = mapped_column(
        String(30),
        nullable=True,
        comment="BANK_TRANSFER, UPI, PAYPAL"
    )
    payment_details: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        onupdate=_utcnow,
        nullable=False
    )

    def __repr__(self) -> str:
        return f"<SellerCommissionSettings(seller={self.seller_id}, custom={self.use_custom_rate})>"


class SellerCommission(Base):
    """
    Commission ledger entry.
    One non-cancelled record per order item; never deleted.
    """
    __tablename__ = "seller_commissions"
    __table_args__ = (
        Index(
            "uq_seller_commissions_active_order_item",
            "order_item_id",
            unique=True,
            postgresql_where=text("status <> 'CANCELLED'"),
            sqlite_where=text("status <> 'CANCELLED'"),
        ),
        Index("ix_seller_commissions_seller_status", "seller_id", "status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4
    )

    seller_id: Mapped[uuid.UUID] = mapped_column(UUIDType(as_uuid=True), nullable=False)
    order_id: Mapped[uuid.UUID] = mapped_column(UUIDType(as_uuid=True), nullable=False, index=True)
    order_item_id: Mapped[uuid.UUID] = mapped_column(UUIDType(as_uuid=True), nullable=False)

    # Values
    order_amount: Mapped[Decimal] = mapped_column(
        MoneyType,
        nullable=False,
        comment="Order item line total"
    )
    commission_rate: Mapped[Decimal] = mapped_column(RateType, nullable=False)
    platform_fee_rate: Mapped[Decimal] = mapped_column(RateType, nullable=False, default=Decimal("0"))
    commission_amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    platform_fee: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    net_amount: Mapped[Decimal] = mapped_column(
        MoneyType,
        nullable=False,
        comment="commission_amount - platform_fee"
    )

    # Rate provenance
    rate_source: Mapped[str] = mapped_column(String(20), nullable=False)
    tier_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUIDType(as_uuid=True),
        ForeignKey("commission_tiers.id", ondelete="SET NULL"),
        nullable=True
    )

    # Status
    status: Mapped[str] = mapped_column(
        String(50),
        default=CommissionStatus.PENDING.value,
        nullable=False
    )
    approved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    paid_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    payment_reference: Mapped[Optional[str]] = mapped_column(
        String(30),
        nullable=True,
        comment="Owning payout number"
    )
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    cancellation_reason: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    # Optimistic concurrency token
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        onupdate=_utcnow,
        nullable=False
    )

    tier: Mapped[Optional["CommissionTier"]] = relationship("CommissionTier")

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        return f"<SellerCommission(order_item={self.order_item_id}, status='{self.status}')>"


class CommissionPayout(Base):
    """
    Payout batch settling one or more approved commissions of a seller.
    """
    __tablename__ = "commission_payouts"
    __table_args__ = (
        Index("ix_commission_payouts_seller_status", "seller_id", "status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4
    )

    seller_id: Mapped[uuid.UUID] = mapped_column(UUIDType(as_uuid=True), nullable=False)

    payout_number: Mapped[str] = mapped_column(
        String(30),
        unique=True,
        nullable=False,
        index=True,
        comment="PAY-000001"
    )

    # Totals
    total_amount: Mapped[Decimal] = mapped_column(
        MoneyType,
        nullable=False,
        comment="Sum of member commission net amounts at claim time"
    )
    transaction_fee: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    net_amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)

    status: Mapped[str] = mapped_column(
        String(50),
        default=PayoutStatus.PENDING.value,
        nullable=False
    )

    # Payment Details
    payment_method: Mapped[str] = mapped_column(String(30), nullable=False)
    payment_details: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)
    transaction_reference: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
        comment="Settlement system reference"
    )

    processed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    failed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    failure_reason: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        onupdate=_utcnow,
        nullable=False
    )

    items: Mapped[List["CommissionPayoutItem"]] = relationship(
        "CommissionPayoutItem",
        back_populates="payout",
        cascade="all, delete-orphan"
    )

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        return f"<CommissionPayout(number='{self.payout_number}', status='{self.status}')>"


class CommissionPayoutItem(Base):
    """
    Link between a payout and one claimed commission.
    Kept after a payout fails so the attempt stays auditable.
    """
    __tablename__ = "commission_payout_items"
    __table_args__ = (
        UniqueConstraint("payout_id", "commission_id", name="uq_payout_commission"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4
    )

    payout_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        ForeignKey("commission_payouts.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    commission_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        ForeignKey("seller_commissions.id", ondelete="RESTRICT"),
        nullable=False,
        index=True
    )

    amount: Mapped[Decimal] = mapped_column(
        MoneyType,
        nullable=False,
        comment="Commission net amount at claim time"
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        nullable=False
    )

    payout: Mapped["CommissionPayout"] = relationship(
        "CommissionPayout",
        back_populates="items"
    )
    commission: Mapped["SellerCommission"] = relationship("SellerCommission")

    def __repr__(self) -> str:
        return f"<CommissionPayoutItem(payout={self.payout_id}, commission={self.commission_id})>"
