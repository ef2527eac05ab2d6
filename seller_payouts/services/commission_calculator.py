"""
Commission calculation for a single order item.

    commission_amount = order_amount × commission_rate / 100
    platform_fee      = order_amount × platform_fee_rate / 100
    net_amount        = commission_amount - platform_fee

All arithmetic is Decimal. Each persisted amount is rounded exactly once,
to 2 places with banker's rounding, and net_amount is derived from the
rounded values so the persisted row always satisfies the identity.
"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_EVEN

from seller_payouts.core.exceptions import ValidationError


TWO_PLACES = Decimal("0.01")
HUNDRED = Decimal("100")


def quantize_money(amount: Decimal) -> Decimal:
    """Round to persisted money precision."""
    return Decimal(amount).quantize(TWO_PLACES, rounding=ROUND_HALF_EVEN)


@dataclass(frozen=True)
class CommissionBreakdown:
    order_amount: Decimal
    commission_rate: Decimal
    platform_fee_rate: Decimal
    commission_amount: Decimal
    platform_fee: Decimal
    net_amount: Decimal


class CommissionCalculator:
    """Computes commission, platform fee and net payable for an order item."""

    def calculate(
        self,
        order_amount: Decimal,
        commission_rate: Decimal,
        platform_fee_rate: Decimal = Decimal("0"),
    ) -> CommissionBreakdown:
        order_amount = Decimal(order_amount)
        commission_rate = Decimal(commission_rate)
        platform_fee_rate = Decimal(platform_fee_rate)

        if order_amount <= 0:
            raise ValidationError(
                "Order amount must be greater than zero",
                {"order_amount": str(order_amount)},
            )
        for name, rate in (("commission_rate", commission_rate), ("platform_fee_rate", platform_fee_rate)):
            if rate < 0 or rate > HUNDRED:
                raise ValidationError(
                    f"{name} must be between 0 and 100",
                    {name: str(rate)},
                )

        commission_amount = quantize_money(order_amount * commission_rate / HUNDRED)
        platform_fee = quantize_money(order_amount * platform_fee_rate / HUNDRED)

        return CommissionBreakdown(
            order_amount=quantize_money(order_amount),
            commission_rate=commission_rate,
            platform_fee_rate=platform_fee_rate,
            commission_amount=commission_amount,
            platform_fee=platform_fee,
            net_amount=commission_amount - platform_fee,
        )


def calculate_transaction_fee(total_amount: Decimal, fee_rate: Decimal) -> Decimal:
    """Payout transaction fee, rounded once."""
    return quantize_money(Decimal(total_amount) * Decimal(fee_rate) / HUNDRED)
