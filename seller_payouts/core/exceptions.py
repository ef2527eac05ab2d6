"""
Commission and payout error taxonomy.

Every error carries a human readable message plus a details dict that is
returned to API callers as-is. The HTTP status each error maps to lives
on the class so the API layer does not need to know about individual
failure cases.
"""

from typing import Any, Dict, Optional


class CommissionError(Exception):
    """Base exception for commission and payout errors."""
    status_code = 400

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class NotFoundError(CommissionError):
    """Seller settings, commission, payout or tier does not exist."""
    status_code = 404

    def __init__(self, entity: str, entity_id: Any):
        super().__init__(
            f"{entity} not found",
            {"entity": entity, "id": str(entity_id)},
        )


class AlreadyExistsError(CommissionError):
    """A non-cancelled commission already exists for the order item.

    Callers may treat this as success: the existing record is attached.
    """
    status_code = 409

    def __init__(self, existing, message: str = "Commission already recorded for order item"):
        self.existing = existing
        super().__init__(
            message,
            {
                "commission_id": str(existing.id),
                "order_item_id": str(existing.order_item_id),
            },
        )


class InvalidStateTransitionError(CommissionError):
    """Illegal commission or payout status change."""
    status_code = 409

    def __init__(self, entity: str, current_status: str, new_status: str, allowed=None):
        allowed = list(allowed or [])
        if allowed:
            message = (
                f"Cannot change {entity} from '{current_status}' to '{new_status}'. "
                f"Allowed transitions: {', '.join(allowed)}"
            )
        else:
            message = f"Cannot change {entity} from '{current_status}' to '{new_status}'"
        super().__init__(
            message,
            {
                "entity": entity,
                "current_status": current_status,
                "requested_status": new_status,
                "allowed": allowed,
            },
        )


class ValidationError(CommissionError):
    """Input violates a policy constraint."""
    status_code = 422


class BelowMinimumPayoutError(ValidationError):
    """Claimed payout total is under the seller's minimum payout amount."""

    def __init__(self, total_amount, minimum_amount):
        super().__init__(
            f"Minimum payout amount is {minimum_amount}; requested total is {total_amount}",
            {
                "total_amount": str(total_amount),
                "minimum_payout_amount": str(minimum_amount),
            },
        )


class BusinessRuleError(CommissionError):
    """Operation is not possible in the current business state."""
    status_code = 400


class NoEligibleCommissionsError(BusinessRuleError):
    """None of the requested commissions is approved and owned by the seller."""

    def __init__(self, seller_id, requested_count: int):
        super().__init__(
            "No approved commissions",
            {"seller_id": str(seller_id), "requested": requested_count},
        )


class ConcurrencyConflictError(CommissionError):
    """Lost a race against another writer. Safe to retry."""
    status_code = 409
    retryable = True
