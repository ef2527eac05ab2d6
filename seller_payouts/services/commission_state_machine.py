"""
Commission and Payout State Machines

This module is the SINGLE SOURCE OF TRUTH for commission ledger and payout
status transitions. The ledger, the batcher and the payout processor all
validate through it before touching a status column.

Commission:  PENDING -> APPROVED -> PAID
             PENDING | APPROVED -> CANCELLED
             PAID -> APPROVED (payout rollback only)

Payout:      PENDING -> PROCESSING -> COMPLETED
             PROCESSING -> FAILED
"""

from typing import List, Dict, Tuple

from seller_payouts.core.exceptions import InvalidStateTransitionError
from seller_payouts.models.commission import CommissionStatus, PayoutStatus


# =============================================================================
# TRANSITION RULES
# =============================================================================

# Format: current_status -> [list of allowed next statuses]
COMMISSION_TRANSITIONS: Dict[str, List[str]] = {
    CommissionStatus.PENDING.value: [
        CommissionStatus.APPROVED.value,    # Operator approval
        CommissionStatus.CANCELLED.value,   # Order item refunded/voided
    ],
    CommissionStatus.APPROVED.value: [
        CommissionStatus.PAID.value,        # Claimed by a payout
        CommissionStatus.CANCELLED.value,   # Cancel before payout
    ],
    CommissionStatus.PAID.value: [
        CommissionStatus.APPROVED.value,    # Payout failed, funds claimable again
    ],
    CommissionStatus.CANCELLED.value: [],   # Terminal state
}

PAYOUT_TRANSITIONS: Dict[str, List[str]] = {
    PayoutStatus.PENDING.value: [
        PayoutStatus.PROCESSING.value,      # Handed to settlement system
    ],
    PayoutStatus.PROCESSING.value: [
        PayoutStatus.COMPLETED.value,       # Settlement confirmed
        PayoutStatus.FAILED.value,          # Settlement rejected or timed out
    ],
    PayoutStatus.COMPLETED.value: [],       # Terminal state
    PayoutStatus.FAILED.value: [],          # Terminal state
}

TRANSITION_ACTIONS: Dict[Tuple[str, str], str] = {
    (CommissionStatus.PENDING.value, CommissionStatus.APPROVED.value): "Approve",
    (CommissionStatus.PENDING.value, CommissionStatus.CANCELLED.value): "Cancel",
    (CommissionStatus.APPROVED.value, CommissionStatus.PAID.value): "Claim into Payout",
    (CommissionStatus.APPROVED.value, CommissionStatus.CANCELLED.value): "Cancel",
    (CommissionStatus.PAID.value, CommissionStatus.APPROVED.value): "Revert after Payout Failure",
    (PayoutStatus.PENDING.value, PayoutStatus.PROCESSING.value): "Process",
    (PayoutStatus.PROCESSING.value, PayoutStatus.COMPLETED.value): "Complete",
    (PayoutStatus.PROCESSING.value, PayoutStatus.FAILED.value): "Fail",
}


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def can_transition(transitions: Dict[str, List[str]], current_status: str, new_status: str) -> bool:
    """Check if a transition is allowed."""
    return new_status in transitions.get(current_status, [])


def get_transition_action(current_status: str, new_status: str) -> str:
    """Get human-readable action name for a transition."""
    return TRANSITION_ACTIONS.get((current_status, new_status), f"{current_status} -> {new_status}")


def validate_commission_transition(current_status: str, new_status: str) -> None:
    """Raise InvalidStateTransitionError unless the commission move is allowed."""
    if not can_transition(COMMISSION_TRANSITIONS, current_status, new_status):
        raise InvalidStateTransitionError(
            "Commission",
            current_status,
            new_status,
            COMMISSION_TRANSITIONS.get(current_status, []),
        )


def validate_payout_transition(current_status: str, new_status: str) -> None:
    """Raise InvalidStateTransitionError unless the payout move is allowed."""
    if not can_transition(PAYOUT_TRANSITIONS, current_status, new_status):
        raise InvalidStateTransitionError(
            "Payout",
            current_status,
            new_status,
            PAYOUT_TRANSITIONS.get(current_status, []),
        )


def is_commission_terminal(status: str) -> bool:
    return not COMMISSION_TRANSITIONS.get(status)


def is_payout_terminal(status: str) -> bool:
    return not PAYOUT_TRANSITIONS.get(status)


def get_state_diagram() -> List[str]:
    """Text representation of both state machines, for docs and debugging."""
    lines = []
    for name, transitions in (("Commission", COMMISSION_TRANSITIONS), ("Payout", PAYOUT_TRANSITIONS)):
        lines.append(f"=== {name} State Machine ===")
        for status, targets in transitions.items():
            if not targets:
                lines.append(f"{status}: [TERMINAL STATE]")
                continue
            lines.append(f"{status}:")
            for target in targets:
                lines.append(f"  -> {target} ({get_transition_action(status, target)})")
    return lines


if __name__ == "__main__":
    print("\n".join(get_state_diagram()))
