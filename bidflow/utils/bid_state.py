"""
Bid State Machine - Manages bid negotiation and commercial lock transitions
"""
from decimal import Decimal, InvalidOperation
from typing import Optional, List, Tuple

# Durations are stored in a 32-bit INTEGER column
MAX_DURATION_DAYS = 2**31 - 1


class BidStatus:
    """Valid bid status values"""
    SUBMITTED = "SUBMITTED"
    NEGOTIATION_IN_PROGRESS = "NEGOTIATION_IN_PROGRESS"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"
    COMMERCIAL_LOCKED = "COMMERCIAL_LOCKED"


class BidAction:
    """Actions either party can take on a bid"""
    NEGOTIATE = "negotiate"
    ACCEPT = "accept"
    REJECT = "reject"
    LOCK = "lock"


class ErrorCode:
    INVALID_STATE_TRANSITION = "INVALID_STATE_TRANSITION"
    INVALID_AMOUNT = "INVALID_AMOUNT"
    CASE_NOT_ELIGIBLE = "CASE_NOT_ELIGIBLE"
    NOT_AUTHORIZED = "NOT_AUTHORIZED"
    NOT_FOUND = "NOT_FOUND"


class BidWorkflowError(Exception):
    """A refused bid operation. The bid is left exactly as it was."""

    def __init__(self, code: str, reason: str):
        super().__init__(reason)
        self.code = code
        self.reason = reason

    def __repr__(self):
        return f"BidWorkflowError({self.code!r}, {self.reason!r})"


class BidStateMachine:
    """
    State machine for bid negotiation.

    State Flow:
    SUBMITTED -> NEGOTIATION_IN_PROGRESS (repeats on each counter-offer)
    SUBMITTED | NEGOTIATION_IN_PROGRESS -> ACCEPTED -> COMMERCIAL_LOCKED
    SUBMITTED | NEGOTIATION_IN_PROGRESS -> REJECTED
    NEGOTIATION_IN_PROGRESS -> COMMERCIAL_LOCKED

    REJECTED and COMMERCIAL_LOCKED are terminal.
    """

    # action -> {from_status: to_status}
    TRANSITIONS = {
        BidAction.NEGOTIATE: {
            BidStatus.SUBMITTED: BidStatus.NEGOTIATION_IN_PROGRESS,
            BidStatus.NEGOTIATION_IN_PROGRESS: BidStatus.NEGOTIATION_IN_PROGRESS,
        },
        BidAction.ACCEPT: {
            BidStatus.SUBMITTED: BidStatus.ACCEPTED,
            BidStatus.NEGOTIATION_IN_PROGRESS: BidStatus.ACCEPTED,
        },
        BidAction.REJECT: {
            BidStatus.SUBMITTED: BidStatus.REJECTED,
            BidStatus.NEGOTIATION_IN_PROGRESS: BidStatus.REJECTED,
        },
        BidAction.LOCK: {
            BidStatus.ACCEPTED: BidStatus.COMMERCIAL_LOCKED,
            BidStatus.NEGOTIATION_IN_PROGRESS: BidStatus.COMMERCIAL_LOCKED,
        },
    }

    TERMINAL = (BidStatus.REJECTED, BidStatus.COMMERCIAL_LOCKED)

    @classmethod
    def can_apply(cls, status: str, action: str) -> bool:
        return status in cls.TRANSITIONS.get(action, {})

    @classmethod
    def get_allowed_actions(cls, status: str) -> List[str]:
        """Get list of actions allowed from the current status"""
        return [action for action, moves in cls.TRANSITIONS.items() if status in moves]

    @classmethod
    def next_status(cls, status: str, action: str) -> str:
        """Resolve the target status or raise INVALID_STATE_TRANSITION."""
        if not cls.can_apply(status, action):
            allowed = cls.get_allowed_actions(status)
            raise BidWorkflowError(
                ErrorCode.INVALID_STATE_TRANSITION,
                f"Cannot {action} a bid in '{status}'. Allowed: {allowed}",
            )
        return cls.TRANSITIONS[action][status]

    @classmethod
    def is_terminal_status(cls, status: str) -> bool:
        """Check if status is terminal (no further transitions allowed)"""
        return status in cls.TERMINAL

    @classmethod
    def is_open(cls, status: str) -> bool:
        """Open bids still compete for their case"""
        return status in (BidStatus.SUBMITTED, BidStatus.NEGOTIATION_IN_PROGRESS, BidStatus.ACCEPTED)


def require_positive_amount(value, field: str = "amount") -> Decimal:
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        raise BidWorkflowError(ErrorCode.INVALID_AMOUNT, f"{field} must be a number")
    if not amount.is_finite() or amount <= 0:
        raise BidWorkflowError(ErrorCode.INVALID_AMOUNT, f"{field} must be greater than zero")
    return amount


def require_positive_days(value, field: str = "duration") -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        try:
            as_decimal = Decimal(str(value))
        except (InvalidOperation, TypeError, ValueError):
            raise BidWorkflowError(ErrorCode.INVALID_AMOUNT, f"{field} must be a whole number of days")
        if not as_decimal.is_finite() or as_decimal != as_decimal.to_integral_value():
            raise BidWorkflowError(ErrorCode.INVALID_AMOUNT, f"{field} must be a whole number of days")
        value = int(as_decimal)
    if value <= 0:
        raise BidWorkflowError(ErrorCode.INVALID_AMOUNT, f"{field} must be greater than zero")
    if value > MAX_DURATION_DAYS:
        raise BidWorkflowError(ErrorCode.INVALID_AMOUNT, f"{field} must be at most {MAX_DURATION_DAYS} days")
    return value


def current_terms(bid) -> Tuple[Decimal, int]:
    """
    Terms on the table right now: the latest counter-offer if there is one,
    otherwise the bid as placed.
    """
    if bid.negotiations:
        latest = max(bid.negotiations, key=lambda n: n.sequence)
        return latest.counter_amount, latest.counter_duration
    return bid.bid_amount, bid.funding_duration_days


def resolve_counter_duration(bid, counter_duration: Optional[int]) -> int:
    """An omitted counter duration carries the bid's current duration forward."""
    if counter_duration is None:
        return current_terms(bid)[1]
    return require_positive_days(counter_duration, "counter duration")
