"""Order status transitions enforced by the order service."""

PENDING = "Pending"
PAID = "Paid"
FAILED = "Failed"

ALLOWED_TRANSITIONS: dict[str, set[str]] = {
    PENDING: {PAID, FAILED},
    PAID: set(),
    FAILED: set(),
}


class InvalidTransitionError(ValueError):
    """Raised when an order status change is not allowed."""


def validate_transition(current: str, new: str) -> None:
    """Raise when a transition is not allowed by the state machine."""

    if new not in ALLOWED_TRANSITIONS.get(current, set()):
        raise InvalidTransitionError(f"Invalid transition: {current} -> {new}")


def sources_for(new: str) -> set[str]:
    """Statuses from which `new` may be entered."""

    return {state for state, targets in ALLOWED_TRANSITIONS.items() if new in targets}
