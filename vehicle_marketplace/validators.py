"""
Business-rule validation beyond schema validation.

Cart checks run before any database access; the transition tables are used
both to reject unknown statuses early and to build the status guards of the
conditional UPDATE statements.
"""
from typing import Dict, List, Set

from . import errors
from .parts import schemas as parts_schemas

MAX_CART_LINES = 100

# Valid parts order transitions: new status -> statuses it may be reached from
ORDER_TRANSITIONS: Dict[str, Set[str]] = {
    "confirmed": {"pending"},
    "shipped": {"confirmed"},
    "delivered": {"shipped"},
    "cancelled": {"pending", "confirmed"},
}

ORDER_STATUSES = {"pending", "confirmed", "shipped", "delivered", "cancelled"}


def validate_cart_items(items: List[parts_schemas.CartLine]) -> None:
    """
    Validate cart lines for business rules.

    Args:
        items: Cart lines from the checkout request

    Raises:
        EmptyCart: if there are no lines
        ValidationError: if the cart is too large
        DuplicateCartItem: if a part appears on more than one line
    """
    if not items:
        raise errors.EmptyCart()

    if len(items) > MAX_CART_LINES:
        raise errors.ValidationError(f"Order cannot contain more than {MAX_CART_LINES} items")

    seen = set()
    for item in items:
        if item.part_id in seen:
            raise errors.DuplicateCartItem(item.part_id)
        seen.add(item.part_id)


def allowed_predecessors(transitions: Dict[str, Set[str]], statuses: Set[str], new_status: str) -> Set[str]:
    """
    Statuses from which ``new_status`` may be reached.

    Raises:
        InvalidStatusValue: if ``new_status`` is unknown or cannot be set directly
    """
    if new_status not in statuses or new_status not in transitions:
        raise errors.InvalidStatusValue(new_status, transitions.keys())
    return transitions[new_status]


def validate_order_status_transition(old_status: str, new_status: str) -> None:
    """
    Validate that an order status transition is allowed.

    Raises:
        InvalidStatusValue: unknown target status
        InvalidStatusTransition: target not reachable from ``old_status``
    """
    if old_status not in allowed_predecessors(ORDER_TRANSITIONS, ORDER_STATUSES, new_status):
        raise errors.InvalidStatusTransition(old_status, new_status)
