"""
Order Status State Machine

The transition table is data: each status maps to the statuses it may move
to. Terminal statuses map to an empty set. Adding a status means adding a
row here; the module-level check fails at import if any status is missing.
"""

from typing import Mapping, FrozenSet

from app.models import OrderStatus


ORDER_TRANSITIONS: Mapping[OrderStatus, FrozenSet[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.PREPARING, OrderStatus.CANCELLED}),
    OrderStatus.PREPARING: frozenset({OrderStatus.READY, OrderStatus.CANCELLED}),
    OrderStatus.READY: frozenset({OrderStatus.COMPLETED, OrderStatus.CANCELLED}),
    OrderStatus.COMPLETED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}

_missing = set(OrderStatus) - set(ORDER_TRANSITIONS)
if _missing:
    raise RuntimeError(f"Order transition table is missing statuses: {sorted(s.value for s in _missing)}")

# Statuses from which a customer may still cancel their own order
CUSTOMER_CANCELLABLE: FrozenSet[OrderStatus] = frozenset({OrderStatus.PENDING})


def allowed_transitions(current: OrderStatus) -> FrozenSet[OrderStatus]:
    return ORDER_TRANSITIONS[current]


def can_transition(current: OrderStatus, target: OrderStatus) -> bool:
    """True when (current, target) is an edge of the transition table."""
    return target in ORDER_TRANSITIONS[current]


def is_terminal(status: OrderStatus) -> bool:
    return not ORDER_TRANSITIONS[status]
