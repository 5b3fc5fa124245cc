"""
Order status state machine

Customer actions move an order only from an explicit set of source
states. Back-office (admin) transitions drive fulfilment and return
resolution.
"""
from dataclasses import dataclass
from typing import Dict, FrozenSet
from storefront.models.order import OrderStatus


@dataclass(frozen=True)
class Transition:
    """A customer action: allowed source states and the resulting state"""
    action: str
    sources: FrozenSet[OrderStatus]
    target: OrderStatus


INITIAL_STATUS = OrderStatus.ORDER_PLACED

CANCEL = Transition(
    action="cancelled",
    sources=frozenset({OrderStatus.ORDER_PLACED}),
    target=OrderStatus.CANCELLED,
)

MARK_RECEIVED = Transition(
    action="marked as received",
    sources=frozenset({OrderStatus.DELIVERED}),
    target=OrderStatus.RECEIVED,
)

REQUEST_RETURN = Transition(
    action="returned",
    sources=frozenset({OrderStatus.DELIVERED, OrderStatus.RECEIVED}),
    target=OrderStatus.RETURNED,
)

ADMIN_TRANSITIONS: Dict[OrderStatus, FrozenSet[OrderStatus]] = {
    OrderStatus.ORDER_PLACED: frozenset({OrderStatus.PROCESSING}),
    OrderStatus.PROCESSING: frozenset({OrderStatus.SHIPPED}),
    OrderStatus.SHIPPED: frozenset({OrderStatus.DELIVERED}),
    OrderStatus.RETURNED: frozenset({OrderStatus.REFUNDED, OrderStatus.RETURN_CANCELLED}),
}

TERMINAL_STATUSES = frozenset({
    OrderStatus.RECEIVED,
    OrderStatus.CANCELLED,
    OrderStatus.REFUNDED,
    OrderStatus.RETURN_CANCELLED,
})

# Linear progress shown by order tracking
TRACKING_STEPS = (
    OrderStatus.ORDER_PLACED,
    OrderStatus.PROCESSING,
    OrderStatus.SHIPPED,
    OrderStatus.DELIVERED,
    OrderStatus.RECEIVED,
)


def can_admin_transition(current: OrderStatus, target: OrderStatus) -> bool:
    return target in ADMIN_TRANSITIONS.get(current, frozenset())


def is_terminal(status: OrderStatus) -> bool:
    """True for statuses that end the normal order lifecycle"""
    return status in TERMINAL_STATUSES


def tracking_progress(status: OrderStatus) -> int:
    """Index of the status on the tracking timeline, -1 when off the timeline"""
    try:
        return TRACKING_STEPS.index(status)
    except ValueError:
        return -1
