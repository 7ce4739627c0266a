"""
Order state machine.

    pending -> confirmed -> preparing -> ready -> picked_up -> delivered
    any non-terminal state -> cancelled

Only in-memory decisions live here; persistence (compare-and-set on the order
version) is done by ``order_service.transition_order``.
"""
from datetime import datetime
from typing import Any, Dict, Optional

from food_delivery.core.errors import Forbidden, InvalidTransition, ValidationError
from food_delivery.core.security import Actor
from food_delivery.models.order import OrderStatus, PaymentMethod, PaymentStatus
from food_delivery.models.user import Role
from food_delivery.utils import now_utc

SUCCESSOR = {
    OrderStatus.PENDING: OrderStatus.CONFIRMED,
    OrderStatus.CONFIRMED: OrderStatus.PREPARING,
    OrderStatus.PREPARING: OrderStatus.READY,
    OrderStatus.READY: OrderStatus.PICKED_UP,
    OrderStatus.PICKED_UP: OrderStatus.DELIVERED,
}

TERMINAL_STATES = frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED})

# Customers may only cancel before the kitchen starts
CUSTOMER_CANCELLABLE = frozenset({OrderStatus.PENDING, OrderStatus.CONFIRMED})


def parse_status(value: Any) -> OrderStatus:
    try:
        return OrderStatus(value)
    except ValueError:
        raise InvalidTransition(f"Unknown order status: {value!r}")


def is_terminal(status: Any) -> bool:
    return OrderStatus(status) in TERMINAL_STATES


def allowed_next(status: Any) -> list:
    """Statuses reachable from `status` in a single step."""
    status = OrderStatus(status)
    if status in TERMINAL_STATES:
        return []
    return [SUCCESSOR[status], OrderStatus.CANCELLED]


def check_transition(current: Any, new_status: Any, actor: Actor, note: Optional[str] = None) -> OrderStatus:
    """
    Validates moving an order from `current` to `new_status` on behalf of `actor`.

    Returns the parsed target status. Raises InvalidTransition for unknown
    statuses or successor-rule violations, Forbidden when the actor's role may
    not perform the move, and ValidationError when a required cancellation
    reason is missing.
    """
    current = OrderStatus(current)
    target = parse_status(new_status)

    if current in TERMINAL_STATES:
        raise InvalidTransition(f"Order is already {current.value}; status cannot change")

    if target == OrderStatus.CANCELLED:
        if actor.role == Role.USER:
            if current not in CUSTOMER_CANCELLABLE:
                raise Forbidden(f"Orders that are {current.value} can no longer be cancelled by the customer")
        elif not (note and note.strip()):
            raise ValidationError("Cancellation reason is required")
        return target

    if actor.role == Role.USER:
        raise Forbidden("Customers may only cancel orders")
    if SUCCESSOR[current] != target:
        raise InvalidTransition(
            f"Cannot move order from {current.value} to {target.value}; next allowed is {SUCCESSOR[current].value}"
        )
    return target


def payment_status_after(order: Any, target: OrderStatus) -> Optional[PaymentStatus]:
    """New payment status implied by moving to `target`, or None when it is unchanged."""
    method = PaymentMethod(order.payment_method)
    current = PaymentStatus(order.payment_status)
    if target == OrderStatus.DELIVERED and method == PaymentMethod.CASH and current == PaymentStatus.PENDING:
        return PaymentStatus.COMPLETED   # collected at the door
    if target == OrderStatus.CANCELLED and current == PaymentStatus.COMPLETED:
        return PaymentStatus.REFUNDED
    return None


def history_entry(status: OrderStatus, note: Optional[str], actor_role: Optional[Role], at: datetime) -> Dict[str, Any]:
    return {
        "status": status.value,
        "timestamp": at.isoformat(),
        "note": note,
        "actor_role": actor_role.value if actor_role else None,
    }


def plan_transition(order: Any, new_status: Any, note: Optional[str], actor: Actor,
                    now: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Validates a transition and returns the field values it changes.

    `order` itself is not modified; the caller writes the changes with a
    conditional update and copies them onto the instance once accepted.
    """
    target = check_transition(order.status, new_status, actor, note)
    now = now or now_utc()

    changes = {
        "status": target,
        "status_history": list(order.status_history or []) + [history_entry(target, note, actor.role, now)],
    }
    if target == OrderStatus.DELIVERED:
        changes["delivered_at"] = now
    if target == OrderStatus.CANCELLED:
        changes["cancellation_reason"] = note
        changes["cancelled_by"] = "customer" if actor.role == Role.USER else Role(actor.role).value

    payment_status = payment_status_after(order, target)
    if payment_status is not None:
        changes["payment_status"] = payment_status

    return changes
