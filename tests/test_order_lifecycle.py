import pytest
from types import SimpleNamespace
from uuid import uuid4

from food_delivery.core.errors import Forbidden, InvalidTransition, ValidationError
from food_delivery.core.security import Actor
from food_delivery.models.order import OrderStatus, PaymentStatus
from food_delivery.models.user import Role
from food_delivery.services.order_lifecycle import allowed_next, check_transition, plan_transition

CUSTOMER = Actor(id=uuid4(), role=Role.USER)
RESTAURANT = Actor(id=uuid4(), role=Role.RESTAURANT, restaurant_id=uuid4())
ADMIN = Actor(id=uuid4(), role=Role.ADMIN)
SUPER_ADMIN = Actor(id=uuid4(), role=Role.SUPER_ADMIN)

HAPPY_PATH = [
    OrderStatus.PENDING,
    OrderStatus.CONFIRMED,
    OrderStatus.PREPARING,
    OrderStatus.READY,
    OrderStatus.PICKED_UP,
    OrderStatus.DELIVERED,
]


def order_in(status, history=None, payment_method="cash", payment_status="pending"):
    return SimpleNamespace(
        status=status, status_history=history or [],
        payment_method=payment_method, payment_status=payment_status,
    )


def test_full_happy_path_in_sequence():
    order = order_in(OrderStatus.PENDING, [{"status": "pending"}])
    for next_status in HAPPY_PATH[1:]:
        changes = plan_transition(order, next_status.value, None, RESTAURANT)
        order.status = changes["status"]
        order.status_history = changes["status_history"]

    assert order.status == OrderStatus.DELIVERED
    assert [h["status"] for h in order.status_history] == [s.value for s in HAPPY_PATH]


def test_skipping_states_is_an_invalid_transition():
    with pytest.raises(InvalidTransition):
        check_transition(OrderStatus.PENDING, "delivered", RESTAURANT)


def test_moving_backwards_is_an_invalid_transition():
    with pytest.raises(InvalidTransition):
        check_transition(OrderStatus.READY, "preparing", ADMIN)


def test_unknown_status_is_an_invalid_transition():
    with pytest.raises(InvalidTransition, match="Unknown order status"):
        check_transition(OrderStatus.PENDING, "teleported", ADMIN)


@pytest.mark.parametrize("terminal", [OrderStatus.DELIVERED, OrderStatus.CANCELLED])
def test_terminal_states_cannot_change(terminal):
    with pytest.raises(InvalidTransition):
        check_transition(terminal, "cancelled", ADMIN, note="late")
    assert allowed_next(terminal) == []


def test_customer_can_cancel_early():
    for status in (OrderStatus.PENDING, OrderStatus.CONFIRMED):
        assert check_transition(status, "cancelled", CUSTOMER) == OrderStatus.CANCELLED


def test_customer_cannot_cancel_picked_up_order():
    with pytest.raises(Forbidden):
        check_transition(OrderStatus.PICKED_UP, "cancelled", CUSTOMER)


def test_customer_cannot_move_order_forward():
    with pytest.raises(Forbidden):
        check_transition(OrderStatus.PENDING, "confirmed", CUSTOMER)


def test_admin_cancellation_requires_reason():
    with pytest.raises(ValidationError, match="reason"):
        check_transition(OrderStatus.PICKED_UP, "cancelled", ADMIN, note="  ")


def test_admin_cancel_of_picked_up_order_records_reason():
    order = order_in(OrderStatus.PICKED_UP, [{"status": "picked_up"}])
    changes = plan_transition(order, OrderStatus.CANCELLED, "Courier accident", SUPER_ADMIN)

    assert changes["status"] == OrderStatus.CANCELLED
    assert changes["cancellation_reason"] == "Courier accident"
    assert changes["cancelled_by"] == "super_admin"
    assert changes["status_history"][-1]["note"] == "Courier accident"
    assert len(changes["status_history"]) == 2


def test_plan_does_not_modify_order():
    history = [{"status": "pending"}]
    order = order_in(OrderStatus.PENDING, history)
    plan_transition(order, "confirmed", None, RESTAURANT)
    assert order.status == OrderStatus.PENDING
    assert order.status_history == [{"status": "pending"}]


def test_delivered_stamps_delivered_at():
    order = order_in(OrderStatus.PICKED_UP)
    changes = plan_transition(order, "delivered", None, RESTAURANT)
    assert changes["delivered_at"] is not None
    assert changes["status_history"][-1]["timestamp"] == changes["delivered_at"].isoformat()


def test_cash_is_collected_on_delivery():
    changes = plan_transition(order_in(OrderStatus.PICKED_UP), "delivered", None, RESTAURANT)
    assert changes["payment_status"] == PaymentStatus.COMPLETED

    card = order_in(OrderStatus.PICKED_UP, payment_method="card", payment_status="processing")
    assert "payment_status" not in plan_transition(card, "delivered", None, RESTAURANT)


def test_cancelling_a_paid_order_refunds_it():
    paid = order_in(OrderStatus.CONFIRMED, payment_method="online", payment_status="completed")
    assert plan_transition(paid, "cancelled", None, CUSTOMER)["payment_status"] == PaymentStatus.REFUNDED

    unpaid = order_in(OrderStatus.PENDING)
    assert "payment_status" not in plan_transition(unpaid, "cancelled", None, CUSTOMER)
