import asyncio
import pytest
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch
from uuid import UUID, uuid4

from food_delivery.core.errors import Conflict, Forbidden, InvalidTransition, ValidationError
from food_delivery.core.security import Actor
from food_delivery.models.cart import Cart
from food_delivery.models.discount import Discount
from food_delivery.models.notification import Notification, NotificationType
from food_delivery.models.order import Order, OrderItem, OrderStatus, PaymentMethod, PaymentStatus
from food_delivery.models.user import Role, User
from food_delivery.services import cart_service, order_service

# --- CORE MOCKING UTILITIES ---

class AsyncContextManagerMock:
    """Mocks 'async with in_transaction() as conn:' to fulfill the async context manager protocol."""
    async def __aenter__(self):
        return object()
    async def __aexit__(self, exc_type, exc_val, exc_tb):
        pass

def create_mock_queryset(final_return_value):
    """
    FACTORY: a MagicMock that supports Tortoise-style chaining (prefetch_related,
    using_db) and is awaitable, returning `final_return_value`.
    """
    # MagicMock does not support configuring __await__, so give it an awaitable class
    chainable_mock = type("AwaitableMagicMock", (MagicMock,), {
        "__await__": lambda self: self._mock_await(),
    })()
    chainable_mock.prefetch_related.return_value = chainable_mock
    chainable_mock.using_db.return_value = chainable_mock

    async def mock_await():
        return final_return_value

    chainable_mock._mock_await = lambda: mock_await().__await__()
    return chainable_mock


# --- SETUP FIXTURES ---

ADDRESS = {"street": "12 MG Road", "city": "Pune", "state": "MH", "zip_code": "411001"}


@pytest.fixture
async def setup(factory):
    owner = await factory.user(Role.RESTAURANT)
    restaurant = await factory.restaurant(owner=owner, delivery_fee=Decimal("5.00"))
    wrap = await factory.dish(restaurant, "10.00", name="Paneer Wrap")
    rice = await factory.dish(restaurant, "15.00", name="Chili Rice")
    customer = await factory.user()
    admin = await factory.user(Role.ADMIN)
    return SimpleNamespace(
        restaurant=restaurant,
        wrap=wrap,
        rice=rice,
        customer=customer,
        customer_actor=factory.actor(customer),
        owner_actor=factory.actor(owner, restaurant),
        admin_actor=factory.actor(admin),
    )


async def checkout(s, coupon=None):
    await cart_service.add_item(s.customer_actor, s.restaurant.id, s.wrap.id, quantity=2)
    await cart_service.add_item(s.customer_actor, s.restaurant.id, s.rice.id)
    if coupon:
        await cart_service.apply_coupon(s.customer_actor, coupon)
    return await order_service.place_order(s.customer_actor, ADDRESS, "cash", notes="Ring the bell")


async def advance(s, order, *statuses):
    for next_status in statuses:
        order = await order_service.transition_order(s.owner_actor, order.id, next_status)
    return order


# --- TESTS ---

@pytest.mark.asyncio
async def test_place_order_freezes_cart(setup):
    order = await checkout(setup)

    assert order.status == OrderStatus.PENDING
    assert order.order_number.startswith("FD") and len(order.order_number) == 11
    assert order.subtotal == Decimal("35.00")
    assert order.total_amount == Decimal("40.00")
    assert [h["status"] for h in order.status_history] == ["pending"]
    assert order.delivery_address == ADDRESS
    assert order.payment_method == PaymentMethod.CASH
    assert order.payment_status == PaymentStatus.PENDING

    items = await OrderItem.filter(order_id=order.id).order_by("name")
    assert [(i.name, i.quantity, i.line_total) for i in items] == [
        ("Chili Rice", 1, Decimal("15.00")),
        ("Paneer Wrap", 2, Decimal("20.00")),
    ]

    cart = await Cart.get(user_id=setup.customer.id)
    assert cart.items == [] and cart.restaurant_id is None

    notification = await Notification.get(user_id=setup.customer.id)
    assert notification.type == NotificationType.ORDER_PLACED
    assert order.order_number in notification.message


@pytest.mark.asyncio
async def test_checkout_increments_coupon_usage(factory, setup):
    await factory.discount(setup.restaurant, code="TEN", value=Decimal("10"), usage_limit=2)

    order = await checkout(setup, coupon="TEN")

    assert order.discount_amount == Decimal("3.50")
    assert order.total_amount == Decimal("36.50")
    assert order.coupon_code == "TEN"
    assert (await Discount.get(code="TEN")).used_count == 1


@pytest.mark.asyncio
async def test_checkout_fails_when_coupon_exhausted_meanwhile(factory, setup):
    discount = await factory.discount(setup.restaurant, code="ONCE", usage_limit=1)
    await cart_service.add_item(setup.customer_actor, setup.restaurant.id, setup.wrap.id)
    await cart_service.apply_coupon(setup.customer_actor, "ONCE")
    await Discount.filter(id=discount.id).update(used_count=1)

    with pytest.raises(ValidationError, match="usage limit"):
        await order_service.place_order(setup.customer_actor, ADDRESS)
    assert await Order.all().count() == 0


@pytest.mark.asyncio
async def test_empty_cart_cannot_be_placed(setup):
    with pytest.raises(ValidationError, match="empty"):
        await order_service.place_order(setup.customer_actor, ADDRESS)


@pytest.mark.asyncio
async def test_minimum_order_is_enforced(setup):
    setup.restaurant.minimum_order = Decimal("100.00")
    await setup.restaurant.save()

    with pytest.raises(ValidationError, match="minimum order"):
        await checkout(setup)
    assert len((await Cart.get(user_id=setup.customer.id)).items) == 2


@pytest.mark.asyncio
async def test_unavailable_item_blocks_checkout(setup):
    await cart_service.add_item(setup.customer_actor, setup.restaurant.id, setup.wrap.id)
    setup.wrap.is_available = False
    await setup.wrap.save()

    with pytest.raises(ValidationError) as exc:
        await order_service.place_order(setup.customer_actor, ADDRESS)
    assert exc.value.details["unavailable_items"][0]["name"] == "Paneer Wrap"


@pytest.mark.asyncio
async def test_full_lifecycle_and_reward_points(setup):
    order = await checkout(setup)
    order = await advance(setup, order, "confirmed", "preparing", "ready", "picked_up", "delivered")

    stored = await Order.get(id=order.id)
    assert stored.status == OrderStatus.DELIVERED
    assert stored.delivered_at is not None
    assert stored.version == 5
    assert [h["status"] for h in stored.status_history] == [
        "pending", "confirmed", "preparing", "ready", "picked_up", "delivered",
    ]
    assert (await User.get(id=setup.customer.id)).reward_points == 40
    assert stored.payment_status == PaymentStatus.COMPLETED
    assert await Notification.filter(user_id=setup.customer.id).count() == 6


@pytest.mark.asyncio
async def test_skipping_to_delivered_is_rejected(setup):
    order = await checkout(setup)
    with pytest.raises(InvalidTransition):
        await order_service.transition_order(setup.owner_actor, order.id, "delivered")
    assert (await Order.get(id=order.id)).status == OrderStatus.PENDING


@pytest.mark.asyncio
async def test_customer_cancel_rules(setup):
    order = await checkout(setup)
    await advance(setup, order, "confirmed", "preparing", "ready", "picked_up")

    with pytest.raises(Forbidden):
        await order_service.cancel_order(setup.customer_actor, order.id)

    cancelled = await order_service.cancel_order(setup.admin_actor, order.id, reason="Courier accident")
    assert cancelled.status == OrderStatus.CANCELLED
    stored = await Order.get(id=order.id)
    assert stored.status_history[-1]["note"] == "Courier accident"
    assert stored.cancelled_by == "admin"
    assert len(stored.status_history) == 6


@pytest.mark.asyncio
async def test_customer_can_cancel_pending_order(setup):
    order = await checkout(setup)
    cancelled = await order_service.cancel_order(setup.customer_actor, order.id)
    assert cancelled.cancelled_by == "customer"
    assert cancelled.cancellation_reason == "Cancelled by customer"


@pytest.mark.asyncio
async def test_other_restaurant_cannot_touch_order(factory, setup):
    order = await checkout(setup)
    rival_owner = await factory.user(Role.RESTAURANT)
    rival = await factory.restaurant(owner=rival_owner)

    with pytest.raises(Forbidden):
        await order_service.transition_order(factory.actor(rival_owner, rival), order.id, "confirmed")


@pytest.mark.asyncio
async def test_concurrent_transitions_apply_exactly_one(setup):
    order = await checkout(setup)
    await advance(setup, order, "confirmed")

    results = await asyncio.gather(
        order_service.transition_order(setup.owner_actor, order.id, "preparing", expected_status="confirmed"),
        order_service.transition_order(
            setup.admin_actor, order.id, "cancelled", note="Out of stock", expected_status="confirmed"
        ),
        return_exceptions=True,
    )

    applied = [r for r in results if isinstance(r, Order)]
    conflicts = [r for r in results if isinstance(r, Conflict)]
    assert len(applied) == 1 and len(conflicts) == 1

    stored = await Order.get(id=order.id)
    assert stored.status == applied[0].status
    assert len(stored.status_history) == 3


@pytest.mark.asyncio
async def test_stale_expected_status_conflicts(setup):
    order = await checkout(setup)
    await advance(setup, order, "confirmed")

    with pytest.raises(Conflict):
        await order_service.transition_order(setup.owner_actor, order.id, "confirmed", expected_status="pending")


@pytest.mark.asyncio
@patch('food_delivery.services.order_service.notify', new_callable=AsyncMock)
@patch('food_delivery.services.order_service.in_transaction', new_callable=MagicMock)
async def test_lost_version_race_raises_conflict(mock_in_transaction, mock_notify):
    """The conditional update matched no row: someone else won the race."""
    restaurant_actor = Actor(id=uuid4(), role=Role.RESTAURANT, restaurant_id=UUID(int=7))
    # Named Order so the ownership gate treats it as one
    mock_order = type("Order", (SimpleNamespace,), {})(
        id=uuid4(),
        restaurant_id=UUID(int=7),
        customer_id=uuid4(),
        status=OrderStatus.CONFIRMED,
        status_history=[{"status": "pending"}, {"status": "confirmed"}],
        payment_method=PaymentMethod.CASH,
        payment_status=PaymentStatus.PENDING,
        version=1,
    )

    cas = MagicMock()
    cas.using_db.return_value.update = AsyncMock(return_value=0)
    mock_in_transaction.return_value = AsyncContextManagerMock()

    with patch.object(Order, 'get_or_none', MagicMock(return_value=create_mock_queryset(mock_order))), \
         patch.object(Order, 'filter', MagicMock(return_value=cas)):
        with pytest.raises(Conflict):
            await order_service.transition_order(restaurant_actor, mock_order.id, OrderStatus.PREPARING)

    _, kwargs = cas.using_db.return_value.update.call_args
    assert kwargs["version"] == 2
    mock_notify.assert_not_called()
    assert mock_order.status == OrderStatus.CONFIRMED


@pytest.mark.asyncio
async def test_reorder_uses_current_prices_and_drops_removed_dishes(setup):
    order = await checkout(setup)
    setup.wrap.price = Decimal("12.00")
    await setup.wrap.save()
    await setup.rice.delete()

    view = await order_service.reorder(setup.customer_actor, order.id)

    assert [line["name"] for line in view["cart"]["items"]] == ["Paneer Wrap"]
    assert view["cart"]["items"][0]["unit_price"] == "12.00"
    assert view["summary"]["subtotal"] == Decimal("24.00")
    assert view["dropped_items"] == [
        {"dish_id": str(setup.rice.id), "name": "Chili Rice", "reason": "Item no longer available"}
    ]


@pytest.mark.asyncio
async def test_reorder_of_someone_elses_order(factory, setup):
    order = await checkout(setup)
    stranger = await factory.user()
    with pytest.raises(Forbidden):
        await order_service.reorder(factory.actor(stranger), order.id)


@pytest.mark.asyncio
async def test_list_orders_is_scoped_by_role(factory, setup):
    order = await checkout(setup)
    other_customer = await factory.user()

    mine, total = await order_service.list_orders(setup.customer_actor)
    assert total == 1 and mine[0].id == order.id

    _, total = await order_service.list_orders(factory.actor(other_customer))
    assert total == 0

    incoming, total = await order_service.list_orders(setup.owner_actor, statuses=["pending"])
    assert total == 1 and len(incoming[0].items) == 2

    _, total = await order_service.list_orders(setup.admin_actor, search=order.order_number[-4:])
    assert total == 1

    with pytest.raises(ValidationError):
        await order_service.list_orders(setup.admin_actor, statuses=["lost"])


@pytest.mark.asyncio
async def test_incomplete_address_blocks_checkout(setup):
    await cart_service.add_item(setup.customer_actor, setup.restaurant.id, setup.wrap.id)

    with pytest.raises(ValidationError, match="delivery address") as exc:
        await order_service.place_order(setup.customer_actor, dict(ADDRESS, city="  ", zip_code=None))
    assert exc.value.details["missing_fields"] == ["city", "zip_code"]

    with pytest.raises(ValidationError, match="payment method"):
        await order_service.place_order(setup.customer_actor, ADDRESS, "cheque")
    assert await Order.all().count() == 0


@pytest.mark.asyncio
async def test_address_is_trimmed_and_stored(setup):
    await cart_service.add_item(setup.customer_actor, setup.restaurant.id, setup.wrap.id)
    address = dict(ADDRESS, street=" 12 MG Road ", apartment_number="4B", delivery_instructions="")

    order = await order_service.place_order(setup.customer_actor, address, "card")

    stored = await Order.get(id=order.id)
    assert stored.delivery_address == dict(ADDRESS, apartment_number="4B")
    assert stored.payment_method == PaymentMethod.CARD


@pytest.mark.asyncio
async def test_taken_order_number_is_retried(setup):
    taken = await checkout(setup)

    with patch('food_delivery.services.order_service.generate_order_number',
               side_effect=[taken.order_number, "FD999999001"]):
        order = await checkout(setup)

    assert order.order_number == "FD999999001"
    assert await Order.filter(customer_id=setup.customer.id).count() == 2
    assert await OrderItem.filter(order_id=order.id).count() == 2
    assert (await Cart.get(user_id=setup.customer.id)).items == []


@pytest.mark.asyncio
async def test_order_number_exhaustion_is_a_conflict(factory, setup):
    taken = await checkout(setup)
    await factory.discount(setup.restaurant, code="TEN", usage_limit=5)

    with patch('food_delivery.services.order_service.generate_order_number', return_value=taken.order_number):
        with pytest.raises(Conflict, match="order number"):
            await checkout(setup, coupon="TEN")

    assert await Order.all().count() == 1
    assert (await Discount.get(code="TEN")).used_count == 0
    assert len((await Cart.get(user_id=setup.customer.id)).items) == 2
