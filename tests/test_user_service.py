import pytest
from decimal import Decimal

from food_delivery.core.errors import Conflict, Forbidden, NotFound, ValidationError
from food_delivery.models.order import Order, OrderStatus
from food_delivery.models.restaurant import Restaurant
from food_delivery.models.user import Role, User
from food_delivery.services import stats_service, user_service


@pytest.mark.asyncio
async def test_admin_can_promote_customer_to_restaurant(factory):
    admin = await factory.user(Role.ADMIN)
    customer = await factory.user()

    updated = await user_service.change_role(factory.actor(admin), customer.id, "restaurant")

    assert updated.role == Role.RESTAURANT
    assert (await User.get(id=customer.id)).role == Role.RESTAURANT


@pytest.mark.asyncio
async def test_unknown_role_is_rejected(factory):
    admin = await factory.user(Role.ADMIN)
    customer = await factory.user()

    with pytest.raises(ValidationError, match="Invalid role"):
        await user_service.change_role(factory.actor(admin), customer.id, "resturant")
    assert (await User.get(id=customer.id)).role == Role.USER


@pytest.mark.asyncio
async def test_only_super_admin_grants_admin(factory):
    admin = await factory.user(Role.ADMIN)
    super_admin = await factory.user(Role.SUPER_ADMIN)
    customer = await factory.user()

    with pytest.raises(Forbidden):
        await user_service.change_role(factory.actor(admin), customer.id, Role.ADMIN)

    promoted = await user_service.change_role(factory.actor(super_admin), customer.id, Role.ADMIN)
    assert promoted.role == Role.ADMIN

    with pytest.raises(Forbidden):
        await user_service.change_role(factory.actor(admin), customer.id, Role.USER)


@pytest.mark.asyncio
async def test_nobody_changes_their_own_role(factory):
    super_admin = await factory.user(Role.SUPER_ADMIN)
    with pytest.raises(Forbidden, match="own role"):
        await user_service.change_role(factory.actor(super_admin), super_admin.id, Role.USER)


@pytest.mark.asyncio
async def test_non_admin_cannot_change_roles(factory):
    customer, other = await factory.user(), await factory.user()
    with pytest.raises(Forbidden):
        await user_service.change_role(factory.actor(customer), other.id, Role.RESTAURANT)


@pytest.mark.asyncio
async def test_list_users_with_distribution(factory):
    admin = await factory.user(Role.ADMIN)
    await factory.user(full_name="Asha Rao")
    await factory.user(Role.RESTAURANT)

    users, total, distribution = await user_service.list_users(factory.actor(admin), role="user")
    assert total == 1 and users[0].full_name == "Asha Rao"
    assert distribution == {"user": 1, "restaurant": 1, "admin": 1, "super_admin": 0}

    _, total, _ = await user_service.list_users(factory.actor(admin), search="asha")
    assert total == 1


@pytest.mark.asyncio
async def test_deactivate_and_delete(factory):
    admin = await factory.user(Role.ADMIN)
    other_admin = await factory.user(Role.ADMIN)
    customer = await factory.user()
    actor = factory.actor(admin)

    assert (await user_service.set_user_active(actor, customer.id, False)).is_active is False
    with pytest.raises(Forbidden):
        await user_service.set_user_active(actor, other_admin.id, False)

    with pytest.raises(Forbidden, match="cannot be deleted"):
        await user_service.delete_user(actor, other_admin.id)
    await user_service.delete_user(actor, customer.id)
    with pytest.raises(NotFound):
        await user_service.delete_user(actor, customer.id)


@pytest.mark.asyncio
async def test_favorites_toggle(factory):
    customer = await factory.user()
    actor = factory.actor(customer)
    open_place = await factory.restaurant()
    closed_place = await factory.restaurant(is_active=False)

    assert await user_service.toggle_favorite(actor, open_place.id) is True
    assert await user_service.toggle_favorite(actor, closed_place.id) is True
    assert [r.id for r in await user_service.list_favorites(actor)] == [open_place.id]

    assert await user_service.toggle_favorite(actor, open_place.id) is False
    assert await user_service.list_favorites(actor) == []


@pytest.mark.asyncio
async def test_customer_with_orders_cannot_be_deleted(factory):
    admin = await factory.user(Role.ADMIN)
    owner = await factory.user(Role.RESTAURANT)
    restaurant = await factory.restaurant(owner=owner)
    customer = await factory.user()
    await Order.create(
        order_number="FD000000001",
        customer=customer,
        restaurant=restaurant,
        status=OrderStatus.DELIVERED,
        total_amount=Decimal("80.00"),
    )
    owner_actor = factory.actor(owner, restaurant)
    before = await stats_service.restaurant_dashboard(owner_actor)

    with pytest.raises(Conflict, match="order history"):
        await user_service.delete_user(factory.actor(admin), customer.id)

    after = await stats_service.restaurant_dashboard(owner_actor)
    assert after["revenue"]["total_revenue"] == before["revenue"]["total_revenue"] == Decimal("80.00")
    assert after["orders"]["total"] == 1
    assert await User.filter(id=customer.id).exists()


@pytest.mark.asyncio
async def test_restaurant_owner_cannot_be_deleted(factory):
    admin = await factory.user(Role.ADMIN)
    owner = await factory.user(Role.RESTAURANT)
    restaurant = await factory.restaurant(owner=owner)

    with pytest.raises(Conflict, match="owns a restaurant"):
        await user_service.delete_user(factory.actor(admin), owner.id)
    assert await Restaurant.filter(id=restaurant.id).exists()
