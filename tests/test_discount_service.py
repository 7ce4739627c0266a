import pytest
from datetime import timedelta
from decimal import Decimal

from food_delivery.core.errors import Conflict, Forbidden, NotFound, ValidationError
from food_delivery.models.discount import Discount, DiscountType
from food_delivery.models.user import Role
from food_delivery.services import discount_service
from food_delivery.utils import now_utc


@pytest.fixture
async def owner(factory):
    user = await factory.user(Role.RESTAURANT)
    restaurant = await factory.restaurant(owner=user)
    return restaurant, factory.actor(user, restaurant)


def payload(**overrides):
    now = now_utc()
    fields = dict(
        name="Lunch deal",
        code="lunch10",
        type=DiscountType.PERCENTAGE,
        value=Decimal("10"),
        min_order_amount=Decimal("20"),
        start_date=now - timedelta(hours=1),
        end_date=now + timedelta(days=7),
    )
    fields.update(overrides)
    return fields


@pytest.mark.asyncio
async def test_create_stores_upper_cased_code(owner):
    restaurant, actor = owner
    discount = await discount_service.create_discount(actor, **payload())

    assert discount.code == "LUNCH10"
    assert discount.restaurant_id == restaurant.id
    assert discount.used_count == 0


@pytest.mark.asyncio
async def test_duplicate_code_is_a_conflict(owner):
    _, actor = owner
    await discount_service.create_discount(actor, **payload())
    with pytest.raises(Conflict):
        await discount_service.create_discount(actor, **payload(code="LUNCH10"))


@pytest.mark.asyncio
async def test_same_code_allowed_in_another_restaurant(factory, owner):
    _, actor = owner
    other_owner = await factory.user(Role.RESTAURANT)
    other = await factory.restaurant(owner=other_owner)

    await discount_service.create_discount(actor, **payload())
    await discount_service.create_discount(factory.actor(other_owner, other), **payload())
    assert await Discount.filter(code="LUNCH10").count() == 2


@pytest.mark.asyncio
@pytest.mark.parametrize("overrides,message", [
    ({"name": ""}, "name is required"),
    ({"value": Decimal("120")}, "cannot exceed 100"),
    ({"end_date": now_utc() - timedelta(days=2)}, "End date must be after start date"),
    ({"type": "bogus"}, "Unknown discount type"),
])
async def test_create_validation(owner, overrides, message):
    _, actor = owner
    with pytest.raises(ValidationError, match=message):
        await discount_service.create_discount(actor, **payload(**overrides))


@pytest.mark.asyncio
async def test_list_by_status(factory, owner):
    restaurant, actor = owner
    now = now_utc()
    await factory.discount(restaurant, code="NOW")
    await factory.discount(restaurant, code="SOON", start_date=now + timedelta(days=2), end_date=now + timedelta(days=9))
    await factory.discount(restaurant, code="GONE", start_date=now - timedelta(days=9), end_date=now - timedelta(days=2))

    for status, code in (("active", "NOW"), ("scheduled", "SOON"), ("expired", "GONE")):
        found = await discount_service.list_discounts(actor, status=status)
        assert [d.code for d in found] == [code]
        assert discount_service.discount_status(found[0]) == status

    assert len(await discount_service.list_discounts(actor)) == 3
    with pytest.raises(ValidationError):
        await discount_service.list_discounts(actor, status="forever")


@pytest.mark.asyncio
async def test_update_and_delete_only_own(factory, owner):
    restaurant, actor = owner
    discount = await factory.discount(restaurant, code="MINE")
    other_owner = await factory.user(Role.RESTAURANT)
    other_actor = factory.actor(other_owner, await factory.restaurant(owner=other_owner))

    with pytest.raises(Forbidden):
        await discount_service.update_discount(other_actor, discount.id, value=Decimal("50"))
    with pytest.raises(Forbidden):
        await discount_service.delete_discount(other_actor, discount.id)

    updated = await discount_service.update_discount(actor, discount.id, value=Decimal("15"), code="mine2")
    assert updated.value == Decimal("15") and updated.code == "MINE2"

    await discount_service.delete_discount(actor, discount.id)
    with pytest.raises(NotFound):
        await discount_service.delete_discount(actor, discount.id)


@pytest.mark.asyncio
async def test_update_rejects_invalid_merged_state(factory, owner):
    restaurant, actor = owner
    discount = await factory.discount(restaurant)
    with pytest.raises(ValidationError, match="End date"):
        await discount_service.update_discount(actor, discount.id, end_date=discount.start_date - timedelta(days=1))


@pytest.mark.asyncio
async def test_validate_preview(factory, owner):
    restaurant, _ = owner
    await factory.discount(
        restaurant, code="SAVE20", value=Decimal("20"),
        min_order_amount=Decimal("25"), max_discount_amount=Decimal("10"),
    )

    result = await discount_service.validate_discount("save20", restaurant.id, Decimal("60"))
    assert result["discount_amount"] == Decimal("10.00")
    assert result["final_amount"] == Decimal("50.00")

    with pytest.raises(ValidationError, match="Minimum order amount"):
        await discount_service.validate_discount("SAVE20", restaurant.id, Decimal("10"))
    with pytest.raises(NotFound):
        await discount_service.validate_discount("NOPE", restaurant.id, Decimal("60"))


@pytest.mark.asyncio
async def test_customers_cannot_manage_discounts(factory):
    customer = await factory.user()
    with pytest.raises(Forbidden):
        await discount_service.create_discount(factory.actor(customer), **payload())


@pytest.mark.asyncio
async def test_usage_limit_cannot_drop_below_redemptions(factory, owner):
    restaurant, actor = owner
    discount = await factory.discount(restaurant, usage_limit=10, used_count=5)

    with pytest.raises(ValidationError, match="Usage limit cannot be lower"):
        await discount_service.update_discount(actor, discount.id, usage_limit=2)
    assert (await Discount.get(id=discount.id)).usage_limit == 10

    updated = await discount_service.update_discount(actor, discount.id, usage_limit=5)
    assert updated.usage_limit == 5


@pytest.mark.asyncio
async def test_used_count_is_not_caller_settable(owner):
    _, actor = owner
    discount = await discount_service.create_discount(actor, **payload(usage_limit=3, used_count=7))
    assert discount.used_count == 0

    updated = await discount_service.update_discount(actor, discount.id, used_count=9)
    assert updated.used_count == 0
