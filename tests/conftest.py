import pytest
from datetime import timedelta
from decimal import Decimal

from food_delivery.core.db import close_db, init_db
from food_delivery.core.security import Actor
from food_delivery.models.discount import Discount, DiscountType
from food_delivery.models.restaurant import MenuItem, Restaurant
from food_delivery.models.user import Role, User
from food_delivery.utils import now_utc


@pytest.fixture
async def db():
    """Fresh in-memory SQLite database per test."""
    await init_db("sqlite://:memory:")
    yield
    await close_db()


class Factory:
    """Creates persisted records with sensible defaults."""

    def __init__(self):
        self._n = 0

    def _next(self) -> int:
        self._n += 1
        return self._n

    async def user(self, role: Role = Role.USER, **kwargs) -> User:
        n = self._next()
        kwargs.setdefault("email", f"user{n}@example.com")
        kwargs.setdefault("full_name", f"User {n}")
        return await User.create(role=role, **kwargs)

    async def restaurant(self, owner: User = None, **kwargs) -> Restaurant:
        owner = owner or await self.user(Role.RESTAURANT)
        kwargs.setdefault("name", f"Restaurant {self._next()}")
        kwargs.setdefault("delivery_fee", Decimal("5.00"))
        kwargs.setdefault("minimum_order", Decimal("0.00"))
        return await Restaurant.create(owner=owner, **kwargs)

    async def dish(self, restaurant: Restaurant, price="10.00", **kwargs) -> MenuItem:
        kwargs.setdefault("name", f"Dish {self._next()}")
        return await MenuItem.create(restaurant=restaurant, price=Decimal(price), **kwargs)

    async def discount(self, restaurant: Restaurant, **kwargs) -> Discount:
        now = now_utc()
        kwargs.setdefault("name", "Promo")
        kwargs.setdefault("code", f"PROMO{self._next()}")
        kwargs.setdefault("type", DiscountType.PERCENTAGE)
        kwargs.setdefault("value", Decimal("10"))
        kwargs.setdefault("start_date", now - timedelta(days=1))
        kwargs.setdefault("end_date", now + timedelta(days=30))
        return await Discount.create(restaurant=restaurant, **kwargs)

    @staticmethod
    def actor(user: User, restaurant: Restaurant = None) -> Actor:
        return Actor(id=user.id, role=Role(user.role), restaurant_id=restaurant.id if restaurant else None)


@pytest.fixture
def factory(db):
    return Factory()
