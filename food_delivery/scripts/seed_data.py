# scripts/seed_data.py
import asyncio
from datetime import timedelta
from tortoise import Tortoise
from food_delivery.core.db import init_db
from food_delivery.models.discount import Discount, DiscountType
from food_delivery.models.restaurant import MenuItem, Restaurant
from food_delivery.models.user import Role, User
from food_delivery.utils import now_utc

async def seed():
    # One account per role
    admin, _ = await User.get_or_create(email="admin@example.com", defaults={"full_name": "Platform Admin", "role": Role.SUPER_ADMIN})
    owner, _ = await User.get_or_create(email="owner@example.com", defaults={"full_name": "Demo Owner", "role": Role.RESTAURANT})
    customer, _ = await User.get_or_create(email="customer@example.com", defaults={"full_name": "Demo Customer", "role": Role.USER})
    print("Users:", str(admin.id), str(owner.id), str(customer.id))

    rest, _ = await Restaurant.get_or_create(
        owner=owner,
        defaults={
            "name": "Demo Restaurant",
            "cuisine": ["Indian", "Chinese"],
            "delivery_fee": "30.00",
            "minimum_order": "100.00",
            "is_verified": True,
        },
    )
    print("Restaurant:", rest.id)

    m1, _ = await MenuItem.get_or_create(restaurant=rest, name="Paneer Wrap", defaults={"price": "149.00", "category": "Wraps", "position": 0})
    m2, _ = await MenuItem.get_or_create(restaurant=rest, name="Chili Paneer Rice", defaults={"price": "199.00", "category": "Mains", "position": 1})
    m3, _ = await MenuItem.get_or_create(restaurant=rest, name="Cold Drink", defaults={"price": "49.00", "category": "Drinks", "position": 2})
    print("Menu items:", str(m1.id), str(m2.id), str(m3.id))

    now = now_utc()
    await Discount.get_or_create(
        restaurant=rest,
        code="WELCOME20",
        defaults={
            "name": "Welcome offer",
            "type": DiscountType.PERCENTAGE,
            "value": "20",
            "min_order_amount": "250.00",
            "max_discount_amount": "100.00",
            "usage_limit": 100,
            "start_date": now,
            "end_date": now + timedelta(days=30),
        },
    )
    print("Discount WELCOME20 seeded.")

async def main():
    await init_db()
    await seed()
    await Tortoise.close_connections()

if __name__ == "__main__":
    asyncio.run(main())
