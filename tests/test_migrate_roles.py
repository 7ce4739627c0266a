import pytest

from tortoise import connections

from food_delivery.models.user import Role, User
from food_delivery.scripts.migrate_roles import migrate_roles


async def set_raw_role(user, value):
    await connections.get("default").execute_query(
        "UPDATE users SET role = ? WHERE id = ?", [value, str(user.id)]
    )


@pytest.mark.asyncio
async def test_legacy_aliases_are_rewritten(factory):
    seller = await factory.user()
    shopper = await factory.user()
    boss = await factory.user()
    await set_raw_role(seller, "resturant")
    await set_raw_role(shopper, "customer")
    await set_raw_role(boss, "super-admin")

    changed = await migrate_roles()

    assert changed == {"resturant": 1, "customer": 1, "super-admin": 1}
    assert (await User.get(id=seller.id)).role == Role.RESTAURANT
    assert (await User.get(id=shopper.id)).role == Role.USER
    assert (await User.get(id=boss.id)).role == Role.SUPER_ADMIN


@pytest.mark.asyncio
async def test_unknown_roles_are_demoted_to_user(factory):
    stray = await factory.user(Role.ADMIN)
    await set_raw_role(stray, "moderator")

    changed = await migrate_roles()

    assert changed == {"moderator": 1}
    assert (await User.get(id=stray.id)).role == Role.USER


@pytest.mark.asyncio
async def test_clean_table_is_left_alone(factory):
    await factory.user(Role.RESTAURANT)
    assert await migrate_roles() == {}


@pytest.mark.asyncio
async def test_quoted_role_values_are_bound_not_inlined(factory):
    odd = await factory.user()
    bystander = await factory.user(Role.RESTAURANT)
    await set_raw_role(odd, "chef' OR '1'='1")

    changed = await migrate_roles()

    assert changed == {"chef' OR '1'='1": 1}
    assert (await User.get(id=odd.id)).role == Role.USER
    assert (await User.get(id=bystander.id)).role == Role.RESTAURANT
