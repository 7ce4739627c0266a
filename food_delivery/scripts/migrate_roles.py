"""
One-time rewrite of legacy role values to the closed role set.

Older records carry misspelled or renamed roles ("resturant", "seller",
"customer", ...). The User model only accepts Role members, so those rows are
rewritten at the table level before the application reads them.

    python -m food_delivery.scripts.migrate_roles
"""
import asyncio
import logging
from typing import Dict, List

from tortoise import connections

from food_delivery.core.db import close_db, init_db
from food_delivery.models.user import Role

log = logging.getLogger(__name__)

LEGACY_ROLE_ALIASES = {
    "resturant": Role.RESTAURANT,
    "restuarant": Role.RESTAURANT,
    "seller": Role.RESTAURANT,
    "customer": Role.USER,
    "superadmin": Role.SUPER_ADMIN,
    "super-admin": Role.SUPER_ADMIN,
}


def _placeholders(conn, count: int) -> List[str]:
    dialect = conn.capabilities.dialect
    if dialect == "postgres":
        return [f"${n}" for n in range(1, count + 1)]
    if dialect == "mysql":
        return ["%s"] * count
    return ["?"] * count


async def _rewrite(conn, old: str, new: Role) -> int:
    new_slot, old_slot = _placeholders(conn, 2)
    _, rows = await conn.execute_query(
        f"UPDATE users SET role = {new_slot} WHERE role = {old_slot} RETURNING id", [new.value, old]
    )
    return len(rows)


async def migrate_roles(connection_name: str = "default") -> Dict[str, int]:
    """Rewrites known aliases, then demotes any remaining unknown value to `user`."""
    conn = connections.get(connection_name)
    changed: Dict[str, int] = {}

    for legacy, role in LEGACY_ROLE_ALIASES.items():
        count = await _rewrite(conn, legacy, role)
        if count:
            changed[legacy] = count
            log.info(f"Rewrote {count} users from role '{legacy}' to '{role.value}'")

    valid = [r.value for r in Role]
    slots = ", ".join(_placeholders(conn, len(valid)))
    _, rows = await conn.execute_query(f"SELECT DISTINCT role FROM users WHERE role NOT IN ({slots})", valid)
    for row in rows:
        unknown = row["role"]
        count = await _rewrite(conn, unknown, Role.USER)
        changed[unknown] = count
        log.warning(f"Demoted {count} users with unknown role '{unknown}' to '{Role.USER.value}'")

    return changed


async def main():
    await init_db(generate_schemas=False)
    try:
        changed = await migrate_roles()
        log.info(f"Role migration finished: {changed or 'nothing to do'}")
    finally:
        await close_db()

if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    asyncio.run(main())
