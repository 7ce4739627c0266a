import logging
from logging import INFO
from typing import Optional

from tortoise import Tortoise
from food_delivery.core.config import DB_URL

# Set logging level for Tortoise ORM
logging.getLogger('tortoise').setLevel(INFO)
log = logging.getLogger(__name__)

# Define all models modules for the ORM
MODELS_MODULES = [
    "food_delivery.models.user",
    "food_delivery.models.restaurant",
    "food_delivery.models.cart",
    "food_delivery.models.order",
    "food_delivery.models.discount",
    "food_delivery.models.notification",
    "food_delivery.models.review",
]


async def init_db(db_url: Optional[str] = None, generate_schemas: bool = True):
    """Initializes the Tortoise ORM connection and generates schemas."""
    url = db_url or DB_URL
    try:
        await Tortoise.init(
            db_url=url,
            modules={"models": MODELS_MODULES},
            use_tz=True,
            timezone="UTC",
        )
        if generate_schemas:
            await Tortoise.generate_schemas()
        log.info("Database connection established and schemas generated.")
    except Exception as e:
        log.critical(f"Could not connect to database at {url}. Error: {e}")
        # Re-raise to prevent the application from starting without a database
        raise


async def close_db():
    """Closes all database connections."""
    await Tortoise.close_connections()
    log.info("Database connections closed.")
