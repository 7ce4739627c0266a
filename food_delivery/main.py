import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, status
from food_delivery.core.db import init_db, close_db
from food_delivery.api.v1.admin import router as admin_router
from food_delivery.api.v1.cart import router as cart_router
from food_delivery.api.v1.discounts import router as discounts_router
from food_delivery.api.v1.notifications import router as notifications_router
from food_delivery.api.v1.orders import router as orders_router
from food_delivery.api.v1.restaurant import router as restaurant_router
from food_delivery.api.v1.restaurants import router as restaurants_router
from food_delivery.api.v1.reviews import router as reviews_router
from food_delivery.core.config import LOG_LEVEL, PROJECT_NAME, VERSION
from food_delivery.core.exception_handlers import setup_exception_handlers

logging.basicConfig(level=LOG_LEVEL, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
log = logging.getLogger("uvicorn")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handles startup and shutdown events."""
    log.info(f"Starting {PROJECT_NAME} v{VERSION}...")
    await init_db() # Connect to DB and generate schemas
    yield
    await close_db()
    log.info(f"{PROJECT_NAME} stopped.")

app = FastAPI(
    title=PROJECT_NAME,
    version=VERSION,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc"
)

app.include_router(restaurants_router, prefix="/api/v1/restaurants", tags=["Restaurants"])
app.include_router(cart_router, prefix="/api/v1/cart", tags=["Cart"])
app.include_router(orders_router, prefix="/api/v1/orders", tags=["Order Management"])
app.include_router(discounts_router, prefix="/api/v1/discounts", tags=["Discounts"])
app.include_router(notifications_router, prefix="/api/v1/notifications", tags=["Notifications"])
app.include_router(reviews_router, prefix="/api/v1/reviews", tags=["Reviews"])
app.include_router(restaurant_router, prefix="/api/v1/restaurant", tags=["Restaurant Owner"])
app.include_router(admin_router, prefix="/api/v1/admin", tags=["Administration"])

setup_exception_handlers(app)

@app.get("/health", status_code=status.HTTP_200_OK)
async def health_check():
    """Simple health check endpoint."""
    return {"status": "ok", "app_name": PROJECT_NAME}
