import os
from decimal import Decimal

# Database Configuration
# Uses default credentials for local Docker Compose setup
DB_URL = os.getenv("DATABASE_URL", "postgres://user:password@db:5432/food_delivery_db")

# Application Metadata
PROJECT_NAME = "Food Delivery Platform API"
VERSION = "1.0.0"
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Business rules
COMMISSION_RATE = Decimal(os.getenv("COMMISSION_RATE", "0.15")) # Platform cut of delivered orders
MAX_QUANTITY_PER_LINE = int(os.getenv("MAX_QUANTITY_PER_LINE", 10))
CART_WRITE_RETRIES = int(os.getenv("CART_WRITE_RETRIES", 3)) # Re-apply attempts after a lost cart write
ORDER_NUMBER_RETRIES = int(os.getenv("ORDER_NUMBER_RETRIES", 3)) # Fresh order numbers tried before checkout gives up
REWARD_POINTS_PER_UNIT = int(os.getenv("REWARD_POINTS_PER_UNIT", 1))
TOP_DISHES_LIMIT = int(os.getenv("TOP_DISHES_LIMIT", 5))

# Pagination
DEFAULT_PAGE_SIZE = int(os.getenv("DEFAULT_PAGE_SIZE", 10))
MAX_PAGE_SIZE = int(os.getenv("MAX_PAGE_SIZE", 100))

# Notifications
NOTIFICATION_TTL_DAYS = int(os.getenv("NOTIFICATION_TTL_DAYS", 30))
NOTIFICATION_PAGE_SIZE = int(os.getenv("NOTIFICATION_PAGE_SIZE", 20))

# Reviews
REVIEW_EDIT_WINDOW_HOURS = int(os.getenv("REVIEW_EDIT_WINDOW_HOURS", 24)) # Customers may delete their review within this window
