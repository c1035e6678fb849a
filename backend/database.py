from fastapi import Request
from motor.motor_asyncio import AsyncIOMotorClient
import logging

from config import MONGO_URL, DB_NAME, TRAINING_MODE

logger = logging.getLogger(__name__)

# Use separate database for training
if TRAINING_MODE:
    ACTIVE_DB_NAME = f"{DB_NAME}_training"
else:
    ACTIVE_DB_NAME = DB_NAME


def connect(mongo_url: str = MONGO_URL):
    """Open a client and return it together with the active database"""
    client = AsyncIOMotorClient(mongo_url)
    logger.info(f"Connected to: {ACTIVE_DB_NAME} {'(TRAINING MODE)' if TRAINING_MODE else '(PRODUCTION)'}")
    return client, client[ACTIVE_DB_NAME]


def get_db(request: Request):
    """Database handle attached to the app on startup"""
    return request.app.state.db


async def create_indexes(db):
    """Create database indexes for optimized query performance"""
    try:
        # orders indexes
        await db.orders.create_index("order_id", unique=True)
        await db.orders.create_index([("sales_channel", 1), ("order_number", 1)])
        # Only set on non-CSV orders, which must be unique per channel
        await db.orders.create_index("dedupe_key", unique=True, sparse=True)
        await db.orders.create_index("status")
        await db.orders.create_index("synced")
        await db.orders.create_index("created_at")

        # production_logs indexes
        await db.production_logs.create_index("log_id", unique=True)
        await db.production_logs.create_index("order_id")

        # users / sessions
        await db.users.create_index("user_id", unique=True)
        await db.users.create_index("email")
        await db.user_sessions.create_index("session_token")

        # machines
        await db.sewing_machines.create_index("machine_id", unique=True)
        await db.machine_groups.create_index("manager_id")
        await db.machine_operations.create_index("operation_id", unique=True)
        await db.machine_operations.create_index([("machine_id", 1), ("status", 1)])
        await db.machine_recommendations.create_index("thread_color")
        await db.machine_recommendations.create_index("machine_id")

        # catalog products and settings
        await db.products.create_index("sku", unique=True)
        await db.settings.create_index("setting_id", unique=True)

        logger.info("Indexes created successfully")
    except Exception as e:
        logger.warning(f"Index creation error (may already exist): {e}")
