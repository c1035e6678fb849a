"""
Bootstrap the first admin account

    ADMIN_EMAIL=... ADMIN_PASSWORD=... python create_admin.py [name]
"""
import asyncio
import logging
import os
import sys

import httpx

from config import FIREBASE_API_KEY
from database import connect
from models.user import User, UserRole
from services.identity import IdentityClient

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


async def bootstrap_admin(db, identity: IdentityClient, email: str, password: str, name: str) -> dict:
    """Create (or promote) an admin profile for the given account"""
    existing = await db.users.find_one({"email": email}, {"_id": 0})
    if existing:
        await db.users.update_one({"user_id": existing["user_id"]}, {"$set": {"role": UserRole.ADMIN.value}})
        logger.info(f"Promoted existing user {existing['user_id']} to admin")
        return {**existing, "role": UserRole.ADMIN.value}

    try:
        account = await identity.sign_up(email, password)
    except httpx.HTTPStatusError:
        # Account may already exist on the identity side
        account = await identity.sign_in(email, password)

    profile = User(user_id=account["uid"], email=email, name=name, role=UserRole.ADMIN)
    doc = profile.model_dump(mode="json")
    await db.users.insert_one(doc)
    logger.info(f"Admin {profile.user_id} created")
    return {k: v for k, v in doc.items() if k != "_id"}


async def main():
    email = os.environ.get("ADMIN_EMAIL")
    password = os.environ.get("ADMIN_PASSWORD")
    name = sys.argv[1] if len(sys.argv) > 1 else "Admin"

    if not email or not password:
        logger.error("ADMIN_EMAIL and ADMIN_PASSWORD must be set")
        sys.exit(1)
    if not FIREBASE_API_KEY:
        logger.error("FIREBASE_API_KEY must be set")
        sys.exit(1)

    client, db = connect()
    try:
        await bootstrap_admin(db, IdentityClient(FIREBASE_API_KEY), email, password, name)
    except httpx.HTTPError as e:
        logger.error(f"Bootstrap failed: {e}")
        sys.exit(1)
    finally:
        client.close()


if __name__ == "__main__":
    asyncio.run(main())
