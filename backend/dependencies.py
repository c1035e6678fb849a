from fastapi import Request, HTTPException, Depends
from datetime import datetime, timezone

from config import SHOPIFY_STORE_URL, SHOPIFY_ACCESS_TOKEN, SHOPIFY_API_VERSION, FIREBASE_API_KEY
from database import get_db
from models.user import User
from services.identity import IdentityClient
from services.shopify_service import ShopifyService


def session_token_from_request(request: Request):
    """Session token from the cookie, falling back to a Bearer header"""
    session_token = request.cookies.get("session_token")
    if not session_token:
        auth_header = request.headers.get("Authorization")
        if auth_header and auth_header.startswith("Bearer "):
            session_token = auth_header.split(" ")[1]
    return session_token


async def get_current_user(request: Request, db=Depends(get_db)) -> User:
    """Get current user from session token in cookie or header"""
    session_token = session_token_from_request(request)
    if not session_token:
        raise HTTPException(status_code=401, detail="Not authenticated")

    session_doc = await db.user_sessions.find_one(
        {"session_token": session_token},
        {"_id": 0}
    )
    if not session_doc:
        raise HTTPException(status_code=401, detail="Invalid session")

    # Check expiry
    expires_at = session_doc.get("expires_at")
    if isinstance(expires_at, str):
        expires_at = datetime.fromisoformat(expires_at)
    if expires_at.tzinfo is None:
        expires_at = expires_at.replace(tzinfo=timezone.utc)
    if expires_at < datetime.now(timezone.utc):
        raise HTTPException(status_code=401, detail="Session expired")

    user_doc = await db.users.find_one(
        {"user_id": session_doc["user_id"]},
        {"_id": 0}
    )
    if not user_doc:
        raise HTTPException(status_code=401, detail="User not found")

    return User(**user_doc)


def get_shopify_service() -> ShopifyService:
    if not SHOPIFY_STORE_URL or not SHOPIFY_ACCESS_TOKEN:
        raise HTTPException(status_code=400, detail="Shopify store is not configured")
    return ShopifyService(SHOPIFY_STORE_URL, SHOPIFY_ACCESS_TOKEN, SHOPIFY_API_VERSION)


def get_identity_client() -> IdentityClient:
    if not FIREBASE_API_KEY:
        raise HTTPException(status_code=503, detail="Sign-in is not configured")
    return IdentityClient(FIREBASE_API_KEY)
