from fastapi import APIRouter, HTTPException, Request, Response, Depends
from datetime import datetime, timezone, timedelta
import uuid
import httpx
import logging

from config import SESSION_DAYS
from database import get_db
from models.user import User, LoginRequest
from dependencies import get_current_user, get_identity_client, session_token_from_request
from services.identity import IdentityClient

router = APIRouter(prefix="/auth", tags=["auth"])
logger = logging.getLogger(__name__)


@router.post("/login")
async def login(
    credentials: LoginRequest,
    response: Response,
    db=Depends(get_db),
    identity: IdentityClient = Depends(get_identity_client)
):
    """Verify email/password with Firebase and open a session"""
    try:
        account = await identity.sign_in(credentials.email, credentials.password)
    except httpx.HTTPStatusError as e:
        logger.info(f"Sign-in rejected for {credentials.email}: HTTP {e.response.status_code}")
        raise HTTPException(status_code=401, detail="Invalid email or password")
    except httpx.HTTPError as e:
        logger.error(f"Auth error: {e}")
        raise HTTPException(status_code=502, detail="Identity provider unavailable")

    user_doc = await db.users.find_one({"user_id": account["uid"]}, {"_id": 0})
    if not user_doc:
        raise HTTPException(status_code=401, detail="No profile for this account")

    # Create session
    session_token = f"sess_{uuid.uuid4().hex}"
    expires_at = datetime.now(timezone.utc) + timedelta(days=SESSION_DAYS)

    session_doc = {
        "user_id": user_doc["user_id"],
        "session_token": session_token,
        "expires_at": expires_at.isoformat(),
        "created_at": datetime.now(timezone.utc).isoformat()
    }

    # Remove old sessions for this user
    await db.user_sessions.delete_many({"user_id": user_doc["user_id"]})
    await db.user_sessions.insert_one(session_doc)

    response.set_cookie(
        key="session_token",
        value=session_token,
        httponly=True,
        secure=True,
        samesite="lax",
        path="/",
        max_age=SESSION_DAYS * 24 * 60 * 60
    )

    return {**user_doc, "session_token": session_token}


@router.get("/me")
async def get_me(user: User = Depends(get_current_user)):
    """Get current authenticated user"""
    return user.model_dump()


@router.post("/logout")
async def logout(request: Request, response: Response, db=Depends(get_db)):
    """Logout user"""
    session_token = session_token_from_request(request)
    if session_token:
        await db.user_sessions.delete_many({"session_token": session_token})

    response.delete_cookie(key="session_token", path="/", samesite="lax", secure=True)
    return {"message": "Logged out"}
