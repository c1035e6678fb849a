from fastapi import APIRouter, HTTPException, Depends
import httpx
import logging

from database import get_db
from models.user import User, UserCreate, RoleUpdate, StageAssignment
from dependencies import get_current_user, get_identity_client
from services.identity import IdentityClient
from services.stage_catalog import get_stage_catalog

router = APIRouter(prefix="/users", tags=["users"])
logger = logging.getLogger(__name__)


@router.get("")
async def get_users(user: User = Depends(get_current_user), db=Depends(get_db)):
    """Get all users (managers and admins only)"""
    if user.role not in ["admin", "manager"]:
        raise HTTPException(status_code=403, detail="Not authorized")

    users = await db.users.find({}, {"_id": 0}).sort("name", 1).to_list(1000)
    return users


@router.post("")
async def create_user(
    data: UserCreate,
    user: User = Depends(get_current_user),
    db=Depends(get_db),
    identity: IdentityClient = Depends(get_identity_client)
):
    """Create a Firebase account and its profile (admin only)"""
    if user.role != "admin":
        raise HTTPException(status_code=403, detail="Not authorized")

    if await db.users.find_one({"email": data.email}):
        raise HTTPException(status_code=400, detail="A user with this email already exists")

    try:
        account = await identity.sign_up(data.email, data.password)
    except httpx.HTTPStatusError as e:
        logger.warning(f"Sign-up rejected for {data.email}: {e.response.text}")
        raise HTTPException(status_code=400, detail="Identity provider rejected the account")
    except httpx.HTTPError as e:
        logger.error(f"Auth error: {e}")
        raise HTTPException(status_code=502, detail="Identity provider unavailable")

    profile = User(user_id=account["uid"], email=data.email, name=data.name, role=data.role)
    doc = profile.model_dump(mode="json")
    await db.users.insert_one(doc)

    logger.info(f"User {profile.user_id} created with role {profile.role.value} by {user.user_id}")
    return {k: v for k, v in doc.items() if k != "_id"}


@router.put("/{user_id}/role")
async def update_user_role(user_id: str, data: RoleUpdate, user: User = Depends(get_current_user), db=Depends(get_db)):
    """Update user role (admin only)"""
    if user.role != "admin":
        raise HTTPException(status_code=403, detail="Not authorized")

    result = await db.users.update_one(
        {"user_id": user_id},
        {"$set": {"role": data.role.value}}
    )
    if result.matched_count == 0:
        raise HTTPException(status_code=404, detail="User not found")

    return {"message": "Role updated", "user_id": user_id, "role": data.role.value}


@router.put("/{user_id}/stages")
async def update_assigned_stages(
    user_id: str,
    data: StageAssignment,
    user: User = Depends(get_current_user),
    db=Depends(get_db)
):
    """Set which production stages a user may work (admin only)"""
    if user.role != "admin":
        raise HTTPException(status_code=403, detail="Not authorized")

    known = {s["stage_id"] for s in await get_stage_catalog(db)}
    unknown = [stage_id for stage_id in data.stage_ids if stage_id not in known]
    if unknown:
        raise HTTPException(status_code=400, detail=f"Unknown stages: {', '.join(unknown)}")

    # Keep the caller's order, drop repeats
    stage_ids = list(dict.fromkeys(data.stage_ids))
    result = await db.users.update_one(
        {"user_id": user_id},
        {"$set": {"assigned_stages": stage_ids}}
    )
    if result.matched_count == 0:
        raise HTTPException(status_code=404, detail="User not found")

    return {"message": "Stages assigned", "user_id": user_id, "assigned_stages": stage_ids}


@router.get("/{user_id}")
async def get_user(user_id: str, user: User = Depends(get_current_user), db=Depends(get_db)):
    """Get a specific user's details"""
    if user.role not in ["admin", "manager"] and user.user_id != user_id:
        raise HTTPException(status_code=403, detail="Not authorized")

    target_user = await db.users.find_one({"user_id": user_id}, {"_id": 0})
    if not target_user:
        raise HTTPException(status_code=404, detail="User not found")

    return target_user
