from fastapi import APIRouter, HTTPException, Depends

from database import get_db
from models.user import User
from models.production import StageCreate, StageUpdate
from dependencies import get_current_user
from services import stage_catalog
from services.stage_sequencer import list_available_stages

router = APIRouter(prefix="/stages", tags=["stages"])


def _require_admin(user: User):
    if user.role != "admin":
        raise HTTPException(status_code=403, detail="Not authorized")


@router.get("")
async def get_stages(user: User = Depends(get_current_user), db=Depends(get_db)):
    """Get the production stage catalog"""
    return await stage_catalog.get_stage_catalog(db)


@router.get("/available")
async def get_available_stages(user: User = Depends(get_current_user), db=Depends(get_db)):
    """Stages the current user may work, in pipeline order"""
    return await list_available_stages(db, user)


@router.post("")
async def create_stage(data: StageCreate, user: User = Depends(get_current_user), db=Depends(get_db)):
    """Append a stage to the end of the pipeline"""
    _require_admin(user)
    return await stage_catalog.add_stage(db, data.stage_id, data.name)


@router.put("/{stage_id}")
async def update_stage(stage_id: str, data: StageUpdate, user: User = Depends(get_current_user), db=Depends(get_db)):
    _require_admin(user)
    return await stage_catalog.update_stage(db, stage_id, data.name)


@router.delete("/{stage_id}")
async def delete_stage(stage_id: str, user: User = Depends(get_current_user), db=Depends(get_db)):
    """Remove a stage; the rest are renumbered"""
    _require_admin(user)
    stages = await stage_catalog.remove_stage(db, stage_id)
    return {"message": "Stage deleted", "stages": stages}
