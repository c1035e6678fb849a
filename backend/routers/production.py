from fastapi import APIRouter, HTTPException, Depends
from typing import Optional

from database import get_db
from models.user import User
from models.production import StageAction, ScanRequest
from dependencies import get_current_user
from services import stage_sequencer

router = APIRouter(prefix="/production", tags=["production"])


@router.post("/orders/{order_id}/stages/{stage_id}/start")
async def start_stage(order_id: str, stage_id: str, user: User = Depends(get_current_user), db=Depends(get_db)):
    return await stage_sequencer.start_stage(db, order_id, stage_id, user)


@router.post("/orders/{order_id}/stages/{stage_id}/complete")
async def complete_stage(
    order_id: str,
    stage_id: str,
    action: Optional[StageAction] = None,
    user: User = Depends(get_current_user),
    db=Depends(get_db)
):
    """Mark a stage of an order as completed by the current user"""
    notes = action.notes if action else None
    return await stage_sequencer.complete_stage(db, order_id, stage_id, user, notes)


@router.post("/scan")
async def scan(data: ScanRequest, user: User = Depends(get_current_user), db=Depends(get_db)):
    """Complete a stage for the order on a scanned ticket"""
    return await stage_sequencer.scan_order(db, data.payload, data.stage_id, user)


@router.get("/logs")
async def get_production_logs(
    order_id: Optional[str] = None,
    stage_id: Optional[str] = None,
    limit: int = 200,
    user: User = Depends(get_current_user),
    db=Depends(get_db)
):
    """Audit trail of completed stages, newest first"""
    query = {}
    if order_id:
        query["order_id"] = order_id
    if stage_id:
        query["stage_id"] = stage_id

    return await db.production_logs.find(query, {"_id": 0}).sort("completed_at", -1).to_list(limit)


@router.post("/logs/reconcile")
async def reconcile_logs(user: User = Depends(get_current_user), db=Depends(get_db)):
    """Backfill audit records missing for completed stages (admin only)"""
    if user.role != "admin":
        raise HTTPException(status_code=403, detail="Not authorized")
    return await stage_sequencer.reconcile_production_logs(db)
