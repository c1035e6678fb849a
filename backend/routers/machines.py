from fastapi import APIRouter, HTTPException, Depends, Query
from datetime import datetime, timezone

from database import get_db
from models.user import User
from models.machine import (
    SewingMachine, MachineCreate, MachineUpdate, MachineGroup, MachineGroupCreate,
    MachineRecommendation, OperationStart, OperationInterrupt,
    THREAD_COLOR_PATTERN, THREAD_COLORS
)
from dependencies import get_current_user
from services import machine_advisor

router = APIRouter(prefix="/machines", tags=["machines"])

MACHINE_ROLES = ["admin", "manager", "machine_manager"]


def _require(user: User, roles):
    if user.role not in roles:
        raise HTTPException(status_code=403, detail="Not authorized")


@router.get("")
async def get_machines(user: User = Depends(get_current_user), db=Depends(get_db)):
    return await db.sewing_machines.find({}, {"_id": 0}).sort("name", 1).to_list(500)


@router.post("")
async def create_machine(data: MachineCreate, user: User = Depends(get_current_user), db=Depends(get_db)):
    _require(user, ["admin", "manager"])

    machine = SewingMachine(**data.model_dump())
    doc = machine.model_dump(mode="json")
    await db.sewing_machines.insert_one(doc)
    return {k: v for k, v in doc.items() if k != "_id"}


@router.get("/thread-colors")
async def get_thread_colors(user: User = Depends(get_current_user)):
    """Standard thread palette"""
    return THREAD_COLORS


# ============== Groups ==============

@router.get("/groups")
async def get_groups(user: User = Depends(get_current_user), db=Depends(get_db)):
    return await db.machine_groups.find({}, {"_id": 0}).sort("name", 1).to_list(200)


@router.post("/groups")
async def create_group(data: MachineGroupCreate, user: User = Depends(get_current_user), db=Depends(get_db)):
    _require(user, ["admin", "manager"])

    if data.machine_ids:
        found = await db.sewing_machines.count_documents({"machine_id": {"$in": data.machine_ids}})
        if found != len(set(data.machine_ids)):
            raise HTTPException(status_code=400, detail="Unknown machine in group")

    group = MachineGroup(**data.model_dump())
    doc = group.model_dump()
    await db.machine_groups.insert_one(doc)
    return {k: v for k, v in doc.items() if k != "_id"}


@router.get("/groups/mine")
async def get_my_group(user: User = Depends(get_current_user), db=Depends(get_db)):
    """The group managed by the current machine manager, with its machines"""
    group = await db.machine_groups.find_one({"manager_id": user.user_id}, {"_id": 0})
    if not group:
        raise HTTPException(status_code=404, detail="No machine group assigned")

    machines = await db.sewing_machines.find(
        {"machine_id": {"$in": group.get("machine_ids", [])}},
        {"_id": 0}
    ).sort("name", 1).to_list(500)
    return {**group, "machines": machines}


# ============== Operations ==============

@router.post("/operations/start")
async def start_operation(data: OperationStart, user: User = Depends(get_current_user), db=Depends(get_db)):
    _require(user, MACHINE_ROLES)
    return await machine_advisor.start_operation(db, data)


@router.post("/operations/{operation_id}/complete")
async def complete_operation(operation_id: str, user: User = Depends(get_current_user), db=Depends(get_db)):
    """Finish an operation; the response carries what to sew next on the same thread"""
    _require(user, MACHINE_ROLES)
    return await machine_advisor.complete_operation(db, operation_id)


@router.post("/operations/{operation_id}/interrupt")
async def interrupt_operation(
    operation_id: str,
    data: OperationInterrupt,
    user: User = Depends(get_current_user),
    db=Depends(get_db)
):
    _require(user, MACHINE_ROLES)
    return await machine_advisor.interrupt_operation(db, operation_id, data.notes)


# ============== Recommendations ==============

@router.get("/recommendations")
async def get_recommendations(
    thread_color: str = Query(..., pattern=THREAD_COLOR_PATTERN),
    user: User = Depends(get_current_user),
    db=Depends(get_db)
):
    """Products to sew next with the given thread, best first"""
    return await machine_advisor.recommend_next(db, thread_color)


@router.put("/recommendations")
async def upsert_recommendation(
    data: MachineRecommendation,
    user: User = Depends(get_current_user),
    db=Depends(get_db)
):
    """Create or replace a recommendation (admin and managers)"""
    _require(user, ["admin", "manager"])

    doc = data.model_dump()
    await db.machine_recommendations.replace_one(
        {"recommendation_id": data.recommendation_id},
        doc,
        upsert=True
    )
    return {k: v for k, v in doc.items() if k != "_id"}


@router.delete("/recommendations/{recommendation_id}")
async def delete_recommendation(recommendation_id: str, user: User = Depends(get_current_user), db=Depends(get_db)):
    _require(user, ["admin", "manager"])

    result = await db.machine_recommendations.delete_one({"recommendation_id": recommendation_id})
    if result.deleted_count == 0:
        raise HTTPException(status_code=404, detail="Recommendation not found")
    return {"message": "Recommendation deleted"}


# ============== Single machine ==============

@router.get("/{machine_id}")
async def get_machine(machine_id: str, user: User = Depends(get_current_user), db=Depends(get_db)):
    machine = await db.sewing_machines.find_one({"machine_id": machine_id}, {"_id": 0})
    if not machine:
        raise HTTPException(status_code=404, detail="Machine not found")
    return machine


@router.put("/{machine_id}")
async def update_machine(
    machine_id: str,
    data: MachineUpdate,
    user: User = Depends(get_current_user),
    db=Depends(get_db)
):
    """Update status, loaded thread color or manager"""
    _require(user, MACHINE_ROLES)

    updates = data.model_dump(mode="json", exclude_none=True)
    if not updates:
        raise HTTPException(status_code=400, detail="Nothing to update")
    updates["updated_at"] = datetime.now(timezone.utc).isoformat()

    result = await db.sewing_machines.update_one({"machine_id": machine_id}, {"$set": updates})
    if result.matched_count == 0:
        raise HTTPException(status_code=404, detail="Machine not found")

    return await db.sewing_machines.find_one({"machine_id": machine_id}, {"_id": 0})


@router.get("/{machine_id}/operations")
async def get_machine_operations(
    machine_id: str,
    limit: int = 50,
    user: User = Depends(get_current_user),
    db=Depends(get_db)
):
    return await db.machine_operations.find(
        {"machine_id": machine_id},
        {"_id": 0}
    ).sort("start_time", -1).to_list(limit)


@router.get("/{machine_id}/recommendations")
async def get_machine_recommendations(machine_id: str, user: User = Depends(get_current_user), db=Depends(get_db)):
    return await machine_advisor.recommendations_for_machine(db, machine_id)
