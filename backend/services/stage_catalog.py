"""
Production stage catalog
The whole pipeline lives in one settings document so it is read in a single query
"""
from fastapi import HTTPException
from typing import List, Dict, Any
from datetime import datetime, timezone

from models.production import StageDefinition

STAGE_SETTING_ID = "production_stages"


async def get_stage_catalog(db) -> List[Dict[str, Any]]:
    """Stages sorted by their display order, empty when nothing is configured"""
    setting = await db.settings.find_one({"setting_id": STAGE_SETTING_ID}, {"_id": 0})
    if not setting:
        return []
    return sorted(setting.get("stages", []), key=lambda s: s.get("order", 0))


async def _save_catalog(db, stages: List[Dict[str, Any]]):
    await db.settings.update_one(
        {"setting_id": STAGE_SETTING_ID},
        {"$set": {
            "stages": stages,
            "updated_at": datetime.now(timezone.utc).isoformat()
        }},
        upsert=True
    )


async def add_stage(db, stage_id: str, name: str) -> Dict[str, Any]:
    stages = await get_stage_catalog(db)
    if any(s["stage_id"] == stage_id for s in stages):
        raise HTTPException(status_code=400, detail=f"Stage '{stage_id}' already exists")

    stage = StageDefinition(stage_id=stage_id, name=name, order=len(stages) + 1).model_dump()
    stages.append(stage)
    await _save_catalog(db, stages)
    return stage


async def update_stage(db, stage_id: str, name: str) -> Dict[str, Any]:
    stages = await get_stage_catalog(db)
    for stage in stages:
        if stage["stage_id"] == stage_id:
            stage["name"] = name
            await _save_catalog(db, stages)
            return stage
    raise HTTPException(status_code=404, detail="Stage not found")


async def remove_stage(db, stage_id: str) -> List[Dict[str, Any]]:
    """Drop a stage and renumber the rest 1..n"""
    stages = await get_stage_catalog(db)
    remaining = [s for s in stages if s["stage_id"] != stage_id]
    if len(remaining) == len(stages):
        raise HTTPException(status_code=404, detail="Stage not found")

    for index, stage in enumerate(remaining):
        stage["order"] = index + 1
    await _save_catalog(db, remaining)
    return remaining
