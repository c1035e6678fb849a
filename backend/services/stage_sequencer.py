"""
Production stage sequencing
Moves an order's stages pending -> in_progress -> completed, writes the audit log
and keeps the order status derived from its stages
"""
from fastapi import HTTPException
from typing import List, Dict, Any, Tuple
from datetime import datetime, timezone
import hashlib
import logging

from models.order import OrderStatus, StageStatus
from models.production import ProductionLog
from models.user import User
from services.qr_payload import decode_order_payload
from services.stage_catalog import get_stage_catalog

logger = logging.getLogger(__name__)

PENDING = StageStatus.PENDING.value
IN_PROGRESS = StageStatus.IN_PROGRESS.value
COMPLETED = StageStatus.COMPLETED.value


def derive_order_status(stages: List[Dict[str, Any]]) -> str:
    """pending if nothing started, completed if everything done, in_production otherwise"""
    statuses = [s.get("status", PENDING) for s in stages]
    if all(status == PENDING for status in statuses):
        return OrderStatus.PENDING.value
    if all(status == COMPLETED for status in statuses):
        return OrderStatus.COMPLETED.value
    return OrderStatus.IN_PRODUCTION.value


def build_order_stages(catalog: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Fresh per-order checklist from the stage catalog"""
    ordered = sorted(catalog, key=lambda s: s.get("order", 0))
    return [{"stage_id": s["stage_id"], "name": s["name"], "status": PENDING} for s in ordered]


def production_log_id(order_id: str, stage_id: str, completed_at: str) -> str:
    # Same completion always maps to the same log id, so re-appending is a no-op
    digest = hashlib.sha1(f"{order_id}|{stage_id}|{completed_at}".encode()).hexdigest()
    return f"plog_{digest[:16]}"


async def list_available_stages(db, user: User) -> List[Dict[str, Any]]:
    catalog = await get_stage_catalog(db)
    if user.is_admin:
        return catalog
    assigned = set(user.assigned_stages)
    return [s for s in catalog if s["stage_id"] in assigned]


async def _load_order(db, order_id: str) -> Dict[str, Any]:
    order = await db.orders.find_one({"order_id": order_id}, {"_id": 0})
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")
    return order


def _find_stage(order: Dict[str, Any], stage_id: str) -> Tuple[int, Dict[str, Any]]:
    for index, stage in enumerate(order.get("stages", [])):
        if stage.get("stage_id") == stage_id:
            return index, stage
    raise HTTPException(status_code=404, detail="Stage not found on order")


async def _transition_stage(
    db,
    order_id: str,
    index: int,
    stage_id: str,
    from_statuses: List[str],
    updates: Dict[str, Any]
) -> Dict[str, Any]:
    """Compare-and-set one stage, then refresh the derived order status"""
    path = f"stages.{index}"
    changes = {f"{path}.{field}": value for field, value in updates.items()}
    changes["updated_at"] = datetime.now(timezone.utc).isoformat()

    result = await db.orders.update_one(
        {
            "order_id": order_id,
            f"{path}.stage_id": stage_id,
            f"{path}.status": {"$in": from_statuses}
        },
        {"$set": changes}
    )
    if result.matched_count == 0:
        raise HTTPException(status_code=409, detail="Stage was changed by another user")

    order = await _load_order(db, order_id)
    status = derive_order_status(order.get("stages", []))
    if status != order.get("status"):
        await db.orders.update_one({"order_id": order_id}, {"$set": {"status": status}})
        order["status"] = status
    return order


async def append_production_log(db, order_id: str, stage: Dict[str, Any]) -> str:
    log = ProductionLog(
        log_id=production_log_id(order_id, stage["stage_id"], stage["completed_at"]),
        order_id=order_id,
        stage_id=stage["stage_id"],
        stage_name=stage.get("name", ""),
        completed_at=stage["completed_at"],
        completed_by=stage.get("completed_by")
    )
    await db.production_logs.update_one(
        {"log_id": log.log_id},
        {"$setOnInsert": log.model_dump()},
        upsert=True
    )
    return log.log_id


def _stage_result(order: Dict[str, Any], index: int) -> Dict[str, Any]:
    return {
        "order_id": order["order_id"],
        "order_number": order.get("order_number"),
        "order_status": order.get("status"),
        "stage": order["stages"][index]
    }


async def start_stage(db, order_id: str, stage_id: str, user: User) -> Dict[str, Any]:
    """pending -> in_progress"""
    order = await _load_order(db, order_id)
    index, stage = _find_stage(order, stage_id)
    if not user.can_work_stage(stage_id):
        raise HTTPException(status_code=403, detail="Stage not assigned to user")
    if stage.get("status", PENDING) != PENDING:
        raise HTTPException(status_code=409, detail=f"Stage is already {stage.get('status')}")

    order = await _transition_stage(db, order_id, index, stage_id, [PENDING], {
        "status": IN_PROGRESS,
        "started_at": datetime.now(timezone.utc).isoformat()
    })
    return _stage_result(order, index)


async def complete_stage(db, order_id: str, stage_id: str, user: User, notes: str = None) -> Dict[str, Any]:
    """Mark one stage completed by `user`; other stages on the order are not touched"""
    order = await _load_order(db, order_id)
    index, stage = _find_stage(order, stage_id)
    if not user.can_work_stage(stage_id):
        raise HTTPException(status_code=403, detail="Stage not assigned to user")
    if stage.get("status") == COMPLETED:
        raise HTTPException(status_code=409, detail="Stage already completed")

    updates = {
        "status": COMPLETED,
        "completed_at": datetime.now(timezone.utc).isoformat(),
        "completed_by": user.user_id
    }
    if notes:
        updates["notes"] = notes

    order = await _transition_stage(db, order_id, index, stage_id, [PENDING, IN_PROGRESS], updates)

    try:
        await append_production_log(db, order_id, order["stages"][index])
    except Exception as e:
        # Stage write already landed; reconcile_production_logs backfills the record
        logger.error(f"Production log append failed for {order_id}/{stage_id}: {e}")

    logger.info(f"Stage {stage_id} completed on order {order_id} by {user.user_id}")
    return _stage_result(order, index)


async def scan_order(db, payload: str, stage_id: str, user: User) -> Dict[str, Any]:
    """Complete a stage for the order identified by a scanned QR payload"""
    order_id = decode_order_payload(payload)
    if not order_id:
        raise HTTPException(status_code=400, detail="Unreadable QR payload")
    return await complete_stage(db, order_id, stage_id, user)


async def reconcile_production_logs(db) -> Dict[str, int]:
    """Backfill audit records for completed stages whose log append never landed"""
    orders = await db.orders.find(
        {"stages.status": COMPLETED},
        {"_id": 0, "order_id": 1, "stages": 1}
    ).to_list(10000)

    checked = 0
    appended = 0
    for order in orders:
        for stage in order.get("stages", []):
            if stage.get("status") != COMPLETED or not stage.get("completed_at"):
                continue
            checked += 1
            log_id = production_log_id(order["order_id"], stage["stage_id"], stage["completed_at"])
            if await db.production_logs.find_one({"log_id": log_id}):
                continue
            await append_production_log(db, order["order_id"], stage)
            appended += 1

    if appended:
        logger.warning(f"Reconciled {appended} missing production log records")
    return {"checked": checked, "appended": appended}
