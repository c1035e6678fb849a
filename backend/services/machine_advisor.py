"""
Machine assignment advisor
After an operation finishes, suggest what the machine should sew next without
changing thread
"""
from fastapi import HTTPException
from typing import List, Dict, Any
from datetime import datetime, timezone, timedelta
import logging

from models.machine import MachineOperation, MachineStatus, OperationStatus, OperationStart

logger = logging.getLogger(__name__)


def rank_recommendations(recommendations: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Highest priority first; equal priorities by recommendation id"""
    return sorted(
        recommendations,
        key=lambda r: (-r.get("priority", 0), r.get("recommendation_id", ""))
    )


async def recommend_next(db, thread_color: str) -> List[Dict[str, Any]]:
    """Recommendations whose thread color matches exactly"""
    recommendations = await db.machine_recommendations.find(
        {"thread_color": thread_color},
        {"_id": 0}
    ).to_list(500)
    return rank_recommendations(recommendations)


async def recommendations_for_machine(db, machine_id: str) -> List[Dict[str, Any]]:
    recommendations = await db.machine_recommendations.find(
        {"machine_id": machine_id},
        {"_id": 0}
    ).to_list(500)
    return rank_recommendations(recommendations)


async def start_operation(db, data: OperationStart) -> Dict[str, Any]:
    machine = await db.sewing_machines.find_one({"machine_id": data.machine_id}, {"_id": 0})
    if not machine:
        raise HTTPException(status_code=404, detail="Machine not found")
    if machine.get("status") == MachineStatus.MAINTENANCE.value:
        raise HTTPException(status_code=409, detail="Machine is under maintenance")

    active = await db.machine_operations.find_one({
        "machine_id": data.machine_id,
        "status": OperationStatus.IN_PROGRESS.value
    })
    if active:
        raise HTTPException(status_code=409, detail="Machine already has an operation in progress")

    now = datetime.now(timezone.utc)
    operation = MachineOperation(
        machine_id=data.machine_id,
        product_id=data.product_id,
        product_name=data.product_name,
        thread_color=data.thread_color,
        start_time=now.isoformat(),
        estimated_end_time=(now + timedelta(minutes=data.estimated_minutes)).isoformat()
    )
    doc = operation.model_dump(mode="json")
    await db.machine_operations.insert_one(doc)

    await db.sewing_machines.update_one(
        {"machine_id": data.machine_id},
        {"$set": {
            "status": MachineStatus.WORKING.value,
            "current_thread_color": data.thread_color,
            "current_product_id": data.product_id,
            "current_product_name": data.product_name,
            "start_time": operation.start_time,
            "estimated_end_time": operation.estimated_end_time,
            "updated_at": now.isoformat()
        }}
    )

    logger.info(f"Operation {operation.operation_id} started on machine {data.machine_id}")
    return {k: v for k, v in doc.items() if k != "_id"}


async def _finish_operation(db, operation_id: str, status: OperationStatus, notes: str = None) -> Dict[str, Any]:
    operation = await db.machine_operations.find_one({"operation_id": operation_id}, {"_id": 0})
    if not operation:
        raise HTTPException(status_code=404, detail="Operation not found")

    now = datetime.now(timezone.utc).isoformat()
    update = {"status": status.value, "actual_end_time": now}
    if notes:
        update["notes"] = notes

    result = await db.machine_operations.update_one(
        {"operation_id": operation_id, "status": OperationStatus.IN_PROGRESS.value},
        {"$set": update}
    )
    if result.matched_count == 0:
        raise HTTPException(status_code=409, detail=f"Operation is already {operation.get('status')}")

    # Thread stays loaded on the machine
    await db.sewing_machines.update_one(
        {"machine_id": operation["machine_id"]},
        {
            "$set": {"updated_at": now},
            "$unset": {
                "current_product_id": "",
                "current_product_name": "",
                "start_time": "",
                "estimated_end_time": ""
            }
        }
    )
    # A machine sent to maintenance meanwhile stays there
    await db.sewing_machines.update_one(
        {"machine_id": operation["machine_id"], "status": MachineStatus.WORKING.value},
        {"$set": {"status": MachineStatus.IDLE.value}}
    )

    operation.update(update)
    return operation


async def complete_operation(db, operation_id: str) -> Dict[str, Any]:
    """Finish an operation and suggest the next product for the same thread color"""
    operation = await _finish_operation(db, operation_id, OperationStatus.COMPLETED)
    recommendations = await recommend_next(db, operation["thread_color"])
    return {"operation": operation, "recommendations": recommendations}


async def interrupt_operation(db, operation_id: str, notes: str = None) -> Dict[str, Any]:
    return await _finish_operation(db, operation_id, OperationStatus.INTERRUPTED, notes)
