from fastapi import APIRouter, Depends

from config import LOW_STOCK_THRESHOLD
from database import get_db
from models.user import User
from dependencies import get_current_user

router = APIRouter(tags=["reports"])


@router.get("/stats/dashboard")
async def get_dashboard_stats(user: User = Depends(get_current_user), db=Depends(get_db)):
    """Get dashboard statistics"""
    order_stats_pipeline = [
        {"$group": {
            "_id": "$status",
            "count": {"$sum": 1}
        }}
    ]
    order_stats = await db.orders.aggregate(order_stats_pipeline).to_list(20)

    # Convert to dict for easy lookup
    status_counts = {s["_id"]: s["count"] for s in order_stats}
    total_orders = sum(status_counts.values())

    channel_pipeline = [{"$group": {"_id": "$sales_channel", "count": {"$sum": 1}}}]
    orders_by_channel = await db.orders.aggregate(channel_pipeline).to_list(100)

    machine_pipeline = [{"$group": {"_id": "$status", "count": {"$sum": 1}}}]
    machine_stats = await db.sewing_machines.aggregate(machine_pipeline).to_list(10)

    low_stock = await db.products.count_documents({"quantity": {"$lt": LOW_STOCK_THRESHOLD}})
    unsynced = await db.orders.count_documents({"synced": {"$ne": True}})

    return {
        "orders": {
            "total": total_orders,
            "pending": status_counts.get("pending", 0),
            "in_production": status_counts.get("in_production", 0),
            "completed": status_counts.get("completed", 0)
        },
        "orders_by_channel": [{"name": c["_id"] or "Unknown", "count": c["count"]} for c in orders_by_channel],
        "machines": {m["_id"]: m["count"] for m in machine_stats},
        "low_stock_products": low_stock,
        "unsynced_orders": unsynced
    }


@router.get("/warehouse/summary")
async def get_warehouse_summary(user: User = Depends(get_current_user), db=Depends(get_db)):
    """Ordered line items aggregated by SKU across all orders"""
    pipeline = [
        {"$unwind": "$products"},
        {"$group": {
            "_id": "$products.sku",
            "name": {"$first": "$products.name"},
            "quantity": {"$sum": "$products.quantity"},
            "line_items": {"$sum": 1}
        }},
        {"$sort": {"_id": 1}}
    ]
    ordered = await db.orders.aggregate(pipeline).to_list(5000)

    manufactured_pipeline = [
        {"$unwind": "$products"},
        {"$match": {"products.manufactured": True}},
        {"$group": {"_id": "$products.sku", "quantity": {"$sum": "$products.quantity"}}}
    ]
    manufactured = {
        m["_id"]: m["quantity"]
        for m in await db.orders.aggregate(manufactured_pipeline).to_list(5000)
    }

    stock = {
        p["sku"]: p.get("quantity", 0)
        for p in await db.products.find({}, {"_id": 0, "sku": 1, "quantity": 1}).to_list(5000)
    }

    summary = []
    for row in ordered:
        sku = row["_id"] or ""
        summary.append({
            "sku": sku,
            "name": row.get("name", ""),
            "ordered_quantity": row["quantity"],
            "manufactured_quantity": manufactured.get(row["_id"], 0),
            "line_items": row["line_items"],
            "in_stock": stock.get(sku)
        })
    return summary
