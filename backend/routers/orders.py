from fastapi import APIRouter, HTTPException, Depends, Query, UploadFile, File
from typing import Optional
from datetime import datetime, timezone
from pymongo.errors import DuplicateKeyError

from database import get_db
from models.user import User
from models.order import OrderCreate, OrderImport, ManufacturedUpdate
from dependencies import get_current_user
from services.csv_import import import_orders_csv
from services.order_intake import order_exists, insert_order, order_from_create, order_from_import_form
from services.qr_payload import decode_order_payload

router = APIRouter(prefix="/orders", tags=["orders"])


@router.get("")
async def get_orders(
    status: Optional[str] = None,
    sales_channel: Optional[str] = None,
    synced: Optional[bool] = None,
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(100, ge=1, le=500, description="Items per page"),
    user: User = Depends(get_current_user),
    db=Depends(get_db)
):
    """Get orders with optional filters and pagination, newest first"""
    query = {}
    if status and status != "all":
        query["status"] = status
    if sales_channel:
        query["sales_channel"] = sales_channel
    if synced is not None:
        query["synced"] = synced if synced else {"$ne": True}

    total_count = await db.orders.count_documents(query)
    skip = (page - 1) * page_size

    orders = await db.orders.find(query, {"_id": 0, "dedupe_key": 0}).sort(
        "created_at", -1
    ).skip(skip).limit(page_size).to_list(page_size)

    return {
        "orders": orders,
        "pagination": {
            "page": page,
            "page_size": page_size,
            "total_count": total_count,
            "total_pages": (total_count + page_size - 1) // page_size
        }
    }


@router.post("")
async def create_order(order_data: OrderCreate, user: User = Depends(get_current_user), db=Depends(get_db)):
    """Create a new order"""
    if await order_exists(db, order_data.sales_channel, order_data.order_number):
        raise HTTPException(status_code=400, detail=f"Order {order_data.order_number} already exists")

    try:
        return await insert_order(db, order_from_create(order_data))
    except DuplicateKeyError:
        raise HTTPException(status_code=400, detail=f"Order {order_data.order_number} already exists")


@router.post("/import")
async def import_order(data: OrderImport, user: User = Depends(get_current_user), db=Depends(get_db)):
    """Import a marketplace order entered by hand"""
    if await order_exists(db, data.sales_channel, data.order_number):
        raise HTTPException(status_code=400, detail=f"Order {data.order_number} already exists")

    try:
        return await insert_order(db, order_from_import_form(data))
    except DuplicateKeyError:
        raise HTTPException(status_code=400, detail=f"Order {data.order_number} already exists")


@router.post("/import-csv")
async def import_csv(
    file: UploadFile = File(...),
    user: User = Depends(get_current_user),
    db=Depends(get_db)
):
    """Import a Shopify order export; one order per row"""
    if user.role not in ["admin", "manager"]:
        raise HTTPException(status_code=403, detail="Not authorized")

    raw = await file.read()
    try:
        content = raw.decode("utf-8-sig")
    except UnicodeDecodeError:
        raise HTTPException(status_code=400, detail="CSV file must be UTF-8 encoded")

    return await import_orders_csv(db, content)


@router.get("/in-production")
async def get_in_production_items(user: User = Depends(get_current_user), db=Depends(get_db)):
    """Line items not yet manufactured, with a reference to their order"""
    orders = await db.orders.find(
        {"products": {"$ne": []}},
        {"_id": 0, "order_id": 1, "order_number": 1, "customer": 1, "products": 1, "deadline": 1, "created_at": 1}
    ).sort("created_at", 1).to_list(5000)

    items = []
    for order in orders:
        for product in order.get("products", []):
            if product.get("manufactured"):
                continue
            items.append({
                **product,
                "order_id": order["order_id"],
                "order_number": order.get("order_number"),
                "customer_name": (order.get("customer") or {}).get("name", ""),
                "deadline": order.get("deadline")
            })
    return items


@router.get("/by-qr")
async def get_order_by_qr(payload: str, user: User = Depends(get_current_user), db=Depends(get_db)):
    """Resolve a scanned QR payload to its order"""
    order_id = decode_order_payload(payload)
    if not order_id:
        raise HTTPException(status_code=400, detail="Unreadable QR payload")

    order = await db.orders.find_one({"order_id": order_id}, {"_id": 0, "dedupe_key": 0})
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")
    return order


@router.get("/{order_id}")
async def get_order(order_id: str, user: User = Depends(get_current_user), db=Depends(get_db)):
    """Get order by ID"""
    order = await db.orders.find_one({"order_id": order_id}, {"_id": 0, "dedupe_key": 0})
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")
    return order


@router.put("/{order_id}/products/{line_item_id}/manufactured")
async def set_manufactured(
    order_id: str,
    line_item_id: str,
    data: ManufacturedUpdate,
    user: User = Depends(get_current_user),
    db=Depends(get_db)
):
    """Flag a line item as manufactured (or not)"""
    order = await db.orders.find_one({"order_id": order_id}, {"_id": 0, "products": 1})
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")

    index = next(
        (i for i, p in enumerate(order.get("products", [])) if p.get("line_item_id") == line_item_id),
        None
    )
    if index is None:
        raise HTTPException(status_code=404, detail="Line item not found")

    await db.orders.update_one(
        {"order_id": order_id},
        {"$set": {
            f"products.{index}.manufactured": data.manufactured,
            "updated_at": datetime.now(timezone.utc).isoformat()
        }}
    )
    return {"message": "Line item updated", "line_item_id": line_item_id, "manufactured": data.manufactured}
