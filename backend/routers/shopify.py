from fastapi import APIRouter, HTTPException, Depends
from typing import Optional

from database import get_db
from models.user import User
from models.sync import SyncRequest
from dependencies import get_current_user, get_shopify_service
from services.shopify_service import ShopifyService, sync_orders_to_shopify, pull_orders_from_shopify

router = APIRouter(prefix="/shopify", tags=["shopify"])


def _require_manager(user: User):
    if user.role not in ["admin", "manager"]:
        raise HTTPException(status_code=403, detail="Not authorized")


@router.get("/pending-orders")
async def get_pending_orders(user: User = Depends(get_current_user), db=Depends(get_db)):
    """Orders not yet pushed to Shopify, newest first"""
    return await db.orders.find({"synced": {"$ne": True}}, {"_id": 0, "dedupe_key": 0}).sort("created_at", -1).to_list(1000)


@router.post("/sync")
async def sync_to_shopify(
    data: Optional[SyncRequest] = None,
    user: User = Depends(get_current_user),
    db=Depends(get_db),
    service: ShopifyService = Depends(get_shopify_service)
):
    """Push unsynced orders to Shopify; stops at the first rejected order"""
    _require_manager(user)

    if data and data.order_ids:
        found = await db.orders.find(
            {"order_id": {"$in": data.order_ids}, "synced": {"$ne": True}},
            {"_id": 0}
        ).to_list(len(data.order_ids))
        by_id = {o["order_id"]: o for o in found}
        orders = [by_id[order_id] for order_id in dict.fromkeys(data.order_ids) if order_id in by_id]
    else:
        orders = await db.orders.find({"synced": {"$ne": True}}, {"_id": 0}).sort("created_at", 1).to_list(1000)

    result = await sync_orders_to_shopify(db, service, orders)
    return result.model_dump(mode="json")


@router.post("/pull")
async def pull_from_shopify(
    status: str = "any",
    user: User = Depends(get_current_user),
    db=Depends(get_db),
    service: ShopifyService = Depends(get_shopify_service)
):
    """Import Shopify orders that are not here yet"""
    _require_manager(user)

    result = await pull_orders_from_shopify(db, service, status)
    if not result["success"]:
        raise HTTPException(status_code=502, detail=result["error"])
    return result


@router.get("/test")
async def test_connection(user: User = Depends(get_current_user), service: ShopifyService = Depends(get_shopify_service)):
    _require_manager(user)

    result = await service.test_connection()
    if not result["success"]:
        raise HTTPException(status_code=502, detail=result.get("error", "Connection failed"))

    shop = result.get("shop", {})
    return {
        "success": True,
        "shop_name": shop.get("name"),
        "shop_email": shop.get("email"),
        "shop_domain": shop.get("domain")
    }
