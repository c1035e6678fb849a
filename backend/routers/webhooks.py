"""
Webhook handlers for Shopify order notifications
"""
from fastapi import APIRouter, HTTPException, Request, Header, Depends
from typing import Optional
from datetime import datetime, timezone
import uuid
import hmac
import hashlib
import base64
import json
import logging

from pymongo.errors import DuplicateKeyError

from config import SHOPIFY_WEBHOOK_SECRET
from database import get_db
from models.order import OrderSource
from services.order_intake import order_exists, insert_order
from services.shopify_service import transform_shopify_order

router = APIRouter(prefix="/webhooks", tags=["webhooks"])
logger = logging.getLogger(__name__)


def verify_shopify_webhook(data: bytes, hmac_header: Optional[str], secret: str) -> bool:
    """Verify Shopify webhook signature"""
    if not secret:
        return True  # Skip verification if no secret configured
    if not hmac_header:
        return False

    computed_hmac = base64.b64encode(
        hmac.new(secret.encode(), data, hashlib.sha256).digest()
    ).decode()

    return hmac.compare_digest(computed_hmac, hmac_header)


async def _log_webhook(db, shop_domain: str, status: str, **extra):
    await db.webhook_logs.insert_one({
        "log_id": f"wlog_{uuid.uuid4().hex[:12]}",
        "source": "shopify",
        "event": "orders/create",
        "shop_domain": shop_domain,
        "status": status,
        **extra,
        "created_at": datetime.now(timezone.utc).isoformat()
    })


@router.post("/shopify/orders/create")
async def shopify_order_created(
    request: Request,
    x_shopify_hmac_sha256: Optional[str] = Header(None),
    x_shopify_shop_domain: Optional[str] = Header(None),
    db=Depends(get_db)
):
    """Handle Shopify order created webhook"""
    body = await request.body()

    if not verify_shopify_webhook(body, x_shopify_hmac_sha256, SHOPIFY_WEBHOOK_SECRET):
        raise HTTPException(status_code=401, detail="Invalid webhook signature")

    try:
        shopify_order = json.loads(body)
    except json.JSONDecodeError:
        raise HTTPException(status_code=400, detail="Invalid JSON payload")
    if not isinstance(shopify_order, dict):
        raise HTTPException(status_code=400, detail="Invalid JSON payload")

    shop_domain = x_shopify_shop_domain or ""
    try:
        order = transform_shopify_order(shopify_order, source=OrderSource.WEBHOOK)
    except ValueError as e:
        logger.warning(f"Unusable Shopify webhook from {shop_domain}: {e}")
        raise HTTPException(status_code=400, detail="Order payload could not be mapped")

    existing = await order_exists(db, order.sales_channel, order.order_number)
    if existing:
        return {"status": "already_exists", "order_id": existing["order_id"]}

    try:
        doc = await insert_order(db, order)
    except DuplicateKeyError:
        # Same order delivered twice at once; the other delivery stored it
        existing = await order_exists(db, order.sales_channel, order.order_number)
        return {"status": "already_exists", "order_id": existing["order_id"] if existing else None}
    await _log_webhook(
        db, shop_domain, "created",
        order_id=doc["order_id"],
        external_id=doc.get("external_id")
    )
    logger.info(f"Webhook order {doc['order_number']} created as {doc['order_id']}")

    return {"status": "created", "order_id": doc["order_id"]}
