"""
Shopify Order Service
Pulls orders from Shopify, maps webhook/REST payloads into our order shape
and pushes locally created orders back to the store
"""
import httpx
from typing import Optional, List, Dict, Any
from datetime import datetime, timezone
import asyncio
import logging

from pymongo.errors import DuplicateKeyError, PyMongoError

from config import SHOPIFY_API_VERSION
from models.order import (
    Order, Customer, OrderProduct, EmbroideryPosition, PrintingDetails,
    OrderSource, ProductType
)
from models.sync import SyncResult, OrderSyncOutcome
from services.order_intake import order_exists, insert_order

logger = logging.getLogger(__name__)

SHOPIFY_CHANNEL = "shopify"

MAIN_LOCATIONS = {
    "Centered (30x40 cm)": "CENTERED",
    "Left Chest": "LEFT_CHEST",
    "Large Center (max 60 x 60 cm)": "LARGE_CENTER",
}

ADDITIONAL_LOCATIONS = {
    "Left Sleeve": "LEFT_SLEEVE",
    "Right Sleeve": "RIGHT_SLEEVE",
    "Back Location": "BACK_LOCATION",
    "Special Location": "SPECIAL_LOCATION",
}


class ShopifyService:
    def __init__(
        self,
        shop_url: str,
        access_token: str,
        api_version: str = SHOPIFY_API_VERSION,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        rate_limit_delay: float = 0.5
    ):
        """Initialize Shopify API client"""
        # Clean up shop URL
        self.shop_url = shop_url.strip().replace("https://", "").replace("http://", "").rstrip("/")
        if not self.shop_url.endswith(".myshopify.com"):
            self.shop_url = f"{self.shop_url}.myshopify.com"

        self.base_url = f"https://{self.shop_url}/admin/api/{api_version}"
        self.headers = {
            "X-Shopify-Access-Token": access_token.strip(),
            "Content-Type": "application/json",
            "Accept": "application/json"
        }
        self.transport = transport
        self.rate_limit_delay = rate_limit_delay

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=self.transport)

    async def test_connection(self) -> Dict[str, Any]:
        """Test API connection by fetching shop info"""
        async with self._client() as client:
            try:
                response = await client.get(
                    f"{self.base_url}/shop.json",
                    headers=self.headers,
                    timeout=30.0
                )
                response.raise_for_status()
                return {"success": True, "shop": response.json().get("shop", {})}
            except httpx.HTTPStatusError as e:
                return {"success": False, "error": f"HTTP {e.response.status_code}: {e.response.text}"}
            except httpx.HTTPError as e:
                return {"success": False, "error": str(e)}

    async def fetch_orders(self, status: str = "any", limit: int = 250) -> List[Dict[str, Any]]:
        """Fetch orders with pagination"""
        orders = []
        url = f"{self.base_url}/orders.json?status={status}&limit={limit}"

        async with self._client() as client:
            while url:
                response = await client.get(url, headers=self.headers, timeout=60.0)
                response.raise_for_status()

                data = response.json()
                orders.extend(data.get("orders", []))

                # Handle pagination via Link header
                link_header = response.headers.get("Link", "")
                url = None
                if 'rel="next"' in link_header:
                    for link in link_header.split(","):
                        if 'rel="next"' in link:
                            url = link.split(";")[0].strip("<> ")
                            break

                if url and self.rate_limit_delay:
                    # Rate limiting - 2 req/sec
                    await asyncio.sleep(self.rate_limit_delay)

        return orders

    async def create_order(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Create an order on Shopify; raises httpx.HTTPStatusError on rejection"""
        async with self._client() as client:
            response = await client.post(
                f"{self.base_url}/orders.json",
                headers=self.headers,
                json=payload,
                timeout=30.0
            )
            response.raise_for_status()
            return response.json().get("order", {})


def _describe_http_error(e: Exception) -> str:
    if isinstance(e, httpx.HTTPStatusError):
        try:
            errors = e.response.json().get("errors", e.response.text)
        except ValueError:
            errors = e.response.text
        return f"Shopify rejected order ({e.response.status_code}): {errors}"
    return f"Could not reach Shopify: {e}"


# ============== Inbound mapping ==============

def property_value(properties: List[Dict[str, Any]], name: str) -> Optional[str]:
    for prop in properties:
        if prop.get("name") == name:
            value = prop.get("value")
            return str(value) if value is not None else None
    return None


def parse_location(location: Optional[str]) -> str:
    if not location:
        return "CENTERED"
    return MAIN_LOCATIONS.get(location, "CENTERED")


def parse_additional_locations(locations: Optional[str]) -> List[str]:
    if not locations:
        return []
    parsed = [ADDITIONAL_LOCATIONS.get(loc.strip()) for loc in locations.split(",")]
    return [loc for loc in parsed if loc]


def parse_printing_details(properties: List[Dict[str, Any]]) -> PrintingDetails:
    technique = property_value(properties, "Printing Techniques")
    return PrintingDetails(
        technique=ProductType.DTG_PRINTING if technique == "DTG Printing" else ProductType.DTF_PRINTING,
        main_location=parse_location(property_value(properties, "Font Location")),
        additional_locations=parse_additional_locations(property_value(properties, "More locations")),
        design_url=property_value(properties, "Link Design, Mockup"),
        has_printing_file=property_value(properties, "Printing file") != "No printing file"
    )


def parse_embroidery_positions(properties: List[Dict[str, Any]]) -> List[EmbroideryPosition]:
    raw = property_value(properties, "Embroidery Positions")
    if not raw:
        return []
    positions = []
    for name in (p.strip() for p in raw.split(",")):
        if name:
            positions.append(EmbroideryPosition(
                name=name,
                design_url=property_value(properties, f"{name}_design")
            ))
    return positions


def _to_float(value, default: float = 0.0) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def transform_shopify_line_item(item: Dict[str, Any]) -> OrderProduct:
    properties = item.get("properties") if isinstance(item.get("properties"), list) else []
    try:
        quantity = int(item.get("quantity") or 1)
    except (TypeError, ValueError):
        quantity = 1

    fields = {
        "name": item.get("title") or item.get("name") or "Untitled Product",
        "sku": item.get("sku") or "",
        "quantity": max(quantity, 1),
        "price": max(_to_float(item.get("price")), 0.0),
        "color": property_value(properties, "Color") or "",
        "size": property_value(properties, "Size") or "",
        "embroidery_positions": parse_embroidery_positions(properties),
        "printing_details": parse_printing_details(properties),
        "properties": [{"name": p.get("name"), "value": p.get("value")} for p in properties],
    }
    if item.get("id"):
        fields["line_item_id"] = str(item["id"])
    return OrderProduct(**fields)


def transform_shopify_order(shopify_order: Dict[str, Any], source: OrderSource = OrderSource.WEBHOOK) -> Order:
    """Transform a Shopify order payload to our format"""
    customer = shopify_order.get("customer") or {}
    billing = shopify_order.get("billing_address") or {}

    customer_name = f"{customer.get('first_name') or ''} {customer.get('last_name') or ''}".strip()
    if not customer_name:
        customer_name = billing.get("name") or "Unknown Customer"

    order_number = shopify_order.get("order_number") or shopify_order.get("name") or shopify_order.get("id")
    if not order_number:
        raise ValueError("Shopify order has no order number")
    created_at = shopify_order.get("created_at")

    order = Order(
        order_number=str(order_number),
        sales_channel=shopify_order.get("source_name") or SHOPIFY_CHANNEL,
        customer=Customer(
            name=customer_name,
            email=customer.get("email") or shopify_order.get("email") or "",
            phone=customer.get("phone") or shopify_order.get("phone") or "",
            address=billing.get("address1") or ""
        ),
        products=[transform_shopify_line_item(item) for item in shopify_order.get("line_items", [])],
        notes=shopify_order.get("note") or "",
        total=max(_to_float(shopify_order["total_price"]), 0.0) if shopify_order.get("total_price") else None,
        source=source,
        external_id=str(shopify_order["id"]) if shopify_order.get("id") else None,
        # Orders that came from Shopify already exist there
        synced=True,
        synced_at=datetime.now(timezone.utc).isoformat()
    )
    if created_at:
        try:
            parsed = datetime.fromisoformat(created_at.replace("Z", "+00:00"))
            if parsed.tzinfo is None:
                parsed = parsed.replace(tzinfo=timezone.utc)
            # Stored timestamps are compared as strings, so keep them all in UTC
            order.created_at = parsed.astimezone(timezone.utc)
        except ValueError:
            pass
    return order


# ============== Outbound mapping ==============

def build_shopify_order_payload(order: Dict[str, Any]) -> Dict[str, Any]:
    """Shopify orders.json body for a local order"""
    customer = order.get("customer") or {}
    line_items = []
    for product in order.get("products", []):
        positions = ", ".join(p.get("name", "") for p in product.get("embroidery_positions", []))
        line_items.append({
            "title": product.get("name"),
            "quantity": product.get("quantity"),
            "price": str(product.get("price", 0)),
            "sku": product.get("sku"),
            "properties": [
                {"name": "Color", "value": product.get("color", "")},
                {"name": "Size", "value": product.get("size", "")},
                {"name": "Embroidery Positions", "value": positions},
            ]
        })

    return {
        "order": {
            "email": customer.get("email"),
            "phone": customer.get("phone"),
            "billing_address": {
                "first_name": customer.get("name"),
                "address1": customer.get("address"),
            },
            "line_items": line_items,
        }
    }


async def sync_orders_to_shopify(db, service: ShopifyService, orders: List[Dict[str, Any]]) -> SyncResult:
    """Push orders one by one; stop at the first failure, keep what already went through"""
    result = SyncResult(total=len(orders))
    failed = False

    for order in orders:
        outcome = OrderSyncOutcome(order_id=order["order_id"], order_number=order.get("order_number", ""), status="skipped")
        if failed:
            result.skipped += 1
            result.results.append(outcome)
            continue

        try:
            created = await service.create_order(build_shopify_order_payload(order))
        except httpx.HTTPError as e:
            failed = True
            outcome.status = "failed"
            outcome.error = _describe_http_error(e)
            logger.error(f"Shopify sync failed for order {order['order_id']}: {outcome.error}")
            result.failed += 1
            result.results.append(outcome)
            continue

        update = {"synced": True, "synced_at": datetime.now(timezone.utc).isoformat()}
        if created.get("id"):
            update["external_id"] = str(created["id"])
        try:
            await db.orders.update_one({"order_id": order["order_id"]}, {"$set": update})
        except PyMongoError as e:
            # Shopify already holds this order
            failed = True
            outcome.status = "failed"
            outcome.error = f"Accepted by Shopify as {update.get('external_id', 'unknown id')} but not recorded locally: {e}"
            logger.error(f"Shopify sync bookkeeping failed for order {order['order_id']}: {e}")
            result.failed += 1
            result.results.append(outcome)
            continue

        outcome.status = "synced"
        result.synced += 1
        result.results.append(outcome)

    logger.info(f"Shopify sync: {result.synced} synced, {result.failed} failed, {result.skipped} skipped")
    return result


async def pull_orders_from_shopify(db, service: ShopifyService, status: str = "any") -> Dict[str, Any]:
    """Import Shopify orders we have not seen yet"""
    test_result = await service.test_connection()
    if not test_result["success"]:
        return {"success": False, "error": f"Connection failed: {test_result['error']}"}

    try:
        shopify_orders = await service.fetch_orders(status=status)
    except httpx.HTTPError as e:
        return {"success": False, "error": f"Failed to fetch orders: {str(e)}"}

    result = {
        "success": True,
        "total_orders": len(shopify_orders),
        "created": 0,
        "skipped": 0,
        "failed": 0,
        "errors": [],
        "synced_at": datetime.now(timezone.utc).isoformat()
    }

    for so in shopify_orders:
        try:
            order = transform_shopify_order(so, source=OrderSource.SHOPIFY_PULL)
            if await order_exists(db, order.sales_channel, order.order_number):
                result["skipped"] += 1
                continue
            await insert_order(db, order)
            result["created"] += 1
        except DuplicateKeyError:
            result["skipped"] += 1
        except Exception as e:
            result["failed"] += 1
            result["errors"].append(f"Order {so.get('order_number', so.get('id', 'unknown'))}: {str(e)}")

    return result
