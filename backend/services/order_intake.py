"""
Order intake shared by manual entry and every import path
"""
from typing import Dict, Any, Optional
from datetime import datetime, timezone

from models.order import (
    Order, OrderCreate, OrderImport, Customer, OrderProduct, ProductionStage,
    EmbroideryPosition, PrintingDetails, OrderSource, ProductType
)
from services.qr_payload import encode_order_payload
from services.stage_catalog import get_stage_catalog
from services.stage_sequencer import build_order_stages, derive_order_status


def dedupe_key(sales_channel: str, order_number: str) -> str:
    return f"{sales_channel}:{order_number}"


async def order_exists(db, sales_channel: str, order_number: str) -> Optional[Dict[str, Any]]:
    return await db.orders.find_one(
        {"sales_channel": sales_channel, "order_number": order_number},
        {"_id": 0, "order_id": 1}
    )


async def insert_order(db, order: Order, unique: bool = True) -> Dict[str, Any]:
    """Seed stages from the catalog, fill derived fields and store the order

    With `unique`, a second order with the same channel and number raises
    DuplicateKeyError. CSV imports pass unique=False: every row is its own order.
    """
    if not order.stages:
        catalog = await get_stage_catalog(db)
        stages = [ProductionStage(**s) for s in build_order_stages(catalog)]
        order = order.model_copy(update={"stages": stages})

    doc = order.model_dump(mode="json")
    doc["qr_code"] = encode_order_payload(doc["order_id"])
    doc["status"] = derive_order_status(doc["stages"])
    if doc["total"] is None:
        doc["total"] = round(sum(p["price"] * p["quantity"] for p in doc["products"]), 2)
    doc["updated_at"] = datetime.now(timezone.utc).isoformat()
    if unique:
        doc["dedupe_key"] = dedupe_key(doc["sales_channel"], doc["order_number"])

    await db.orders.insert_one(doc)
    return {k: v for k, v in doc.items() if k != "_id"}


def order_from_create(data: OrderCreate) -> Order:
    """Manual order entry"""
    fields = data.model_dump()
    return Order(
        **{k: v for k, v in fields.items() if k not in ("customer", "products")},
        customer=Customer(**fields["customer"]),
        products=[OrderProduct(**p) for p in fields["products"]],
        source=OrderSource.MANUAL
    )



def order_from_import_form(data: OrderImport) -> Order:
    """Marketplace order typed in through the import form"""
    products = []
    for item in data.products:
        product = OrderProduct(
            name=item.name,
            sku=item.sku,
            quantity=item.quantity,
            price=item.price,
            color=item.color,
            size=item.size
        )
        if data.product_type == ProductType.EMBROIDERY:
            locations = [item.main_location] + item.additional_locations
            product.embroidery_positions = [
                EmbroideryPosition(name=location, design_url=item.design_url) for location in locations
            ]
        else:
            product.printing_details = PrintingDetails(
                technique=data.product_type,
                main_location=item.main_location,
                additional_locations=item.additional_locations,
                design_url=item.design_url,
                has_printing_file=item.has_production_file
            )
        products.append(product)

    return Order(
        order_number=data.order_number,
        sales_channel=data.sales_channel,
        customer=Customer(name=data.customer),
        products=products,
        source=OrderSource.IMPORT_FORM
    )
