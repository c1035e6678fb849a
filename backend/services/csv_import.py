"""
Shopify order export (CSV) import
One order per valid row; rows are never merged, even when they share an order number
"""
import csv
import io
import logging
from typing import Dict, Any, Optional

from pydantic import ValidationError

from models.order import Order, Customer, OrderProduct, EmbroideryPosition, OrderSource
from services.order_intake import insert_order

logger = logging.getLogger(__name__)

CSV_SALES_CHANNEL = "shopify"


def _col(row: Dict[str, Any], name: str, default: str = "") -> str:
    value = row.get(name)
    if value is None:
        return default
    return str(value).strip() or default


def _int(value: str, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _float(value: str, default: float) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def map_csv_row(row: Dict[str, Any]) -> Optional[Order]:
    """Map one export row to an order, or None when Name or Email is missing"""
    order_number = _col(row, "Name")
    email = _col(row, "Email")
    if not order_number or not email:
        return None

    notes = _col(row, "Notes")
    total = _col(row, "Total")
    positions = [EmbroideryPosition(name=p.strip()) for p in notes.split(",") if p.strip()] if notes else []

    product = OrderProduct(
        name=_col(row, "Lineitem name"),
        sku=_col(row, "Lineitem sku"),
        quantity=max(_int(_col(row, "Lineitem quantity"), 1), 1),
        price=max(_float(_col(row, "Lineitem price"), 0.0), 0.0),
        color=_col(row, "Lineitem properties Color"),
        size=_col(row, "Lineitem properties Size"),
        embroidery_positions=positions
    )

    return Order(
        order_number=order_number,
        sales_channel=CSV_SALES_CHANNEL,
        customer=Customer(
            name=_col(row, "Billing Name"),
            email=email,
            phone=_col(row, "Phone"),
            address=_col(row, "Billing Address1")
        ),
        products=[product],
        total=max(_float(total, 0.0), 0.0) if total else None,
        source=OrderSource.CSV
    )


async def import_orders_csv(db, content: str) -> Dict[str, Any]:
    reader = csv.DictReader(io.StringIO(content))
    rows = list(reader)

    result = {
        "success": True,
        "total_rows": len(rows),
        "created": 0,
        "skipped": 0,
        "order_ids": [],
        "errors": []
    }

    for line_number, row in enumerate(rows, start=2):
        try:
            order = map_csv_row(row)
        except ValidationError as e:
            result["errors"].append(f"Row {line_number}: {e.errors()[0]['msg']}")
            continue

        if order is None:
            result["skipped"] += 1
            continue

        doc = await insert_order(db, order, unique=False)
        result["created"] += 1
        result["order_ids"].append(doc["order_id"])

    logger.info(f"CSV import: {result['created']} created, {result['skipped']} skipped, {len(result['errors'])} errors")
    return result
