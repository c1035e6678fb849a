"""
QR payloads printed on order tickets
The payload is the order id itself; older tickets carry a JSON blob with an orderId key
"""
import json
from typing import Optional


def encode_order_payload(order_id: str) -> str:
    return order_id


def decode_order_payload(payload: str) -> Optional[str]:
    payload = (payload or "").strip()
    if not payload:
        return None

    if payload.startswith("{"):
        try:
            data = json.loads(payload)
        except json.JSONDecodeError:
            return None
        if not isinstance(data, dict):
            return None
        order_id = data.get("orderId") or data.get("order_id")
        return str(order_id) if order_id else None

    return payload
