from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime, timezone


class OrderSyncOutcome(BaseModel):
    order_id: str
    order_number: str
    status: str  # synced, failed, skipped
    error: Optional[str] = None


class SyncResult(BaseModel):
    """Result of pushing local orders to Shopify"""
    total: int = 0
    synced: int = 0
    failed: int = 0
    skipped: int = 0
    results: List[OrderSyncOutcome] = []
    synced_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class SyncRequest(BaseModel):
    """Orders to push, in order; all unsynced orders when omitted"""
    order_ids: Optional[List[str]] = None
