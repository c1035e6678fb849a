from pydantic import BaseModel, Field, ConfigDict
from datetime import datetime, timezone
import uuid


class CatalogProduct(BaseModel):
    """Warehouse stock item"""
    model_config = ConfigDict(extra="ignore")
    product_id: str = Field(default_factory=lambda: f"prod_{uuid.uuid4().hex[:12]}")
    name: str
    sku: str
    barcode: str = ""
    quantity: int = 0
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class ProductCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")
    name: str = Field(min_length=1)
    sku: str = Field(min_length=1)
    barcode: str = ""
    quantity: int = Field(default=0, ge=0)
