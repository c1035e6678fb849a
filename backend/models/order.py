from pydantic import BaseModel, Field, ConfigDict, EmailStr
from typing import List, Optional
from datetime import datetime, timezone
from enum import Enum
import uuid


class OrderStatus(str, Enum):
    PENDING = "pending"
    IN_PRODUCTION = "in_production"
    COMPLETED = "completed"


class StageStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class Complexity(str, Enum):
    SIMPLE = "simple"
    MEDIUM = "medium"
    COMPLEX = "complex"
    VERY_COMPLEX = "very_complex"


class OrderSource(str, Enum):
    MANUAL = "manual"
    CSV = "csv"
    WEBHOOK = "webhook"
    SHOPIFY_PULL = "shopify_pull"
    IMPORT_FORM = "import_form"


class ProductType(str, Enum):
    EMBROIDERY = "EMBROIDERY"
    DTF_PRINTING = "DTF_PRINTING"
    DTG_PRINTING = "DTG_PRINTING"


class Customer(BaseModel):
    model_config = ConfigDict(extra="forbid")
    name: str
    email: str = ""
    phone: str = ""
    address: str = ""


class EmbroideryPosition(BaseModel):
    model_config = ConfigDict(extra="forbid")
    name: str
    description: str = ""
    design_url: Optional[str] = None
    status: StageStatus = StageStatus.PENDING


class PrintingDetails(BaseModel):
    model_config = ConfigDict(extra="forbid")
    technique: ProductType
    main_location: str = "CENTERED"
    additional_locations: List[str] = []
    design_url: Optional[str] = None
    has_printing_file: bool = False


class OrderProduct(BaseModel):
    """Line item as stored on an order"""
    model_config = ConfigDict(extra="forbid")
    line_item_id: str = Field(default_factory=lambda: f"li_{uuid.uuid4().hex[:8]}")
    name: str
    sku: str = ""
    quantity: int = Field(gt=0)
    price: float = Field(ge=0)
    color: str = ""
    size: str = ""
    embroidery_positions: List[EmbroideryPosition] = []
    printing_details: Optional[PrintingDetails] = None
    properties: List[dict] = []  # raw name/value pairs from Shopify
    manufactured: bool = False


class ProductionStage(BaseModel):
    """A pipeline step's state on one order"""
    model_config = ConfigDict(extra="forbid")
    stage_id: str
    name: str
    status: StageStatus = StageStatus.PENDING
    started_at: Optional[str] = None
    completed_at: Optional[str] = None
    completed_by: Optional[str] = None
    notes: Optional[str] = None


class Order(BaseModel):
    model_config = ConfigDict(extra="forbid")
    order_id: str = Field(default_factory=lambda: f"ord_{uuid.uuid4().hex[:12]}")
    order_number: str = Field(min_length=1)
    sales_channel: str = "manual"
    customer: Customer
    products: List[OrderProduct] = []
    stages: List[ProductionStage] = []
    status: OrderStatus = OrderStatus.PENDING  # derived from stages
    notes: str = ""
    total: Optional[float] = None  # computed from line items when not given
    deadline: Optional[str] = None
    complexity: Complexity = Complexity.SIMPLE
    qr_code: Optional[str] = None
    source: OrderSource = OrderSource.MANUAL
    external_id: Optional[str] = None  # ID from Shopify
    synced: bool = False
    synced_at: Optional[str] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class CustomerCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")
    name: str = Field(min_length=1)
    email: EmailStr
    phone: str = ""
    address: str = ""


class OrderProductCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")
    name: str = Field(min_length=1)
    sku: str = ""
    quantity: int = Field(gt=0)
    price: float = Field(ge=0)
    color: str = ""
    size: str = ""
    embroidery_positions: List[EmbroideryPosition] = []


class OrderCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")
    order_number: str = Field(min_length=1)
    sales_channel: str = "manual"
    customer: CustomerCreate
    products: List[OrderProductCreate] = Field(min_length=1)
    notes: str = ""
    deadline: Optional[str] = None
    complexity: Complexity = Complexity.SIMPLE
    total: Optional[float] = Field(default=None, ge=0)


class OrderImportProduct(BaseModel):
    model_config = ConfigDict(extra="forbid")
    name: str = Field(min_length=1)
    sku: str = ""
    price: float = Field(ge=0)
    color: str = ""
    size: str = ""
    quantity: int = Field(default=1, gt=0)
    main_location: str
    additional_locations: List[str] = []
    design_url: Optional[str] = None
    has_production_file: bool = False


class OrderImport(BaseModel):
    """Manual import form for marketplace orders"""
    model_config = ConfigDict(extra="forbid")
    product_type: ProductType
    order_number: str = Field(min_length=1)
    customer: str = Field(min_length=1)
    sales_channel: str
    products: List[OrderImportProduct] = Field(min_length=1)


class ManufacturedUpdate(BaseModel):
    manufactured: bool
