from pydantic import BaseModel, Field, ConfigDict
from typing import List, Optional
from datetime import datetime, timezone
from enum import Enum
import uuid

THREAD_COLOR_PATTERN = r"^#[0-9A-Fa-f]{6}$"


class MachineStatus(str, Enum):
    IDLE = "idle"
    WORKING = "working"
    MAINTENANCE = "maintenance"


class OperationStatus(str, Enum):
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    INTERRUPTED = "interrupted"


class SewingMachine(BaseModel):
    model_config = ConfigDict(extra="ignore")
    machine_id: str = Field(default_factory=lambda: f"mch_{uuid.uuid4().hex[:8]}")
    name: str
    manager_id: str
    manager_name: str
    status: MachineStatus = MachineStatus.IDLE
    current_thread_color: Optional[str] = None
    current_product_id: Optional[str] = None
    current_product_name: Optional[str] = None
    start_time: Optional[str] = None
    estimated_end_time: Optional[str] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class MachineCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")
    name: str = Field(min_length=1)
    manager_id: str
    manager_name: str
    current_thread_color: Optional[str] = Field(default=None, pattern=THREAD_COLOR_PATTERN)


class MachineUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")
    name: Optional[str] = None
    status: Optional[MachineStatus] = None
    current_thread_color: Optional[str] = Field(default=None, pattern=THREAD_COLOR_PATTERN)
    manager_id: Optional[str] = None
    manager_name: Optional[str] = None


class MachineGroup(BaseModel):
    model_config = ConfigDict(extra="ignore")
    group_id: str = Field(default_factory=lambda: f"grp_{uuid.uuid4().hex[:8]}")
    name: str
    manager_id: str
    manager_name: str
    machine_ids: List[str] = []


class MachineGroupCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")
    name: str = Field(min_length=1)
    manager_id: str
    manager_name: str
    machine_ids: List[str] = []


class MachineOperation(BaseModel):
    model_config = ConfigDict(extra="ignore")
    operation_id: str = Field(default_factory=lambda: f"op_{uuid.uuid4().hex[:10]}")
    machine_id: str
    product_id: str
    product_name: str
    thread_color: str
    start_time: str
    estimated_end_time: str
    actual_end_time: Optional[str] = None
    status: OperationStatus = OperationStatus.IN_PROGRESS
    notes: Optional[str] = None


class OperationStart(BaseModel):
    model_config = ConfigDict(extra="forbid")
    machine_id: str
    product_id: str
    product_name: str
    thread_color: str = Field(pattern=THREAD_COLOR_PATTERN)
    estimated_minutes: int = Field(default=30, gt=0)


class OperationInterrupt(BaseModel):
    model_config = ConfigDict(extra="forbid")
    notes: Optional[str] = None


class MachineRecommendation(BaseModel):
    """Precomputed suggestion of what a machine should sew next"""
    model_config = ConfigDict(extra="forbid")
    recommendation_id: str = Field(default_factory=lambda: f"rec_{uuid.uuid4().hex[:10]}")
    machine_id: str
    product_id: str
    priority: int
    reason: str = ""
    estimated_time: int = 0  # minutes
    thread_color: str = Field(pattern=THREAD_COLOR_PATTERN)


# Common embroidery thread palette
THREAD_COLORS = [
    {"id": "001", "name": "White", "hex": "#FFFFFF"},
    {"id": "002", "name": "Black", "hex": "#000000"},
    {"id": "003", "name": "Red", "hex": "#FF0000"},
    {"id": "004", "name": "Blue", "hex": "#0000FF"},
    {"id": "005", "name": "Yellow", "hex": "#FFFF00"},
    {"id": "006", "name": "Green", "hex": "#00FF00"},
    {"id": "007", "name": "Orange", "hex": "#FFA500"},
    {"id": "008", "name": "Purple", "hex": "#800080"},
    {"id": "009", "name": "Pink", "hex": "#FFC0CB"},
    {"id": "010", "name": "Brown", "hex": "#A52A2A"},
]
