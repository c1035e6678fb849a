from pydantic import BaseModel, Field, ConfigDict
from typing import Optional


class StageDefinition(BaseModel):
    """Catalog entry for one step of the production pipeline"""
    model_config = ConfigDict(extra="forbid")
    stage_id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    order: int


class StageCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")
    stage_id: str = Field(min_length=1)
    name: str = Field(min_length=1)


class StageUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")
    name: str = Field(min_length=1)


class StageAction(BaseModel):
    model_config = ConfigDict(extra="forbid")
    notes: Optional[str] = None


class ScanRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")
    payload: str = Field(min_length=1)
    stage_id: str = Field(min_length=1)


class ProductionLog(BaseModel):
    """Append-only record of a completed stage"""
    model_config = ConfigDict(extra="ignore")
    log_id: str
    order_id: str
    stage_id: str
    stage_name: str
    completed_at: str
    completed_by: Optional[str] = None
