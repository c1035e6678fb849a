from pydantic import BaseModel, Field, ConfigDict, EmailStr
from typing import List
from datetime import datetime, timezone
from enum import Enum


class UserRole(str, Enum):
    ADMIN = "admin"
    MANAGER = "manager"
    WORKER = "worker"
    MACHINE_MANAGER = "machine_manager"


class User(BaseModel):
    model_config = ConfigDict(extra="ignore")
    user_id: str  # uid from the identity provider
    email: str
    name: str
    role: UserRole = UserRole.WORKER
    assigned_stages: List[str] = []
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def can_work_stage(self, stage_id: str) -> bool:
        """Admins work every stage, everyone else only their assigned ones"""
        return self.is_admin or stage_id in self.assigned_stages


class UserSession(BaseModel):
    model_config = ConfigDict(extra="ignore")
    user_id: str
    session_token: str
    expires_at: datetime
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class UserCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")
    email: EmailStr
    password: str = Field(min_length=6)
    name: str = Field(min_length=1)
    role: UserRole = UserRole.WORKER


class RoleUpdate(BaseModel):
    role: UserRole


class StageAssignment(BaseModel):
    model_config = ConfigDict(extra="forbid")
    stage_ids: List[str]
