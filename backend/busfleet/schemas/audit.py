"""
Pydantic schemas for audit log entries.
"""
from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional
from datetime import datetime


class AuditLogResponse(BaseModel):
    """Schema for audit log response."""
    id: int
    actor_user_id: Optional[int] = None
    action: str
    entity_type: str
    entity_id: Optional[int] = None
    description: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = Field(default=None, validation_alias="extra")
    created_at: datetime

    class Config:
        from_attributes = True


class ActionCount(BaseModel):
    action: str
    count: int


class EntityCount(BaseModel):
    entity_type: str
    count: int


class UserActivity(BaseModel):
    user_id: int
    user_name: Optional[str] = None
    role: Optional[str] = None
    count: int


class AuditStats(BaseModel):
    """Counts of audit entries, busiest first."""
    total_logs: int
    by_action: List[ActionCount]
    by_entity: List[EntityCount]
    top_users: List[UserActivity]
