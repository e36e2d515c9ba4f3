"""
Audit log model.
"""
from sqlalchemy import Column, String, ForeignKey, Integer, Text, JSON
from sqlalchemy.orm import relationship
from busfleet.db.base import BaseModel


class AuditLog(BaseModel):
    """Append-only record of who changed what."""
    __tablename__ = "audit_logs"

    actor_user_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    action = Column(String(20), nullable=False, index=True)  # CREATE, UPDATE, DELETE, LOGIN, LOGOUT
    entity_type = Column(String(50), nullable=False, index=True)
    entity_id = Column(Integer, nullable=True)
    description = Column(Text, nullable=True)
    # "metadata" is reserved on declarative classes
    extra = Column("metadata", JSON, nullable=True)

    # Relationships
    actor = relationship("User")
