"""
User and session models for authentication and role checks.
"""
from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey, Integer, Enum as SQLEnum
from sqlalchemy.orm import relationship
from busfleet.db.base import BaseModel
import enum


class UserRole(str, enum.Enum):
    """User role enumeration."""
    ADMIN = "ADMIN"
    WORKER = "WORKER"


class User(BaseModel):
    """User model; logs in with national id."""
    __tablename__ = "users"

    full_name = Column(String(150), nullable=False)
    national_id = Column(String(30), unique=True, nullable=False, index=True)
    email = Column(String(100), unique=True, nullable=True, index=True)
    hashed_password = Column(String(255), nullable=False)
    role = Column(SQLEnum(UserRole), default=UserRole.WORKER, nullable=False)
    assigned_bus_id = Column(Integer, ForeignKey("buses.id"), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    # Relationships
    sessions = relationship("UserSession", back_populates="user", cascade="all, delete-orphan")
    assigned_bus = relationship("Bus", foreign_keys=[assigned_bus_id])
    profit_shares = relationship("ProfitSharingMember", back_populates="user")


class UserSession(BaseModel):
    """Server-side login session referenced by the JWT."""
    __tablename__ = "sessions"

    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    ip_address = Column(String(64), nullable=True)
    user_agent = Column(String(255), nullable=True)
    expires_at = Column(DateTime, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    ended_at = Column(DateTime, nullable=True)

    # Relationships
    user = relationship("User", back_populates="sessions")
