"""
Pydantic schemas for User entity.
"""
from pydantic import BaseModel, EmailStr, Field
from typing import Optional
from datetime import datetime
from busfleet.models.user import UserRole


class UserBase(BaseModel):
    """Base user schema."""
    full_name: str = Field(min_length=1, max_length=150)
    national_id: str = Field(min_length=3, max_length=30)
    email: Optional[EmailStr] = None


class UserCreate(UserBase):
    """Schema for user registration (admin only)."""
    password: str = Field(min_length=6)
    role: UserRole = UserRole.WORKER
    assigned_bus_id: Optional[int] = None


class UserResponse(UserBase):
    """Schema for user response."""
    id: int
    role: UserRole
    assigned_bus_id: Optional[int] = None
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


class UserSummary(BaseModel):
    """Compact user reference embedded in other responses."""
    id: int
    full_name: str
    national_id: str

    class Config:
        from_attributes = True


class UserLogin(BaseModel):
    """Schema for user login."""
    national_id: str
    password: str


class LoginResponse(BaseModel):
    """Schema for login response."""
    access_token: str
    token_type: str = "bearer"
    session_id: int
    expires_at: datetime
    user: UserResponse


class UserUpdate(BaseModel):
    """Schema for user update (admin only); a new password is rehashed."""
    full_name: Optional[str] = Field(default=None, min_length=1, max_length=150)
    national_id: Optional[str] = Field(default=None, min_length=3, max_length=30)
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(default=None, min_length=6)
    role: Optional[UserRole] = None
    assigned_bus_id: Optional[int] = None
    is_active: Optional[bool] = None
