"""
Pydantic schemas for Bus entity.
"""
from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from decimal import Decimal


class BusBase(BaseModel):
    """Base bus schema."""
    internal_code: str = Field(min_length=1, max_length=30)
    plate_number: str = Field(min_length=1, max_length=20)
    description: Optional[str] = None
    monthly_target: Decimal = Field(default=Decimal(0), ge=0)


class BusCreate(BusBase):
    """Schema for bus creation."""
    pass


class BusUpdate(BaseModel):
    """Schema for bus update."""
    internal_code: Optional[str] = Field(default=None, min_length=1, max_length=30)
    plate_number: Optional[str] = Field(default=None, min_length=1, max_length=20)
    description: Optional[str] = None
    monthly_target: Optional[Decimal] = Field(default=None, ge=0)
    is_active: Optional[bool] = None


class BusResponse(BusBase):
    """Schema for bus response."""
    id: int
    is_active: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class BusSummary(BaseModel):
    """Compact bus reference embedded in other responses."""
    id: int
    internal_code: str
    plate_number: str

    class Config:
        from_attributes = True


class BusMonthlyStats(BaseModel):
    """Income, expenses and profit of one bus over a calendar month."""
    bus_id: int
    bus_code: str
    year: int
    month: int
    total_income: Decimal
    total_expenses: Decimal
    operational_profit: Decimal
    administrative_expenses: Decimal
    net_profit: Decimal
    monthly_target: Decimal
    target_progress: Decimal
    routes_count: int
