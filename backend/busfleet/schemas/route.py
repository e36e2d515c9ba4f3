"""
Pydantic schemas for Route entity.
"""
from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import date, datetime
from decimal import Decimal


class RouteExpenseItem(BaseModel):
    """One on-route expense line."""
    expense_name: str = Field(min_length=1, max_length=150)
    amount: Decimal = Field(gt=0, decimal_places=2)


class RouteCreate(BaseModel):
    """Schema for route creation."""
    bus_id: int = Field(gt=0)
    worker_id: int = Field(gt=0)
    route_name: str = Field(min_length=1, max_length=150)
    route_date: date
    total_income: Decimal = Field(ge=0, decimal_places=2)
    notes: Optional[str] = None
    expenses: List[RouteExpenseItem] = []


class RouteUpdate(BaseModel):
    """Schema for route update; replacing expenses replaces all lines."""
    route_name: Optional[str] = Field(default=None, min_length=1, max_length=150)
    route_date: Optional[date] = None
    total_income: Optional[Decimal] = Field(default=None, ge=0, decimal_places=2)
    notes: Optional[str] = None
    expenses: Optional[List[RouteExpenseItem]] = None


class RouteExpenseResponse(RouteExpenseItem):
    id: int

    class Config:
        from_attributes = True


class RouteResponse(BaseModel):
    """Schema for route response."""
    id: int
    bus_id: int
    worker_id: int
    route_name: str
    route_date: date
    total_income: Decimal
    total_expenses: Decimal
    net_income: Decimal
    notes: Optional[str] = None
    expenses: List[RouteExpenseResponse] = []
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class RouteStats(BaseModel):
    """Aggregates over the routes matching a filter."""
    total_routes: int
    total_income: Decimal
    total_expenses: Decimal
    net_income: Decimal
    average_income: Decimal
    average_expenses: Decimal
