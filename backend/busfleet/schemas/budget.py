"""
Pydantic schemas for budgets and budget items.
"""
from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import date, datetime
from decimal import Decimal
from busfleet.schemas.bus import BusSummary


class BudgetCreate(BaseModel):
    """Schema for budget creation."""
    name: str = Field(min_length=1, max_length=150)
    bus_id: Optional[int] = Field(default=None, gt=0)
    start_date: date
    end_date: Optional[date] = None
    total_planned_income: Decimal = Field(default=Decimal(0), ge=0, decimal_places=2)
    total_planned_expense: Decimal = Field(default=Decimal(0), ge=0, decimal_places=2)


class BudgetUpdate(BaseModel):
    """Schema for budget update; an explicit null end_date leaves it open."""
    name: Optional[str] = Field(default=None, min_length=1, max_length=150)
    bus_id: Optional[int] = Field(default=None, gt=0)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    total_planned_income: Optional[Decimal] = Field(default=None, ge=0, decimal_places=2)
    total_planned_expense: Optional[Decimal] = Field(default=None, ge=0, decimal_places=2)


class BudgetItemCreate(BaseModel):
    budget_id: int = Field(gt=0)
    category: str = Field(min_length=1, max_length=50)
    planned_amount: Decimal = Field(gt=0, decimal_places=2)


class BudgetItemUpdate(BaseModel):
    planned_amount: Optional[Decimal] = Field(default=None, gt=0, decimal_places=2)
    committed_amount: Optional[Decimal] = Field(default=None, ge=0, decimal_places=2)
    executed_amount: Optional[Decimal] = Field(default=None, ge=0, decimal_places=2)


class BudgetItemResponse(BaseModel):
    """Schema for budget item response."""
    id: int
    budget_id: int
    category: str
    planned_amount: Decimal
    committed_amount: Decimal
    executed_amount: Decimal
    created_at: datetime

    class Config:
        from_attributes = True


class BudgetResponse(BaseModel):
    """Schema for budget response; committed and executed sum the items."""
    id: int
    name: str
    bus_id: Optional[int] = None
    start_date: date
    end_date: Optional[date] = None
    total_planned_income: Decimal
    total_planned_expense: Decimal
    total_committed: Decimal
    total_executed: Decimal
    created_by: Optional[int] = None
    created_at: datetime
    bus: Optional[BusSummary] = None
    items: List[BudgetItemResponse] = []

    class Config:
        from_attributes = True


class BudgetStats(BaseModel):
    """Totals over the budgets touching a period."""
    total_budgets: int
    total_planned_income: Decimal
    total_planned_expense: Decimal
    total_committed: Decimal
    total_executed: Decimal
    budgets: List[BudgetResponse]
