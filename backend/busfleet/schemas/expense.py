"""
Pydantic schemas for administrative bus expenses.
"""
from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import date, datetime
from decimal import Decimal


class BusExpenseCreate(BaseModel):
    """Schema for bus expense creation."""
    bus_id: int = Field(gt=0)
    amount: Decimal = Field(gt=0, decimal_places=2)
    expense_date: date
    description: Optional[str] = None
    category: Optional[str] = Field(default=None, max_length=50)
    invoice_id: Optional[int] = Field(default=None, gt=0)


class BusExpenseUpdate(BaseModel):
    """Schema for bus expense update."""
    bus_id: Optional[int] = Field(default=None, gt=0)
    amount: Optional[Decimal] = Field(default=None, gt=0, decimal_places=2)
    expense_date: Optional[date] = None
    description: Optional[str] = None
    category: Optional[str] = Field(default=None, max_length=50)
    invoice_id: Optional[int] = Field(default=None, gt=0)


class BusExpenseResponse(BaseModel):
    """Schema for bus expense response."""
    id: int
    bus_id: int
    amount: Decimal
    expense_date: date
    description: Optional[str] = None
    category: Optional[str] = None
    invoice_id: Optional[int] = None
    created_by: Optional[int] = None
    created_at: datetime

    class Config:
        from_attributes = True


class CategoryTotal(BaseModel):
    category: Optional[str] = None
    total: Decimal
    count: int


class ExpenseStatistics(BaseModel):
    """Sum, average and per-category breakdown of matching expenses."""
    total_expenses: Decimal
    avg_expense: Decimal
    total_count: int
    by_category: List[CategoryTotal]
