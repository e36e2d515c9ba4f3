"""
Pydantic schemas for invoices.
"""
from pydantic import BaseModel, Field
from typing import Optional
from datetime import date, datetime
from decimal import Decimal
from busfleet.schemas.user import UserSummary


class InvoiceUpdate(BaseModel):
    """Schema for invoice update; explicit nulls clear a field."""
    invoice_number: Optional[str] = Field(default=None, max_length=100)
    provider_name: Optional[str] = Field(default=None, max_length=200)
    issue_date: Optional[date] = None
    total_amount: Optional[Decimal] = Field(default=None, ge=0, decimal_places=2)


class InvoiceResponse(BaseModel):
    """Schema for invoice response."""
    id: int
    invoice_number: Optional[str] = None
    provider_name: Optional[str] = None
    issue_date: Optional[date] = None
    total_amount: Optional[Decimal] = None
    file_url: str
    file_name: Optional[str] = None
    mime_type: Optional[str] = None
    uploaded_by: Optional[int] = None
    uploader: Optional[UserSummary] = None
    created_at: datetime

    class Config:
        from_attributes = True


class InvoiceStats(BaseModel):
    total: int
    this_month: int
    total_amount: Decimal
