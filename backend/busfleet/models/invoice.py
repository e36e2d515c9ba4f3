"""
Supplier invoice model; the document itself lives on disk.
"""
from sqlalchemy import Column, String, Numeric, Date, ForeignKey, Integer
from sqlalchemy.orm import relationship
from busfleet.db.base import BaseModel


class Invoice(BaseModel):
    """Uploaded invoice document with optional billing details."""
    __tablename__ = "invoices"

    invoice_number = Column(String(100), nullable=True, index=True)
    provider_name = Column(String(200), nullable=True, index=True)
    issue_date = Column(Date, nullable=True, index=True)
    total_amount = Column(Numeric(15, 2), nullable=True)
    file_url = Column(String(500), nullable=False)  # URL under /uploads
    file_path = Column(String(500), nullable=False)  # Location on disk
    file_name = Column(String(255), nullable=True)  # Name as uploaded
    mime_type = Column(String(100), nullable=True)
    uploaded_by = Column(Integer, ForeignKey("users.id"), nullable=True)

    # Relationships
    uploader = relationship("User")
    expenses = relationship("BusExpense", back_populates="invoice")
