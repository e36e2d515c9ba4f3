"""
Administrative bus expense model.
"""
from sqlalchemy import Column, String, Numeric, Date, ForeignKey, Integer, Text
from sqlalchemy.orm import relationship
from busfleet.db.base import BaseModel


class BusExpense(BaseModel):
    """Expense charged to a bus outside of any route (insurance, repairs...)."""
    __tablename__ = "bus_expenses"

    bus_id = Column(Integer, ForeignKey("buses.id"), nullable=False, index=True)
    amount = Column(Numeric(15, 2), nullable=False)
    expense_date = Column(Date, nullable=False, index=True)
    description = Column(Text, nullable=True)
    category = Column(String(50), nullable=True)
    invoice_id = Column(Integer, ForeignKey("invoices.id"), nullable=True, index=True)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)

    # Relationships
    bus = relationship("Bus", back_populates="expenses")
    invoice = relationship("Invoice", back_populates="expenses")
