"""
Bus model.
"""
from sqlalchemy import Column, String, Boolean, Numeric, Text
from sqlalchemy.orm import relationship
from busfleet.db.base import BaseModel


class Bus(BaseModel):
    """A bus of the fleet."""
    __tablename__ = "buses"

    internal_code = Column(String(30), unique=True, nullable=False, index=True)
    plate_number = Column(String(20), unique=True, nullable=False, index=True)
    description = Column(Text, nullable=True)
    monthly_target = Column(Numeric(15, 2), nullable=False, default=0)
    is_active = Column(Boolean, default=True, nullable=False)

    # Relationships
    routes = relationship("Route", back_populates="bus")
    expenses = relationship("BusExpense", back_populates="bus")
    profit_sharing_groups = relationship("ProfitSharingGroup", back_populates="bus")
