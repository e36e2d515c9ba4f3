"""
Route model: one bus trip day with its income and on-route expenses.
"""
from sqlalchemy import Column, String, Numeric, Date, ForeignKey, Integer, Text
from sqlalchemy.orm import relationship
from busfleet.db.base import BaseModel


class Route(BaseModel):
    """Daily route record."""
    __tablename__ = "routes"

    bus_id = Column(Integer, ForeignKey("buses.id"), nullable=False, index=True)
    worker_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    route_name = Column(String(150), nullable=False)
    route_date = Column(Date, nullable=False, index=True)
    total_income = Column(Numeric(15, 2), nullable=False, default=0)
    total_expenses = Column(Numeric(15, 2), nullable=False, default=0)  # Sum of RouteExpense.amount
    net_income = Column(Numeric(15, 2), nullable=False, default=0)  # total_income - total_expenses
    notes = Column(Text, nullable=True)

    # Relationships
    bus = relationship("Bus", back_populates="routes")
    worker = relationship("User")
    expenses = relationship(
        "RouteExpense", back_populates="route", cascade="all, delete-orphan",
        order_by="RouteExpense.id"
    )


class RouteExpense(BaseModel):
    """Expense paid while running a route (fuel, tolls...)."""
    __tablename__ = "route_expenses"

    route_id = Column(Integer, ForeignKey("routes.id"), nullable=False, index=True)
    expense_name = Column(String(150), nullable=False)
    amount = Column(Numeric(15, 2), nullable=False)

    # Relationships
    route = relationship("Route", back_populates="expenses")
