"""
Budgets: planned income and expense for a period, optionally per bus.
"""
from decimal import Decimal
from sqlalchemy import Column, String, Numeric, Date, ForeignKey, Integer, UniqueConstraint
from sqlalchemy.orm import relationship
from busfleet.core.utils import round_money
from busfleet.db.base import BaseModel


class Budget(BaseModel):
    """Plan for a period; bus_id NULL means fleet-wide, end_date NULL open-ended."""
    __tablename__ = "budgets"

    name = Column(String(150), nullable=False)
    bus_id = Column(Integer, ForeignKey("buses.id"), nullable=True, index=True)
    start_date = Column(Date, nullable=False, index=True)
    end_date = Column(Date, nullable=True)
    total_planned_income = Column(Numeric(15, 2), nullable=False, default=0)
    total_planned_expense = Column(Numeric(15, 2), nullable=False, default=0)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)

    # Relationships
    bus = relationship("Bus")
    items = relationship(
        "BudgetItem", back_populates="budget", cascade="all, delete-orphan",
        order_by="BudgetItem.category"
    )

    @property
    def total_committed(self) -> Decimal:
        return round_money(sum((Decimal(item.committed_amount or 0) for item in self.items), Decimal("0")))

    @property
    def total_executed(self) -> Decimal:
        return round_money(sum((Decimal(item.executed_amount or 0) for item in self.items), Decimal("0")))


class BudgetItem(BaseModel):
    """Planned amount for one expense category, with what is committed and spent."""
    __tablename__ = "budget_items"

    budget_id = Column(Integer, ForeignKey("budgets.id", ondelete="CASCADE"), nullable=False, index=True)
    category = Column(String(50), nullable=False)
    planned_amount = Column(Numeric(15, 2), nullable=False)
    committed_amount = Column(Numeric(15, 2), nullable=False, default=0)
    executed_amount = Column(Numeric(15, 2), nullable=False, default=0)

    # Relationships
    budget = relationship("Budget", back_populates="items")

    # One line per category per budget
    __table_args__ = (
        UniqueConstraint('budget_id', 'category', name='uq_budget_item_category'),
    )
