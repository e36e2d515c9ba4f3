"""Models package - Import all models for SQLAlchemy registration."""
from busfleet.models.user import User, UserRole, UserSession
from busfleet.models.bus import Bus
from busfleet.models.route import Route, RouteExpense
from busfleet.models.expense import BusExpense
from busfleet.models.profit_sharing import ProfitSharingGroup, ProfitSharingMember, ShareRole
from busfleet.models.audit import AuditLog
from busfleet.models.budget import Budget, BudgetItem
from busfleet.models.invoice import Invoice

__all__ = [
    "User",
    "UserRole",
    "UserSession",
    "Bus",
    "Route",
    "RouteExpense",
    "BusExpense",
    "ProfitSharingGroup",
    "ProfitSharingMember",
    "ShareRole",
    "AuditLog",
    "Budget",
    "BudgetItem",
    "Invoice",
]
