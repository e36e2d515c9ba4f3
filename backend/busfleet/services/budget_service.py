"""
Budgets and their per-category items.
"""
import logging
from datetime import date
from decimal import Decimal
from typing import List, Optional, Tuple
from sqlalchemy import or_
from sqlalchemy.orm import Query, Session, joinedload, selectinload
from busfleet.core.errors import BadRequestError, NotFoundError
from busfleet.core.utils import round_money
from busfleet.models.budget import Budget, BudgetItem
from busfleet.models.bus import Bus
from busfleet.models.user import User
from busfleet.schemas.budget import (
    BudgetCreate, BudgetItemCreate, BudgetItemUpdate, BudgetResponse, BudgetStats, BudgetUpdate
)
from busfleet.services.audit_service import AuditAction, record_audit
from busfleet.services.period_service import validate_date_range

logger = logging.getLogger(__name__)

BUDGET_ENTITY = "BUDGET"
BUDGET_ITEM_ENTITY = "BUDGET_ITEM"


def _touching_period(query: Query, start_date: Optional[date], end_date: Optional[date]) -> Query:
    """Budgets whose [start, end] intersects the requested period."""
    if start_date:
        query = query.filter(or_(Budget.end_date.is_(None), Budget.end_date >= start_date))
    if end_date:
        query = query.filter(Budget.start_date <= end_date)
    return query


def _check_bus(db: Session, bus_id: Optional[int]) -> None:
    if bus_id is not None and not db.query(Bus).filter(Bus.id == bus_id).first():
        raise NotFoundError("Bus not found")


def get_budget(db: Session, budget_id: int) -> Budget:
    budget = db.query(Budget).options(
        joinedload(Budget.bus), selectinload(Budget.items)
    ).filter(Budget.id == budget_id).first()
    if not budget:
        raise NotFoundError("Budget not found")
    return budget


def list_budgets(
    db: Session,
    page: int,
    limit: int,
    bus_id: Optional[int] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> Tuple[List[Budget], int]:
    query = db.query(Budget)
    if bus_id is not None:
        query = query.filter(Budget.bus_id == bus_id)
    query = _touching_period(query, start_date, end_date)

    total = query.count()
    budgets = query.options(joinedload(Budget.bus), selectinload(Budget.items)).order_by(
        Budget.created_at.desc(), Budget.id.desc()
    ).offset((page - 1) * limit).limit(limit).all()
    return budgets, total


def create_budget(db: Session, data: BudgetCreate, actor: User) -> Budget:
    validate_date_range(data.start_date, data.end_date)
    _check_bus(db, data.bus_id)

    budget = Budget(**data.model_dump(), created_by=actor.id)
    db.add(budget)
    db.flush()
    record_audit(
        db, actor.id, AuditAction.CREATE, BUDGET_ENTITY, budget.id,
        f"Budget '{budget.name}' created",
        {"bus_id": budget.bus_id, "start_date": budget.start_date.isoformat()},
    )
    db.commit()
    logger.info(f"Budget {budget.id} created by user {actor.id}")
    return get_budget(db, budget.id)


def update_budget(db: Session, budget_id: int, data: BudgetUpdate, actor: User) -> Budget:
    """Apply changes; the resulting period is validated as a whole."""
    budget = get_budget(db, budget_id)
    changes = data.model_dump(exclude_unset=True)

    start = changes.get("start_date") or budget.start_date
    end = changes["end_date"] if "end_date" in changes else budget.end_date
    validate_date_range(start, end)
    if "bus_id" in changes:
        _check_bus(db, changes["bus_id"])

    for field, value in changes.items():
        if value is None and field not in ("end_date", "bus_id"):
            continue
        setattr(budget, field, value)
    record_audit(
        db, actor.id, AuditAction.UPDATE, BUDGET_ENTITY, budget.id,
        f"Budget {budget.id} updated", {"fields": sorted(changes)},
    )
    db.commit()
    logger.info(f"Budget {budget_id} updated by user {actor.id}")
    return get_budget(db, budget_id)


def delete_budget(db: Session, budget_id: int, actor: User) -> None:
    """Delete a budget with its items."""
    budget = get_budget(db, budget_id)
    record_audit(
        db, actor.id, AuditAction.DELETE, BUDGET_ENTITY, budget.id,
        f"Budget '{budget.name}' deleted", {"items": len(budget.items)},
    )
    db.delete(budget)
    db.commit()
    logger.info(f"Budget {budget_id} deleted by user {actor.id}")


def budget_stats(
    db: Session,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> BudgetStats:
    budgets = _touching_period(
        db.query(Budget).options(joinedload(Budget.bus), selectinload(Budget.items)),
        start_date, end_date,
    ).order_by(Budget.start_date, Budget.id).all()

    zero = Decimal("0")
    return BudgetStats(
        total_budgets=len(budgets),
        total_planned_income=round_money(sum((Decimal(b.total_planned_income) for b in budgets), zero)),
        total_planned_expense=round_money(sum((Decimal(b.total_planned_expense) for b in budgets), zero)),
        total_committed=round_money(sum((b.total_committed for b in budgets), zero)),
        total_executed=round_money(sum((b.total_executed for b in budgets), zero)),
        budgets=[BudgetResponse.model_validate(b) for b in budgets],
    )


# ==================== Items ====================

def get_item(db: Session, item_id: int) -> BudgetItem:
    item = db.query(BudgetItem).filter(BudgetItem.id == item_id).first()
    if not item:
        raise NotFoundError("Budget item not found")
    return item


def list_items(
    db: Session,
    budget_id: Optional[int] = None,
    category: Optional[str] = None,
) -> List[BudgetItem]:
    query = db.query(BudgetItem).join(Budget)
    if budget_id is not None:
        query = query.filter(BudgetItem.budget_id == budget_id)
    if category:
        query = query.filter(BudgetItem.category == category)
    return query.order_by(Budget.start_date.desc(), BudgetItem.category, BudgetItem.id).all()


def create_item(db: Session, data: BudgetItemCreate, actor: User) -> BudgetItem:
    """Add a category line; a budget holds at most one line per category."""
    if not db.query(Budget).filter(Budget.id == data.budget_id).first():
        raise NotFoundError("Budget not found")
    if db.query(BudgetItem).filter(
        BudgetItem.budget_id == data.budget_id, BudgetItem.category == data.category
    ).first():
        raise BadRequestError(
            "This budget already has an item for the category",
            details={"budget_id": data.budget_id, "category": data.category},
        )

    item = BudgetItem(**data.model_dump())
    db.add(item)
    db.flush()
    record_audit(
        db, actor.id, AuditAction.CREATE, BUDGET_ITEM_ENTITY, item.id,
        f"Budget item '{item.category}' added to budget {item.budget_id}",
        {"planned_amount": str(item.planned_amount)},
    )
    db.commit()
    db.refresh(item)
    return item


def update_item(db: Session, item_id: int, data: BudgetItemUpdate, actor: User) -> BudgetItem:
    item = get_item(db, item_id)
    changes = {k: v for k, v in data.model_dump(exclude_unset=True).items() if v is not None}
    for field, value in changes.items():
        setattr(item, field, value)
    record_audit(
        db, actor.id, AuditAction.UPDATE, BUDGET_ITEM_ENTITY, item.id,
        f"Budget item {item.id} updated", {k: str(v) for k, v in changes.items()},
    )
    db.commit()
    db.refresh(item)
    return item


def delete_item(db: Session, item_id: int, actor: User) -> None:
    item = get_item(db, item_id)
    record_audit(
        db, actor.id, AuditAction.DELETE, BUDGET_ITEM_ENTITY, item.id,
        f"Budget item '{item.category}' removed from budget {item.budget_id}",
    )
    db.delete(item)
    db.commit()
