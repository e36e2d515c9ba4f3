"""
Administrative bus expense routes.
"""
import logging
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import func
from sqlalchemy.orm import Session
from typing import Optional
from datetime import date
from decimal import Decimal
from busfleet.core.config import settings
from busfleet.core.errors import NotFoundError
from busfleet.core.utils import pagination_meta, round_money, success_response
from busfleet.db.session import get_db
from busfleet.models.bus import Bus
from busfleet.models.expense import BusExpense
from busfleet.models.invoice import Invoice
from busfleet.models.user import User
from busfleet.schemas.common import DeleteResult, PageResponse, SuccessResponse
from busfleet.schemas.expense import (
    BusExpenseCreate, BusExpenseResponse, BusExpenseUpdate, CategoryTotal, ExpenseStatistics
)
from busfleet.api.dependencies import get_current_user, require_admin
from busfleet.services.audit_service import AuditAction, record_audit

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/expenses", tags=["expenses"])


def get_expense_or_404(expense_id: int, db: Session) -> BusExpense:
    expense = db.query(BusExpense).filter(BusExpense.id == expense_id).first()
    if not expense:
        raise NotFoundError("Expense not found")
    return expense


def check_references(db: Session, bus_id: Optional[int], invoice_id: Optional[int]):
    """The bus and the invoice an expense points at must exist."""
    if bus_id is not None and not db.query(Bus).filter(Bus.id == bus_id).first():
        raise NotFoundError("Bus not found")
    if invoice_id is not None and not db.query(Invoice).filter(Invoice.id == invoice_id).first():
        raise NotFoundError("Invoice not found")


def filter_expenses(
    query,
    bus_id: Optional[int] = None,
    category: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
):
    if bus_id is not None:
        query = query.filter(BusExpense.bus_id == bus_id)
    if category:
        query = query.filter(BusExpense.category == category)
    if start_date:
        query = query.filter(BusExpense.expense_date >= start_date)
    if end_date:
        query = query.filter(BusExpense.expense_date <= end_date)
    return query


@router.get("", response_model=PageResponse[BusExpenseResponse])
async def list_expenses(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    bus_id: Optional[int] = Query(None, gt=0),
    category: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """List administrative expenses, latest first."""
    query = filter_expenses(db.query(BusExpense), bus_id, category, start_date, end_date)

    total = query.count()
    expenses = query.order_by(
        BusExpense.expense_date.desc(), BusExpense.id.desc()
    ).offset((page - 1) * limit).limit(limit).all()
    return success_response(
        [BusExpenseResponse.model_validate(e) for e in expenses],
        meta=pagination_meta(page, limit, total)
    )


@router.get("/statistics", response_model=SuccessResponse[ExpenseStatistics])
async def get_expense_statistics(
    bus_id: Optional[int] = Query(None, gt=0),
    category: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Total, average and per-category sums of administrative expenses."""
    total_count, total_amount = filter_expenses(
        db.query(func.count(BusExpense.id), func.sum(BusExpense.amount)),
        bus_id, category, start_date, end_date
    ).one()
    total_amount = Decimal(total_amount or 0)

    amount = func.sum(BusExpense.amount)
    by_category = filter_expenses(
        db.query(BusExpense.category, amount, func.count(BusExpense.id)),
        bus_id, category, start_date, end_date
    ).group_by(BusExpense.category).order_by(amount.desc(), BusExpense.category).all()

    return success_response(ExpenseStatistics(
        total_expenses=round_money(total_amount),
        avg_expense=round_money(total_amount / total_count) if total_count else round_money(Decimal(0)),
        total_count=total_count,
        by_category=[
            CategoryTotal(category=name, total=round_money(Decimal(total)), count=count)
            for name, total, count in by_category
        ],
    ))


@router.get("/{expense_id}", response_model=SuccessResponse[BusExpenseResponse])
async def get_expense(
    expense_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return success_response(BusExpenseResponse.model_validate(get_expense_or_404(expense_id, db)))


@router.post("", response_model=SuccessResponse[BusExpenseResponse], status_code=status.HTTP_201_CREATED)
async def create_expense(
    expense_data: BusExpenseCreate,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Register an administrative expense for a bus."""
    check_references(db, expense_data.bus_id, expense_data.invoice_id)

    expense = BusExpense(**expense_data.model_dump(), created_by=current_user.id)
    db.add(expense)
    db.flush()
    record_audit(
        db, current_user.id, AuditAction.CREATE, "BUS_EXPENSE", expense.id,
        f"Expense of {expense.amount} registered for bus {expense.bus_id}",
        {"expense_date": expense.expense_date.isoformat(), "category": expense.category}
    )
    db.commit()
    db.refresh(expense)
    logger.info(f"Bus expense {expense.id} created for bus {expense.bus_id}")
    return success_response(BusExpenseResponse.model_validate(expense), message="Expense created")


@router.patch("/{expense_id}", response_model=SuccessResponse[BusExpenseResponse])
async def update_expense(
    expense_id: int,
    expense_data: BusExpenseUpdate,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Update an administrative expense."""
    expense = get_expense_or_404(expense_id, db)
    changes = expense_data.model_dump(exclude_unset=True)
    check_references(db, changes.get("bus_id"), changes.get("invoice_id"))

    for field, value in changes.items():
        if value is None and field not in ("description", "category", "invoice_id"):
            continue
        setattr(expense, field, value)
    record_audit(
        db, current_user.id, AuditAction.UPDATE, "BUS_EXPENSE", expense.id,
        f"Expense {expense.id} of bus {expense.bus_id} updated", {"fields": sorted(changes)}
    )
    db.commit()
    db.refresh(expense)
    return success_response(BusExpenseResponse.model_validate(expense))


@router.delete("/{expense_id}", response_model=SuccessResponse[DeleteResult])
async def delete_expense(
    expense_id: int,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Delete an administrative expense."""
    expense = get_expense_or_404(expense_id, db)

    record_audit(
        db, current_user.id, AuditAction.DELETE, "BUS_EXPENSE", expense.id,
        f"Expense {expense.id} of bus {expense.bus_id} deleted", {"amount": str(expense.amount)}
    )
    db.delete(expense)
    db.commit()
    return success_response(DeleteResult())
