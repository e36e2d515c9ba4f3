"""
Budget routes.
"""
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional
from datetime import date
from busfleet.core.config import settings
from busfleet.core.utils import pagination_meta, success_response
from busfleet.db.session import get_db
from busfleet.models.user import User
from busfleet.schemas.budget import (
    BudgetCreate, BudgetItemCreate, BudgetItemResponse, BudgetItemUpdate,
    BudgetResponse, BudgetStats, BudgetUpdate
)
from busfleet.schemas.common import DeleteResult, PageResponse, SuccessResponse
from busfleet.api.dependencies import get_current_user, require_admin
from busfleet.services import budget_service

router = APIRouter(prefix="/budgets", tags=["budgets"])


@router.get("", response_model=PageResponse[BudgetResponse])
async def list_budgets(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    bus_id: Optional[int] = Query(None, gt=0),
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """List budgets, newest first."""
    budgets, total = budget_service.list_budgets(
        db, page, limit, bus_id=bus_id, start_date=start_date, end_date=end_date
    )
    return success_response(
        [BudgetResponse.model_validate(b) for b in budgets],
        meta=pagination_meta(page, limit, total)
    )


@router.get("/stats", response_model=SuccessResponse[BudgetStats])
async def get_budget_stats(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Planned, committed and executed totals of budgets touching a period."""
    return success_response(budget_service.budget_stats(db, start_date=start_date, end_date=end_date))


# ==================== Items ====================

@router.get("/items", response_model=SuccessResponse[List[BudgetItemResponse]])
async def list_budget_items(
    budget_id: Optional[int] = Query(None, gt=0),
    category: Optional[str] = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """List budget items."""
    items = budget_service.list_items(db, budget_id=budget_id, category=category)
    return success_response([BudgetItemResponse.model_validate(i) for i in items])


@router.get("/items/{item_id}", response_model=SuccessResponse[BudgetItemResponse])
async def get_budget_item(
    item_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return success_response(BudgetItemResponse.model_validate(budget_service.get_item(db, item_id)))


@router.post("/items", response_model=SuccessResponse[BudgetItemResponse], status_code=status.HTTP_201_CREATED)
async def create_budget_item(
    item_data: BudgetItemCreate,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Add a category line to a budget."""
    item = budget_service.create_item(db, item_data, current_user)
    return success_response(BudgetItemResponse.model_validate(item), message="Budget item created")


@router.patch("/items/{item_id}", response_model=SuccessResponse[BudgetItemResponse])
async def update_budget_item(
    item_id: int,
    item_data: BudgetItemUpdate,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Update planned, committed or executed amounts."""
    item = budget_service.update_item(db, item_id, item_data, current_user)
    return success_response(BudgetItemResponse.model_validate(item))


@router.delete("/items/{item_id}", response_model=SuccessResponse[DeleteResult])
async def delete_budget_item(
    item_id: int,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    budget_service.delete_item(db, item_id, current_user)
    return success_response(DeleteResult())


# ==================== Budgets ====================

@router.get("/{budget_id}", response_model=SuccessResponse[BudgetResponse])
async def get_budget(
    budget_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get a budget with its items."""
    return success_response(BudgetResponse.model_validate(budget_service.get_budget(db, budget_id)))


@router.post("", response_model=SuccessResponse[BudgetResponse], status_code=status.HTTP_201_CREATED)
async def create_budget(
    budget_data: BudgetCreate,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Create a budget."""
    budget = budget_service.create_budget(db, budget_data, current_user)
    return success_response(BudgetResponse.model_validate(budget), message="Budget created")


@router.patch("/{budget_id}", response_model=SuccessResponse[BudgetResponse])
async def update_budget(
    budget_id: int,
    budget_data: BudgetUpdate,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Update a budget."""
    budget = budget_service.update_budget(db, budget_id, budget_data, current_user)
    return success_response(BudgetResponse.model_validate(budget))


@router.delete("/{budget_id}", response_model=SuccessResponse[DeleteResult])
async def delete_budget(
    budget_id: int,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Delete a budget and its items."""
    budget_service.delete_budget(db, budget_id, current_user)
    return success_response(DeleteResult())
