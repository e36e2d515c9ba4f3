"""
Daily route routes.
"""
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import Optional
from datetime import date
from busfleet.core.config import settings
from busfleet.core.utils import pagination_meta, success_response
from busfleet.db.session import get_db
from busfleet.models.user import User
from busfleet.schemas.common import DeleteResult, PageResponse, SuccessResponse
from busfleet.schemas.route import RouteCreate, RouteResponse, RouteStats, RouteUpdate
from busfleet.api.dependencies import get_current_user, require_admin
from busfleet.services import route_service

router = APIRouter(prefix="/routes", tags=["routes"])


@router.get("", response_model=PageResponse[RouteResponse])
async def list_routes(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    bus_id: Optional[int] = Query(None, gt=0),
    worker_id: Optional[int] = Query(None, gt=0),
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """List routes, latest first."""
    routes, total = route_service.list_routes(
        db, page, limit, bus_id=bus_id, worker_id=worker_id,
        start_date=start_date, end_date=end_date
    )
    return success_response(
        [RouteResponse.model_validate(r) for r in routes],
        meta=pagination_meta(page, limit, total)
    )


@router.get("/stats", response_model=SuccessResponse[RouteStats])
async def get_route_stats(
    bus_id: Optional[int] = Query(None, gt=0),
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Totals and averages over routes; workers see their assigned bus only."""
    stats = route_service.route_stats(
        db, current_user, bus_id=bus_id, start_date=start_date, end_date=end_date
    )
    return success_response(stats)


@router.get("/{route_id}", response_model=SuccessResponse[RouteResponse])
async def get_route(
    route_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get a route with its expense lines."""
    return success_response(RouteResponse.model_validate(route_service.get_route(db, route_id)))


@router.post("", response_model=SuccessResponse[RouteResponse], status_code=status.HTTP_201_CREATED)
async def create_route(
    route_data: RouteCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Register a route; totals are computed from the expense lines."""
    route = route_service.create_route(db, route_data, current_user)
    return success_response(RouteResponse.model_validate(route), message="Route created")


@router.patch("/{route_id}", response_model=SuccessResponse[RouteResponse])
async def update_route(
    route_id: int,
    route_data: RouteUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Update a route and recompute its net income."""
    route = route_service.update_route(db, route_id, route_data, current_user)
    return success_response(RouteResponse.model_validate(route))


@router.delete("/{route_id}", response_model=SuccessResponse[DeleteResult])
async def delete_route(
    route_id: int,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Delete a route."""
    route_service.delete_route(db, route_id, current_user)
    return success_response(DeleteResult())
