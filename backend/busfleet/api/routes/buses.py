"""
Bus management routes.
"""
import logging
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import or_
from sqlalchemy.orm import Session
from typing import Optional
from busfleet.core.config import settings
from busfleet.core.errors import BadRequestError, ConflictError, NotFoundError
from busfleet.core.utils import pagination_meta, success_response
from busfleet.db.session import get_db
from busfleet.models.bus import Bus
from busfleet.models.user import User
from busfleet.schemas.bus import BusCreate, BusMonthlyStats, BusResponse, BusUpdate
from busfleet.schemas.common import PageResponse, SuccessResponse
from busfleet.api.dependencies import get_current_user, require_admin
from busfleet.services import bus_service
from busfleet.services.audit_service import AuditAction, record_audit

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/buses", tags=["buses"])


def get_bus_or_404(bus_id: int, db: Session) -> Bus:
    bus = db.query(Bus).filter(Bus.id == bus_id).first()
    if not bus:
        raise NotFoundError("Bus not found")
    return bus


def check_unique_bus(db: Session, internal_code: Optional[str], plate_number: Optional[str], exclude_id: Optional[int] = None):
    """Internal code and plate number are unique across the fleet."""
    clauses = []
    if internal_code:
        clauses.append(Bus.internal_code == internal_code)
    if plate_number:
        clauses.append(Bus.plate_number == plate_number)
    if not clauses:
        return
    query = db.query(Bus).filter(or_(*clauses))
    if exclude_id is not None:
        query = query.filter(Bus.id != exclude_id)
    if query.first():
        raise ConflictError("A bus with this internal code or plate number already exists")


@router.get("", response_model=PageResponse[BusResponse])
async def list_buses(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    search: Optional[str] = None,
    is_active: Optional[bool] = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """List buses."""
    query = db.query(Bus)
    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(Bus.internal_code.ilike(pattern), Bus.plate_number.ilike(pattern)))
    if is_active is not None:
        query = query.filter(Bus.is_active.is_(is_active))

    total = query.count()
    buses = query.order_by(Bus.internal_code).offset((page - 1) * limit).limit(limit).all()
    return success_response(
        [BusResponse.model_validate(b) for b in buses],
        meta=pagination_meta(page, limit, total)
    )


@router.get("/{bus_id}", response_model=SuccessResponse[BusResponse])
async def get_bus(
    bus_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get bus details."""
    return success_response(BusResponse.model_validate(get_bus_or_404(bus_id, db)))


@router.post("", response_model=SuccessResponse[BusResponse], status_code=status.HTTP_201_CREATED)
async def create_bus(
    bus_data: BusCreate,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Register a new bus."""
    check_unique_bus(db, bus_data.internal_code, bus_data.plate_number)

    bus = Bus(**bus_data.model_dump(), is_active=True)
    db.add(bus)
    db.flush()
    record_audit(
        db, current_user.id, AuditAction.CREATE, "BUS", bus.id,
        f"Bus {bus.internal_code} ({bus.plate_number}) created"
    )
    db.commit()
    db.refresh(bus)
    logger.info(f"Bus {bus.id} created by user {current_user.id}")
    return success_response(BusResponse.model_validate(bus), message="Bus created")


@router.patch("/{bus_id}", response_model=SuccessResponse[BusResponse])
async def update_bus(
    bus_id: int,
    bus_data: BusUpdate,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Update bus fields."""
    bus = get_bus_or_404(bus_id, db)
    changes = bus_data.model_dump(exclude_unset=True)
    check_unique_bus(db, changes.get("internal_code"), changes.get("plate_number"), exclude_id=bus.id)

    for field, value in changes.items():
        if value is None and field != "description":
            continue
        setattr(bus, field, value)
    record_audit(
        db, current_user.id, AuditAction.UPDATE, "BUS", bus.id,
        f"Bus {bus.internal_code} updated", {"fields": sorted(changes)}
    )
    db.commit()
    db.refresh(bus)
    return success_response(BusResponse.model_validate(bus))


@router.delete("/{bus_id}", response_model=SuccessResponse[BusResponse])
async def delete_bus(
    bus_id: int,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Deactivate a bus; its routes and expenses are kept."""
    bus = get_bus_or_404(bus_id, db)
    if not bus.is_active:
        raise BadRequestError("Bus is already inactive")

    bus.is_active = False
    record_audit(
        db, current_user.id, AuditAction.DELETE, "BUS", bus.id,
        f"Bus {bus.internal_code} deactivated"
    )
    db.commit()
    db.refresh(bus)
    logger.info(f"Bus {bus.id} deactivated by user {current_user.id}")
    return success_response(BusResponse.model_validate(bus), message="Bus deactivated")


@router.post("/{bus_id}/activate", response_model=SuccessResponse[BusResponse])
async def activate_bus(
    bus_id: int,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Reactivate a deactivated bus."""
    bus = get_bus_or_404(bus_id, db)
    if bus.is_active:
        raise BadRequestError("Bus is already active")

    bus.is_active = True
    record_audit(
        db, current_user.id, AuditAction.UPDATE, "BUS", bus.id,
        f"Bus {bus.internal_code} activated", {"fields": ["is_active"]}
    )
    db.commit()
    db.refresh(bus)
    return success_response(BusResponse.model_validate(bus), message="Bus activated")


@router.get("/{bus_id}/monthly-stats", response_model=SuccessResponse[BusMonthlyStats])
async def get_monthly_stats(
    bus_id: int,
    year: Optional[int] = Query(None, ge=2000, le=2100),
    month: Optional[int] = Query(None, ge=1, le=12),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Income, expenses and target progress of a bus for one month."""
    return success_response(bus_service.monthly_stats(db, bus_id, year=year, month=month))
