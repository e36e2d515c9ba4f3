"""
Audit log routes.
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional
from datetime import date
from busfleet.core.config import settings
from busfleet.core.utils import pagination_meta, success_response
from busfleet.db.session import get_db
from busfleet.models.user import User
from busfleet.schemas.audit import AuditLogResponse, AuditStats
from busfleet.schemas.common import PageResponse, SuccessResponse
from busfleet.api.dependencies import require_admin
from busfleet.services.audit_service import audit_stats, list_audit_logs

router = APIRouter(prefix="/audit", tags=["audit"])


@router.get("", response_model=PageResponse[AuditLogResponse])
async def get_audit_logs(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=settings.MAX_PAGE_SIZE),
    user_id: Optional[int] = Query(None, gt=0),
    action: Optional[str] = None,
    entity_type: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Browse the audit trail (admin only)."""
    logs, total = list_audit_logs(
        db, page, limit, user_id=user_id, action=action, entity_type=entity_type,
        start_date=start_date, end_date=end_date
    )
    return success_response(
        [AuditLogResponse.model_validate(entry) for entry in logs],
        meta=pagination_meta(page, limit, total)
    )


@router.get("/stats", response_model=SuccessResponse[AuditStats])
async def get_audit_stats(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Audit entry counts by action, entity type and most active users."""
    return success_response(audit_stats(db, start_date=start_date, end_date=end_date))
