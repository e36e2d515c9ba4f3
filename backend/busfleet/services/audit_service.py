"""
Audit trail service.
"""
import logging
from typing import Any, Dict, Optional, Tuple, List
from datetime import date, datetime, time, timedelta
from sqlalchemy import func
from sqlalchemy.orm import Session
from busfleet.models.audit import AuditLog
from busfleet.models.user import User
from busfleet.schemas.audit import ActionCount, AuditStats, EntityCount, UserActivity

logger = logging.getLogger(__name__)


class AuditAction:
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    LOGIN = "LOGIN"
    LOGOUT = "LOGOUT"


def record_audit(
    db: Session,
    actor_user_id: Optional[int],
    action: str,
    entity_type: str,
    entity_id: Optional[int] = None,
    description: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> AuditLog:
    """Add an audit row to the caller's transaction; the caller commits."""
    entry = AuditLog(
        actor_user_id=actor_user_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        description=description,
        extra=metadata,
    )
    db.add(entry)
    return entry


def _within_dates(query, start_date: Optional[date], end_date: Optional[date]):
    if start_date:
        query = query.filter(AuditLog.created_at >= datetime.combine(start_date, time.min))
    if end_date:
        # end_date is inclusive of the whole day
        query = query.filter(AuditLog.created_at < datetime.combine(end_date + timedelta(days=1), time.min))
    return query


def list_audit_logs(
    db: Session,
    page: int,
    limit: int,
    user_id: Optional[int] = None,
    action: Optional[str] = None,
    entity_type: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> Tuple[List[AuditLog], int]:
    """Filtered audit entries, newest first, with the unpaginated total."""
    query = db.query(AuditLog)
    if user_id is not None:
        query = query.filter(AuditLog.actor_user_id == user_id)
    if action:
        query = query.filter(AuditLog.action == action)
    if entity_type:
        query = query.filter(AuditLog.entity_type == entity_type)
    query = _within_dates(query, start_date, end_date)

    total = query.count()
    logs = query.order_by(AuditLog.created_at.desc(), AuditLog.id.desc()).offset(
        (page - 1) * limit
    ).limit(limit).all()
    return logs, total


def audit_stats(
    db: Session,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    top: int = 5,
) -> AuditStats:
    """Entry counts per action, per entity type and for the most active users."""
    total = _within_dates(db.query(AuditLog), start_date, end_date).count()

    count = func.count(AuditLog.id)
    by_action = _within_dates(
        db.query(AuditLog.action, count), start_date, end_date
    ).group_by(AuditLog.action).order_by(count.desc(), AuditLog.action).all()
    by_entity = _within_dates(
        db.query(AuditLog.entity_type, count), start_date, end_date
    ).group_by(AuditLog.entity_type).order_by(count.desc(), AuditLog.entity_type).all()
    by_user = _within_dates(
        db.query(AuditLog.actor_user_id, count).filter(AuditLog.actor_user_id.isnot(None)),
        start_date, end_date,
    ).group_by(AuditLog.actor_user_id).order_by(count.desc(), AuditLog.actor_user_id).limit(top).all()

    users = {
        u.id: u for u in db.query(User).filter(User.id.in_([row[0] for row in by_user])).all()
    } if by_user else {}

    return AuditStats(
        total_logs=total,
        by_action=[ActionCount(action=action, count=n) for action, n in by_action],
        by_entity=[EntityCount(entity_type=entity, count=n) for entity, n in by_entity],
        top_users=[
            UserActivity(
                user_id=user_id,
                user_name=users[user_id].full_name if user_id in users else None,
                role=users[user_id].role.value if user_id in users else None,
                count=n,
            )
            for user_id, n in by_user
        ],
    )
