"""
User management: updates, soft deletion and reactivation.
"""
import logging
from datetime import datetime
from sqlalchemy.orm import Session
from busfleet.core.errors import BadRequestError, ConflictError, NotFoundError
from busfleet.core.security import get_password_hash
from busfleet.models.bus import Bus
from busfleet.models.user import User, UserSession
from busfleet.schemas.user import UserUpdate
from busfleet.services.audit_service import AuditAction, record_audit

logger = logging.getLogger(__name__)

USER_ENTITY = "USER"


def get_user_or_404(db: Session, user_id: int) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise NotFoundError("User not found")
    return user


def end_sessions(db: Session, user_id: int) -> int:
    """Close every open session of a user; returns how many were closed."""
    sessions = db.query(UserSession).filter(
        UserSession.user_id == user_id, UserSession.is_active.is_(True)
    ).all()
    now = datetime.utcnow()
    for session in sessions:
        session.is_active = False
        session.ended_at = now
    return len(sessions)


def update_user(db: Session, user_id: int, data: UserUpdate, actor: User) -> User:
    user = get_user_or_404(db, user_id)
    changes = data.model_dump(exclude_unset=True)

    if data.national_id and data.national_id != user.national_id:
        if db.query(User).filter(User.national_id == data.national_id, User.id != user.id).first():
            raise ConflictError("User with this national ID already exists")
    if data.email and data.email != user.email:
        if db.query(User).filter(User.email == data.email, User.id != user.id).first():
            raise ConflictError("User with this email already exists")
    if data.assigned_bus_id is not None:
        if not db.query(Bus).filter(Bus.id == data.assigned_bus_id).first():
            raise NotFoundError("Bus not found")

    password = changes.pop("password", None)
    if password:
        user.hashed_password = get_password_hash(password)
    for field, value in changes.items():
        if value is None and field not in ("email", "assigned_bus_id"):
            continue
        setattr(user, field, value)

    fields = sorted(changes) + (["password"] if password else [])
    record_audit(
        db, actor.id, AuditAction.UPDATE, USER_ENTITY, user.id,
        f"User {user.full_name} updated", {"fields": fields},
    )
    db.commit()
    db.refresh(user)
    logger.info(f"User {user.id} updated by user {actor.id}")
    return user


def deactivate_user(db: Session, user_id: int, actor: User) -> User:
    """Soft delete: the row stays, its sessions are closed."""
    if user_id == actor.id:
        raise BadRequestError("You cannot delete your own account")
    user = get_user_or_404(db, user_id)
    if not user.is_active:
        raise BadRequestError("User is already inactive")

    user.is_active = False
    closed = end_sessions(db, user.id)
    record_audit(
        db, actor.id, AuditAction.DELETE, USER_ENTITY, user.id,
        f"User {user.full_name} deactivated", {"sessions_closed": closed},
    )
    db.commit()
    db.refresh(user)
    logger.info(f"User {user.id} deactivated by user {actor.id}, {closed} sessions closed")
    return user


def activate_user(db: Session, user_id: int, actor: User) -> User:
    user = get_user_or_404(db, user_id)
    if user.is_active:
        raise BadRequestError("User is already active")

    user.is_active = True
    record_audit(
        db, actor.id, AuditAction.UPDATE, USER_ENTITY, user.id,
        f"User {user.full_name} activated", {"fields": ["is_active"]},
    )
    db.commit()
    db.refresh(user)
    logger.info(f"User {user.id} activated by user {actor.id}")
    return user
