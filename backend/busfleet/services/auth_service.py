"""
Login sessions backing the JWT tokens.
"""
import logging
from datetime import datetime
from typing import Optional, Tuple
from sqlalchemy.orm import Session, joinedload
from busfleet.core.errors import ConflictError, UnauthorizedError
from busfleet.core.security import (
    create_access_token, decode_access_token, get_password_hash,
    session_expiry, verify_password
)
from busfleet.models.user import User, UserSession
from busfleet.schemas.user import UserCreate
from busfleet.services.audit_service import AuditAction, record_audit

logger = logging.getLogger(__name__)


def login(
    db: Session,
    national_id: str,
    password: str,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
) -> Tuple[str, UserSession]:
    """Verify credentials, open a session and return (token, session)."""
    user = db.query(User).filter(User.national_id == national_id).first()
    if not user or not verify_password(password, user.hashed_password):
        raise UnauthorizedError("Invalid credentials")
    if not user.is_active:
        raise UnauthorizedError("User account is inactive")

    session = UserSession(
        user_id=user.id,
        ip_address=ip_address,
        user_agent=user_agent[:255] if user_agent else None,
        expires_at=session_expiry(),
        is_active=True,
    )
    db.add(session)
    db.flush()
    record_audit(
        db, user.id, AuditAction.LOGIN, "SESSION", session.id,
        f"User {user.full_name} logged in",
        {"ip_address": ip_address, "user_agent": user_agent},
    )
    db.commit()
    db.refresh(session)

    token = create_access_token(
        {"sub": user.national_id, "user_id": user.id, "session_id": session.id},
        expires_at=session.expires_at,
    )
    logger.info(f"User {user.national_id} logged in (session {session.id})")
    return token, session


def logout(db: Session, session_id: int, user_id: int) -> None:
    session = db.query(UserSession).filter(UserSession.id == session_id).first()
    if session and session.is_active:
        session.is_active = False
        session.ended_at = datetime.utcnow()
    record_audit(db, user_id, AuditAction.LOGOUT, "SESSION", session_id, "User logged out")
    db.commit()
    logger.info(f"User {user_id} logged out (session {session_id})")


def authenticate_token(db: Session, token: Optional[str]) -> Tuple[User, UserSession]:
    """Resolve a bearer token to its active session and user."""
    if not token:
        raise UnauthorizedError("No token provided")

    payload = decode_access_token(token)
    if not payload or "session_id" not in payload:
        raise UnauthorizedError("Invalid or expired token")

    session = db.query(UserSession).options(joinedload(UserSession.user)).filter(
        UserSession.id == payload["session_id"]
    ).first()
    if not session or not session.is_active:
        raise UnauthorizedError("Session is not active")
    if not session.user.is_active:
        raise UnauthorizedError("User is not active")

    if session.expires_at and session.expires_at < datetime.utcnow():
        session.is_active = False
        session.ended_at = datetime.utcnow()
        db.commit()
        raise UnauthorizedError("Session has expired")

    return session.user, session


def register_user(db: Session, data: UserCreate, creator_id: Optional[int] = None) -> User:
    if db.query(User).filter(User.national_id == data.national_id).first():
        raise ConflictError("User with this national ID already exists")
    if data.email and db.query(User).filter(User.email == data.email).first():
        raise ConflictError("User with this email already exists")

    user = User(
        full_name=data.full_name,
        national_id=data.national_id,
        email=data.email,
        hashed_password=get_password_hash(data.password),
        role=data.role,
        assigned_bus_id=data.assigned_bus_id,
        is_active=True,
    )
    db.add(user)
    db.flush()
    record_audit(
        db, creator_id, AuditAction.CREATE, "USER", user.id,
        f"User {user.full_name} created", {"role": data.role.value},
    )
    db.commit()
    db.refresh(user)
    logger.info(f"User created: {user.national_id} (id {user.id})")
    return user
