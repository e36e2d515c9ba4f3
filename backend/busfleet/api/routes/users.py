"""
User management routes.
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy import or_
from sqlalchemy.orm import Session
from typing import Optional
from busfleet.core.config import settings
from busfleet.core.utils import pagination_meta, success_response
from busfleet.db.session import get_db
from busfleet.schemas.common import PageResponse, SuccessResponse
from busfleet.schemas.user import UserResponse, UserUpdate
from busfleet.models.user import User, UserRole
from busfleet.api.dependencies import get_current_user, require_admin
from busfleet.services import user_service

router = APIRouter(prefix="/users", tags=["users"])


@router.get("", response_model=PageResponse[UserResponse])
async def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    search: Optional[str] = None,
    role: Optional[UserRole] = None,
    is_active: Optional[bool] = None,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """List users (admin only)."""
    query = db.query(User)
    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(
            User.full_name.ilike(pattern), User.email.ilike(pattern), User.national_id.ilike(pattern)
        ))
    if role is not None:
        query = query.filter(User.role == role)
    if is_active is not None:
        query = query.filter(User.is_active.is_(is_active))

    total = query.count()
    users = query.order_by(User.full_name, User.id).offset((page - 1) * limit).limit(limit).all()
    return success_response(
        [UserResponse.model_validate(u) for u in users],
        meta=pagination_meta(page, limit, total)
    )


@router.get("/{user_id}", response_model=SuccessResponse[UserResponse])
async def get_user(
    user_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get user by ID."""
    return success_response(UserResponse.model_validate(user_service.get_user_or_404(db, user_id)))


@router.patch("/{user_id}", response_model=SuccessResponse[UserResponse])
async def update_user(
    user_id: int,
    user_data: UserUpdate,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Update a user (admin only)."""
    user = user_service.update_user(db, user_id, user_data, current_user)
    return success_response(UserResponse.model_validate(user))


@router.delete("/{user_id}", response_model=SuccessResponse[UserResponse])
async def delete_user(
    user_id: int,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Deactivate a user and close their sessions."""
    user = user_service.deactivate_user(db, user_id, current_user)
    return success_response(UserResponse.model_validate(user), message="User deactivated")


@router.post("/{user_id}/activate", response_model=SuccessResponse[UserResponse])
async def activate_user(
    user_id: int,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Reactivate a deactivated user."""
    user = user_service.activate_user(db, user_id, current_user)
    return success_response(UserResponse.model_validate(user), message="User activated")
