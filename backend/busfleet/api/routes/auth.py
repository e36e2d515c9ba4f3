"""
Authentication routes for login, logout and user registration.
"""
from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.orm import Session
from busfleet.core.config import settings
from busfleet.core.utils import success_response
from busfleet.db.session import get_db
from busfleet.schemas.common import SuccessResponse
from busfleet.schemas.user import UserCreate, UserLogin, LoginResponse, UserResponse
from busfleet.models.user import User, UserSession
from busfleet.api.dependencies import get_current_session, get_current_user, require_admin
from busfleet.services import auth_service

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=SuccessResponse[LoginResponse])
async def login(
    credentials: UserLogin,
    request: Request,
    response: Response,
    db: Session = Depends(get_db)
):
    """Login and get a JWT bound to a new session."""
    token, session = auth_service.login(
        db,
        credentials.national_id,
        credentials.password,
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )
    response.set_cookie(
        settings.SESSION_COOKIE_NAME,
        token,
        httponly=True,
        samesite="lax",
        secure=settings.is_production,
        max_age=settings.ACCESS_TOKEN_EXPIRE_DAYS * 24 * 3600,
    )
    return success_response(LoginResponse(
        access_token=token,
        session_id=session.id,
        expires_at=session.expires_at,
        user=UserResponse.model_validate(session.user),
    ))


@router.post("/logout", response_model=SuccessResponse[dict])
async def logout(
    response: Response,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db)
):
    """Close the current session."""
    auth_service.logout(db, session.id, session.user_id)
    response.delete_cookie(settings.SESSION_COOKIE_NAME)
    return success_response({"logged_out": True}, message="Logged out successfully")


@router.get("/me", response_model=SuccessResponse[UserResponse])
async def me(current_user: User = Depends(get_current_user)):
    """Get current user information."""
    return success_response(UserResponse.model_validate(current_user))


@router.post("/register", response_model=SuccessResponse[UserResponse], status_code=status.HTTP_201_CREATED)
async def register(
    user_data: UserCreate,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Register a new user (admin only)."""
    user = auth_service.register_user(db, user_data, creator_id=current_user.id)
    return success_response(UserResponse.model_validate(user), message="User created")
