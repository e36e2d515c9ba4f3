"""
Shared FastAPI dependencies: authentication, role checks, services.
"""
from typing import Optional
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session
from busfleet.core.config import settings
from busfleet.core.errors import ForbiddenError
from busfleet.db.session import get_db
from busfleet.models.user import User, UserRole, UserSession
from busfleet.services.auth_service import authenticate_token
from busfleet.services.profit_sharing_service import ProfitSharingService

bearer_scheme = HTTPBearer(auto_error=False)


def get_current_session(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db)
) -> UserSession:
    """Resolve the active session from the bearer token or the session cookie."""
    token = credentials.credentials if credentials else request.cookies.get(settings.SESSION_COOKIE_NAME)
    _, session = authenticate_token(db, token)
    return session


def get_current_user(session: UserSession = Depends(get_current_session)) -> User:
    """Get the authenticated user."""
    return session.user


def require_roles(*roles: UserRole):
    """Dependency factory restricting an endpoint to the given roles."""
    def checker(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in roles:
            raise ForbiddenError(f"Role {current_user.role.value} is not authorized for this action")
        return current_user
    return checker


require_admin = require_roles(UserRole.ADMIN)


def get_profit_sharing_service(request: Request) -> ProfitSharingService:
    """The service instance built by the application factory."""
    return request.app.state.profit_sharing_service
