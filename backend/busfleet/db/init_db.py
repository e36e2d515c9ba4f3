"""
Database initialization script.

Creates all tables and, when INIT_ADMIN_NATIONAL_ID and INIT_ADMIN_PASSWORD
are set, a first ADMIN account to log in with.
"""
import logging
import os
from busfleet.core.logging import init_logging
from busfleet.db.session import SessionLocal, init_db
from busfleet.models.user import User, UserRole
from busfleet.schemas.user import UserCreate
from busfleet.services.auth_service import register_user

logger = logging.getLogger(__name__)


def seed_admin(national_id: str, password: str, full_name: str = "Administrator") -> None:
    db = SessionLocal()
    try:
        if db.query(User).filter(User.national_id == national_id).first():
            logger.info(f"Admin {national_id} already exists, skipping")
            return
        register_user(db, UserCreate(
            full_name=full_name,
            national_id=national_id,
            password=password,
            role=UserRole.ADMIN,
        ))
    finally:
        db.close()


if __name__ == "__main__":
    init_logging()
    logger.info("Initializing database...")
    init_db()
    admin_id = os.environ.get("INIT_ADMIN_NATIONAL_ID")
    admin_password = os.environ.get("INIT_ADMIN_PASSWORD")
    if admin_id and admin_password:
        seed_admin(admin_id, admin_password)
    logger.info("Database initialized successfully!")
