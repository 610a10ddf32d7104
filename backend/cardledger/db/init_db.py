"""
Database initialization script.
"""
import logging
from cardledger.core.config import settings
from cardledger.core.security import get_password_hash
from cardledger.db.session import SessionLocal, init_db
from cardledger.models import User, UserRole

logger = logging.getLogger(__name__)


def bootstrap_super_admin(db) -> bool:
    """Create the first super admin from settings when the users table is empty."""
    if not settings.BOOTSTRAP_ADMIN_EMAIL or not settings.BOOTSTRAP_ADMIN_PASSWORD:
        return False
    if db.query(User).first():
        return False

    db.add(User(
        name="Super Admin",
        email=settings.BOOTSTRAP_ADMIN_EMAIL.lower(),
        hashed_password=get_password_hash(settings.BOOTSTRAP_ADMIN_PASSWORD),
        role=UserRole.SUPER_ADMIN
    ))
    db.commit()
    logger.info(f"Created super admin {settings.BOOTSTRAP_ADMIN_EMAIL}")
    return True


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    print("Initializing database...")
    init_db()
    session = SessionLocal()
    try:
        bootstrap_super_admin(session)
    finally:
        session.close()
    print("Database initialized successfully!")
