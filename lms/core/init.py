"""
Application initialization module
Handles initial setup tasks like creating the default admin account
"""

import logging

from sqlalchemy.orm import Session

from lms.core.config import settings
from lms.core.enum import UserRole
from lms.core.hasher import PasswordHelper
from lms.models.user import User
from lms.utils.media_signing import media_url_issuer

logger = logging.getLogger(__name__)


def init_super_admin(db: Session) -> None:
    """
    Create the default admin account if no admin exists yet.

    Args:
        db: Database session
    """
    try:
        existing_admin = (
            db.query(User).filter(User.role == UserRole.ADMIN.value).first()
        )

        if existing_admin:
            logger.info(f"✅ Admin user already exists (ID: {existing_admin.id})")
            return

        super_admin = User(
            user_name=settings.admin_default_name,
            email=settings.admin_default_email.lower(),
            hashed_password=PasswordHelper.hash_password(
                settings.admin_default_password
            ),
            role=UserRole.ADMIN.value,
            is_blocked=False,
            courses_count=0,
        )

        db.add(super_admin)
        db.commit()
        db.refresh(super_admin)

        logger.info("=" * 60)
        logger.info("🎉 DEFAULT ADMIN CREATED")
        logger.info(f"Email: {settings.admin_default_email}")
        logger.info("=" * 60)
        logger.warning("⚠️  IMPORTANT: Change the default password immediately!")

    except Exception as e:
        logger.error(f"❌ Failed to initialize super admin: {e}")
        db.rollback()
        raise


def check_media_signing() -> None:
    """Refuse to start without a media signing key."""
    media_url_issuer.ensure_configured()
    logger.info("✅ Media signing key configured")


def initialize_application(db: Session) -> None:
    """
    Run all application initialization tasks.

    Args:
        db: Database session
    """
    logger.info("🚀 Starting application initialization...")

    check_media_signing()
    init_super_admin(db)

    logger.info("✅ Application initialization completed!")
