"""Seed the default admin account if configured and not present."""
import logging

from nursing_portal.api.deps import get_password_hash
from nursing_portal.config import settings
from nursing_portal.models.user import User, UserRole

logger = logging.getLogger(__name__)


async def seed_admin():
    if not settings.admin_password:
        return
    email = settings.admin_email.lower()
    existing = await User.find_one(User.email == email)
    if existing:
        return
    await User(
        email=email,
        hashed_password=get_password_hash(settings.admin_password),
        role=UserRole.ADMIN,
        full_name=settings.admin_full_name,
    ).insert()
    logger.info(f"Seeded admin account {email}")
