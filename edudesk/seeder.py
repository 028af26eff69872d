# edudesk/seeder.py
import logging

from sqlalchemy.orm import Session

from edudesk.core.config import settings
from edudesk.database import SessionLocal, engine
from edudesk.models.base import Base
from edudesk.models.brochure import BrochureCategory, BrochureType
from edudesk.models.role import Role
from edudesk.models.user import User, UserRole

logger = logging.getLogger(__name__)

ROLE_NAMES = ["superadmin", "admin", "agent"]
DEFAULT_BROCHURE_TYPES = {
    "Undergraduate": ["Course Guide", "Fees", "Scholarships"],
    "Postgraduate": ["Course Guide", "Fees", "Scholarships"],
}


def create_tables():
    """Create all tables"""
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables created")


def seed_roles(db: Session):
    """Seed roles table with required roles"""
    existing_role_names = {role.name for role in db.query(Role).all()}

    for name in ROLE_NAMES:
        if name not in existing_role_names:
            db.add(Role(name=name))

    db.commit()
    logger.info("Roles seeded")


def seed_admin_user(db: Session):
    """Create initial superadmin user"""
    admin_email = settings.admin_email

    if db.query(User).filter(User.email == admin_email).first():
        logger.info("Admin user already exists")
        return

    admin_user = User(
        email=admin_email,
        first_name="System",
        last_name="Administrator",
        is_active=True
    )
    admin_user.set_password(settings.admin_password)
    db.add(admin_user)
    db.flush()  # Get the user ID

    for role in db.query(Role).filter(Role.name.in_(["superadmin", "admin"])).all():
        db.add(UserRole(user_id=admin_user.id, role_id=role.id))

    db.commit()
    logger.info(f"Admin user created: {admin_email}")


def seed_brochure_types(db: Session):
    """Seed default brochure types and their categories"""
    for type_name, category_names in DEFAULT_BROCHURE_TYPES.items():
        brochure_type = db.query(BrochureType).filter(BrochureType.name == type_name).first()
        if brochure_type:
            continue
        brochure_type = BrochureType(name=type_name)
        db.add(brochure_type)
        db.flush()
        for category_name in category_names:
            db.add(BrochureCategory(name=category_name, brochure_type_id=brochure_type.id))

    db.commit()
    logger.info("Brochure types seeded")


def run_seeder():
    """Main seeder function"""
    logger.info("Starting database seeding...")

    db = SessionLocal()

    try:
        create_tables()
        seed_roles(db)
        seed_admin_user(db)
        seed_brochure_types(db)
        logger.info("Database seeding completed successfully")
    except Exception as e:
        logger.error(f"Error during seeding: {e}", exc_info=True)
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    logging.basicConfig(level=settings.log_level)
    run_seeder()
