"""
Seed a development database with demo accounts and services.

Usage: python -m clinicflow.seed
"""

import logging
import sys
from decimal import Decimal

from sqlalchemy.orm import Session

from .database import Base, SessionLocal, engine
from .models import Clinic, Service, User, UserRole
from .security_utils import hash_password

logger = logging.getLogger(__name__)

DEMO_USERS = [
    ("admin", "admin123", "Super", "Admin", "admin@clinicflow.com", "1234567890", UserRole.SUPER_ADMIN, False),
    ("clinicadmin", "clinic123", "Clinic", "Admin", "clinic.admin@clinicflow.com", "1234567891", UserRole.CLINIC_ADMIN, True),
    ("doctor", "doctor123", "John", "Doc", "doctor@clinicflow.com", "1234567892", UserRole.DOCTOR, True),
    ("patient", "patient123", "Jane", "Patient", "patient@example.com", "1234567893", UserRole.CLIENT, False),
]

DEMO_SERVICES = [
    ("General Consultation", "Regular checkup and consultation", Decimal("50.00"), 30),
    ("Specialist Consultation", "Consultation with a specialist doctor", Decimal("100.00"), 45),
]


def seed_initial_data(db: Session) -> Clinic:
    """Create the demo clinic, its staff, a client and two services"""
    clinic = Clinic(
        name="ClinicFlow Medical Center",
        address="123 Healthcare Ave",
        phone="1234567890",
        email="contact@clinicflow.com",
    )
    db.add(clinic)
    db.flush()

    for username, password, first, last, email, phone, role, in_clinic in DEMO_USERS:
        db.add(
            User(
                username=username,
                password=hash_password(password),
                first_name=first,
                last_name=last,
                email=email,
                phone=phone,
                role=role,
                clinic_id=clinic.id if in_clinic else None,
            )
        )

    for name, description, price, duration in DEMO_SERVICES:
        db.add(
            Service(
                name=name,
                description=description,
                price=price,
                duration=duration,
                clinic_id=clinic.id,
            )
        )

    db.commit()
    return clinic


def main() -> int:
    logging.basicConfig(level=logging.INFO, format="%(message)s")
    Base.metadata.create_all(bind=engine, checkfirst=True)

    db = SessionLocal()
    try:
        if db.query(User).filter(User.username == "admin").first():
            logger.info("Seed data already present, nothing to do")
            return 0
        clinic = seed_initial_data(db)
        logger.info(f"✅ Seeded clinic {clinic.id} with demo users and services")
        return 0
    except Exception as e:
        db.rollback()
        logger.error(f"❌ Seeding failed: {e}")
        return 1
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
