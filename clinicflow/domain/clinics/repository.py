"""Clinic repository - Database operations for clinics, services and doctors"""

from typing import Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from ...models import Appointment, Clinic, Service, User, UserRole


class ClinicRepository:
    """Repository for clinic, service and doctor database operations"""

    # Clinic Methods
    @staticmethod
    def list_clinics(db: Session) -> list[Clinic]:
        """Get all clinics"""
        return db.query(Clinic).order_by(Clinic.id).all()

    @staticmethod
    def get_clinic(db: Session, clinic_id: int) -> Optional[Clinic]:
        """Get a clinic by ID"""
        return db.query(Clinic).filter(Clinic.id == clinic_id).first()

    @staticmethod
    def create_clinic(db: Session, **clinic_data) -> Clinic:
        """Create a new clinic"""
        clinic = Clinic(**clinic_data)
        db.add(clinic)
        db.commit()
        db.refresh(clinic)
        return clinic

    @staticmethod
    def update_clinic(db: Session, clinic: Clinic, **updates) -> Clinic:
        """Update a clinic with provided fields"""
        for key, value in updates.items():
            if value is not None and hasattr(clinic, key):
                setattr(clinic, key, value)

        db.commit()
        db.refresh(clinic)
        return clinic

    @staticmethod
    def delete_clinic(db: Session, clinic: Clinic) -> None:
        """Delete a clinic"""
        db.delete(clinic)
        db.commit()

    @staticmethod
    def count_dependents(db: Session, clinic_id: int) -> dict[str, int]:
        """Count rows that reference a clinic"""
        return {
            "services": db.query(func.count(Service.id))
            .filter(Service.clinic_id == clinic_id)
            .scalar(),
            "appointments": db.query(func.count(Appointment.id))
            .filter(Appointment.clinic_id == clinic_id)
            .scalar(),
            "users": db.query(func.count(User.id)).filter(User.clinic_id == clinic_id).scalar(),
        }

    # Service Methods
    @staticmethod
    def get_service(db: Session, service_id: int) -> Optional[Service]:
        """Get a service by ID"""
        return db.query(Service).filter(Service.id == service_id).first()

    @staticmethod
    def list_services_by_clinic(db: Session, clinic_id: int) -> list[Service]:
        """Get all services offered by a clinic"""
        return db.query(Service).filter(Service.clinic_id == clinic_id).order_by(Service.id).all()

    @staticmethod
    def create_service(db: Session, **service_data) -> Service:
        """Create a new service"""
        service = Service(**service_data)
        db.add(service)
        db.commit()
        db.refresh(service)
        return service

    @staticmethod
    def update_service(db: Session, service: Service, **updates) -> Service:
        """Update a service with provided fields"""
        for key, value in updates.items():
            if value is not None and hasattr(service, key):
                setattr(service, key, value)

        db.commit()
        db.refresh(service)
        return service

    @staticmethod
    def delete_service(db: Session, service: Service) -> None:
        """Delete a service"""
        db.delete(service)
        db.commit()

    @staticmethod
    def count_service_appointments(db: Session, service_id: int) -> int:
        """Count appointments booked for a service, in any status"""
        return (
            db.query(func.count(Appointment.id))
            .filter(Appointment.service_id == service_id)
            .scalar()
        )

    # Doctor Methods
    @staticmethod
    def list_doctors_by_clinic(db: Session, clinic_id: int) -> list[User]:
        """Get doctors of a clinic in listing order (ascending ID)"""
        return (
            db.query(User)
            .filter(User.clinic_id == clinic_id, User.role == UserRole.DOCTOR)
            .order_by(User.id)
            .all()
        )

    @staticmethod
    def get_doctor(db: Session, doctor_id: int) -> Optional[User]:
        """Get a user by ID, only if it is a doctor"""
        return db.query(User).filter(User.id == doctor_id, User.role == UserRole.DOCTOR).first()

    @staticmethod
    def get_user(db: Session, user_id: int) -> Optional[User]:
        """Get any user by ID"""
        return db.query(User).filter(User.id == user_id).first()

    # Staff Methods
    @staticmethod
    def get_user_by_username(db: Session, username: str) -> Optional[User]:
        """Get a user by username"""
        return db.query(User).filter(User.username == username).first()

    @staticmethod
    def list_users_by_role(db: Session, clinic_id: int, role: str) -> list[User]:
        """Get a clinic's users with the given role, ordered by ID"""
        return (
            db.query(User)
            .filter(User.clinic_id == clinic_id, User.role == role)
            .order_by(User.id)
            .all()
        )

    @staticmethod
    def create_user(db: Session, **user_data) -> User:
        """Create a new user"""
        user = User(**user_data)
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    @staticmethod
    def update_user(db: Session, user: User, **updates) -> User:
        """Apply every given field, including explicit None"""
        for key, value in updates.items():
            if hasattr(user, key):
                setattr(user, key, value)

        db.commit()
        db.refresh(user)
        return user

    @staticmethod
    def delete_user(db: Session, user: User) -> None:
        """Delete a user"""
        db.delete(user)
        db.commit()

    @staticmethod
    def count_user_appointments(db: Session, user_id: int) -> int:
        """Count appointments where the user is the doctor or the client"""
        return (
            db.query(func.count(Appointment.id))
            .filter(or_(Appointment.doctor_id == user_id, Appointment.client_id == user_id))
            .scalar()
        )
