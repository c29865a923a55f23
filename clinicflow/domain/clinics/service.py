"""Clinic service - Business logic for clinics, services, doctors and clinic admins"""

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...auth import AuthContext
from ...models import Clinic, Service, User, UserRole
from ...security_utils import hash_password
from ...shared.errors import (
    ForbiddenError,
    IntegrityGuardError,
    InternalError,
    InvalidInputError,
    NotFoundError,
)
from ...utils.sanitization import sanitize_string
from .repository import ClinicRepository
from .schemas import (
    ClinicCreate,
    ClinicUpdate,
    DoctorCreate,
    ServiceCreate,
    ServiceUpdate,
    StaffCreate,
    StaffUpdate,
)

logger = logging.getLogger(__name__)


class ClinicService:
    """Service layer for clinics, their service catalogue and staff accounts"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = ClinicRepository()

    # ------------------------------------------------------------------
    # Clinics
    # ------------------------------------------------------------------

    def list_clinics(self) -> list[Clinic]:
        return self.repo.list_clinics(self.db)

    def get_clinic(self, clinic_id: int) -> Clinic:
        clinic = self.repo.get_clinic(self.db, clinic_id)
        if not clinic:
            raise NotFoundError("Clinic not found")
        return clinic

    def create_clinic(self, data: ClinicCreate, actor: AuthContext) -> Clinic:
        if not actor.is_super_admin:
            raise ForbiddenError("Only super admins can create clinics")

        clinic = self._write(
            lambda: self.repo.create_clinic(
                self.db,
                name=sanitize_string(data.name),
                address=sanitize_string(data.address),
                phone=data.phone,
                email=data.email,
            ),
            "create clinic",
        )
        logger.info(f"🏥 Clinic {clinic.id} created by user {actor.user_id}")
        return clinic

    def update_clinic(self, clinic_id: int, data: ClinicUpdate, actor: AuthContext) -> Clinic:
        if not actor.is_super_admin:
            raise ForbiddenError("Only super admins can update clinics")

        clinic = self.get_clinic(clinic_id)
        updates = {
            "name": sanitize_string(data.name),
            "address": sanitize_string(data.address),
            "phone": data.phone,
            "email": data.email,
        }
        return self._write(lambda: self.repo.update_clinic(self.db, clinic, **updates), "update clinic")

    def delete_clinic(self, clinic_id: int, actor: AuthContext) -> None:
        """Delete a clinic only when nothing references it (no cascade)"""
        if not actor.is_super_admin:
            raise ForbiddenError("Only super admins can delete clinics")

        clinic = self.get_clinic(clinic_id)
        dependents = self.repo.count_dependents(self.db, clinic_id)

        if dependents["services"]:
            raise IntegrityGuardError(
                "Cannot delete clinic with associated services. Please delete services first."
            )
        if dependents["appointments"]:
            raise IntegrityGuardError(
                "Cannot delete clinic with associated appointments. Please delete appointments first."
            )
        if dependents["users"]:
            raise IntegrityGuardError(
                "Cannot delete clinic with associated users. Please reassign or delete users first."
            )

        self._write(lambda: self.repo.delete_clinic(self.db, clinic), "delete clinic")
        logger.info(f"🗑️ Clinic {clinic_id} deleted by user {actor.user_id}")

    # ------------------------------------------------------------------
    # Services
    # ------------------------------------------------------------------

    def get_service(self, service_id: int) -> Service:
        service = self.repo.get_service(self.db, service_id)
        if not service:
            raise NotFoundError("Service not found")
        return service

    def list_services(self, clinic_id: int) -> list[Service]:
        self.get_clinic(clinic_id)
        return self.repo.list_services_by_clinic(self.db, clinic_id)

    def create_service(self, data: ServiceCreate, actor: AuthContext) -> Service:
        if not actor.is_clinic_admin_of(data.clinicId):
            raise ForbiddenError("Only the clinic's admin can add services")
        self.get_clinic(data.clinicId)

        service = self._write(
            lambda: self.repo.create_service(
                self.db,
                clinic_id=data.clinicId,
                name=sanitize_string(data.name),
                description=sanitize_string(data.description),
                price=data.price,
                duration=data.duration,
            ),
            "create service",
        )
        logger.info(f"🩺 Service {service.id} ({service.duration} min) added to clinic {service.clinic_id}")
        return service

    def update_service(self, service_id: int, data: ServiceUpdate, actor: AuthContext) -> Service:
        """Edit a service; existing appointments keep the end time they were booked with"""
        service = self.get_service(service_id)
        if not actor.is_clinic_admin_of(service.clinic_id):
            raise ForbiddenError("Only the clinic's admin can edit services")

        updates = {
            "name": sanitize_string(data.name),
            "description": sanitize_string(data.description),
            "price": data.price,
            "duration": data.duration,
        }
        return self._write(lambda: self.repo.update_service(self.db, service, **updates), "update service")

    def delete_service(self, service_id: int, actor: AuthContext) -> None:
        """Delete a service only when no appointment was ever booked for it"""
        service = self.get_service(service_id)
        if not actor.is_clinic_admin_of(service.clinic_id):
            raise ForbiddenError("Only the clinic's admin can delete services")

        if self.repo.count_service_appointments(self.db, service_id):
            raise IntegrityGuardError(
                "Cannot delete service with associated appointments. Please cancel or reassign appointments first."
            )

        self._write(lambda: self.repo.delete_service(self.db, service), "delete service")
        logger.info(f"🗑️ Service {service_id} deleted by user {actor.user_id}")

    # ------------------------------------------------------------------
    # Doctors
    # ------------------------------------------------------------------

    def list_doctors(self, clinic_id: int) -> list[User]:
        self.get_clinic(clinic_id)
        return self.repo.list_doctors_by_clinic(self.db, clinic_id)

    def create_doctor(self, data: DoctorCreate, actor: AuthContext) -> User:
        if not actor.is_clinic_admin_of(data.clinicId):
            raise ForbiddenError("Only the clinic's admin can add doctors")
        self.get_clinic(data.clinicId)

        doctor = self._create_staff(data, UserRole.DOCTOR, data.clinicId)
        logger.info(f"👩‍⚕️ Doctor {doctor.id} added to clinic {data.clinicId} by user {actor.user_id}")
        return doctor

    def update_doctor(self, doctor_id: int, data: StaffUpdate, actor: AuthContext) -> User:
        doctor = self._get_doctor(doctor_id)
        if not actor.is_clinic_admin_of(doctor.clinic_id):
            raise ForbiddenError("Only the clinic's admin can edit its doctors")
        return self._update_staff(doctor, data)

    def delete_doctor(self, doctor_id: int, actor: AuthContext) -> None:
        """Delete a doctor only when no appointment references them"""
        doctor = self._get_doctor(doctor_id)
        if not actor.is_clinic_admin_of(doctor.clinic_id):
            raise ForbiddenError("Only the clinic's admin can remove its doctors")

        if self.repo.count_user_appointments(self.db, doctor_id):
            raise IntegrityGuardError(
                "Cannot delete doctor with associated appointments. Please cancel or reassign appointments first."
            )

        self._write(lambda: self.repo.delete_user(self.db, doctor), "delete doctor")
        logger.info(f"🗑️ Doctor {doctor_id} deleted by user {actor.user_id}")

    def _get_doctor(self, doctor_id: int) -> User:
        doctor = self.repo.get_doctor(self.db, doctor_id)
        if not doctor:
            raise NotFoundError("Doctor not found")
        return doctor

    # ------------------------------------------------------------------
    # Clinic admins (super admin only)
    # ------------------------------------------------------------------

    def create_clinic_admin(self, clinic_id: int, data: StaffCreate, actor: AuthContext) -> User:
        if not actor.is_super_admin:
            raise ForbiddenError("Only super admins can manage clinic admins")
        self.get_clinic(clinic_id)

        admin = self._create_staff(data, UserRole.CLINIC_ADMIN, clinic_id)
        logger.info(f"🔑 Clinic admin {admin.id} created for clinic {clinic_id} by user {actor.user_id}")
        return admin

    def list_clinic_admins(self, clinic_id: int, actor: AuthContext) -> list[User]:
        if not actor.is_super_admin:
            raise ForbiddenError("Only super admins can manage clinic admins")
        self.get_clinic(clinic_id)
        return self.repo.list_users_by_role(self.db, clinic_id, UserRole.CLINIC_ADMIN)

    def update_clinic_admin(
        self, clinic_id: int, admin_id: int, data: StaffUpdate, actor: AuthContext
    ) -> User:
        if not actor.is_super_admin:
            raise ForbiddenError("Only super admins can manage clinic admins")
        return self._update_staff(self._get_clinic_admin(clinic_id, admin_id), data)

    def delete_clinic_admin(self, clinic_id: int, admin_id: int, actor: AuthContext) -> None:
        if not actor.is_super_admin:
            raise ForbiddenError("Only super admins can manage clinic admins")

        admin = self._get_clinic_admin(clinic_id, admin_id)
        self._write(lambda: self.repo.delete_user(self.db, admin), "delete clinic admin")
        logger.info(f"🗑️ Clinic admin {admin_id} removed from clinic {clinic_id} by user {actor.user_id}")

    def _get_clinic_admin(self, clinic_id: int, admin_id: int) -> User:
        admin = self.repo.get_user(self.db, admin_id)
        if not admin or admin.role != UserRole.CLINIC_ADMIN or admin.clinic_id != clinic_id:
            raise NotFoundError("Admin not found")
        return admin

    # ------------------------------------------------------------------
    # Staff accounts
    # ------------------------------------------------------------------

    def _create_staff(self, data: StaffCreate, role: str, clinic_id: int) -> User:
        if self.repo.get_user_by_username(self.db, data.username):
            raise InvalidInputError("Username already exists")

        return self._write(
            lambda: self.repo.create_user(
                self.db,
                username=data.username,
                password=hash_password(data.password),
                first_name=sanitize_string(data.firstName),
                last_name=sanitize_string(data.lastName),
                email=data.email,
                phone=data.phone,
                role=role,
                clinic_id=clinic_id,
            ),
            f"create {role.lower()}",
        )

    def _update_staff(self, user: User, data: StaffUpdate) -> User:
        """Apply the fields present in the payload; email and phone may be cleared with null"""
        fields = data.model_dump(exclude_unset=True)
        for required in ("username", "password", "firstName", "lastName"):
            if required in fields and fields[required] is None:
                raise InvalidInputError(f"{required} cannot be empty")

        username = fields.get("username")
        if username and username != user.username and self.repo.get_user_by_username(self.db, username):
            raise InvalidInputError("Username already exists")

        columns = {
            "username": "username",
            "firstName": "first_name",
            "lastName": "last_name",
            "email": "email",
            "phone": "phone",
        }
        updates = {columns[key]: value for key, value in fields.items() if key in columns}
        for key in ("first_name", "last_name"):
            if key in updates:
                updates[key] = sanitize_string(updates[key])
        if "password" in fields:
            updates["password"] = hash_password(fields["password"])

        return self._write(lambda: self.repo.update_user(self.db, user, **updates), f"update {user.role.lower()}")

    def _write(self, operation, description: str):
        try:
            return operation()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"❌ Failed to {description}: {e}")
            raise InternalError(f"Failed to {description}") from e
