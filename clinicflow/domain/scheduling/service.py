"""Appointment service - Booking and lifecycle of appointments"""

import logging
from datetime import date, timedelta
from typing import Optional, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...auth import AuthContext
from ...models import Appointment, AppointmentStatus, Service, User, UserRole
from ...shared.errors import (
    ConflictError,
    ForbiddenError,
    InternalError,
    InvalidInputError,
    InvalidStateError,
    NotFoundError,
)
from ...shared.validators import parse_date
from ...utils.sanitization import sanitize_string
from ..clinics.repository import ClinicRepository
from .conflict_detector import ConflictDetector
from .repository import AppointmentRepository
from .schemas import AppointmentCreate, AppointmentUpdate
from .slot_generator import day_bounds

logger = logging.getLogger(__name__)


class AppointmentService:
    """
    Service layer for the appointment lifecycle.

    SCHEDULED is the only non-terminal status: an appointment moves exactly
    once to COMPLETED or CANCELLED and is never deleted.
    """

    def __init__(self, db: Session, conflict_detector: Optional[ConflictDetector] = None):
        self.db = db
        self.repo = AppointmentRepository()
        self.clinics = ClinicRepository()
        self.conflicts = conflict_detector or ConflictDetector(db)

    # ------------------------------------------------------------------
    # Booking
    # ------------------------------------------------------------------

    def create_appointment(self, data: AppointmentCreate, actor: AuthContext) -> Appointment:
        """Book an appointment; the doctor's conflict check and the insert share one transaction"""
        service = self._get_service(data.serviceId)
        clinic_id = data.clinicId if data.clinicId is not None else service.clinic_id
        if clinic_id != service.clinic_id:
            raise InvalidInputError("The selected service is not offered by this clinic")

        if actor.role in (UserRole.CLINIC_ADMIN, UserRole.DOCTOR) and not actor.is_staff_of(clinic_id):
            raise ForbiddenError("You can only book appointments for your own clinic")

        client = self._resolve_client(data.clientId, actor)
        doctor_id = data.doctorId
        if doctor_id is None:
            if actor.role != UserRole.CLIENT:
                raise InvalidInputError("doctorId is required when staff book an appointment")
            doctor_id = self._first_doctor_id(clinic_id)

        start_time = data.startTime
        end_time = start_time + timedelta(minutes=service.duration)

        try:
            doctor = self.repo.lock_doctor(self.db, doctor_id)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"❌ Failed to lock doctor {doctor_id} for booking: {e}")
            raise InternalError("Failed to create appointment") from e

        if not doctor or doctor.role != UserRole.DOCTOR or doctor.clinic_id != clinic_id:
            self.db.rollback()
            raise NotFoundError("Doctor not found in this clinic")

        if self.conflicts.has_conflict(doctor_id, start_time, end_time):
            self.db.rollback()
            logger.warning(
                f"⚠️ Booking rejected: doctor {doctor_id} busy at {start_time.isoformat()} "
                f"(requested by user {actor.user_id})"
            )
            raise ConflictError("This time slot is already taken for the selected doctor")

        try:
            if not self.db.in_transaction():
                # A failed fail-open lookup rolled back and released the doctor lock
                logger.warning(f"⚠️ Booking doctor {doctor_id} without a verified conflict check")
                self.repo.lock_doctor(self.db, doctor_id)

            appointment = self.repo.insert(
                self.db,
                client_id=client.id,
                doctor_id=doctor_id,
                service_id=service.id,
                clinic_id=clinic_id,
                start_time=start_time,
                end_time=end_time,
                status=AppointmentStatus.SCHEDULED,
                notes=sanitize_string(data.notes) or "",
                client_name=sanitize_string(data.clientName) or client.full_name,
                client_email=data.clientEmail or client.email,
                client_phone=data.clientPhone or client.phone,
            )
            self.db.commit()
            self.db.refresh(appointment)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"❌ Failed to create appointment for doctor {doctor_id}: {e}")
            raise InternalError("Failed to create appointment") from e

        logger.info(
            f"📅 Appointment {appointment.id} booked: doctor {doctor_id}, service {service.id}, "
            f"{start_time.isoformat()} - {end_time.isoformat()}"
        )
        return appointment

    def _resolve_client(self, client_id: Optional[int], actor: AuthContext) -> User:
        if actor.role == UserRole.CLIENT:
            if client_id is not None and client_id != actor.user_id:
                raise ForbiddenError("Clients can only book appointments for themselves")
            client_id = actor.user_id
        elif client_id is None:
            raise InvalidInputError("clientId is required when staff book an appointment")

        client = self.clinics.get_user(self.db, client_id)
        if not client or client.role != UserRole.CLIENT:
            raise NotFoundError("Client not found")
        return client

    def _first_doctor_id(self, clinic_id: int) -> int:
        # First doctor in listing order; no load balancing
        doctors = self.clinics.list_doctors_by_clinic(self.db, clinic_id)
        if not doctors:
            raise InvalidInputError("No doctor is available at this clinic")
        logger.info(f"👩‍⚕️ Auto-assigned doctor {doctors[0].id} for clinic {clinic_id}")
        return doctors[0].id

    def _get_service(self, service_id: int) -> Service:
        service = self.clinics.get_service(self.db, service_id)
        if not service:
            raise NotFoundError("Service not found")
        if not service.duration or service.duration <= 0:
            raise InvalidInputError("Service duration must be a positive number of minutes")
        return service

    # ------------------------------------------------------------------
    # Lifecycle transitions
    # ------------------------------------------------------------------

    def cancel_appointment(self, appointment_id: int, actor: AuthContext) -> Appointment:
        return self._transition(appointment_id, actor, AppointmentStatus.CANCELLED, "cancel")

    def complete_appointment(self, appointment_id: int, actor: AuthContext) -> Appointment:
        return self._transition(appointment_id, actor, AppointmentStatus.COMPLETED, "complete")

    def _transition(
        self, appointment_id: int, actor: AuthContext, to_status: str, verb: str
    ) -> Appointment:
        appointment = self._get_or_404(appointment_id)

        if not self._can_manage(appointment, actor):
            raise ForbiddenError(
                f"Only the clinic's admin or the assigned doctor can {verb} this appointment"
            )
        if appointment.status != AppointmentStatus.SCHEDULED:
            raise InvalidStateError(
                f"Cannot {verb} an appointment that is {appointment.status}"
            )

        try:
            moved = self.repo.update_status(
                self.db, appointment_id, AppointmentStatus.SCHEDULED, to_status
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"❌ Failed to {verb} appointment {appointment_id}: {e}")
            raise InternalError(f"Failed to {verb} appointment") from e

        self.db.refresh(appointment)
        if not moved:
            # Someone else finished the transition between our read and write
            raise InvalidStateError(
                f"Cannot {verb} an appointment that is {appointment.status}"
            )

        logger.info(f"✅ Appointment {appointment_id} -> {to_status} by user {actor.user_id}")
        return appointment

    @staticmethod
    def _can_manage(appointment: Appointment, actor: AuthContext) -> bool:
        return actor.is_clinic_admin_of(appointment.clinic_id) or (
            actor.role == UserRole.DOCTOR and actor.user_id == appointment.doctor_id
        )

    # ------------------------------------------------------------------
    # Partial update
    # ------------------------------------------------------------------

    def update_appointment(
        self, appointment_id: int, data: AppointmentUpdate, actor: AuthContext
    ) -> Appointment:
        """
        Apply a partial update within the actor's clinic.

        Only fields present in the payload are applied, so an explicit null
        clears notes or client contact details. The conflict check is not
        re-run here. When the time or service changes, the end time is
        re-derived from the service duration.
        """
        appointment = self._get_or_404(appointment_id)
        if not actor.is_staff_of(appointment.clinic_id):
            raise ForbiddenError("You can only update appointments of your own clinic")

        fields = data.model_dump(exclude_unset=True)
        for required in ("doctorId", "serviceId", "startTime"):
            if required in fields and fields[required] is None:
                raise InvalidInputError(f"{required} cannot be null")

        updates = {}
        if "notes" in fields:
            updates["notes"] = sanitize_string(fields["notes"])
        if "clientName" in fields:
            updates["client_name"] = sanitize_string(fields["clientName"])
        if "clientEmail" in fields:
            updates["client_email"] = fields["clientEmail"]
        if "clientPhone" in fields:
            updates["client_phone"] = fields["clientPhone"]

        if "doctorId" in fields:
            doctor = self.clinics.get_doctor(self.db, fields["doctorId"])
            if not doctor or doctor.clinic_id != appointment.clinic_id:
                raise NotFoundError("Doctor not found in this clinic")
            updates["doctor_id"] = doctor.id

        service_id = appointment.service_id
        if "serviceId" in fields:
            service = self._get_service(fields["serviceId"])
            if service.clinic_id != appointment.clinic_id:
                raise InvalidInputError("The selected service is not offered by this clinic")
            updates["service_id"] = service_id = service.id

        if "startTime" in fields or "serviceId" in fields:
            service = self._get_service(service_id)
            start_time = fields.get("startTime") or appointment.start_time
            updates["start_time"] = start_time
            updates["end_time"] = start_time + timedelta(minutes=service.duration)

        try:
            appointment = self.repo.update_partial(self.db, appointment, **updates)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"❌ Failed to update appointment {appointment_id}: {e}")
            raise InternalError("Failed to update appointment") from e

        logger.info(f"✏️ Appointment {appointment_id} updated by user {actor.user_id}")
        return appointment

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_appointment(self, appointment_id: int, actor: AuthContext) -> Appointment:
        appointment = self._get_or_404(appointment_id)
        visible = (
            actor.is_super_admin
            or actor.is_staff_of(appointment.clinic_id)
            or (actor.role == UserRole.CLIENT and actor.user_id == appointment.client_id)
        )
        if not visible:
            raise ForbiddenError("You do not have access to this appointment")
        return appointment

    def list_for_clinic(self, clinic_id: int, actor: AuthContext) -> list[Appointment]:
        self._require_clinic_visibility(clinic_id, actor)
        return self.repo.list_by_clinic(self.db, clinic_id)

    def list_for_clinic_and_date(
        self, clinic_id: int, day: Union[date, str], actor: AuthContext
    ) -> list[Appointment]:
        """Appointments starting on `day` (00:00:00 through 23:59:59.999999)"""
        day = parse_date(day)
        self._require_clinic_visibility(clinic_id, actor)
        range_start, range_end = day_bounds(day)
        return self.repo.list_by_clinic_and_date_range(self.db, clinic_id, range_start, range_end)

    def list_for_doctor(self, doctor_id: int, actor: AuthContext) -> list[Appointment]:
        doctor = self.clinics.get_doctor(self.db, doctor_id)
        if not doctor:
            raise NotFoundError("Doctor not found")
        visible = (
            actor.is_super_admin
            or actor.user_id == doctor.id
            or (doctor.clinic_id is not None and actor.is_clinic_admin_of(doctor.clinic_id))
        )
        if not visible:
            raise ForbiddenError("You do not have access to this doctor's schedule")
        return self.repo.list_by_doctor(self.db, doctor_id)

    def list_for_client(self, client_id: int, actor: AuthContext) -> list[Appointment]:
        """Clients see all their bookings; clinic staff only the ones at their clinic"""
        if actor.is_super_admin or actor.user_id == client_id:
            return self.repo.list_by_client(self.db, client_id)
        if actor.role in (UserRole.CLINIC_ADMIN, UserRole.DOCTOR) and actor.clinic_id is not None:
            return self.repo.list_by_client(self.db, client_id, clinic_id=actor.clinic_id)
        raise ForbiddenError("You do not have access to this client's appointments")

    def _require_clinic_visibility(self, clinic_id: int, actor: AuthContext) -> None:
        if not (actor.is_super_admin or actor.is_staff_of(clinic_id)):
            raise ForbiddenError("You do not have access to this clinic's appointments")

    def _get_or_404(self, appointment_id: int) -> Appointment:
        appointment = self.repo.get_by_id(self.db, appointment_id)
        if not appointment:
            raise NotFoundError("Appointment not found")
        return appointment
