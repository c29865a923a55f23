"""Appointment repository - Database operations for appointments"""

from datetime import datetime
from typing import Optional

from sqlalchemy import and_, or_
from sqlalchemy.orm import Session

from ...models import Appointment, AppointmentStatus, User


class AppointmentRepository:
    """Repository for appointment database operations"""

    @staticmethod
    def get_by_id(db: Session, appointment_id: int) -> Optional[Appointment]:
        """Get an appointment by ID"""
        return db.query(Appointment).filter(Appointment.id == appointment_id).first()

    @staticmethod
    def insert(db: Session, **appointment_data) -> Appointment:
        """Add an appointment to the session (caller commits)"""
        appointment = Appointment(**appointment_data)
        db.add(appointment)
        db.flush()
        return appointment

    @staticmethod
    def update_status(db: Session, appointment_id: int, from_status: str, to_status: str) -> bool:
        """
        Move an appointment from `from_status` to `to_status`.
        Returns False when the row is no longer in `from_status`.
        """
        updated = (
            db.query(Appointment)
            .filter(Appointment.id == appointment_id, Appointment.status == from_status)
            .update({Appointment.status: to_status}, synchronize_session="fetch")
        )
        db.commit()
        return updated > 0

    @staticmethod
    def update_partial(db: Session, appointment: Appointment, **updates) -> Appointment:
        """Apply every given field, including explicit None"""
        for key, value in updates.items():
            if hasattr(appointment, key):
                setattr(appointment, key, value)

        db.commit()
        db.refresh(appointment)
        return appointment

    @staticmethod
    def find_conflicting_ids(
        db: Session,
        doctor_id: int,
        start_time: datetime,
        end_time: datetime,
        exclude_appointment_id: Optional[int] = None,
    ) -> list[int]:
        """
        IDs of the doctor's non-cancelled appointments overlapping [start_time, end_time).

        Overlap cases:
            existing contains the new start: start <= new_start < end
            existing contains the new end:   start < new_end <= end
            new contains existing:           new_start <= start and end <= new_end
        """
        query = db.query(Appointment.id).filter(
            Appointment.doctor_id == doctor_id,
            Appointment.status != AppointmentStatus.CANCELLED,
            or_(
                and_(Appointment.start_time <= start_time, Appointment.end_time > start_time),
                and_(Appointment.start_time < end_time, Appointment.end_time >= end_time),
                and_(Appointment.start_time >= start_time, Appointment.end_time <= end_time),
            ),
        )
        if exclude_appointment_id is not None:
            query = query.filter(Appointment.id != exclude_appointment_id)
        return [row.id for row in query.all()]

    @staticmethod
    def lock_doctor(db: Session, doctor_id: int) -> Optional[User]:
        """
        Lock the doctor's user row until the transaction ends so concurrent bookings
        for the same doctor run their conflict check one at a time.
        SQLite ignores FOR UPDATE; there a single writer already serializes.
        """
        return db.query(User).filter(User.id == doctor_id).with_for_update().first()

    @staticmethod
    def list_by_clinic_and_date_range(
        db: Session,
        clinic_id: int,
        range_start: datetime,
        range_end: datetime,
        service_id: Optional[int] = None,
        exclude_cancelled: bool = False,
    ) -> list[Appointment]:
        """Appointments of a clinic starting within [range_start, range_end]"""
        query = db.query(Appointment).filter(
            Appointment.clinic_id == clinic_id,
            Appointment.start_time >= range_start,
            Appointment.start_time <= range_end,
        )
        if service_id is not None:
            query = query.filter(Appointment.service_id == service_id)
        if exclude_cancelled:
            query = query.filter(Appointment.status != AppointmentStatus.CANCELLED)
        return query.order_by(Appointment.start_time, Appointment.id).all()

    @staticmethod
    def list_by_doctor(db: Session, doctor_id: int) -> list[Appointment]:
        """All appointments of a doctor"""
        return (
            db.query(Appointment)
            .filter(Appointment.doctor_id == doctor_id)
            .order_by(Appointment.start_time, Appointment.id)
            .all()
        )

    @staticmethod
    def list_by_client(
        db: Session, client_id: int, clinic_id: Optional[int] = None
    ) -> list[Appointment]:
        """All appointments of a client, optionally limited to one clinic"""
        query = db.query(Appointment).filter(Appointment.client_id == client_id)
        if clinic_id is not None:
            query = query.filter(Appointment.clinic_id == clinic_id)
        return query.order_by(Appointment.start_time, Appointment.id).all()

    @staticmethod
    def list_by_clinic(db: Session, clinic_id: int) -> list[Appointment]:
        """All appointments of a clinic"""
        return (
            db.query(Appointment)
            .filter(Appointment.clinic_id == clinic_id)
            .order_by(Appointment.start_time, Appointment.id)
            .all()
        )
