"""Revenue repository - Payment reads joined to appointments"""

from decimal import Decimal
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ...models import Appointment, AppointmentStatus, Payment, PaymentStatus, Service


class RevenueRepository:
    """Repository for revenue queries"""

    @staticmethod
    def list_revenue_rows(db: Session, clinic_id: int) -> list:
        """
        Settled payments of a clinic's completed appointments.
        Each row has amount, paid_at, start_time, service_id and service_name.
        """
        return (
            db.query(
                Payment.amount.label("amount"),
                Payment.paid_at.label("paid_at"),
                Appointment.start_time.label("start_time"),
                Appointment.service_id.label("service_id"),
                Service.name.label("service_name"),
            )
            .join(Appointment, Payment.appointment_id == Appointment.id)
            .join(Service, Appointment.service_id == Service.id)
            .filter(
                Appointment.clinic_id == clinic_id,
                Appointment.status == AppointmentStatus.COMPLETED,
                Payment.status == PaymentStatus.COMPLETED,
            )
            .order_by(Payment.id)
            .all()
        )

    @staticmethod
    def sum_revenue(db: Session, clinic_id: Optional[int] = None) -> Decimal:
        """Total settled revenue, across all clinics unless `clinic_id` is given"""
        query = (
            db.query(func.coalesce(func.sum(Payment.amount), 0))
            .join(Appointment, Payment.appointment_id == Appointment.id)
            .filter(
                Appointment.status == AppointmentStatus.COMPLETED,
                Payment.status == PaymentStatus.COMPLETED,
            )
        )
        if clinic_id is not None:
            query = query.filter(Appointment.clinic_id == clinic_id)
        return Decimal(str(query.scalar() or 0))
