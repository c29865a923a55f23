"""Payment service - Recording and listing payments"""

import logging
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...auth import AuthContext
from ...models import Payment, PaymentStatus
from ...shared.errors import ForbiddenError, InternalError, NotFoundError
from ..scheduling.repository import AppointmentRepository
from .repository import PaymentRepository
from .schemas import PaymentCreate

logger = logging.getLogger(__name__)


class PaymentService:
    """Service layer for payments"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = PaymentRepository()
        self.appointments = AppointmentRepository()

    def create_payment(self, data: PaymentCreate, actor: AuthContext) -> Payment:
        appointment = self.appointments.get_by_id(self.db, data.appointmentId)
        if not appointment:
            raise NotFoundError("Appointment not found")
        if not actor.is_clinic_admin_of(appointment.clinic_id):
            raise ForbiddenError("Only the clinic's admin can record payments")

        paid_at = data.paidAt
        if paid_at is None and data.status == PaymentStatus.COMPLETED:
            paid_at = datetime.now()

        try:
            payment = self.repo.create_payment(
                self.db,
                appointment_id=appointment.id,
                amount=data.amount,
                status=data.status,
                paid_at=paid_at,
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"❌ Failed to record payment for appointment {appointment.id}: {e}")
            raise InternalError("Failed to create payment") from e

        logger.info(f"💳 Payment {payment.id} of {payment.amount} recorded for appointment {appointment.id}")
        return payment

    def list_payments(self, clinic_id: int, actor: AuthContext) -> list[Payment]:
        if not (actor.is_super_admin or actor.is_clinic_admin_of(clinic_id)):
            raise ForbiddenError("Only the clinic's admin can view its payments")
        return self.repo.list_payments_for_clinic(self.db, clinic_id)
