"""Payment repository - Database operations for payments"""

from sqlalchemy.orm import Session

from ...models import Appointment, Payment


class PaymentRepository:
    """Repository for payment database operations"""

    @staticmethod
    def create_payment(db: Session, **payment_data) -> Payment:
        """Record a payment"""
        payment = Payment(**payment_data)
        db.add(payment)
        db.commit()
        db.refresh(payment)
        return payment

    @staticmethod
    def list_payments_for_clinic(db: Session, clinic_id: int) -> list[Payment]:
        """Payments of a clinic's appointments, any status"""
        return (
            db.query(Payment)
            .join(Appointment, Payment.appointment_id == Appointment.id)
            .filter(Appointment.clinic_id == clinic_id)
            .order_by(Payment.id)
            .all()
        )
