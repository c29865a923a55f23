"""Payment router"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...auth import AuthContext, get_auth_context
from ...database import get_db
from ...models import Payment
from .schemas import PaymentCreate, PaymentResponse
from .service import PaymentService

router = APIRouter(tags=["Payments"])


def get_payment_service(db: Session = Depends(get_db)) -> PaymentService:
    """Dependency injection for PaymentService"""
    return PaymentService(db)


def to_response(payment: Payment) -> PaymentResponse:
    return PaymentResponse(
        id=payment.id,
        appointmentId=payment.appointment_id,
        amount=float(payment.amount),
        status=payment.status,
        paidAt=payment.paid_at,
    )


@router.post("/payments", response_model=PaymentResponse, status_code=201)
async def create_payment(
    data: PaymentCreate,
    actor: AuthContext = Depends(get_auth_context),
    service: PaymentService = Depends(get_payment_service),
):
    """Record a payment for an appointment"""
    return to_response(service.create_payment(data, actor))


@router.get("/clinics/{clinic_id}/payments", response_model=list[PaymentResponse])
async def list_clinic_payments(
    clinic_id: int,
    actor: AuthContext = Depends(get_auth_context),
    service: PaymentService = Depends(get_payment_service),
):
    """Payments for a clinic's appointments"""
    return [to_response(p) for p in service.list_payments(clinic_id, actor)]
