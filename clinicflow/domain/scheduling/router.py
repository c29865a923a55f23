"""Scheduling router - FastAPI endpoints for appointments and availability"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import AuthContext, get_auth_context
from ...database import get_db
from ...models import Appointment
from .schemas import (
    AppointmentCreate,
    AppointmentResponse,
    AppointmentUpdate,
    AvailableSlotsResponse,
)
from .service import AppointmentService
from .slot_generator import SlotGenerator

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Scheduling"])


def get_appointment_service(db: Session = Depends(get_db)) -> AppointmentService:
    """Dependency injection for AppointmentService"""
    return AppointmentService(db)


def get_slot_generator(db: Session = Depends(get_db)) -> SlotGenerator:
    """Dependency injection for SlotGenerator"""
    return SlotGenerator(db)


def to_response(appointment: Appointment) -> AppointmentResponse:
    return AppointmentResponse(
        id=appointment.id,
        clientId=appointment.client_id,
        doctorId=appointment.doctor_id,
        serviceId=appointment.service_id,
        clinicId=appointment.clinic_id,
        startTime=appointment.start_time,
        endTime=appointment.end_time,
        status=appointment.status,
        notes=appointment.notes,
        clientName=appointment.client_name,
        clientEmail=appointment.client_email,
        clientPhone=appointment.client_phone,
    )


# ============================================================================
# AVAILABILITY
# ============================================================================


@router.get("/services/{service_id}/available-slots", response_model=AvailableSlotsResponse)
async def get_available_slots(
    service_id: int,
    date: str = Query(..., description="YYYY-MM-DD"),
    _actor: AuthContext = Depends(get_auth_context),
    slots: SlotGenerator = Depends(get_slot_generator),
):
    """Free start times (HH:MM) for a service on a date"""
    return AvailableSlotsResponse(
        serviceId=service_id, date=date, slots=slots.generate_slots(service_id, date)
    )


# ============================================================================
# BOOKING AND LIFECYCLE
# ============================================================================


@router.post("/appointments", response_model=AppointmentResponse, status_code=201)
async def create_appointment(
    data: AppointmentCreate,
    actor: AuthContext = Depends(get_auth_context),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Book an appointment"""
    return to_response(service.create_appointment(data, actor))


@router.get("/appointments/{appointment_id}", response_model=AppointmentResponse)
async def get_appointment(
    appointment_id: int,
    actor: AuthContext = Depends(get_auth_context),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Get a specific appointment"""
    return to_response(service.get_appointment(appointment_id, actor))


@router.patch("/appointments/{appointment_id}", response_model=AppointmentResponse)
async def update_appointment(
    appointment_id: int,
    data: AppointmentUpdate,
    actor: AuthContext = Depends(get_auth_context),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Update client info, doctor, service, time or notes"""
    return to_response(service.update_appointment(appointment_id, data, actor))


@router.post("/appointments/{appointment_id}/cancel", response_model=AppointmentResponse)
async def cancel_appointment(
    appointment_id: int,
    actor: AuthContext = Depends(get_auth_context),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Cancel a scheduled appointment"""
    return to_response(service.cancel_appointment(appointment_id, actor))


@router.post("/appointments/{appointment_id}/complete", response_model=AppointmentResponse)
async def complete_appointment(
    appointment_id: int,
    actor: AuthContext = Depends(get_auth_context),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Mark a scheduled appointment as completed"""
    return to_response(service.complete_appointment(appointment_id, actor))


# ============================================================================
# LISTINGS
# ============================================================================


@router.get("/clinics/{clinic_id}/appointments", response_model=list[AppointmentResponse])
async def list_clinic_appointments(
    clinic_id: int,
    date: Optional[str] = Query(None, description="YYYY-MM-DD, limits to one day"),
    actor: AuthContext = Depends(get_auth_context),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Appointments of a clinic, optionally for one day"""
    if date:
        appointments = service.list_for_clinic_and_date(clinic_id, date, actor)
    else:
        appointments = service.list_for_clinic(clinic_id, actor)
    return [to_response(a) for a in appointments]


@router.get("/doctors/{doctor_id}/appointments", response_model=list[AppointmentResponse])
async def list_doctor_appointments(
    doctor_id: int,
    actor: AuthContext = Depends(get_auth_context),
    service: AppointmentService = Depends(get_appointment_service),
):
    """A doctor's schedule"""
    return [to_response(a) for a in service.list_for_doctor(doctor_id, actor)]


@router.get("/clients/{client_id}/appointments", response_model=list[AppointmentResponse])
async def list_client_appointments(
    client_id: int,
    actor: AuthContext = Depends(get_auth_context),
    service: AppointmentService = Depends(get_appointment_service),
):
    """A client's bookings"""
    return [to_response(a) for a in service.list_for_client(client_id, actor)]
