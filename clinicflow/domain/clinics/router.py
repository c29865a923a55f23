"""Clinic router - FastAPI endpoints for clinics, services, doctors and clinic admins"""

import logging

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from ...auth import AuthContext, get_auth_context
from ...database import get_db
from ...models import Service, User
from .schemas import (
    ClinicCreate,
    ClinicResponse,
    ClinicUpdate,
    DoctorCreate,
    ServiceCreate,
    ServiceResponse,
    ServiceUpdate,
    StaffCreate,
    StaffResponse,
    StaffUpdate,
)
from .service import ClinicService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Clinics"])


def get_clinic_service(db: Session = Depends(get_db)) -> ClinicService:
    """Dependency injection for ClinicService"""
    return ClinicService(db)


def service_to_response(service: Service) -> ServiceResponse:
    return ServiceResponse(
        id=service.id,
        clinicId=service.clinic_id,
        name=service.name,
        description=service.description,
        price=float(service.price),
        duration=service.duration,
    )


def staff_to_response(user: User) -> StaffResponse:
    return StaffResponse(
        id=user.id,
        username=user.username,
        role=user.role,
        clinicId=user.clinic_id,
        firstName=user.first_name,
        lastName=user.last_name,
        email=user.email,
        phone=user.phone,
    )


# ============================================================================
# CLINICS
# ============================================================================


@router.get("/clinics", response_model=list[ClinicResponse])
async def list_clinics(
    _actor: AuthContext = Depends(get_auth_context),
    service: ClinicService = Depends(get_clinic_service),
):
    """List all clinics"""
    return service.list_clinics()


@router.get("/clinics/{clinic_id}", response_model=ClinicResponse)
async def get_clinic(
    clinic_id: int,
    _actor: AuthContext = Depends(get_auth_context),
    service: ClinicService = Depends(get_clinic_service),
):
    """Get a specific clinic"""
    return service.get_clinic(clinic_id)


@router.post("/clinics", response_model=ClinicResponse, status_code=201)
async def create_clinic(
    data: ClinicCreate,
    actor: AuthContext = Depends(get_auth_context),
    service: ClinicService = Depends(get_clinic_service),
):
    """Create a clinic (super admin)"""
    return service.create_clinic(data, actor)


@router.put("/clinics/{clinic_id}", response_model=ClinicResponse)
async def update_clinic(
    clinic_id: int,
    data: ClinicUpdate,
    actor: AuthContext = Depends(get_auth_context),
    service: ClinicService = Depends(get_clinic_service),
):
    """Update a clinic (super admin)"""
    return service.update_clinic(clinic_id, data, actor)


@router.delete("/clinics/{clinic_id}", status_code=204)
async def delete_clinic(
    clinic_id: int,
    actor: AuthContext = Depends(get_auth_context),
    service: ClinicService = Depends(get_clinic_service),
):
    """Delete a clinic; refused while services, appointments or users reference it"""
    service.delete_clinic(clinic_id, actor)
    return Response(status_code=204)


# ============================================================================
# SERVICES
# ============================================================================


@router.get("/clinics/{clinic_id}/services", response_model=list[ServiceResponse])
async def list_clinic_services(
    clinic_id: int,
    _actor: AuthContext = Depends(get_auth_context),
    service: ClinicService = Depends(get_clinic_service),
):
    """List the services a clinic offers"""
    return [service_to_response(s) for s in service.list_services(clinic_id)]


@router.post("/services", response_model=ServiceResponse, status_code=201)
async def create_service(
    data: ServiceCreate,
    actor: AuthContext = Depends(get_auth_context),
    service: ClinicService = Depends(get_clinic_service),
):
    """Add a service to the admin's clinic"""
    return service_to_response(service.create_service(data, actor))


@router.put("/services/{service_id}", response_model=ServiceResponse)
async def update_service(
    service_id: int,
    data: ServiceUpdate,
    actor: AuthContext = Depends(get_auth_context),
    service: ClinicService = Depends(get_clinic_service),
):
    """Edit a service"""
    return service_to_response(service.update_service(service_id, data, actor))


@router.delete("/services/{service_id}", status_code=204)
async def delete_service(
    service_id: int,
    actor: AuthContext = Depends(get_auth_context),
    service: ClinicService = Depends(get_clinic_service),
):
    """Delete a service; refused while appointments reference it"""
    service.delete_service(service_id, actor)
    return Response(status_code=204)


# ============================================================================
# DOCTORS
# ============================================================================


@router.get("/clinics/{clinic_id}/doctors", response_model=list[StaffResponse])
async def list_clinic_doctors(
    clinic_id: int,
    _actor: AuthContext = Depends(get_auth_context),
    service: ClinicService = Depends(get_clinic_service),
):
    """List a clinic's doctors"""
    return [staff_to_response(d) for d in service.list_doctors(clinic_id)]


@router.post("/doctors", response_model=StaffResponse, status_code=201)
async def create_doctor(
    data: DoctorCreate,
    actor: AuthContext = Depends(get_auth_context),
    service: ClinicService = Depends(get_clinic_service),
):
    """Add a doctor to the admin's clinic"""
    return staff_to_response(service.create_doctor(data, actor))


@router.put("/doctors/{doctor_id}", response_model=StaffResponse)
async def update_doctor(
    doctor_id: int,
    data: StaffUpdate,
    actor: AuthContext = Depends(get_auth_context),
    service: ClinicService = Depends(get_clinic_service),
):
    """Edit a doctor's account"""
    return staff_to_response(service.update_doctor(doctor_id, data, actor))


@router.delete("/doctors/{doctor_id}", status_code=204)
async def delete_doctor(
    doctor_id: int,
    actor: AuthContext = Depends(get_auth_context),
    service: ClinicService = Depends(get_clinic_service),
):
    """Remove a doctor; refused while appointments reference them"""
    service.delete_doctor(doctor_id, actor)
    return Response(status_code=204)


# ============================================================================
# CLINIC ADMINS
# ============================================================================


@router.post("/clinics/{clinic_id}/admin", response_model=StaffResponse, status_code=201)
async def create_clinic_admin(
    clinic_id: int,
    data: StaffCreate,
    actor: AuthContext = Depends(get_auth_context),
    service: ClinicService = Depends(get_clinic_service),
):
    """Create an admin account for a clinic (super admin)"""
    return staff_to_response(service.create_clinic_admin(clinic_id, data, actor))


@router.get("/clinics/{clinic_id}/admins", response_model=list[StaffResponse])
async def list_clinic_admins(
    clinic_id: int,
    actor: AuthContext = Depends(get_auth_context),
    service: ClinicService = Depends(get_clinic_service),
):
    """List a clinic's admins (super admin)"""
    return [staff_to_response(a) for a in service.list_clinic_admins(clinic_id, actor)]


@router.put("/clinics/{clinic_id}/admins/{admin_id}", response_model=StaffResponse)
async def update_clinic_admin(
    clinic_id: int,
    admin_id: int,
    data: StaffUpdate,
    actor: AuthContext = Depends(get_auth_context),
    service: ClinicService = Depends(get_clinic_service),
):
    """Edit a clinic admin (super admin)"""
    return staff_to_response(service.update_clinic_admin(clinic_id, admin_id, data, actor))


@router.delete("/clinics/{clinic_id}/admins/{admin_id}", status_code=204)
async def delete_clinic_admin(
    clinic_id: int,
    admin_id: int,
    actor: AuthContext = Depends(get_auth_context),
    service: ClinicService = Depends(get_clinic_service),
):
    """Remove a clinic admin (super admin)"""
    service.delete_clinic_admin(clinic_id, admin_id, actor)
    return Response(status_code=204)
