"""Clinic domain schemas - Pydantic models for validation"""

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ...shared.validators import validate_email, validate_phone


class ClinicCreate(BaseModel):
    """Schema for creating a new clinic"""

    name: str = Field(min_length=1)
    address: str = Field(min_length=1)
    phone: str
    email: Optional[str] = None

    @field_validator("phone")
    @classmethod
    def check_phone(cls, v):
        return validate_phone(v)

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        return validate_email(v)


class ClinicUpdate(BaseModel):
    """Schema for updating an existing clinic"""

    name: Optional[str] = None
    address: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None

    @field_validator("phone")
    @classmethod
    def check_phone(cls, v):
        return validate_phone(v)

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        return validate_email(v)


class ClinicResponse(BaseModel):
    """Schema for clinic response"""

    id: int
    name: str
    address: str
    phone: str
    email: Optional[str] = None

    class Config:
        from_attributes = True


class ServiceCreate(BaseModel):
    """Schema for creating a service"""

    clinicId: int
    name: str = Field(min_length=1)
    description: Optional[str] = None
    price: Decimal = Field(ge=Decimal("0.01"), max_digits=10, decimal_places=2)
    duration: int = Field(gt=0, description="Duration in minutes")


class ServiceUpdate(BaseModel):
    """Schema for updating a service; never affects existing appointments"""

    name: Optional[str] = None
    description: Optional[str] = None
    price: Optional[Decimal] = Field(default=None, ge=Decimal("0.01"), max_digits=10, decimal_places=2)
    duration: Optional[int] = Field(default=None, gt=0)


class ServiceResponse(BaseModel):
    """Schema for service response"""

    id: int
    clinicId: int
    name: str
    description: Optional[str] = None
    price: float
    duration: int


class StaffCreate(BaseModel):
    """Account for a clinic admin or doctor"""

    username: str = Field(min_length=3, max_length=255)
    password: str = Field(min_length=6)
    firstName: str = Field(min_length=1)
    lastName: str = Field(min_length=1)
    email: Optional[str] = None
    phone: Optional[str] = None

    @field_validator("phone")
    @classmethod
    def check_phone(cls, v):
        return validate_phone(v)

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        return validate_email(v)


class DoctorCreate(StaffCreate):
    """Schema for adding a doctor to a clinic"""

    clinicId: int


class StaffUpdate(BaseModel):
    """Partial update of a staff account; an omitted password keeps the current one"""

    username: Optional[str] = Field(default=None, min_length=3, max_length=255)
    password: Optional[str] = Field(default=None, min_length=6)
    firstName: Optional[str] = Field(default=None, min_length=1)
    lastName: Optional[str] = Field(default=None, min_length=1)
    email: Optional[str] = None
    phone: Optional[str] = None

    @field_validator("phone")
    @classmethod
    def check_phone(cls, v):
        return validate_phone(v)

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        return validate_email(v)


class StaffResponse(BaseModel):
    """Schema for doctor and clinic admin responses"""

    id: int
    username: str
    role: str
    clinicId: Optional[int]
    firstName: str
    lastName: str
    email: Optional[str] = None
    phone: Optional[str] = None
