"""Scheduling domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ...shared.validators import validate_email, validate_phone


class AppointmentCreate(BaseModel):
    """Schema for booking an appointment"""

    serviceId: int
    startTime: datetime
    clinicId: Optional[int] = None  # defaults to the service's clinic
    doctorId: Optional[int] = None  # clients may omit it to get the first available doctor
    clientId: Optional[int] = None  # clients always book for themselves
    notes: Optional[str] = Field(default=None, max_length=2000)
    clientName: Optional[str] = None
    clientEmail: Optional[str] = None
    clientPhone: Optional[str] = None

    @field_validator("startTime")
    @classmethod
    def strip_timezone(cls, v: datetime) -> datetime:
        # Local server time only: an aware timestamp is converted and made naive
        if v.tzinfo is not None:
            return v.astimezone().replace(tzinfo=None)
        return v

    @field_validator("clientPhone")
    @classmethod
    def check_phone(cls, v):
        return validate_phone(v)

    @field_validator("clientEmail")
    @classmethod
    def check_email(cls, v):
        return validate_email(v)


class AppointmentUpdate(BaseModel):
    """Partial update; status changes go through cancel/complete"""

    doctorId: Optional[int] = None
    serviceId: Optional[int] = None
    startTime: Optional[datetime] = None
    notes: Optional[str] = Field(default=None, max_length=2000)
    clientName: Optional[str] = None
    clientEmail: Optional[str] = None
    clientPhone: Optional[str] = None

    @field_validator("startTime")
    @classmethod
    def strip_timezone(cls, v: Optional[datetime]) -> Optional[datetime]:
        if v is not None and v.tzinfo is not None:
            return v.astimezone().replace(tzinfo=None)
        return v

    @field_validator("clientPhone")
    @classmethod
    def check_phone(cls, v):
        return validate_phone(v)

    @field_validator("clientEmail")
    @classmethod
    def check_email(cls, v):
        return validate_email(v)


class AppointmentResponse(BaseModel):
    """Schema for appointment response"""

    id: int
    clientId: int
    doctorId: int
    serviceId: int
    clinicId: int
    startTime: datetime
    endTime: datetime
    status: str
    notes: Optional[str] = None
    clientName: Optional[str] = None
    clientEmail: Optional[str] = None
    clientPhone: Optional[str] = None


class AvailableSlotsResponse(BaseModel):
    """Free start times for a service on a date"""

    serviceId: int
    date: str
    slots: list[str]
