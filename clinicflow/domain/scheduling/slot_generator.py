"""
Slot Generation

Candidate start times step through business hours in increments of the
service duration; times already booked for the same service on that day are
removed.
"""

import logging
from datetime import date, datetime, time, timedelta
from typing import Optional, Union

from sqlalchemy.orm import Session

from ... import config
from ...models import Service
from ...shared.errors import InvalidInputError, NotFoundError
from ...shared.validators import parse_clock_time, parse_date
from ..clinics.repository import ClinicRepository
from .repository import AppointmentRepository

logger = logging.getLogger(__name__)

SLOT_FORMAT = "%H:%M"


def day_bounds(day: date) -> tuple[datetime, datetime]:
    """First and last representable instants of a calendar day"""
    return datetime.combine(day, time.min), datetime.combine(day, time.max)


def candidate_slots(
    day: date,
    duration_minutes: int,
    opens_at: time,
    closes_at: time,
    allow_overflow: bool = True,
) -> list[datetime]:
    """
    Start times from opening time, stepping by the duration, while the start is before closing.

    With allow_overflow the final slot may end after closing time, giving
    ceil(window / duration) candidates; without it only slots that finish by
    closing time are kept.
    """
    if duration_minutes <= 0:
        raise InvalidInputError("Service duration must be a positive number of minutes")

    step = timedelta(minutes=duration_minutes)
    current = datetime.combine(day, opens_at)
    closing = datetime.combine(day, closes_at)

    slots = []
    while current < closing:
        if not allow_overflow and current + step > closing:
            break
        slots.append(current)
        current += step
    return slots


class SlotGenerator:
    """Lists free start times for a service on a given day"""

    def __init__(
        self,
        db: Session,
        opens_at: Optional[str] = None,
        closes_at: Optional[str] = None,
        allow_overflow: Optional[bool] = None,
    ):
        self.db = db
        self.appointments = AppointmentRepository()
        self.clinics = ClinicRepository()
        self.opens_at = parse_clock_time(opens_at or config.BUSINESS_HOURS_START)
        self.closes_at = parse_clock_time(closes_at or config.BUSINESS_HOURS_END)
        self.allow_overflow = config.SLOT_ALLOW_OVERFLOW if allow_overflow is None else allow_overflow

        if self.opens_at >= self.closes_at:
            raise InvalidInputError("Business hours must open before they close")

    def generate_slots(self, service_id: int, day: Union[date, str]) -> list[str]:
        """Free "HH:MM" start times for `service_id` on `day`, in chronological order"""
        day = parse_date(day)
        service: Optional[Service] = self.clinics.get_service(self.db, service_id)
        if not service:
            raise NotFoundError("Service not found")

        candidates = candidate_slots(
            day, service.duration, self.opens_at, self.closes_at, self.allow_overflow
        )

        range_start, range_end = day_bounds(day)
        booked = {
            appointment.start_time.strftime(SLOT_FORMAT)
            for appointment in self.appointments.list_by_clinic_and_date_range(
                self.db,
                service.clinic_id,
                range_start,
                range_end,
                service_id=service.id,
                exclude_cancelled=True,
            )
        }

        free = [slot.strftime(SLOT_FORMAT) for slot in candidates]
        free = [slot for slot in free if slot not in booked]
        logger.debug(
            f"🗓️ Service {service_id} on {day.isoformat()}: {len(candidates)} candidates, "
            f"{len(booked)} booked, {len(free)} free"
        )
        return free
