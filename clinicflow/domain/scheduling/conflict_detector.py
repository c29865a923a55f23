"""
Conflict Detection

A doctor can occupy at most one appointment at any instant. Two appointments
conflict when their half-open intervals overlap: [s1, e1) and [s2, e2)
overlap iff s1 < e2 and s2 < e1. Cancelled appointments never conflict, and
back-to-back appointments (one ends exactly when the next starts) are allowed.
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ... import config
from ...shared.errors import AvailabilityUnknownError, InvalidInputError
from .repository import AppointmentRepository

logger = logging.getLogger(__name__)

FAIL_CLOSED = "closed"
FAIL_OPEN = "open"


def intervals_overlap(
    start_a: datetime, end_a: datetime, start_b: datetime, end_b: datetime
) -> bool:
    """Half-open interval overlap test"""
    return start_a < end_b and start_b < end_a


class ConflictDetector:
    """Checks a proposed doctor/time range against existing bookings"""

    def __init__(self, db: Session, fail_mode: Optional[str] = None):
        self.db = db
        self.repo = AppointmentRepository()
        self.fail_mode = fail_mode or config.CONFLICT_CHECK_FAIL_MODE

    def find_conflicts(
        self,
        doctor_id: int,
        start_time: datetime,
        end_time: datetime,
        exclude_appointment_id: Optional[int] = None,
    ) -> list[int]:
        """IDs of overlapping appointments; query errors propagate"""
        if start_time >= end_time:
            raise InvalidInputError("Appointment start time must be before its end time")
        return self.repo.find_conflicting_ids(
            self.db, doctor_id, start_time, end_time, exclude_appointment_id
        )

    def has_conflict(
        self,
        doctor_id: int,
        start_time: datetime,
        end_time: datetime,
        exclude_appointment_id: Optional[int] = None,
    ) -> bool:
        """
        True iff the doctor has a non-cancelled appointment overlapping [start_time, end_time).

        When the lookup itself fails the session is rolled back, which also
        ends the caller's transaction and any row locks it held. The fail
        mode then decides: "closed" raises AvailabilityUnknownError so the
        booking is refused without claiming the slot is taken, "open" reports
        no conflict and lets the booking through.
        """
        try:
            conflicts = self.find_conflicts(doctor_id, start_time, end_time, exclude_appointment_id)
        except SQLAlchemyError as e:
            logger.error(
                f"❌ Conflict check failed for doctor {doctor_id} "
                f"({start_time.isoformat()} - {end_time.isoformat()}), fail mode={self.fail_mode}: {e}"
            )
            self.db.rollback()
            if self.fail_mode != FAIL_OPEN:
                raise AvailabilityUnknownError() from e
            return False

        if conflicts:
            logger.info(
                f"⛔ Doctor {doctor_id} already booked {start_time.isoformat()} - "
                f"{end_time.isoformat()} (appointments {conflicts})"
            )
        return bool(conflicts)
