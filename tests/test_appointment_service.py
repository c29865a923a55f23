from datetime import datetime, timedelta
from unittest.mock import Mock

import pytest
from sqlalchemy.exc import OperationalError

from clinicflow.domain.scheduling.conflict_detector import FAIL_CLOSED, FAIL_OPEN, ConflictDetector
from clinicflow.domain.scheduling.repository import AppointmentRepository
from clinicflow.domain.scheduling.schemas import AppointmentCreate, AppointmentUpdate
from clinicflow.domain.scheduling.service import AppointmentService
from clinicflow.models import Appointment, AppointmentStatus
from clinicflow.shared.errors import (
    AvailabilityUnknownError,
    ConflictError,
    ForbiddenError,
    InvalidInputError,
    InvalidStateError,
    NotFoundError,
)
from tests.conftest import ctx


def at(hour: int, minute: int = 0, day: int = 10) -> datetime:
    return datetime(2024, 6, day, hour, minute)


def book(db, world, start, doctor=None, actor=None, service_id=None, **extra):
    data = AppointmentCreate(
        serviceId=service_id or world["service"].id,
        startTime=start,
        doctorId=(doctor or world["doctor"]).id,
        clientId=world["client"].id,
        **extra,
    )
    return AppointmentService(db).create_appointment(data, actor or ctx(world["admin"]))


class TestBooking:
    def test_overlapping_booking_is_rejected(self, db, world):
        first = book(db, world, at(9))
        assert first.status == AppointmentStatus.SCHEDULED

        with pytest.raises(ConflictError) as exc:
            book(db, world, at(9, 15))
        assert exc.value.status_code == 409

        third = book(db, world, at(9, 30))
        assert third.start_time == at(9, 30)

    def test_end_time_is_start_plus_duration(self, db, factory, world):
        long_service = factory.service(world["clinic"], name="Specialist", duration=45)

        appointment = book(db, world, at(11), service_id=long_service.id)

        assert appointment.end_time - appointment.start_time == timedelta(minutes=45)
        assert appointment.end_time == at(11, 45)

    def test_other_doctor_can_take_the_same_time(self, db, world):
        book(db, world, at(9))

        second = book(db, world, at(9), doctor=world["doctor2"])

        assert second.doctor_id == world["doctor2"].id

    def test_cancelled_booking_frees_the_doctor(self, db, world):
        first = book(db, world, at(9))
        AppointmentService(db).cancel_appointment(first.id, ctx(world["admin"]))

        again = book(db, world, at(9))

        assert again.status == AppointmentStatus.SCHEDULED

    def test_client_booking_auto_assigns_first_doctor(self, db, world):
        data = AppointmentCreate(serviceId=world["service"].id, startTime=at(10))

        appointment = AppointmentService(db).create_appointment(data, ctx(world["client"]))

        assert appointment.doctor_id == min(world["doctor"].id, world["doctor2"].id)
        assert appointment.client_id == world["client"].id

    def test_client_booking_without_doctors(self, db, factory):
        clinic = factory.clinic(name="Empty Clinic")
        service = factory.service(clinic)
        client = factory.client()
        data = AppointmentCreate(serviceId=service.id, startTime=at(10))

        with pytest.raises(InvalidInputError):
            AppointmentService(db).create_appointment(data, ctx(client))

    def test_client_cannot_book_for_someone_else(self, db, factory, world):
        other = factory.client()
        data = AppointmentCreate(serviceId=world["service"].id, startTime=at(10), clientId=other.id)

        with pytest.raises(ForbiddenError):
            AppointmentService(db).create_appointment(data, ctx(world["client"]))

    def test_staff_must_name_doctor_and_client(self, db, world):
        service = AppointmentService(db)
        admin = ctx(world["admin"])

        with pytest.raises(InvalidInputError):
            service.create_appointment(
                AppointmentCreate(serviceId=world["service"].id, startTime=at(10), clientId=world["client"].id),
                admin,
            )
        with pytest.raises(InvalidInputError):
            service.create_appointment(
                AppointmentCreate(serviceId=world["service"].id, startTime=at(10), doctorId=world["doctor"].id),
                admin,
            )

    def test_doctor_from_another_clinic(self, db, factory, world):
        other_clinic = factory.clinic(name="Other")
        outsider = factory.doctor(other_clinic)

        with pytest.raises(NotFoundError):
            book(db, world, at(10), doctor=outsider)

    def test_admin_of_another_clinic_is_forbidden(self, db, factory, world):
        other_admin = factory.admin(factory.clinic(name="Other"))

        with pytest.raises(ForbiddenError):
            book(db, world, at(10), actor=ctx(other_admin))

    def test_service_and_clinic_mismatch(self, db, factory, world):
        other_clinic = factory.clinic(name="Other")

        with pytest.raises(InvalidInputError):
            book(db, world, at(10), clinicId=other_clinic.id)

    def test_unknown_service(self, db, world):
        with pytest.raises(NotFoundError):
            book(db, world, at(10), service_id=9999)

    def test_client_snapshot_is_kept(self, db, world):
        client = world["client"]
        appointment = book(db, world, at(9))

        client.email = "changed@example.com"
        client.first_name = "Renamed"
        db.commit()
        db.refresh(appointment)

        assert appointment.client_email.startswith("client")
        assert appointment.client_name != client.full_name

    def test_notes_are_sanitized(self, db, world):
        appointment = book(db, world, at(9), notes="<b>bring x-rays</b>")

        assert appointment.notes == "&lt;b&gt;bring x-rays&lt;/b&gt;"


class TestLifecycle:
    def test_complete_then_complete_again(self, db, world):
        appointment = book(db, world, at(9))
        service = AppointmentService(db)

        done = service.complete_appointment(appointment.id, ctx(world["doctor"]))
        assert done.status == AppointmentStatus.COMPLETED

        with pytest.raises(InvalidStateError):
            service.complete_appointment(appointment.id, ctx(world["doctor"]))

    def test_completed_cannot_be_cancelled(self, db, world):
        appointment = book(db, world, at(9))
        service = AppointmentService(db)
        service.complete_appointment(appointment.id, ctx(world["admin"]))

        with pytest.raises(InvalidStateError) as exc:
            service.cancel_appointment(appointment.id, ctx(world["admin"]))
        assert exc.value.status_code == 400

    def test_cancelled_cannot_be_cancelled_or_completed(self, db, world):
        appointment = book(db, world, at(9))
        service = AppointmentService(db)
        service.cancel_appointment(appointment.id, ctx(world["admin"]))

        with pytest.raises(InvalidStateError):
            service.cancel_appointment(appointment.id, ctx(world["admin"]))
        with pytest.raises(InvalidStateError):
            service.complete_appointment(appointment.id, ctx(world["admin"]))

    def test_only_assigned_doctor_or_clinic_admin(self, db, factory, world):
        appointment = book(db, world, at(9))
        service = AppointmentService(db)
        other_admin = factory.admin(factory.clinic(name="Other"))

        for actor in (world["doctor2"], other_admin, world["client"]):
            with pytest.raises(ForbiddenError):
                service.cancel_appointment(appointment.id, ctx(actor))

        assert service.get_appointment(appointment.id, ctx(world["admin"])).status == AppointmentStatus.SCHEDULED

    def test_missing_appointment(self, db, world):
        with pytest.raises(NotFoundError):
            AppointmentService(db).cancel_appointment(9999, ctx(world["admin"]))


class TestUpdate:
    def test_new_start_time_rederives_end(self, db, world):
        appointment = book(db, world, at(9))

        updated = AppointmentService(db).update_appointment(
            appointment.id, AppointmentUpdate(startTime=at(14), notes="moved"), ctx(world["admin"])
        )

        assert updated.start_time == at(14)
        assert updated.end_time == at(14, 30)
        assert updated.notes == "moved"

    def test_new_service_rederives_end(self, db, factory, world):
        long_service = factory.service(world["clinic"], name="Specialist", duration=45)
        appointment = book(db, world, at(9))

        updated = AppointmentService(db).update_appointment(
            appointment.id, AppointmentUpdate(serviceId=long_service.id), ctx(world["admin"])
        )

        assert updated.end_time == at(9, 45)

    def test_update_does_not_recheck_conflicts(self, db, world):
        book(db, world, at(9))
        second = book(db, world, at(10))

        updated = AppointmentService(db).update_appointment(
            second.id, AppointmentUpdate(startTime=at(9)), ctx(world["admin"])
        )

        assert updated.start_time == at(9)

    def test_update_from_another_clinic_is_forbidden(self, db, factory, world):
        appointment = book(db, world, at(9))
        other_admin = factory.admin(factory.clinic(name="Other"))

        with pytest.raises(ForbiddenError):
            AppointmentService(db).update_appointment(
                appointment.id, AppointmentUpdate(notes="x"), ctx(other_admin)
            )

    def test_explicit_null_clears_contact_details(self, db, world):
        appointment = book(db, world, at(9), notes="first visit")
        assert appointment.client_email is not None

        updated = AppointmentService(db).update_appointment(
            appointment.id,
            AppointmentUpdate.model_validate({"clientEmail": None, "clientPhone": None}),
            ctx(world["admin"]),
        )

        assert updated.client_email is None
        assert updated.client_phone is None
        assert updated.notes == "first visit"
        assert updated.start_time == at(9)

    def test_null_start_time_is_rejected(self, db, world):
        appointment = book(db, world, at(9))

        with pytest.raises(InvalidInputError):
            AppointmentService(db).update_appointment(
                appointment.id, AppointmentUpdate.model_validate({"startTime": None}), ctx(world["admin"])
            )

    def test_service_edit_keeps_existing_end_time(self, db, world):
        appointment = book(db, world, at(9))
        world["service"].duration = 60
        db.commit()
        db.refresh(appointment)

        assert appointment.end_time == at(9, 30)


class TestListings:
    def test_clinic_day_listing_is_ordered_and_bounded(self, db, factory, world):
        service, doctor, client = world["service"], world["doctor"], world["client"]
        late = factory.appointment(service, doctor, client, datetime(2024, 6, 10, 23, 30))
        early = factory.appointment(service, doctor, client, datetime(2024, 6, 10, 0, 0))
        factory.appointment(service, doctor, client, datetime(2024, 6, 11, 0, 0))
        factory.appointment(service, doctor, client, datetime(2024, 6, 9, 23, 30))

        listed = AppointmentService(db).list_for_clinic_and_date(
            world["clinic"].id, "2024-06-10", ctx(world["admin"])
        )

        assert [a.id for a in listed] == [early.id, late.id]

    def test_clinic_listing_requires_staff(self, db, world):
        with pytest.raises(ForbiddenError):
            AppointmentService(db).list_for_clinic(world["clinic"].id, ctx(world["client"]))

    def test_doctor_schedule_visibility(self, db, world):
        book(db, world, at(9))
        service = AppointmentService(db)

        assert len(service.list_for_doctor(world["doctor"].id, ctx(world["doctor"]))) == 1
        assert len(service.list_for_doctor(world["doctor"].id, ctx(world["admin"]))) == 1
        with pytest.raises(ForbiddenError):
            service.list_for_doctor(world["doctor"].id, ctx(world["doctor2"]))
        with pytest.raises(NotFoundError):
            service.list_for_doctor(9999, ctx(world["admin"]))

    def test_staff_only_see_client_bookings_at_their_clinic(self, db, factory, world):
        book(db, world, at(9))
        other_clinic = factory.clinic(name="Other")
        other_service = factory.service(other_clinic)
        other_doctor = factory.doctor(other_clinic)
        factory.appointment(other_service, other_doctor, world["client"], at(11))
        service = AppointmentService(db)

        assert len(service.list_for_client(world["client"].id, ctx(world["client"]))) == 2
        assert len(service.list_for_client(world["client"].id, ctx(world["admin"]))) == 1
        with pytest.raises(ForbiddenError):
            service.list_for_client(world["client"].id, ctx(factory.client()))

    def test_client_sees_own_appointment(self, db, factory, world):
        appointment = book(db, world, at(9))
        service = AppointmentService(db)

        assert service.get_appointment(appointment.id, ctx(world["client"])).id == appointment.id
        with pytest.raises(ForbiddenError):
            service.get_appointment(appointment.id, ctx(factory.client()))


class TestConflictLookupFailure:
    @staticmethod
    def service_with_broken_lookup(db, fail_mode):
        detector = ConflictDetector(db, fail_mode=fail_mode)
        detector.repo = Mock()
        detector.repo.find_conflicting_ids.side_effect = OperationalError(
            "SELECT appointments.id", {}, Exception("connection lost")
        )
        service = AppointmentService(db, conflict_detector=detector)
        service.repo.lock_doctor = Mock(wraps=AppointmentRepository.lock_doctor)
        return service

    @staticmethod
    def request(world):
        return AppointmentCreate(
            serviceId=world["service"].id,
            startTime=at(9),
            doctorId=world["doctor"].id,
            clientId=world["client"].id,
        )

    def test_fail_closed_reports_unknown_availability(self, db, world):
        service = self.service_with_broken_lookup(db, FAIL_CLOSED)

        with pytest.raises(AvailabilityUnknownError) as exc:
            service.create_appointment(self.request(world), ctx(world["admin"]))

        assert exc.value.status_code == 503
        assert db.query(Appointment).count() == 0

    def test_fail_open_relocks_doctor_before_insert(self, db, world):
        service = self.service_with_broken_lookup(db, FAIL_OPEN)

        appointment = service.create_appointment(self.request(world), ctx(world["admin"]))

        assert appointment.status == AppointmentStatus.SCHEDULED
        assert service.repo.lock_doctor.call_count == 2

    def test_healthy_lookup_locks_once(self, db, world):
        service = AppointmentService(db)
        service.repo.lock_doctor = Mock(wraps=AppointmentRepository.lock_doctor)

        service.create_appointment(self.request(world), ctx(world["admin"]))

        assert service.repo.lock_doctor.call_count == 1
