from datetime import date, datetime
from decimal import Decimal

import pytest

from clinicflow.domain.revenue.service import RevenueAggregator, iso_week_label
from clinicflow.models import AppointmentStatus, PaymentStatus
from clinicflow.shared.errors import ForbiddenError, NotFoundError
from tests.conftest import ctx

AS_OF = date(2024, 6, 10)


def daily_amount(report: dict, day: str) -> Decimal:
    return next(entry["amount"] for entry in report["dailyRevenue"] if entry["date"] == day)


@pytest.fixture
def completed_visit(factory, world):
    appointment = factory.appointment(
        world["service"],
        world["doctor"],
        world["client"],
        datetime(2024, 6, 10, 9, 0),
        status=AppointmentStatus.COMPLETED,
    )
    factory.payment(appointment, "50.00", paid_at=datetime(2024, 6, 10, 9, 45))
    return appointment


class TestClinicRevenue:
    def test_completed_paid_visit_is_counted(self, db, factory, world, completed_visit):
        factory.appointment(
            world["service"],
            world["doctor"],
            world["client"],
            datetime(2024, 6, 10, 10, 0),
            status=AppointmentStatus.CANCELLED,
        )

        report = RevenueAggregator(db).calculate_revenue(world["clinic"].id, ctx(world["admin"]), as_of=AS_OF)

        assert daily_amount(report, "2024-06-10") == Decimal("50.00")
        assert daily_amount(report, "2024-06-09") == Decimal("0.00")
        assert report["monthly"] == Decimal("50.00")
        assert report["serviceRevenue"] == [
            {
                "serviceId": world["service"].id,
                "serviceName": "General Consultation",
                "count": 1,
                "revenue": Decimal("50.00"),
            }
        ]
        current_week = report["weekly"][-1]
        assert current_week["week"] == "2024-W24"
        assert current_week["weekStart"] == "2024-06-10"
        assert current_week["amount"] == Decimal("50.00")

    def test_window_sizes(self, db, world):
        report = RevenueAggregator(db).calculate_revenue(world["clinic"].id, ctx(world["admin"]), as_of=AS_OF)

        assert len(report["dailyRevenue"]) == 30
        assert report["dailyRevenue"][0]["date"] == "2024-05-12"
        assert report["dailyRevenue"][-1]["date"] == "2024-06-10"
        assert len(report["weekly"]) == 12
        assert report["monthly"] == Decimal("0.00")
        assert report["serviceRevenue"] == []

    def test_unsettled_payments_are_ignored(self, db, factory, world):
        scheduled = factory.appointment(world["service"], world["doctor"], world["client"], datetime(2024, 6, 10, 9))
        factory.payment(scheduled, "50.00", paid_at=datetime(2024, 6, 10, 9))
        completed = factory.appointment(
            world["service"],
            world["doctor"],
            world["client"],
            datetime(2024, 6, 10, 11),
            status=AppointmentStatus.COMPLETED,
        )
        factory.payment(completed, "50.00", status=PaymentStatus.PENDING)
        factory.payment(completed, "50.00", paid_at=datetime(2024, 6, 10, 12), status=PaymentStatus.REFUNDED)

        report = RevenueAggregator(db).calculate_revenue(world["clinic"].id, ctx(world["admin"]), as_of=AS_OF)

        assert report["monthly"] == Decimal("0.00")
        assert report["serviceRevenue"] == []

    def test_missing_paid_at_falls_back_to_appointment_day(self, db, factory, world):
        appointment = factory.appointment(
            world["service"],
            world["doctor"],
            world["client"],
            datetime(2024, 6, 3, 9),
            status=AppointmentStatus.COMPLETED,
        )
        factory.payment(appointment, "75.50")

        report = RevenueAggregator(db).calculate_revenue(world["clinic"].id, ctx(world["admin"]), as_of=AS_OF)

        assert daily_amount(report, "2024-06-03") == Decimal("75.50")
        assert report["weekly"][-2]["amount"] == Decimal("75.50")

    def test_previous_month_is_not_in_monthly(self, db, factory, world):
        appointment = factory.appointment(
            world["service"],
            world["doctor"],
            world["client"],
            datetime(2024, 5, 31, 9),
            status=AppointmentStatus.COMPLETED,
        )
        factory.payment(appointment, "50.00", paid_at=datetime(2024, 5, 31, 10))

        report = RevenueAggregator(db).calculate_revenue(world["clinic"].id, ctx(world["admin"]), as_of=AS_OF)

        assert report["monthly"] == Decimal("0.00")
        assert daily_amount(report, "2024-05-31") == Decimal("50.00")
        assert report["serviceRevenue"][0]["revenue"] == Decimal("50.00")

    def test_other_clinics_are_excluded(self, db, factory, world, completed_visit):
        other_clinic = factory.clinic(name="Other")
        other_service = factory.service(other_clinic, price="80.00")
        other = factory.appointment(
            other_service,
            factory.doctor(other_clinic),
            world["client"],
            datetime(2024, 6, 10, 9),
            status=AppointmentStatus.COMPLETED,
        )
        factory.payment(other, "80.00", paid_at=datetime(2024, 6, 10, 10))

        report = RevenueAggregator(db).calculate_revenue(world["clinic"].id, ctx(world["admin"]), as_of=AS_OF)

        assert report["monthly"] == Decimal("50.00")

    def test_access(self, db, factory, world):
        aggregator = RevenueAggregator(db)
        other_admin = factory.admin(factory.clinic(name="Other"))

        for actor in (world["doctor"], world["client"], other_admin):
            with pytest.raises(ForbiddenError):
                aggregator.calculate_revenue(world["clinic"].id, ctx(actor), as_of=AS_OF)

        report = aggregator.calculate_revenue(world["clinic"].id, ctx(factory.super_admin()), as_of=AS_OF)
        assert report["clinicId"] == world["clinic"].id

    def test_unknown_clinic(self, db, factory):
        with pytest.raises(NotFoundError):
            RevenueAggregator(db).calculate_revenue(9999, ctx(factory.super_admin()), as_of=AS_OF)


class TestTotalRevenue:
    def test_sums_every_clinic(self, db, factory, world, completed_visit):
        other_clinic = factory.clinic(name="Other")
        other_service = factory.service(other_clinic, price="80.00")
        other = factory.appointment(
            other_service,
            factory.doctor(other_clinic),
            world["client"],
            datetime(2024, 6, 10, 9),
            status=AppointmentStatus.COMPLETED,
        )
        factory.payment(other, "80.00", paid_at=datetime(2024, 6, 10, 10))

        total = RevenueAggregator(db).calculate_total_revenue(ctx(factory.super_admin()))

        assert total == {"totalRevenue": Decimal("130.00"), "currency": "USD"}

    def test_clinic_admin_is_forbidden(self, db, world):
        with pytest.raises(ForbiddenError):
            RevenueAggregator(db).calculate_total_revenue(ctx(world["admin"]))


def test_iso_week_label_across_year_boundary():
    assert iso_week_label(date(2024, 12, 30)) == "2025-W01"
    assert iso_week_label(date(2024, 6, 10)) == "2024-W24"
