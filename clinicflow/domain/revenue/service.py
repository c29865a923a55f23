"""Revenue service - Aggregates settled payments for reporting"""

import logging
from datetime import date, timedelta
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from ... import config
from ...auth import AuthContext
from ...shared.errors import ForbiddenError, NotFoundError
from ..clinics.repository import ClinicRepository
from .repository import RevenueRepository

logger = logging.getLogger(__name__)

TWO_PLACES = Decimal("0.01")


def to_money(value) -> Decimal:
    return Decimal(str(value or 0)).quantize(TWO_PLACES)


def revenue_date(row) -> date:
    """A payment counts on the day it was paid, or on the appointment day if paid_at is missing"""
    moment = row.paid_at or row.start_time
    return moment.date()


def iso_week_label(day: date) -> str:
    year, week, _ = day.isocalendar()
    return f"{year}-W{week:02d}"


class RevenueAggregator:
    """
    Revenue figures for a clinic.

    Only COMPLETED payments on COMPLETED appointments are counted; an
    appointment without a payment row contributes nothing.
    """

    def __init__(
        self,
        db: Session,
        daily_window_days: Optional[int] = None,
        weekly_window_weeks: Optional[int] = None,
        currency: Optional[str] = None,
    ):
        self.db = db
        self.repo = RevenueRepository()
        self.clinics = ClinicRepository()
        self.daily_window_days = daily_window_days or config.REVENUE_DAILY_WINDOW_DAYS
        self.weekly_window_weeks = weekly_window_weeks or config.REVENUE_WEEKLY_WINDOW_WEEKS
        self.currency = currency or config.REVENUE_CURRENCY

    def calculate_revenue(
        self, clinic_id: int, actor: AuthContext, as_of: Optional[date] = None
    ) -> dict:
        """
        Daily buckets over the trailing window, ISO-week buckets over the
        trailing weeks, the calendar month containing `as_of`, and an all-time
        breakdown per service.
        """
        if not (actor.is_super_admin or actor.is_clinic_admin_of(clinic_id)):
            raise ForbiddenError("Only the clinic's admin can view its revenue")
        if not self.clinics.get_clinic(self.db, clinic_id):
            raise NotFoundError("Clinic not found")

        as_of = as_of or date.today()
        rows = self.repo.list_revenue_rows(self.db, clinic_id)

        first_day = as_of - timedelta(days=self.daily_window_days - 1)
        daily = {first_day + timedelta(days=i): Decimal("0") for i in range(self.daily_window_days)}

        current_week_start = as_of - timedelta(days=as_of.weekday())
        first_week_start = current_week_start - timedelta(weeks=self.weekly_window_weeks - 1)
        weekly = {
            first_week_start + timedelta(weeks=i): Decimal("0")
            for i in range(self.weekly_window_weeks)
        }

        monthly = Decimal("0")
        by_service: dict[int, dict] = {}

        for row in rows:
            amount = Decimal(str(row.amount))
            day = revenue_date(row)

            if first_day <= day <= as_of:
                daily[day] += amount

            week_start = day - timedelta(days=day.weekday())
            if week_start in weekly and day <= as_of:
                weekly[week_start] += amount

            if (day.year, day.month) == (as_of.year, as_of.month) and day <= as_of:
                monthly += amount

            entry = by_service.setdefault(
                row.service_id,
                {"serviceId": row.service_id, "serviceName": row.service_name, "count": 0, "revenue": Decimal("0")},
            )
            entry["count"] += 1
            entry["revenue"] += amount

        logger.info(
            f"💰 Revenue for clinic {clinic_id} as of {as_of.isoformat()}: "
            f"{len(rows)} payments, month total {to_money(monthly)}"
        )

        return {
            "clinicId": clinic_id,
            "asOf": as_of.isoformat(),
            "dailyRevenue": [
                {"date": day.isoformat(), "amount": to_money(amount)} for day, amount in daily.items()
            ],
            "weekly": [
                {
                    "week": iso_week_label(week_start),
                    "weekStart": week_start.isoformat(),
                    "amount": to_money(amount),
                }
                for week_start, amount in weekly.items()
            ],
            "monthly": to_money(monthly),
            "serviceRevenue": [
                {**entry, "revenue": to_money(entry["revenue"])}
                for _, entry in sorted(by_service.items())
            ],
        }

    def calculate_total_revenue(self, actor: AuthContext) -> dict:
        """Revenue across every clinic (super admin only)"""
        if not actor.is_super_admin:
            raise ForbiddenError("Only super admins can view total revenue")
        return {"totalRevenue": to_money(self.repo.sum_revenue(self.db)), "currency": self.currency}
