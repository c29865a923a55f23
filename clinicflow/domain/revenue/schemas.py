"""Revenue domain schemas"""

from pydantic import BaseModel


class DailyRevenue(BaseModel):
    date: str
    amount: float


class WeeklyRevenue(BaseModel):
    week: str  # ISO week, e.g. 2024-W24
    weekStart: str
    amount: float


class ServiceRevenue(BaseModel):
    serviceId: int
    serviceName: str
    count: int
    revenue: float


class RevenueReport(BaseModel):
    clinicId: int
    asOf: str
    dailyRevenue: list[DailyRevenue]
    weekly: list[WeeklyRevenue]
    monthly: float
    serviceRevenue: list[ServiceRevenue]


class TotalRevenue(BaseModel):
    totalRevenue: float
    currency: str
