"""Revenue router - Clinic and platform revenue reports"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import AuthContext, get_auth_context, require_roles
from ...database import get_db
from ...models import UserRole
from ...shared.validators import parse_date
from .schemas import RevenueReport, TotalRevenue
from .service import RevenueAggregator

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Revenue"])


def get_revenue_aggregator(db: Session = Depends(get_db)) -> RevenueAggregator:
    """Dependency injection for RevenueAggregator"""
    return RevenueAggregator(db)


@router.get("/clinics/{clinic_id}/revenue", response_model=RevenueReport)
async def get_clinic_revenue(
    clinic_id: int,
    as_of: Optional[str] = Query(None, alias="asOf", description="YYYY-MM-DD, defaults to today"),
    actor: AuthContext = Depends(get_auth_context),
    aggregator: RevenueAggregator = Depends(get_revenue_aggregator),
):
    """Daily, weekly, monthly and per-service revenue for a clinic"""
    report = aggregator.calculate_revenue(
        clinic_id, actor, as_of=parse_date(as_of) if as_of else None
    )
    return RevenueReport(**report)


@router.get("/revenue/total", response_model=TotalRevenue)
async def get_total_revenue(
    actor: AuthContext = Depends(require_roles(UserRole.SUPER_ADMIN)),
    aggregator: RevenueAggregator = Depends(get_revenue_aggregator),
):
    """Revenue across all clinics (super admin)"""
    return TotalRevenue(**aggregator.calculate_total_revenue(actor))
