"""Dashboard routes."""

from typing import Optional

from fastapi import APIRouter, Query, Request

from ims.core.rate_limit import limiter
from ims.db.session import DbSession
from ims.services.dashboard_service import DashboardService

router = APIRouter()


@router.get("/summary")
@limiter.limit("60/minute")
def get_summary(
    request: Request,
    db: DbSession,
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = Query(None, ge=1900),
):
    """Headline KPIs and the ranked low-stock panel."""
    return DashboardService(db).summary(month=month, year=year)
