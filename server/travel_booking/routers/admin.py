"""Admin router for ledger analytics."""

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.dependencies import Caller, DatabaseSession
from ..core.security import CallerIdentity
from ..schemas.analytics import AdminAnalytics
from ..schemas.common import PROBLEM_RESPONSES
from ..services.analytics_service import AnalyticsService
from .common import json_response, run_operation

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/admin", tags=["admin"])


@router.post("/analytics", response_model=AdminAnalytics, responses=PROBLEM_RESPONSES)
async def get_admin_analytics(
    db: AsyncSession = DatabaseSession,
    caller: CallerIdentity = Caller,
) -> JSONResponse:
    """
    Revenue, booking counts and the five most popular packages.

    Computed on every call from the current ledger.
    """
    analytics_service = AnalyticsService(db)

    analytics = await run_operation(
        "admin analytics",
        lambda: analytics_service.get_admin_analytics(caller),
        caller_id=caller.user_id,
    )
    return json_response(analytics)
