"""Admin analytics endpoints."""

from datetime import date
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query

from app.api.deps import CurrentPrincipal, get_analytics_service
from app.schemas.analytics import (
    AccreditationStatsResponse,
    MealStatsResponse,
    PaymentStatsResponse,
)
from app.services.analytics_service import AnalyticsService

router = APIRouter()

Analytics = Annotated[AnalyticsService, Depends(get_analytics_service)]


@router.get("/payments", response_model=PaymentStatsResponse)
async def payment_stats(principal: CurrentPrincipal, analytics: Analytics) -> dict[str, Any]:
    return await analytics.get_payment_stats(principal)


@router.get("/accreditation", response_model=AccreditationStatsResponse)
async def accreditation_stats(principal: CurrentPrincipal, analytics: Analytics) -> dict[str, Any]:
    return await analytics.get_accreditation_stats(principal)


@router.get("/meals", response_model=MealStatsResponse)
async def meal_stats(
    principal: CurrentPrincipal,
    analytics: Analytics,
    day: date | None = Query(None, description="Defaults to today in the conference timezone"),
) -> dict[str, Any]:
    if day is None:
        day = analytics.today()
    return await analytics.get_meal_stats(principal, day)
