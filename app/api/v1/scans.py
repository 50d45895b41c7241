"""Scan endpoints (validators) and meal validation history."""

from typing import Annotated, Any
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from app.api.deps import CurrentPrincipal, get_scan_service
from app.core.middleware import scan_limiter
from app.models.scan import MealValidation
from app.schemas.scan import (
    MealValidationResponse,
    ScanCreate,
    ScanHistoryItem,
    ScanResultResponse,
)
from app.services.scan_service import ScanResult, ScanService

router = APIRouter()

Scans = Annotated[ScanService, Depends(get_scan_service)]


@router.post("", response_model=ScanResultResponse, status_code=status.HTTP_201_CREATED)
async def record_scan(
    data: ScanCreate,
    principal: CurrentPrincipal,
    _: Annotated[None, Depends(scan_limiter)],
    scans: Scans,
) -> ScanResult:
    """Record a scan.

    Repeat accreditations and meal validations still return 201 with
    ``success=false``; the scan itself is always recorded.
    """
    return await scans.record_scan(
        principal,
        data.scan_type,
        subject_id=data.participant_id,
        phone=data.phone,
        location=data.location,
        notes=data.notes,
    )


@router.get("/history", response_model=list[ScanHistoryItem])
async def get_scan_history(
    principal: CurrentPrincipal,
    scans: Scans,
    limit: int = Query(50, ge=1, le=200),
) -> list[dict[str, Any]]:
    return await scans.get_scan_history(principal, limit=limit)


@router.get("/meals", response_model=list[MealValidationResponse])
async def get_my_meal_validations(principal: CurrentPrincipal, scans: Scans) -> list[MealValidation]:
    return await scans.get_meal_validations(principal)


@router.get("/meals/{profile_id}", response_model=list[MealValidationResponse])
async def get_meal_validations(
    profile_id: UUID, principal: CurrentPrincipal, scans: Scans
) -> list[MealValidation]:
    return await scans.get_meal_validations(principal, profile_id)
