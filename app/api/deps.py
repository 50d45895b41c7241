"""API dependencies for authentication and service access."""

from typing import Annotated

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.core.exceptions import UnauthorizedError
from app.core.permissions import Principal
from app.core.security import principal_from_token
from app.services.analytics_service import AnalyticsService
from app.services.assignment_service import AssignmentService
from app.services.config_service import ConfigService
from app.services.container import Services
from app.services.payment_service import PaymentService
from app.services.profile_service import ProfileService
from app.services.scan_service import ScanService

# Security scheme; missing credentials are reported as our own 401
security = HTTPBearer(auto_error=False)


async def get_current_principal(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> Principal:
    """Decode the bearer token into the calling principal."""
    if credentials is None:
        raise UnauthorizedError()
    principal = principal_from_token(credentials.credentials)
    request.state.principal = principal
    return principal


def get_services(request: Request) -> Services:
    return request.app.state.services


def get_payment_service(services: Annotated[Services, Depends(get_services)]) -> PaymentService:
    return services.payments


def get_scan_service(services: Annotated[Services, Depends(get_services)]) -> ScanService:
    return services.scans


def get_config_service(services: Annotated[Services, Depends(get_services)]) -> ConfigService:
    return services.config


def get_assignment_service(services: Annotated[Services, Depends(get_services)]) -> AssignmentService:
    return services.assignments


def get_profile_service(services: Annotated[Services, Depends(get_services)]) -> ProfileService:
    return services.profiles


def get_analytics_service(services: Annotated[Services, Depends(get_services)]) -> AnalyticsService:
    return services.analytics


CurrentPrincipal = Annotated[Principal, Depends(get_current_principal)]
