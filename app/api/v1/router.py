"""Main API router that includes all endpoint routers."""

from fastapi import APIRouter

from app.api.v1 import analytics, assignments, config, payments, registrations, scans

api_router = APIRouter()

# Registration
api_router.include_router(registrations.router, prefix="/registrations", tags=["Registrations"])

# Payments
api_router.include_router(payments.router, prefix="/payments", tags=["Payments"])

# Scans
api_router.include_router(scans.router, prefix="/scans", tags=["Scans"])

# Validator schedule
api_router.include_router(assignments.router, prefix="/assignments", tags=["Assignments"])

# Config
api_router.include_router(config.router, prefix="/config", tags=["Config"])

# Analytics
api_router.include_router(analytics.router, prefix="/analytics", tags=["Analytics"])
