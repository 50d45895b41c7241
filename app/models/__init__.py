"""Database models."""

from app.models.assignment import ValidatorAssignment
from app.models.config import ConfigEntry
from app.models.profile import Profile
from app.models.scan import MealValidation, Scan

__all__ = [
    # Profile
    "Profile",
    # Scans
    "Scan",
    "MealValidation",
    # Schedule
    "ValidatorAssignment",
    # Config
    "ConfigEntry",
]
