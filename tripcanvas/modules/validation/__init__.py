"""
modules/validation package — data quality guards before any store/cache write.
"""
from tripcanvas.modules.validation.trip_validator import (
    ValidationResult,
    validate_trip_details,
    validate_item,
    validate_experience,
    filter_valid,
)

__all__ = [
    "ValidationResult",
    "validate_trip_details",
    "validate_item",
    "validate_experience",
    "filter_valid",
]
