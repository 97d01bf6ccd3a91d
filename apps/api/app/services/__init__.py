"""Service layer modules."""

from app.services.errors import (
    CustomFieldServiceError,
    DependencyError,
    NotFoundError,
    ValidationError,
)

# Import service modules (not individual functions) for cleaner access
from app.services import field_codec
from app.services import team_type_service
from app.services import custom_field_service
from app.services import custom_field_value_service
from app.services import custom_field_projection_service
from app.services import type_template_service

__all__ = [
    # Errors
    "CustomFieldServiceError",
    "DependencyError",
    "NotFoundError",
    "ValidationError",
    # Service modules
    "field_codec",
    "team_type_service",
    "custom_field_service",
    "custom_field_value_service",
    "custom_field_projection_service",
    "type_template_service",
]
