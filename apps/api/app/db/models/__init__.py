"""SQLAlchemy ORM models for team types and custom fields."""

from app.db.models.custom_fields import CustomFieldDefinition, CustomFieldValue
from app.db.models.team_types import EntityTypeAssignment, TeamType, TypeTemplate

__all__ = [
    "CustomFieldDefinition",
    "CustomFieldValue",
    "EntityTypeAssignment",
    "TeamType",
    "TypeTemplate",
]
