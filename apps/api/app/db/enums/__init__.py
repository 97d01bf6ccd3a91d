"""Enum definitions for application constants."""

from app.db.enums.custom_fields import (
    CHOICE_FIELD_KINDS,
    FieldKind,
)
from app.db.enums.entities import ENTITY_KIND_LABELS, EntityKind

__all__ = [
    "CHOICE_FIELD_KINDS",
    "ENTITY_KIND_LABELS",
    "EntityKind",
    "FieldKind",
]
