"""Pydantic schemas for Custom Fields."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from app.db.enums import FieldKind


# =============================================================================
# Custom Field Definition Schemas
# =============================================================================


class CustomFieldBase(BaseModel):
    """Base custom field fields."""

    name: str = Field(min_length=1, max_length=255, description="Display name")
    field_kind: FieldKind = Field(description="Data type for the field")
    description: str | None = Field(default=None, max_length=2000)
    is_required: bool = False
    default_value: str | None = Field(default=None, max_length=2000)
    options: list[str] | None = Field(
        default=None,
        description="Options for dropdown/multi_select (may start empty and grow)",
    )

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Name cannot be blank")
        return v.strip()


class CustomFieldCreate(CustomFieldBase):
    """Schema for creating a custom field."""

    require_options: bool = Field(
        default=False,
        description="Reject choice fields created without options",
    )


class CustomFieldUpdate(BaseModel):
    """Schema for updating a custom field (only set fields are applied)."""

    name: str | None = Field(default=None, min_length=1, max_length=255)
    field_kind: FieldKind | None = None
    description: str | None = Field(default=None, max_length=2000)
    is_required: bool | None = None
    default_value: str | None = Field(default=None, max_length=2000)
    options: list[str] | None = None
    display_order: int | None = None


class CustomFieldRead(BaseModel):
    """Schema for reading a custom field."""

    id: UUID
    type_id: UUID
    name: str
    field_kind: str
    description: str | None
    is_required: bool
    default_value: str | None
    options: list[str] | None
    display_order: int
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class CustomFieldOrder(BaseModel):
    """New display order for all fields of a type."""

    field_ids: list[UUID]


class CustomFieldOptionAdd(BaseModel):
    option: str = Field(min_length=1, max_length=255)


class CustomFieldDeleteResponse(BaseModel):
    field_id: UUID
    values_removed: int


# =============================================================================
# Custom Field Value Schemas
# =============================================================================


class EntityCustomValuesSet(BaseModel):
    """Full replacement of an entity's custom field values."""

    values: dict[UUID, Any] = Field(
        default_factory=dict,
        description="Dict of field_id -> value; omitted fields are cleared",
    )


class CustomFieldValueRead(BaseModel):
    """One field of a grouped projection."""

    field_id: UUID
    name: str
    field_kind: str
    description: str | None
    is_required: bool
    options: list[str] | None
    value: Any
    display_value: str
    has_value: bool


class CustomFieldTypeGroup(BaseModel):
    """Fields contributed by one assigned type."""

    type_id: UUID
    type_name: str
    type_icon: str
    type_color: str
    fields: list[CustomFieldValueRead]


class EntityCustomFieldsResponse(BaseModel):
    """Grouped custom fields for an entity."""

    entity_kind: str
    entity_id: UUID
    groups: list[CustomFieldTypeGroup]


class EntityCustomValuesValidation(BaseModel):
    """Dry-run validation outcome, keyed like the 422 error map."""

    valid: bool
    errors: dict[str, list[dict[str, Any]]] = Field(default_factory=dict)
