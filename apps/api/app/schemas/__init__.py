"""Pydantic schemas for API request/response models."""

from app.schemas.custom_field import (
    CustomFieldCreate,
    CustomFieldDeleteResponse,
    CustomFieldOptionAdd,
    CustomFieldOrder,
    CustomFieldRead,
    CustomFieldTypeGroup,
    CustomFieldUpdate,
    CustomFieldValueRead,
    EntityCustomFieldsResponse,
    EntityCustomValuesSet,
    EntityCustomValuesValidation,
)
from app.schemas.team_type import (
    EntityTypesResponse,
    EntityTypesSet,
    TeamTypeCreate,
    TeamTypeDeleteCheck,
    TeamTypeNameCheck,
    TeamTypeRead,
    TeamTypeUpdate,
    TemplateInstallRequest,
    TypeTemplateCreate,
    TypeTemplateRead,
    TypeTemplateUpdate,
)

__all__ = [
    # Custom fields
    "CustomFieldCreate",
    "CustomFieldDeleteResponse",
    "CustomFieldOptionAdd",
    "CustomFieldOrder",
    "CustomFieldRead",
    "CustomFieldTypeGroup",
    "CustomFieldUpdate",
    "CustomFieldValueRead",
    "EntityCustomFieldsResponse",
    "EntityCustomValuesSet",
    "EntityCustomValuesValidation",
    # Team types
    "EntityTypesResponse",
    "EntityTypesSet",
    "TeamTypeCreate",
    "TeamTypeDeleteCheck",
    "TeamTypeNameCheck",
    "TeamTypeRead",
    "TeamTypeUpdate",
    # Templates
    "TemplateInstallRequest",
    "TypeTemplateCreate",
    "TypeTemplateRead",
    "TypeTemplateUpdate",
]
