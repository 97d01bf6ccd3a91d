"""Per-entity endpoints: type assignments and grouped custom field values."""

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.deps import get_db, get_value_validator, require_csrf_header
from app.db.enums import EntityKind
from app.schemas.custom_field import (
    CustomFieldTypeGroup,
    CustomFieldValueRead,
    EntityCustomFieldsResponse,
    EntityCustomValuesSet,
    EntityCustomValuesValidation,
)
from app.schemas.team_type import EntityTypesResponse, EntityTypesSet
from app.services import (
    custom_field_projection_service,
    custom_field_value_service,
    team_type_service,
)
from app.services.custom_field_projection_service import TypeGroup
from app.services.field_codec import FieldValueValidator


router = APIRouter(
    prefix="/teams/{team_id}/entities/{entity_kind}/{entity_id}",
    tags=["entity-custom-fields"],
)


def _to_response(
    entity_kind: EntityKind, entity_id: UUID, groups: list[TypeGroup]
) -> EntityCustomFieldsResponse:
    return EntityCustomFieldsResponse(
        entity_kind=entity_kind.value,
        entity_id=entity_id,
        groups=[
            CustomFieldTypeGroup(
                type_id=group.team_type.id,
                type_name=group.team_type.name,
                type_icon=group.team_type.icon,
                type_color=group.team_type.color,
                fields=[
                    CustomFieldValueRead(
                        field_id=f.definition.id,
                        name=f.definition.name,
                        field_kind=f.definition.field_kind,
                        description=f.definition.description,
                        is_required=f.definition.is_required,
                        options=f.definition.options,
                        value=f.value,
                        display_value=f.display_value,
                        has_value=f.has_value,
                    )
                    for f in group.fields
                ],
            )
            for group in groups
        ],
    )


# =============================================================================
# Type assignments
# =============================================================================


@router.get("/types", response_model=EntityTypesResponse)
def get_entity_types(
    team_id: UUID,
    entity_kind: EntityKind,
    entity_id: UUID,
    db: Session = Depends(get_db),
):
    types = team_type_service.list_entity_types(db, entity_kind, entity_id, team_id=team_id)
    return EntityTypesResponse(entity_kind=entity_kind.value, entity_id=entity_id, types=types)


@router.put(
    "/types",
    response_model=EntityTypesResponse,
    dependencies=[Depends(require_csrf_header)],
)
def set_entity_types(
    team_id: UUID,
    entity_kind: EntityKind,
    entity_id: UUID,
    body: EntityTypesSet,
    db: Session = Depends(get_db),
):
    types = team_type_service.set_entity_types(db, team_id, entity_kind, entity_id, body.type_ids)
    return EntityTypesResponse(entity_kind=entity_kind.value, entity_id=entity_id, types=types)


# =============================================================================
# Custom field values
# =============================================================================


@router.get("/custom-fields", response_model=EntityCustomFieldsResponse)
def get_entity_custom_fields(
    team_id: UUID,
    entity_kind: EntityKind,
    entity_id: UUID,
    db: Session = Depends(get_db),
    validator: FieldValueValidator = Depends(get_value_validator),
):
    groups = custom_field_projection_service.project_entity(
        db, team_id, entity_kind, entity_id, validator=validator
    )
    return _to_response(entity_kind, entity_id, groups)


@router.put(
    "/custom-fields",
    response_model=EntityCustomFieldsResponse,
    dependencies=[Depends(require_csrf_header)],
)
def save_entity_custom_fields(
    team_id: UUID,
    entity_kind: EntityKind,
    entity_id: UUID,
    body: EntityCustomValuesSet,
    db: Session = Depends(get_db),
    validator: FieldValueValidator = Depends(get_value_validator),
):
    """Replace every custom field value of the entity and return the new projection."""
    custom_field_value_service.save_entity_values(
        db, team_id, entity_kind, entity_id, body.values, validator=validator
    )
    groups = custom_field_projection_service.project_entity(
        db, team_id, entity_kind, entity_id, validator=validator
    )
    return _to_response(entity_kind, entity_id, groups)


@router.post(
    "/custom-fields/validate",
    response_model=EntityCustomValuesValidation,
    dependencies=[Depends(require_csrf_header)],
)
def validate_entity_custom_fields(
    team_id: UUID,
    entity_kind: EntityKind,
    entity_id: UUID,
    body: EntityCustomValuesSet,
    db: Session = Depends(get_db),
    validator: FieldValueValidator = Depends(get_value_validator),
):
    """Dry-run validation for edit forms; nothing is written."""
    result = custom_field_value_service.validate_entity_values(
        db, team_id, entity_kind, entity_id, body.values, validator=validator
    )
    return EntityCustomValuesValidation(valid=result.ok, errors=result.errors_by_field())


@router.delete(
    "/custom-fields",
    status_code=204,
    dependencies=[Depends(require_csrf_header)],
)
def clear_entity_custom_fields(
    team_id: UUID,
    entity_kind: EntityKind,
    entity_id: UUID,
    db: Session = Depends(get_db),
):
    """Drop values and type assignments of an entity deleted upstream."""
    custom_field_value_service.clear_entity(db, team_id, entity_kind, entity_id)
