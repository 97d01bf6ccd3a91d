"""Grouped custom field view of an entity (detail pages and edit forms)."""

from dataclasses import dataclass, field
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from app.db.enums import EntityKind
from app.db.models import CustomFieldDefinition, TeamType
from app.services import custom_field_service, custom_field_value_service, team_type_service
from app.services.field_codec import FieldValueValidator, get_default_validator


@dataclass
class ProjectedField:
    definition: CustomFieldDefinition
    value: Any
    display_value: str
    has_value: bool  # False when value came from the definition default


@dataclass
class TypeGroup:
    team_type: TeamType
    fields: list[ProjectedField] = field(default_factory=list)


def project_entity(
    db: Session,
    team_id: UUID,
    entity_kind: EntityKind | str,
    entity_id: UUID,
    validator: FieldValueValidator | None = None,
) -> list[TypeGroup]:
    """
    One group per assigned type, each with its fields in display order.

    Stored values are decoded with the field's current kind; fields without
    a stored value show their default. Types that define no fields produce
    no group. Group order follows the types' sort order, so repeated
    projections of the same entity are stable.
    """
    validator = validator or get_default_validator()
    types = team_type_service.list_entity_types(db, entity_kind, entity_id, team_id=team_id)
    if not types:
        return []

    definitions = custom_field_service.list_fields_for_types(db, [t.id for t in types])
    stored = custom_field_value_service.get_entity_values(db, team_id, entity_id)

    by_type: dict[UUID, list[CustomFieldDefinition]] = {}
    for definition in definitions:
        by_type.setdefault(definition.type_id, []).append(definition)

    groups: list[TypeGroup] = []
    for team_type in types:
        type_fields = by_type.get(team_type.id)
        if not type_fields:
            continue
        group = TypeGroup(team_type=team_type)
        for definition in type_fields:
            row = stored.get(definition.id)
            if row is not None:
                value = validator.decode(definition.field_kind, row.value_json)
            else:
                value = validator.default_for(definition)
            group.fields.append(
                ProjectedField(
                    definition=definition,
                    value=value,
                    display_value=validator.format_for_display(definition.field_kind, value),
                    has_value=row is not None,
                )
            )
        groups.append(group)
    return groups


def values_map(groups: list[TypeGroup]) -> dict[UUID, Any]:
    """Flatten a projection to field_id -> value (form initial state)."""
    return {f.definition.id: f.value for group in groups for f in group.fields}
