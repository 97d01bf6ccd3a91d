"""Custom field value service - per-entity values for type-defined fields.

An entity's values are rewritten as a whole on every save: validate the
full submission against the union of definitions contributed by the
entity's types, grow choice options, delete the old rows and insert the new
ones, then commit once. A failed save rolls back and leaves the previous
values untouched.
"""

import logging
from typing import Any, Mapping
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from app.core.structured_logging import build_log_context
from app.db.enums import EntityKind
from app.db.models import (
    CustomFieldDefinition,
    CustomFieldValue,
    EntityTypeAssignment,
    TeamType,
)
from app.services import custom_field_service, team_type_service
from app.services.errors import ValidationError
from app.services.field_codec import (
    FieldValueValidator,
    UnknownField,
    ValidationResult,
    get_default_validator,
)

logger = logging.getLogger(__name__)


def _team_field_ids(team_id: UUID):
    return (
        select(CustomFieldDefinition.id)
        .join(TeamType, CustomFieldDefinition.type_id == TeamType.id)
        .where(TeamType.team_id == team_id)
    )


def _normalize_keys(values: Mapping[Any, Any]) -> tuple[dict[UUID, Any], list[str]]:
    """Accept UUID or string keys (JSON bodies); collect keys that are not ids."""
    normalized: dict[UUID, Any] = {}
    invalid: list[str] = []
    for key, value in values.items():
        try:
            normalized[key if isinstance(key, UUID) else UUID(str(key))] = value
        except ValueError:
            invalid.append(str(key))
    return normalized, invalid


def get_entity_values(db: Session, team_id: UUID, entity_id: UUID) -> dict[UUID, CustomFieldValue]:
    """Stored value rows for an entity, keyed by field definition id."""
    rows = db.execute(
        select(CustomFieldValue).where(
            CustomFieldValue.entity_id == entity_id,
            CustomFieldValue.field_definition_id.in_(_team_field_ids(team_id)),
        )
    ).scalars()
    return {row.field_definition_id: row for row in rows}


def get_entity_definitions(
    db: Session,
    team_id: UUID,
    entity_kind: EntityKind | str,
    entity_id: UUID,
) -> list[CustomFieldDefinition]:
    """Union of field definitions from every type assigned to the entity."""
    types = team_type_service.list_entity_types(db, entity_kind, entity_id, team_id=team_id)
    return custom_field_service.list_fields_for_types(db, [t.id for t in types])


def _validate(
    db: Session,
    team_id: UUID,
    entity_kind: EntityKind | str,
    entity_id: UUID,
    values: Mapping[Any, Any],
    validator: FieldValueValidator,
) -> tuple[list[CustomFieldDefinition], dict[UUID, Any], ValidationResult]:
    definitions = get_entity_definitions(db, team_id, entity_kind, entity_id)
    raw_values, invalid_keys = _normalize_keys(values)
    result = validator.validate_values(definitions, raw_values)
    for key in invalid_keys:
        result.issues.append(
            UnknownField(field_id=None, field_name=key, message="Field is not defined for this entity's types")
        )
    return definitions, raw_values, result


def validate_entity_values(
    db: Session,
    team_id: UUID,
    entity_kind: EntityKind | str,
    entity_id: UUID,
    values: Mapping[Any, Any],
    validator: FieldValueValidator | None = None,
) -> ValidationResult:
    """Validate a submission without writing anything."""
    _, _, result = _validate(db, team_id, entity_kind, entity_id, values, validator or get_default_validator())
    return result


def save_entity_values(
    db: Session,
    team_id: UUID,
    entity_kind: EntityKind | str,
    entity_id: UUID,
    values: Mapping[Any, Any],
    validator: FieldValueValidator | None = None,
) -> dict[UUID, Any]:
    """
    Replace all custom field values of an entity.

    values maps field definition ids to raw submitted values; fields left out
    are saved as empty. Raises ValidationError (nothing written) when any
    value is invalid or a required field is empty. Returns the saved values
    decoded back to semantic form.
    """
    validator = validator or get_default_validator()
    definitions, raw_values, result = _validate(db, team_id, entity_kind, entity_id, values, validator)
    if not result.ok:
        logger.info(
            "Custom field save rejected with %d issues",
            len(result.issues),
            extra=build_log_context(team_id=team_id, entity_kind=str(entity_kind), entity_id=entity_id),
        )
        raise ValidationError("Custom field values are invalid", errors=result.errors_by_field())

    rows: list[CustomFieldValue] = []
    try:
        for definition in definitions:
            new_options = validator.new_options(definition, result.values.get(definition.id))
            if new_options:
                custom_field_service.add_options(db, definition, new_options)

        db.execute(
            delete(CustomFieldValue).where(
                CustomFieldValue.entity_id == entity_id,
                CustomFieldValue.field_definition_id.in_(_team_field_ids(team_id)),
            ),
            execution_options={"synchronize_session": False},
        )

        for definition in definitions:
            if definition.field_kind not in validator.registry:
                continue
            payload = validator.encode(definition.field_kind, raw_values.get(definition.id))
            if payload is None:
                continue
            rows.append(
                CustomFieldValue(
                    entity_id=entity_id,
                    field_definition_id=definition.id,
                    value_json=payload,
                )
            )
        db.add_all(rows)
        db.commit()
    except ValidationError:
        db.rollback()
        raise
    except Exception:
        db.rollback()
        logger.exception(
            "Custom field save failed",
            extra=build_log_context(team_id=team_id, entity_kind=str(entity_kind), entity_id=entity_id),
        )
        raise

    kinds = {definition.id: definition.field_kind for definition in definitions}
    return {
        row.field_definition_id: validator.decode(kinds[row.field_definition_id], row.value_json)
        for row in rows
    }


def clear_entity(
    db: Session,
    team_id: UUID,
    entity_kind: EntityKind | str,
    entity_id: UUID,
) -> int:
    """
    Remove an entity's values and type assignments (entity deleted upstream).

    Returns the number of value rows removed.
    """
    kind = EntityKind(entity_kind)
    team_type_ids = select(TeamType.id).where(TeamType.team_id == team_id)
    no_sync = {"synchronize_session": False}

    try:
        type_ids = list(
            db.execute(
                select(EntityTypeAssignment.type_id).where(
                    EntityTypeAssignment.entity_id == entity_id,
                    EntityTypeAssignment.entity_kind == kind.value,
                    EntityTypeAssignment.type_id.in_(team_type_ids),
                )
            ).scalars()
        )
        removed = db.execute(
            delete(CustomFieldValue).where(
                CustomFieldValue.entity_id == entity_id,
                CustomFieldValue.field_definition_id.in_(_team_field_ids(team_id)),
            ),
            execution_options=no_sync,
        ).rowcount
        db.execute(
            delete(EntityTypeAssignment).where(
                EntityTypeAssignment.entity_id == entity_id,
                EntityTypeAssignment.entity_kind == kind.value,
                EntityTypeAssignment.type_id.in_(team_type_ids),
            ),
            execution_options=no_sync,
        )
        team_type_service.refresh_usage_count(db, type_ids)
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.expire_all()
    logger.info(
        "Cleared custom field data for entity",
        extra=build_log_context(team_id=team_id, entity_kind=kind.value, entity_id=entity_id),
    )
    return removed
