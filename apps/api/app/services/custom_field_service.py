"""Custom field service for type-scoped field definitions."""

import logging
from typing import Any
from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.structured_logging import build_log_context
from app.db.enums import FieldKind
from app.db.models import CustomFieldDefinition, CustomFieldValue, TeamType
from app.services import team_type_service
from app.services.errors import NotFoundError, ValidationError
from app.services.field_codec import dedupe_options

logger = logging.getLogger(__name__)

_UNSET: Any = object()


def _field_error(key: str, message: str) -> ValidationError:
    return ValidationError(message, errors={key: [{"code": "invalid", "message": message}]})


def _clean_name(name: str | None) -> str:
    cleaned = (name or "").strip()
    if not cleaned:
        raise _field_error("name", "Field name is required")
    return cleaned


def _parse_kind(field_kind: FieldKind | str) -> FieldKind:
    try:
        return FieldKind(field_kind)
    except ValueError as exc:
        raise _field_error("field_kind", f"Unsupported field type: {field_kind}") from exc


def _stored_kind(field: CustomFieldDefinition) -> FieldKind | None:
    try:
        return FieldKind(field.field_kind)
    except ValueError:
        return None


def _clean_options(
    kind: FieldKind,
    options: list[str] | None,
    *,
    require_options: bool = False,
) -> list[str] | None:
    """De-duplicate choice options; other kinds never keep options."""
    if not kind.is_choice:
        return None
    cleaned = dedupe_options(opt.strip() for opt in (options or []) if opt and opt.strip())
    if require_options and not cleaned:
        raise _field_error("options", "At least one option is required for this field type")
    if len(cleaned) > settings.MAX_FIELD_OPTIONS:
        raise _field_error("options", f"A field can have at most {settings.MAX_FIELD_OPTIONS} options")
    return cleaned


# =============================================================================
# Queries
# =============================================================================


def get_field(db: Session, team_id: UUID, field_id: UUID) -> CustomFieldDefinition | None:
    """Get a field definition by ID (team-scoped through its type)."""
    return db.execute(
        select(CustomFieldDefinition)
        .join(TeamType, CustomFieldDefinition.type_id == TeamType.id)
        .where(CustomFieldDefinition.id == field_id, TeamType.team_id == team_id)
    ).scalar_one_or_none()


def require_field(db: Session, team_id: UUID, field_id: UUID) -> CustomFieldDefinition:
    field = get_field(db, team_id, field_id)
    if not field:
        raise NotFoundError(f"Custom field {field_id} not found")
    return field


def list_fields_for_type(db: Session, type_id: UUID) -> list[CustomFieldDefinition]:
    """Field definitions of one type, in display order."""
    return list(
        db.execute(
            select(CustomFieldDefinition)
            .where(CustomFieldDefinition.type_id == type_id)
            .order_by(CustomFieldDefinition.display_order, CustomFieldDefinition.created_at)
        ).scalars()
    )


def list_fields_for_types(db: Session, type_ids: list[UUID]) -> list[CustomFieldDefinition]:
    """Union of field definitions contributed by several types."""
    if not type_ids:
        return []
    return list(
        db.execute(
            select(CustomFieldDefinition)
            .where(CustomFieldDefinition.type_id.in_(type_ids))
            .order_by(CustomFieldDefinition.display_order, CustomFieldDefinition.created_at)
        ).scalars()
    )


def _next_display_order(db: Session, type_id: UUID) -> int:
    current = db.execute(
        select(func.max(CustomFieldDefinition.display_order)).where(
            CustomFieldDefinition.type_id == type_id
        )
    ).scalar()
    return (current or 0) + 1


# =============================================================================
# Definition CRUD
# =============================================================================


def create_field(
    db: Session,
    team_id: UUID,
    type_id: UUID,
    *,
    name: str,
    field_kind: FieldKind | str,
    is_required: bool = False,
    description: str | None = None,
    options: list[str] | None = None,
    default_value: str | None = None,
    require_options: bool = False,
) -> CustomFieldDefinition:
    """
    Create a field definition on a team type.

    Choice fields may start without options and grow from data entry;
    pass require_options=True to insist on an initial list.
    """
    team_type = team_type_service.require_type(db, team_id, type_id)
    kind = _parse_kind(field_kind)

    field = CustomFieldDefinition(
        type_id=team_type.id,
        name=_clean_name(name),
        field_kind=kind.value,
        description=description.strip() if description else None,
        is_required=is_required,
        default_value=default_value if default_value != "" else None,
        options=_clean_options(kind, options, require_options=require_options),
        display_order=_next_display_order(db, team_type.id),
    )
    db.add(field)
    db.commit()
    db.refresh(field)
    logger.info(
        "Custom field created",
        extra=build_log_context(team_id=team_id, type_id=type_id, field_id=field.id),
    )
    return field


def update_field(
    db: Session,
    team_id: UUID,
    field_id: UUID,
    *,
    name: str | None = None,
    field_kind: FieldKind | str | None = None,
    description: str | None = _UNSET,
    is_required: bool | None = None,
    options: list[str] | None = _UNSET,
    default_value: str | None = _UNSET,
    display_order: int | None = None,
    require_options: bool = False,
) -> CustomFieldDefinition:
    """
    Update a field definition.

    Changing field_kind is allowed. Values saved under the previous kind are
    left in place and decode to the new kind's empty value until re-saved.
    """
    field = require_field(db, team_id, field_id)

    if name is not None:
        field.name = _clean_name(name)

    kind = _stored_kind(field)
    if field_kind is not None:
        new_kind = _parse_kind(field_kind)
        if new_kind.value != field.field_kind:
            logger.warning(
                "Custom field kind changed from %s to %s; existing values become stale",
                field.field_kind,
                new_kind.value,
                extra=build_log_context(team_id=team_id, field_id=field.id),
            )
        field.field_kind = new_kind.value
        kind = new_kind

    if description is not _UNSET:
        field.description = description.strip() if description else None
    if is_required is not None:
        field.is_required = is_required
    if default_value is not _UNSET:
        field.default_value = default_value if default_value != "" else None
    if display_order is not None:
        field.display_order = display_order

    if kind is not None:
        if options is not _UNSET:
            field.options = _clean_options(kind, options, require_options=require_options)
        elif not kind.is_choice:
            field.options = None
        elif field.options is None:
            field.options = []

    db.commit()
    db.refresh(field)
    return field


def delete_field(db: Session, team_id: UUID, field_id: UUID) -> int:
    """
    Delete a field definition and every saved value for it.

    Returns the number of values removed so callers can report the scope.
    """
    field = require_field(db, team_id, field_id)
    try:
        removed = db.execute(
            delete(CustomFieldValue).where(CustomFieldValue.field_definition_id == field.id),
            execution_options={"synchronize_session": False},
        ).rowcount
        db.execute(
            delete(CustomFieldDefinition).where(CustomFieldDefinition.id == field.id),
            execution_options={"synchronize_session": False},
        )
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.expire_all()
    logger.info(
        "Custom field deleted with %d values",
        removed,
        extra=build_log_context(team_id=team_id, field_id=field_id),
    )
    return removed


def reorder_fields(
    db: Session,
    team_id: UUID,
    type_id: UUID,
    field_ids: list[UUID],
) -> list[CustomFieldDefinition]:
    """Set display_order from the given sequence (must list every field of the type)."""
    team_type_service.require_type(db, team_id, type_id)
    fields = {field.id: field for field in list_fields_for_type(db, type_id)}
    if len(set(field_ids)) != len(field_ids) or set(field_ids) != set(fields):
        raise _field_error("field_ids", "Field order must list every field of the type exactly once")

    for position, field_id in enumerate(field_ids, start=1):
        fields[field_id].display_order = position
    db.commit()
    return list_fields_for_type(db, type_id)


# =============================================================================
# Option growth
# =============================================================================


def _lock_field(db: Session, field_id: UUID) -> CustomFieldDefinition | None:
    """Re-read a definition under a row lock (no-op lock on SQLite)."""
    return db.execute(
        select(CustomFieldDefinition)
        .where(CustomFieldDefinition.id == field_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    ).scalar_one_or_none()


def add_options(db: Session, field: CustomFieldDefinition, candidates: list[str]) -> list[str]:
    """
    Append unseen options to a choice field without committing.

    Runs inside the caller's transaction; the row is re-read under a lock
    right before the append so concurrent growth never duplicates options.
    Returns the options that were actually added.
    """
    cleaned = [c.strip() for c in candidates if c and c.strip()]
    if not cleaned:
        return []

    locked = _lock_field(db, field.id)
    if locked is None:
        raise NotFoundError(f"Custom field {field.id} not found")
    kind = _stored_kind(locked)
    if kind is None or not kind.is_choice:
        raise _field_error(str(locked.id), f"{locked.name} does not accept options")

    current = list(locked.options or [])
    added = [c for c in dedupe_options(cleaned) if c not in current]
    if not added:
        return []
    if len(current) + len(added) > settings.MAX_FIELD_OPTIONS:
        raise _field_error(str(locked.id), f"{locked.name} cannot have more than {settings.MAX_FIELD_OPTIONS} options")

    # Assign a new list so the JSON column is flagged dirty
    locked.options = current + added
    db.flush()
    return added


def ensure_option(db: Session, team_id: UUID, field_id: UUID, candidate: str) -> CustomFieldDefinition:
    """
    Make sure candidate is one of the field's options.

    Exact, case-sensitive comparison; appends at the end when missing and is
    a no-op otherwise.
    """
    if not candidate or not candidate.strip():
        raise _field_error("option", "Option cannot be empty")
    field = require_field(db, team_id, field_id)
    try:
        added = add_options(db, field, [candidate])
        db.commit()
    except Exception:
        db.rollback()
        raise
    if added:
        logger.info(
            "Custom field option added",
            extra=build_log_context(team_id=team_id, field_id=field_id),
        )
    db.refresh(field)
    return field
