"""Team type service - team-defined categories for contacts, companies and employees.

Types are scoped to (team, entity_kind). An entity may hold any number of
types of its own kind through EntityTypeAssignment rows; usage_count caches
the number of assignments and is recomputed whenever they change.

Deleting a type is guarded twice: can_delete_type() for the confirmation UI,
and a conditional DELETE inside delete_type() that re-checks usage in the
same statement that removes the row.
"""

import logging
from dataclasses import dataclass
from typing import Any, Iterable
from uuid import UUID

from sqlalchemy import delete, exists, func, select, update
from sqlalchemy.orm import Session

from app.core.structured_logging import build_log_context
from app.db.enums import EntityKind
from app.db.models import (
    CustomFieldDefinition,
    CustomFieldValue,
    EntityTypeAssignment,
    TeamType,
)
from app.services.errors import DependencyError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

_UNSET: Any = object()

DEFAULT_TYPE_ICON = "User"
DEFAULT_TYPE_COLOR = "gray"


@dataclass(frozen=True)
class DeleteCheck:
    allowed: bool
    reason: str | None = None


def _field_error(key: str, message: str) -> ValidationError:
    return ValidationError(message, errors={key: [{"code": "invalid", "message": message}]})


def _clean_name(name: str | None) -> str:
    cleaned = (name or "").strip()
    if not cleaned:
        raise _field_error("name", "Type name is required")
    return cleaned


def _parse_entity_kind(entity_kind: EntityKind | str) -> EntityKind:
    try:
        return EntityKind(entity_kind)
    except ValueError as exc:
        raise _field_error("entity_kind", f"Unknown entity kind: {entity_kind}") from exc


# =============================================================================
# Queries
# =============================================================================


def get_type(db: Session, team_id: UUID, type_id: UUID) -> TeamType | None:
    """Get a team type by ID (team-scoped)."""
    return db.execute(
        select(TeamType).where(TeamType.id == type_id, TeamType.team_id == team_id)
    ).scalar_one_or_none()


def require_type(db: Session, team_id: UUID, type_id: UUID) -> TeamType:
    team_type = get_type(db, team_id, type_id)
    if not team_type:
        raise NotFoundError(f"Type {type_id} not found")
    return team_type


def list_types(
    db: Session,
    team_id: UUID,
    entity_kind: EntityKind | str | None = None,
    include_inactive: bool = True,
) -> list[TeamType]:
    """List a team's types in display order."""
    query = select(TeamType).where(TeamType.team_id == team_id)
    if entity_kind is not None:
        query = query.where(TeamType.entity_kind == _parse_entity_kind(entity_kind).value)
    if not include_inactive:
        query = query.where(TeamType.is_active.is_(True))
    query = query.order_by(TeamType.entity_kind, TeamType.sort_order, TeamType.created_at)
    return list(db.execute(query).scalars())


def is_type_name_unique(
    db: Session,
    team_id: UUID,
    entity_kind: EntityKind | str,
    name: str,
    exclude_id: UUID | None = None,
) -> bool:
    """
    Advisory name check for admin forms.

    Type names are not required to be unique; nothing in this module
    enforces it.
    """
    query = select(TeamType.id).where(
        TeamType.team_id == team_id,
        TeamType.entity_kind == _parse_entity_kind(entity_kind).value,
        TeamType.name == name.strip(),
    )
    if exclude_id:
        query = query.where(TeamType.id != exclude_id)
    return db.execute(query.limit(1)).first() is None


def count_assignments(db: Session, type_id: UUID) -> int:
    return db.execute(
        select(func.count(EntityTypeAssignment.id)).where(EntityTypeAssignment.type_id == type_id)
    ).scalar_one()


def _next_sort_order(db: Session, team_id: UUID, entity_kind: EntityKind) -> int:
    current = db.execute(
        select(func.max(TeamType.sort_order)).where(
            TeamType.team_id == team_id,
            TeamType.entity_kind == entity_kind.value,
        )
    ).scalar()
    return (current or 0) + 1


# =============================================================================
# Type CRUD
# =============================================================================


def create_type(
    db: Session,
    team_id: UUID,
    entity_kind: EntityKind | str,
    *,
    name: str,
    icon: str = DEFAULT_TYPE_ICON,
    color: str = DEFAULT_TYPE_COLOR,
    description: str | None = None,
    template_id: UUID | None = None,
    commit: bool = True,
) -> TeamType:
    """Create a team type. Duplicate names are allowed."""
    kind = _parse_entity_kind(entity_kind)
    team_type = TeamType(
        team_id=team_id,
        entity_kind=kind.value,
        name=_clean_name(name),
        description=description.strip() if description else None,
        icon=icon or DEFAULT_TYPE_ICON,
        color=color or DEFAULT_TYPE_COLOR,
        is_active=True,
        sort_order=_next_sort_order(db, team_id, kind),
        usage_count=0,
        template_id=template_id,
    )
    db.add(team_type)
    if not commit:
        db.flush()
        return team_type

    db.commit()
    db.refresh(team_type)
    logger.info(
        "Team type created",
        extra=build_log_context(team_id=team_id, type_id=team_type.id, entity_kind=kind.value),
    )
    return team_type


def update_type(
    db: Session,
    team_id: UUID,
    type_id: UUID,
    *,
    name: str | None = None,
    description: str | None = _UNSET,
    icon: str | None = None,
    color: str | None = None,
    is_active: bool | None = None,
    sort_order: int | None = None,
    entity_kind: EntityKind | str | None = None,
) -> TeamType:
    """
    Update a team type.

    Deactivating hides a type from new assignments but keeps existing
    assignments and values. entity_kind is fixed at creation.
    """
    team_type = require_type(db, team_id, type_id)

    if entity_kind is not None and _parse_entity_kind(entity_kind).value != team_type.entity_kind:
        raise _field_error("entity_kind", "A type's entity kind cannot be changed")

    if name is not None:
        team_type.name = _clean_name(name)
    if description is not _UNSET:
        team_type.description = description.strip() if description else None
    if icon is not None:
        team_type.icon = icon
    if color is not None:
        team_type.color = color
    if is_active is not None:
        team_type.is_active = is_active
    if sort_order is not None:
        team_type.sort_order = sort_order

    db.commit()
    db.refresh(team_type)
    return team_type


def _dependency_reason(entity_kind: str, count: int) -> str:
    kind = EntityKind(entity_kind)
    return f"This type is assigned to {count} {kind.plural(count)}. Deactivate it instead."


def can_delete_type(db: Session, team_id: UUID, type_id: UUID) -> DeleteCheck:
    """Advisory check for the delete confirmation dialog."""
    team_type = require_type(db, team_id, type_id)
    count = count_assignments(db, team_type.id)
    if count > 0:
        return DeleteCheck(allowed=False, reason=_dependency_reason(team_type.entity_kind, count))
    return DeleteCheck(allowed=True)


def delete_type(db: Session, team_id: UUID, type_id: UUID) -> None:
    """
    Delete a type with its field definitions, their values and assignments.

    Everything runs in one transaction. The type row is removed with a
    conditional DELETE that only matches while no assignment exists; if it
    matches nothing the whole cascade is rolled back and DependencyError is
    raised, even when can_delete_type() said yes a moment earlier.
    """
    team_type = require_type(db, team_id, type_id)
    entity_kind = team_type.entity_kind
    no_sync = {"synchronize_session": False}

    try:
        field_ids = select(CustomFieldDefinition.id).where(CustomFieldDefinition.type_id == type_id)
        db.execute(
            delete(CustomFieldValue).where(CustomFieldValue.field_definition_id.in_(field_ids)),
            execution_options=no_sync,
        )
        db.execute(
            delete(CustomFieldDefinition).where(CustomFieldDefinition.type_id == type_id),
            execution_options=no_sync,
        )
        deleted = db.execute(
            delete(TeamType).where(
                TeamType.id == type_id,
                TeamType.team_id == team_id,
                ~exists().where(EntityTypeAssignment.type_id == type_id),
            ),
            execution_options=no_sync,
        ).rowcount

        if deleted == 0:
            count = count_assignments(db, type_id)
            db.rollback()
            logger.info(
                "Team type delete blocked by %d assignments",
                count,
                extra=build_log_context(team_id=team_id, type_id=type_id),
            )
            raise DependencyError(_dependency_reason(entity_kind, max(count, 1)))

        db.commit()
    except DependencyError:
        raise
    except Exception:
        db.rollback()
        raise

    db.expire_all()
    logger.info(
        "Team type deleted",
        extra=build_log_context(team_id=team_id, type_id=type_id),
    )


# =============================================================================
# Entity assignments
# =============================================================================


def refresh_usage_count(db: Session, type_ids: Iterable[UUID]) -> None:
    """Recompute cached usage counts from assignments (no commit)."""
    ids = list(set(type_ids))
    if not ids:
        return
    assignment_count = (
        select(func.count(EntityTypeAssignment.id))
        .where(EntityTypeAssignment.type_id == TeamType.id)
        .scalar_subquery()
    )
    db.execute(
        update(TeamType).where(TeamType.id.in_(ids)).values(usage_count=assignment_count),
        execution_options={"synchronize_session": False},
    )
    for team_type in db.execute(select(TeamType).where(TeamType.id.in_(ids))).scalars():
        db.refresh(team_type, attribute_names=["usage_count"])


def list_entity_types(
    db: Session,
    entity_kind: EntityKind | str,
    entity_id: UUID,
    team_id: UUID | None = None,
) -> list[TeamType]:
    """Types assigned to an entity, in type display order."""
    kind = _parse_entity_kind(entity_kind)
    query = (
        select(TeamType)
        .join(EntityTypeAssignment, EntityTypeAssignment.type_id == TeamType.id)
        .where(
            EntityTypeAssignment.entity_id == entity_id,
            EntityTypeAssignment.entity_kind == kind.value,
            TeamType.entity_kind == kind.value,
        )
    )
    if team_id is not None:
        query = query.where(TeamType.team_id == team_id)
    query = query.order_by(TeamType.sort_order, TeamType.created_at, TeamType.id)
    return list(db.execute(query).scalars())


def set_entity_types(
    db: Session,
    team_id: UUID,
    entity_kind: EntityKind | str,
    entity_id: UUID,
    type_ids: list[UUID],
) -> list[TeamType]:
    """
    Replace an entity's type assignments with type_ids.

    Adds missing assignments and removes extras. Newly added types must be
    active, belong to the team and match the entity's kind. Saved values of
    removed types stay in place until the next value save.
    """
    kind = _parse_entity_kind(entity_kind)
    wanted = list(dict.fromkeys(type_ids))

    types = {
        t.id: t
        for t in db.execute(
            select(TeamType).where(TeamType.id.in_(wanted), TeamType.team_id == team_id)
        ).scalars()
    } if wanted else {}
    missing = [type_id for type_id in wanted if type_id not in types]
    if missing:
        raise NotFoundError(f"Type {missing[0]} not found")

    wrong_kind = [t for t in types.values() if t.entity_kind != kind.value]
    if wrong_kind:
        raise _field_error(
            "type_ids",
            f"Type '{wrong_kind[0].name}' cannot be assigned to a {kind.label}",
        )

    current = {
        a.type_id: a
        for a in db.execute(
            select(EntityTypeAssignment)
            .join(TeamType, EntityTypeAssignment.type_id == TeamType.id)
            .where(
                EntityTypeAssignment.entity_id == entity_id,
                EntityTypeAssignment.entity_kind == kind.value,
                TeamType.team_id == team_id,
            )
        ).scalars()
    }

    to_add = [type_id for type_id in wanted if type_id not in current]
    to_remove = [type_id for type_id in current if type_id not in wanted]

    inactive = [types[type_id] for type_id in to_add if not types[type_id].is_active]
    if inactive:
        raise _field_error("type_ids", f"Type '{inactive[0].name}' is inactive")

    try:
        for type_id in to_remove:
            db.delete(current[type_id])
        for type_id in to_add:
            db.add(EntityTypeAssignment(type_id=type_id, entity_kind=kind.value, entity_id=entity_id))
        db.flush()
        refresh_usage_count(db, to_add + to_remove)
        db.commit()
    except Exception:
        db.rollback()
        raise

    if to_add or to_remove:
        logger.info(
            "Entity types updated (+%d/-%d)",
            len(to_add),
            len(to_remove),
            extra=build_log_context(team_id=team_id, entity_kind=kind.value, entity_id=entity_id),
        )
    return list_entity_types(db, kind, entity_id, team_id=team_id)
