"""Type template service - system catalogue of starter types.

Templates are global (not team-scoped). Installing a template copies it
into a team as a regular TeamType with template_id set; the copy is then
edited independently.
"""

import logging
from typing import Any
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.core.structured_logging import build_log_context
from app.db.enums import EntityKind
from app.db.models import TeamType, TypeTemplate
from app.services import team_type_service
from app.services.errors import DependencyError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

_UNSET: Any = object()


# Seeded on first install when no templates exist yet
DEFAULT_TEMPLATES: list[dict] = [
    {"entity_kind": "contact", "name": "Client", "icon": "User", "color": "blue"},
    {"entity_kind": "contact", "name": "Lead", "icon": "UserPlus", "color": "teal"},
    {"entity_kind": "contact", "name": "Investor", "icon": "PiggyBank", "color": "green"},
    {"entity_kind": "contact", "name": "Vendor", "icon": "Truck", "color": "amber"},
    {"entity_kind": "company", "name": "Title Company", "icon": "Landmark", "color": "purple"},
    {"entity_kind": "company", "name": "Lender", "icon": "Banknote", "color": "green"},
    {"entity_kind": "company", "name": "Brokerage", "icon": "Building2", "color": "indigo"},
    {"entity_kind": "employee", "name": "Agent", "icon": "Briefcase", "color": "blue"},
    {"entity_kind": "employee", "name": "Staff", "icon": "Users", "color": "slate"},
]


def _parse_entity_kind(entity_kind: EntityKind | str) -> EntityKind:
    try:
        return EntityKind(entity_kind)
    except ValueError as exc:
        message = f"Unknown entity kind: {entity_kind}"
        raise ValidationError(message, errors={"entity_kind": [{"code": "invalid", "message": message}]}) from exc


def list_templates(db: Session, entity_kind: EntityKind | str | None = None) -> list[TypeTemplate]:
    query = select(TypeTemplate)
    if entity_kind is not None:
        query = query.where(TypeTemplate.entity_kind == _parse_entity_kind(entity_kind).value)
    query = query.order_by(TypeTemplate.entity_kind, TypeTemplate.sort_order, TypeTemplate.name)
    return list(db.execute(query).scalars())


def get_template(db: Session, template_id: UUID) -> TypeTemplate | None:
    return db.get(TypeTemplate, template_id)


def is_template_name_unique(
    db: Session,
    entity_kind: EntityKind | str,
    name: str,
    exclude_id: UUID | None = None,
) -> bool:
    """Advisory name check for the template catalogue. Not enforced."""
    query = select(TypeTemplate.id).where(
        TypeTemplate.entity_kind == _parse_entity_kind(entity_kind).value,
        TypeTemplate.name == name.strip(),
    )
    if exclude_id:
        query = query.where(TypeTemplate.id != exclude_id)
    return db.execute(query.limit(1)).first() is None


def template_usage_counts(db: Session) -> dict[UUID, int]:
    """Number of team types installed from each template."""
    rows = db.execute(
        select(TeamType.template_id, func.count(TeamType.id))
        .where(TeamType.template_id.is_not(None))
        .group_by(TeamType.template_id)
    ).all()
    return {template_id: count for template_id, count in rows}


def create_template(
    db: Session,
    *,
    entity_kind: EntityKind | str,
    name: str,
    icon: str,
    color: str,
    description: str | None = None,
    auto_install: bool = True,
    is_system: bool = False,
) -> TypeTemplate:
    kind = _parse_entity_kind(entity_kind)
    cleaned = (name or "").strip()
    if not cleaned:
        raise ValidationError(
            "Template name is required",
            errors={"name": [{"code": "invalid", "message": "Template name is required"}]},
        )
    current = db.execute(
        select(func.max(TypeTemplate.sort_order)).where(TypeTemplate.entity_kind == kind.value)
    ).scalar()
    template = TypeTemplate(
        entity_kind=kind.value,
        name=cleaned,
        description=description,
        icon=icon,
        color=color,
        auto_install=auto_install,
        is_system=is_system,
        sort_order=(current or 0) + 1,
    )
    db.add(template)
    db.commit()
    db.refresh(template)
    return template


def update_template(
    db: Session,
    template_id: UUID,
    *,
    name: str | None = None,
    description: str | None = _UNSET,
    icon: str | None = None,
    color: str | None = None,
    auto_install: bool | None = None,
    sort_order: int | None = None,
) -> TypeTemplate:
    template = get_template(db, template_id)
    if not template:
        raise NotFoundError(f"Type template {template_id} not found")
    if name is not None:
        if not name.strip():
            raise ValidationError(
                "Template name is required",
                errors={"name": [{"code": "invalid", "message": "Template name is required"}]},
            )
        template.name = name.strip()
    if description is not _UNSET:
        template.description = description
    if icon is not None:
        template.icon = icon
    if color is not None:
        template.color = color
    if auto_install is not None:
        template.auto_install = auto_install
    if sort_order is not None:
        template.sort_order = sort_order
    db.commit()
    db.refresh(template)
    return template


def delete_template(db: Session, template_id: UUID) -> None:
    """Delete a template. Installed team copies keep working (template_id is nulled)."""
    template = get_template(db, template_id)
    if not template:
        raise NotFoundError(f"Type template {template_id} not found")
    if template.is_system:
        raise DependencyError("System templates cannot be deleted")
    db.query(TeamType).filter(TeamType.template_id == template_id).update(
        {TeamType.template_id: None}, synchronize_session=False
    )
    db.delete(template)
    db.commit()


def seed_default_templates(db: Session) -> int:
    """Create DEFAULT_TEMPLATES when the catalogue is empty. Returns count created."""
    if db.execute(select(TypeTemplate.id).limit(1)).first() is not None:
        return 0
    order: dict[str, int] = {}
    for entry in DEFAULT_TEMPLATES:
        order[entry["entity_kind"]] = order.get(entry["entity_kind"], 0) + 1
        db.add(
            TypeTemplate(
                entity_kind=entry["entity_kind"],
                name=entry["name"],
                icon=entry["icon"],
                color=entry["color"],
                is_system=True,
                auto_install=True,
                sort_order=order[entry["entity_kind"]],
            )
        )
    db.commit()
    return len(DEFAULT_TEMPLATES)


def install_templates(
    db: Session,
    team_id: UUID,
    template_ids: list[UUID] | None = None,
) -> list[TeamType]:
    """
    Copy templates into a team.

    With no template_ids, installs every auto_install template. Templates the
    team already installed are skipped, so the call is safe to repeat.
    """
    if template_ids is None:
        templates = [t for t in list_templates(db) if t.auto_install]
    else:
        templates = []
        for template_id in dict.fromkeys(template_ids):
            template = get_template(db, template_id)
            if not template:
                raise NotFoundError(f"Type template {template_id} not found")
            templates.append(template)

    installed = set(
        db.execute(
            select(TeamType.template_id).where(
                TeamType.team_id == team_id,
                TeamType.template_id.is_not(None),
            )
        ).scalars()
    )

    created: list[TeamType] = []
    try:
        for template in templates:
            if template.id in installed:
                continue
            created.append(
                team_type_service.create_type(
                    db,
                    team_id,
                    template.entity_kind,
                    name=template.name,
                    icon=template.icon,
                    color=template.color,
                    description=template.description,
                    template_id=template.id,
                    commit=False,
                )
            )
        db.commit()
    except Exception:
        db.rollback()
        raise

    for team_type in created:
        db.refresh(team_type)
    if created:
        logger.info(
            "Installed %d type templates",
            len(created),
            extra=build_log_context(team_id=team_id),
        )
    return created
