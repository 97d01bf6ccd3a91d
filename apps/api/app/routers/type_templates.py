"""Type template catalogue and per-team installation."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.deps import get_db, require_csrf_header
from app.db.enums import EntityKind
from app.db.models import TypeTemplate
from app.schemas.team_type import (
    TeamTypeNameCheck,
    TeamTypeRead,
    TemplateInstallRequest,
    TypeTemplateCreate,
    TypeTemplateRead,
    TypeTemplateUpdate,
)
from app.services import type_template_service


router = APIRouter(tags=["type-templates"])


def _template_read(template: TypeTemplate, usage: dict[UUID, int]) -> TypeTemplateRead:
    read = TypeTemplateRead.model_validate(template)
    read.usage_count = usage.get(template.id, 0)
    return read


@router.get("/type-templates", response_model=list[TypeTemplateRead])
def list_type_templates(
    entity_kind: EntityKind | None = Query(default=None),
    db: Session = Depends(get_db),
):
    templates = type_template_service.list_templates(db, entity_kind)
    usage = type_template_service.template_usage_counts(db)
    return [_template_read(t, usage) for t in templates]


@router.get("/type-templates/name-check", response_model=TeamTypeNameCheck)
def check_type_template_name(
    entity_kind: EntityKind,
    name: str = Query(min_length=1),
    exclude_id: UUID | None = None,
    db: Session = Depends(get_db),
):
    """Advisory duplicate-name hint for the template form."""
    is_unique = type_template_service.is_template_name_unique(
        db, entity_kind, name, exclude_id=exclude_id
    )
    return TeamTypeNameCheck(name=name, is_unique=is_unique)


@router.post(
    "/type-templates",
    response_model=TypeTemplateRead,
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
def create_type_template(
    body: TypeTemplateCreate,
    db: Session = Depends(get_db),
):
    template = type_template_service.create_template(db, **body.model_dump())
    return _template_read(template, {})


@router.patch(
    "/type-templates/{template_id:uuid}",
    response_model=TypeTemplateRead,
    dependencies=[Depends(require_csrf_header)],
)
def update_type_template(
    template_id: UUID,
    body: TypeTemplateUpdate,
    db: Session = Depends(get_db),
):
    template = type_template_service.update_template(
        db, template_id, **body.model_dump(exclude_unset=True)
    )
    return _template_read(template, type_template_service.template_usage_counts(db))


@router.delete(
    "/type-templates/{template_id:uuid}",
    status_code=204,
    dependencies=[Depends(require_csrf_header)],
)
def delete_type_template(
    template_id: UUID,
    db: Session = Depends(get_db),
):
    type_template_service.delete_template(db, template_id)


@router.post(
    "/teams/{team_id}/type-templates/install",
    response_model=list[TeamTypeRead],
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
def install_type_templates(
    team_id: UUID,
    body: TemplateInstallRequest,
    db: Session = Depends(get_db),
):
    """Copy templates into the team. Already installed templates are skipped."""
    return type_template_service.install_templates(db, team_id, body.template_ids)
