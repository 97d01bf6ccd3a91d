"""Team type endpoints (team administration)."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.deps import get_db, require_csrf_header
from app.db.enums import EntityKind
from app.schemas.team_type import (
    TeamTypeCreate,
    TeamTypeDeleteCheck,
    TeamTypeNameCheck,
    TeamTypeRead,
    TeamTypeUpdate,
)
from app.services import team_type_service


router = APIRouter(prefix="/teams/{team_id}/types", tags=["team-types"])


@router.get("", response_model=list[TeamTypeRead])
def list_team_types(
    team_id: UUID,
    entity_kind: EntityKind | None = Query(default=None),
    include_inactive: bool = Query(default=True),
    db: Session = Depends(get_db),
):
    return team_type_service.list_types(
        db, team_id, entity_kind=entity_kind, include_inactive=include_inactive
    )


@router.get("/name-check", response_model=TeamTypeNameCheck)
def check_team_type_name(
    team_id: UUID,
    entity_kind: EntityKind,
    name: str = Query(min_length=1),
    exclude_id: UUID | None = None,
    db: Session = Depends(get_db),
):
    """Advisory duplicate-name hint for the type form; duplicates are still allowed."""
    is_unique = team_type_service.is_type_name_unique(
        db, team_id, entity_kind, name, exclude_id=exclude_id
    )
    return TeamTypeNameCheck(name=name, is_unique=is_unique)


@router.post(
    "",
    response_model=TeamTypeRead,
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
def create_team_type(
    team_id: UUID,
    body: TeamTypeCreate,
    db: Session = Depends(get_db),
):
    return team_type_service.create_type(
        db,
        team_id,
        body.entity_kind,
        name=body.name,
        icon=body.icon,
        color=body.color,
        description=body.description,
    )


@router.get("/{type_id:uuid}", response_model=TeamTypeRead)
def get_team_type(
    team_id: UUID,
    type_id: UUID,
    db: Session = Depends(get_db),
):
    return team_type_service.require_type(db, team_id, type_id)


@router.patch(
    "/{type_id:uuid}",
    response_model=TeamTypeRead,
    dependencies=[Depends(require_csrf_header)],
)
def update_team_type(
    team_id: UUID,
    type_id: UUID,
    body: TeamTypeUpdate,
    db: Session = Depends(get_db),
):
    return team_type_service.update_type(
        db, team_id, type_id, **body.model_dump(exclude_unset=True)
    )


@router.get("/{type_id:uuid}/can-delete", response_model=TeamTypeDeleteCheck)
def can_delete_team_type(
    team_id: UUID,
    type_id: UUID,
    db: Session = Depends(get_db),
):
    check = team_type_service.can_delete_type(db, team_id, type_id)
    return TeamTypeDeleteCheck(allowed=check.allowed, reason=check.reason)


@router.delete(
    "/{type_id:uuid}",
    status_code=204,
    dependencies=[Depends(require_csrf_header)],
)
def delete_team_type(
    team_id: UUID,
    type_id: UUID,
    db: Session = Depends(get_db),
):
    """Delete a type with all its fields and values. Blocked while the type is assigned."""
    team_type_service.delete_type(db, team_id, type_id)
