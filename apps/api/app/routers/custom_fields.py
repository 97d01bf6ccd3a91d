"""Custom field endpoints for type-scoped field definitions."""

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.deps import get_db, require_csrf_header
from app.schemas.custom_field import (
    CustomFieldCreate,
    CustomFieldDeleteResponse,
    CustomFieldOptionAdd,
    CustomFieldOrder,
    CustomFieldRead,
    CustomFieldUpdate,
)
from app.services import custom_field_service, team_type_service


router = APIRouter(prefix="/teams/{team_id}", tags=["custom-fields"])


@router.get("/types/{type_id:uuid}/fields", response_model=list[CustomFieldRead])
def list_custom_fields(
    team_id: UUID,
    type_id: UUID,
    db: Session = Depends(get_db),
):
    team_type_service.require_type(db, team_id, type_id)
    return custom_field_service.list_fields_for_type(db, type_id)


@router.post(
    "/types/{type_id:uuid}/fields",
    response_model=CustomFieldRead,
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
def create_custom_field(
    team_id: UUID,
    type_id: UUID,
    body: CustomFieldCreate,
    db: Session = Depends(get_db),
):
    return custom_field_service.create_field(
        db,
        team_id,
        type_id,
        name=body.name,
        field_kind=body.field_kind,
        is_required=body.is_required,
        description=body.description,
        options=body.options,
        default_value=body.default_value,
        require_options=body.require_options,
    )


@router.put(
    "/types/{type_id:uuid}/fields/order",
    response_model=list[CustomFieldRead],
    dependencies=[Depends(require_csrf_header)],
)
def reorder_custom_fields(
    team_id: UUID,
    type_id: UUID,
    body: CustomFieldOrder,
    db: Session = Depends(get_db),
):
    return custom_field_service.reorder_fields(db, team_id, type_id, body.field_ids)


@router.get("/custom-fields/{field_id:uuid}", response_model=CustomFieldRead)
def get_custom_field(
    team_id: UUID,
    field_id: UUID,
    db: Session = Depends(get_db),
):
    return custom_field_service.require_field(db, team_id, field_id)


@router.patch(
    "/custom-fields/{field_id:uuid}",
    response_model=CustomFieldRead,
    dependencies=[Depends(require_csrf_header)],
)
def update_custom_field(
    team_id: UUID,
    field_id: UUID,
    body: CustomFieldUpdate,
    db: Session = Depends(get_db),
):
    return custom_field_service.update_field(
        db, team_id, field_id, **body.model_dump(exclude_unset=True)
    )


@router.delete(
    "/custom-fields/{field_id:uuid}",
    response_model=CustomFieldDeleteResponse,
    dependencies=[Depends(require_csrf_header)],
)
def delete_custom_field(
    team_id: UUID,
    field_id: UUID,
    db: Session = Depends(get_db),
):
    """Delete a field and every value saved for it on existing entities."""
    removed = custom_field_service.delete_field(db, team_id, field_id)
    return CustomFieldDeleteResponse(field_id=field_id, values_removed=removed)


@router.post(
    "/custom-fields/{field_id:uuid}/options",
    response_model=CustomFieldRead,
    dependencies=[Depends(require_csrf_header)],
)
def add_custom_field_option(
    team_id: UUID,
    field_id: UUID,
    body: CustomFieldOptionAdd,
    db: Session = Depends(get_db),
):
    return custom_field_service.ensure_option(db, team_id, field_id, body.option)
