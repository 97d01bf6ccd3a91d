"""Pydantic schemas for team types, assignments and templates."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from app.db.enums import EntityKind


# =============================================================================
# Team Types
# =============================================================================


class TeamTypeCreate(BaseModel):
    entity_kind: EntityKind
    name: str = Field(min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=2000)
    icon: str = Field(default="User", min_length=1, max_length=50)
    color: str = Field(default="gray", min_length=1, max_length=30)


class TeamTypeUpdate(BaseModel):
    """Partial update. entity_kind is accepted only to reject changes to it."""

    name: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=2000)
    icon: str | None = Field(default=None, min_length=1, max_length=50)
    color: str | None = Field(default=None, min_length=1, max_length=30)
    is_active: bool | None = None
    sort_order: int | None = None
    entity_kind: EntityKind | None = None


class TeamTypeRead(BaseModel):
    id: UUID
    team_id: UUID
    entity_kind: str
    name: str
    description: str | None
    icon: str
    color: str
    is_active: bool
    sort_order: int
    usage_count: int
    template_id: UUID | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class TeamTypeDeleteCheck(BaseModel):
    allowed: bool
    reason: str | None = None


class TeamTypeNameCheck(BaseModel):
    name: str
    is_unique: bool


# =============================================================================
# Entity Assignments
# =============================================================================


class EntityTypesSet(BaseModel):
    type_ids: list[UUID] = Field(default_factory=list)


class EntityTypesResponse(BaseModel):
    entity_kind: str
    entity_id: UUID
    types: list[TeamTypeRead]


# =============================================================================
# Type Templates
# =============================================================================


class TypeTemplateCreate(BaseModel):
    entity_kind: EntityKind
    name: str = Field(min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=2000)
    icon: str = Field(min_length=1, max_length=50)
    color: str = Field(min_length=1, max_length=30)
    auto_install: bool = True


class TypeTemplateUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=2000)
    icon: str | None = Field(default=None, min_length=1, max_length=50)
    color: str | None = Field(default=None, min_length=1, max_length=30)
    auto_install: bool | None = None
    sort_order: int | None = None


class TypeTemplateRead(BaseModel):
    id: UUID
    entity_kind: str
    name: str
    description: str | None
    icon: str
    color: str
    is_system: bool
    auto_install: bool
    sort_order: int
    usage_count: int = 0
    created_at: datetime

    model_config = {"from_attributes": True}


class TemplateInstallRequest(BaseModel):
    """Templates to install; omit to install every auto-install template."""

    template_ids: list[UUID] | None = None
