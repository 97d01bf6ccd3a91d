"""Team-defined types for contacts, companies and employees."""

import uuid
from datetime import datetime

from sqlalchemy import ForeignKey, Index, String, Text, UniqueConstraint, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base
from app.db.models._columns import utcnow


class TypeTemplate(Base):
    """
    System-wide type template.

    Curated catalogue that teams can install from. Teams get a copy
    (TeamType with template_id set); later edits to the template do not
    propagate to installed copies.
    """

    __tablename__ = "type_templates"
    __table_args__ = (
        Index("idx_type_templates_kind", "entity_kind", "sort_order"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    entity_kind: Mapped[str] = mapped_column(String(20), nullable=False)  # 'contact', 'company', 'employee'
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    icon: Mapped[str] = mapped_column(String(50), nullable=False)
    color: Mapped[str] = mapped_column(String(30), nullable=False)
    is_system: Mapped[bool] = mapped_column(default=False, nullable=False)
    auto_install: Mapped[bool] = mapped_column(default=True, nullable=False)
    sort_order: Mapped[int] = mapped_column(default=0, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), onupdate=utcnow, nullable=False
    )


class TeamType(Base):
    """
    Team-scoped category for one entity kind (e.g. "Investor", "Title Company").

    usage_count is a cached count of entity_type_assignments rows; deletion
    guards always count assignments directly.
    """

    __tablename__ = "team_types"
    __table_args__ = (
        Index("idx_team_types_team_kind", "team_id", "entity_kind", "sort_order"),
        Index("idx_team_types_team_kind_active", "team_id", "entity_kind", "is_active"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    team_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    entity_kind: Mapped[str] = mapped_column(String(20), nullable=False)

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    icon: Mapped[str] = mapped_column(String(50), nullable=False)
    color: Mapped[str] = mapped_column(String(30), nullable=False)

    is_active: Mapped[bool] = mapped_column(default=True, nullable=False)
    sort_order: Mapped[int] = mapped_column(default=0, nullable=False)
    usage_count: Mapped[int] = mapped_column(default=0, nullable=False)

    template_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("type_templates.id", ondelete="SET NULL"), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), onupdate=utcnow, nullable=False
    )

    # Relationships
    template: Mapped["TypeTemplate | None"] = relationship()
    fields: Mapped[list["CustomFieldDefinition"]] = relationship(
        back_populates="team_type",
        order_by="CustomFieldDefinition.display_order",
        passive_deletes=True,
    )


class EntityTypeAssignment(Base):
    """
    Membership link between an external entity and a team type.

    entity_id points at a contact/company/employee row owned elsewhere, so
    there is no foreign key on it.
    """

    __tablename__ = "entity_type_assignments"
    __table_args__ = (
        UniqueConstraint("type_id", "entity_id", name="uq_entity_type_assignment"),
        Index("idx_entity_type_assignments_entity", "entity_kind", "entity_id"),
        Index("idx_entity_type_assignments_type", "type_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    type_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("team_types.id", ondelete="CASCADE"), nullable=False
    )
    entity_kind: Mapped[str] = mapped_column(String(20), nullable=False)
    entity_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )

    team_type: Mapped["TeamType"] = relationship()
