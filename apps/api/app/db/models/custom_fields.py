"""Custom field definitions and per-entity values."""

import uuid
from datetime import datetime

from sqlalchemy import ForeignKey, Index, String, Text, UniqueConstraint, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base
from app.db.models._columns import JSONType, utcnow


class CustomFieldDefinition(Base):
    """
    Typed attribute declared on a team type.

    field_kind may change after values exist; values stored under the old
    kind then decode to the new kind's empty value.
    """

    __tablename__ = "custom_field_definitions"
    __table_args__ = (
        Index("idx_custom_field_definitions_type", "type_id", "display_order"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    type_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("team_types.id", ondelete="CASCADE"), nullable=False
    )

    # Field definition
    name: Mapped[str] = mapped_column(String(255), nullable=False)  # e.g., "Net Worth"
    field_kind: Mapped[str] = mapped_column(
        String(20), nullable=False
    )  # 'text', 'number', 'currency', 'date', 'dropdown', ...
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_required: Mapped[bool] = mapped_column(default=False, nullable=False)
    default_value: Mapped[str | None] = mapped_column(Text, nullable=True)
    options: Mapped[list | None] = mapped_column(
        JSONType, nullable=True
    )  # For dropdown/multi_select: ["Gold", "Silver"]
    display_order: Mapped[int] = mapped_column(default=0, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), onupdate=utcnow, nullable=False
    )

    # Relationships
    team_type: Mapped["TeamType"] = relationship(back_populates="fields")


class CustomFieldValue(Base):
    """
    Value of one custom field for one entity.

    value_json holds the encoded payload: {"value": <kind-specific JSON>}.
    """

    __tablename__ = "custom_field_values"
    __table_args__ = (
        UniqueConstraint("entity_id", "field_definition_id", name="uq_custom_field_value"),
        Index("idx_custom_field_values_entity", "entity_id"),
        Index("idx_custom_field_values_field", "field_definition_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    entity_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    field_definition_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("custom_field_definitions.id", ondelete="CASCADE"),
        nullable=False,
    )

    value_json: Mapped[dict | None] = mapped_column(JSONType, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), onupdate=utcnow, nullable=False
    )

    definition: Mapped["CustomFieldDefinition"] = relationship()
