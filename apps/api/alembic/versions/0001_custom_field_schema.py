"""Baseline migration - team types, templates and custom fields

Revision ID: 0001_custom_field_schema
Revises:
Create Date: 2026-10-19

Creates:
- type_templates
- team_types
- entity_type_assignments
- custom_field_definitions
- custom_field_values
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '0001_custom_field_schema'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

JSON_TYPE = sa.JSON().with_variant(postgresql.JSONB(astext_type=sa.Text()), 'postgresql')


def _timestamps(with_updated: bool = True) -> list[sa.Column]:
    columns = [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]
    if with_updated:
        columns.append(
            sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False)
        )
    return columns


def upgrade() -> None:
    # ==========================================================================
    # type_templates (global catalogue)
    # ==========================================================================
    op.create_table(
        'type_templates',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('entity_kind', sa.String(20), nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('icon', sa.String(50), nullable=False),
        sa.Column('color', sa.String(30), nullable=False),
        sa.Column('is_system', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('auto_install', sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column('sort_order', sa.Integer(), server_default='0', nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id', name='pk_type_templates'),
    )
    op.create_index('idx_type_templates_kind', 'type_templates', ['entity_kind', 'sort_order'])

    # ==========================================================================
    # team_types
    # ==========================================================================
    op.create_table(
        'team_types',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('team_id', sa.Uuid(), nullable=False),
        sa.Column('entity_kind', sa.String(20), nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('icon', sa.String(50), nullable=False),
        sa.Column('color', sa.String(30), nullable=False),
        sa.Column('is_active', sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column('sort_order', sa.Integer(), server_default='0', nullable=False),
        sa.Column('usage_count', sa.Integer(), server_default='0', nullable=False),
        sa.Column('template_id', sa.Uuid(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ['template_id'], ['type_templates.id'],
            name='fk_team_types_template_id_type_templates', ondelete='SET NULL',
        ),
        sa.PrimaryKeyConstraint('id', name='pk_team_types'),
    )
    op.create_index('idx_team_types_team_kind', 'team_types', ['team_id', 'entity_kind', 'sort_order'])
    op.create_index('idx_team_types_team_kind_active', 'team_types', ['team_id', 'entity_kind', 'is_active'])

    # ==========================================================================
    # entity_type_assignments
    # ==========================================================================
    op.create_table(
        'entity_type_assignments',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('type_id', sa.Uuid(), nullable=False),
        sa.Column('entity_kind', sa.String(20), nullable=False),
        sa.Column('entity_id', sa.Uuid(), nullable=False),
        *_timestamps(with_updated=False),
        sa.ForeignKeyConstraint(
            ['type_id'], ['team_types.id'],
            name='fk_entity_type_assignments_type_id_team_types', ondelete='CASCADE',
        ),
        sa.PrimaryKeyConstraint('id', name='pk_entity_type_assignments'),
        sa.UniqueConstraint('type_id', 'entity_id', name='uq_entity_type_assignment'),
    )
    op.create_index('idx_entity_type_assignments_entity', 'entity_type_assignments', ['entity_kind', 'entity_id'])
    op.create_index('idx_entity_type_assignments_type', 'entity_type_assignments', ['type_id'])

    # ==========================================================================
    # custom_field_definitions
    # ==========================================================================
    op.create_table(
        'custom_field_definitions',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('type_id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('field_kind', sa.String(20), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('is_required', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('default_value', sa.Text(), nullable=True),
        sa.Column('options', JSON_TYPE, nullable=True),
        sa.Column('display_order', sa.Integer(), server_default='0', nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ['type_id'], ['team_types.id'],
            name='fk_custom_field_definitions_type_id_team_types', ondelete='CASCADE',
        ),
        sa.PrimaryKeyConstraint('id', name='pk_custom_field_definitions'),
    )
    op.create_index('idx_custom_field_definitions_type', 'custom_field_definitions', ['type_id', 'display_order'])

    # ==========================================================================
    # custom_field_values
    # ==========================================================================
    op.create_table(
        'custom_field_values',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('entity_id', sa.Uuid(), nullable=False),
        sa.Column('field_definition_id', sa.Uuid(), nullable=False),
        sa.Column('value_json', JSON_TYPE, nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ['field_definition_id'], ['custom_field_definitions.id'],
            name='fk_custom_field_values_field_definition_id_custom_field_definitions', ondelete='CASCADE',
        ),
        sa.PrimaryKeyConstraint('id', name='pk_custom_field_values'),
        sa.UniqueConstraint('entity_id', 'field_definition_id', name='uq_custom_field_value'),
    )
    op.create_index('idx_custom_field_values_entity', 'custom_field_values', ['entity_id'])
    op.create_index('idx_custom_field_values_field', 'custom_field_values', ['field_definition_id'])


def downgrade() -> None:
    op.drop_table('custom_field_values')
    op.drop_table('custom_field_definitions')
    op.drop_table('entity_type_assignments')
    op.drop_table('team_types')
    op.drop_table('type_templates')
