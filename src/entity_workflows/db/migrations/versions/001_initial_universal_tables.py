"""Initial universal entity tables.

Revision ID: 001_initial
Revises:
Create Date: 2026-10-18
"""

from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001_initial"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _json() -> sa.types.TypeEngine:
    return sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def _audit_columns() -> list[sa.Column]:
    return [
        sa.Column("sa_orm_sentinel", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    """Create the entity, dynamic data and relationship tables."""
    op.create_table(
        "core_entities",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("organization_id", sa.String(length=255), nullable=False),
        sa.Column("entity_type", sa.String(length=100), nullable=False),
        sa.Column("entity_name", sa.String(length=500), nullable=False),
        sa.Column("entity_code", sa.String(length=255), nullable=True),
        sa.Column("smart_code", sa.String(length=255), nullable=True),
        sa.Column("status", sa.String(length=50), nullable=False),
        sa.Column("metadata", _json(), nullable=False),
        sa.Column("created_by", sa.String(length=255), nullable=True),
        sa.Column("updated_by", sa.String(length=255), nullable=True),
        *_audit_columns(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_core_entities_org_type",
        "core_entities",
        ["organization_id", "entity_type"],
    )
    op.create_index(
        "ix_core_entities_org_code",
        "core_entities",
        ["organization_id", "entity_type", "entity_code"],
    )

    op.create_table(
        "core_dynamic_data",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("organization_id", sa.String(length=255), nullable=False),
        sa.Column("entity_id", sa.Uuid(), nullable=False),
        sa.Column("field_name", sa.String(length=255), nullable=False),
        sa.Column("field_type", sa.String(length=20), nullable=False),
        sa.Column("field_value_text", sa.Text(), nullable=True),
        sa.Column("field_value_number", sa.Float(), nullable=True),
        sa.Column("field_value_boolean", sa.Boolean(), nullable=True),
        sa.Column("field_value_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("field_value_json", _json(), nullable=True),
        sa.Column("smart_code", sa.String(length=255), nullable=True),
        *_audit_columns(),
        sa.ForeignKeyConstraint(
            ["entity_id"],
            ["core_entities.id"],
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("entity_id", "field_name", name="uq_core_dynamic_data_entity_field"),
    )
    op.create_index(
        "ix_core_dynamic_data_entity_id",
        "core_dynamic_data",
        ["entity_id"],
    )
    op.create_index(
        "ix_core_dynamic_data_org_field_text",
        "core_dynamic_data",
        ["organization_id", "field_name", "field_value_text"],
    )

    op.create_table(
        "core_relationships",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("organization_id", sa.String(length=255), nullable=False),
        sa.Column("from_entity_id", sa.Uuid(), nullable=False),
        sa.Column("to_entity_id", sa.Uuid(), nullable=False),
        sa.Column("relationship_type", sa.String(length=100), nullable=False),
        sa.Column("relationship_data", _json(), nullable=False),
        sa.Column("smart_code", sa.String(length=255), nullable=True),
        sa.Column("created_by", sa.String(length=255), nullable=True),
        *_audit_columns(),
        sa.ForeignKeyConstraint(
            ["from_entity_id"],
            ["core_entities.id"],
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["to_entity_id"],
            ["core_entities.id"],
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_core_relationships_from_type",
        "core_relationships",
        ["organization_id", "from_entity_id", "relationship_type"],
    )
    op.create_index(
        "ix_core_relationships_to",
        "core_relationships",
        ["to_entity_id"],
    )


def downgrade() -> None:
    """Drop the universal entity tables."""
    op.drop_table("core_relationships")
    op.drop_table("core_dynamic_data")
    op.drop_table("core_entities")
