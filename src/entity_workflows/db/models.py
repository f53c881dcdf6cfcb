"""SQLAlchemy models for the universal entity store.

This module defines the generic tables the workflow subsystem reads and writes:
- EntityModel: Any business object, distinguished by ``entity_type``
- DynamicDataModel: Typed key/value extension fields of an entity
- RelationshipModel: Typed directed edges between entities

Workflow configurations, approval requests and audit records have no tables
of their own; they are entities of dedicated types.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from advanced_alchemy.base import UUIDAuditBase
from advanced_alchemy.types import DateTimeUTC
from sqlalchemy import JSON, Boolean, Float, ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from entity_workflows.core.types import FieldType

__all__ = [
    "DynamicDataModel",
    "EntityModel",
    "RelationshipModel",
]


# Cross-database JSON type: uses JSONB for PostgreSQL, JSON for others (SQLite, MySQL, etc.)
JSONType = JSON().with_variant(JSONB, "postgresql")


class EntityModel(UUIDAuditBase):
    """A row of ``core_entities``.

    Attributes:
        organization_id: Tenant identifier; every query is scoped by it.
        entity_type: Upper-case type tag, e.g. ``INVOICE`` or ``APPROVAL_REQUEST``.
        entity_name: Display name.
        entity_code: Optional business code, unique per organization and type.
        smart_code: Classification code.
        status: Lifecycle status of the row itself (``active`` by default).
        metadata_: Free-form map; holds ``workflow_state`` and related keys.
        created_by: User who created the row.
        updated_by: User who last modified the row.
    """

    __tablename__ = "core_entities"
    __table_args__ = (
        Index("ix_core_entities_org_type", "organization_id", "entity_type"),
        Index("ix_core_entities_org_code", "organization_id", "entity_type", "entity_code"),
    )

    organization_id: Mapped[str] = mapped_column(String(255))
    entity_type: Mapped[str] = mapped_column(String(100))
    entity_name: Mapped[str] = mapped_column(String(500))
    entity_code: Mapped[str | None] = mapped_column(String(255), nullable=True)
    smart_code: Mapped[str | None] = mapped_column(String(255), nullable=True)
    status: Mapped[str] = mapped_column(String(50), default="active")
    metadata_: Mapped[dict[str, Any]] = mapped_column(
        "metadata",
        JSONType,
        default=dict,
    )
    created_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    updated_by: Mapped[str | None] = mapped_column(String(255), nullable=True)


class DynamicDataModel(UUIDAuditBase):
    """A row of ``core_dynamic_data``: one typed field of one entity.

    Exactly one ``field_value_*`` column is populated, chosen by ``field_type``.

    Attributes:
        organization_id: Tenant identifier, copied from the owning entity.
        entity_id: Foreign key to the owning entity.
        field_name: Field key, unique per entity.
        field_type: One of text, number, boolean, date, json.
        smart_code: Classification code of the field.
    """

    __tablename__ = "core_dynamic_data"
    __table_args__ = (
        UniqueConstraint("entity_id", "field_name", name="uq_core_dynamic_data_entity_field"),
        Index("ix_core_dynamic_data_org_field_text", "organization_id", "field_name", "field_value_text"),
    )

    organization_id: Mapped[str] = mapped_column(String(255))
    entity_id: Mapped[UUID] = mapped_column(
        ForeignKey("core_entities.id", ondelete="CASCADE"),
        index=True,
    )
    field_name: Mapped[str] = mapped_column(String(255))
    field_type: Mapped[str] = mapped_column(String(20), default=FieldType.TEXT.value)
    field_value_text: Mapped[str | None] = mapped_column(Text, nullable=True)
    field_value_number: Mapped[float | None] = mapped_column(Float, nullable=True)
    field_value_boolean: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    field_value_date: Mapped[datetime | None] = mapped_column(DateTimeUTC(timezone=True), nullable=True)
    field_value_json: Mapped[Any | None] = mapped_column(JSONType, nullable=True)
    smart_code: Mapped[str | None] = mapped_column(String(255), nullable=True)

    @property
    def value(self) -> Any:
        """The field value decoded according to ``field_type``."""
        if self.field_type == FieldType.NUMBER:
            number = self.field_value_number
            if number is not None and float(number).is_integer():
                return int(number)
            return number
        if self.field_type == FieldType.BOOLEAN:
            return self.field_value_boolean
        if self.field_type == FieldType.DATE:
            return self.field_value_date
        if self.field_type == FieldType.JSON:
            return self.field_value_json
        return self.field_value_text

    def assign(self, value: Any) -> None:
        """Store ``value`` in the column matching its Python type.

        Args:
            value: A str, bool, int, float, datetime, dict, list or None.
        """
        self.field_value_text = None
        self.field_value_number = None
        self.field_value_boolean = None
        self.field_value_date = None
        self.field_value_json = None

        if isinstance(value, bool):
            self.field_type = FieldType.BOOLEAN.value
            self.field_value_boolean = value
        elif isinstance(value, (int, float)):
            self.field_type = FieldType.NUMBER.value
            self.field_value_number = float(value)
        elif isinstance(value, datetime):
            self.field_type = FieldType.DATE.value
            self.field_value_date = value
        elif isinstance(value, (dict, list)):
            self.field_type = FieldType.JSON.value
            self.field_value_json = value
        else:
            self.field_type = FieldType.TEXT.value
            self.field_value_text = None if value is None else str(value)


class RelationshipModel(UUIDAuditBase):
    """A row of ``core_relationships``: a typed edge between two entities.

    Attributes:
        organization_id: Tenant identifier.
        from_entity_id: Source entity.
        to_entity_id: Target entity.
        relationship_type: Edge type, e.g. ``WORKFLOW_AUDIT``.
        relationship_data: Free-form edge payload.
        smart_code: Classification code of the edge.
        created_by: User who created the edge.
    """

    __tablename__ = "core_relationships"
    __table_args__ = (
        Index("ix_core_relationships_from_type", "organization_id", "from_entity_id", "relationship_type"),
        Index("ix_core_relationships_to", "to_entity_id"),
    )

    organization_id: Mapped[str] = mapped_column(String(255))
    from_entity_id: Mapped[UUID] = mapped_column(
        ForeignKey("core_entities.id", ondelete="CASCADE"),
    )
    to_entity_id: Mapped[UUID] = mapped_column(
        ForeignKey("core_entities.id", ondelete="CASCADE"),
    )
    relationship_type: Mapped[str] = mapped_column(String(100))
    relationship_data: Mapped[dict[str, Any]] = mapped_column(JSONType, default=dict)
    smart_code: Mapped[str | None] = mapped_column(String(255), nullable=True)
    created_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
