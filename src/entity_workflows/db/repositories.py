"""Repository implementations for the universal entity store.

This module provides async repositories for the generic tables using
advanced-alchemy's repository pattern. Every method takes the organization id
explicitly; it is the only tenant isolation mechanism.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from advanced_alchemy.repository import SQLAlchemyAsyncRepository
from sqlalchemy import and_, select
from sqlalchemy.orm import aliased

from entity_workflows.core.types import WorkflowEntityType
from entity_workflows.db.models import DynamicDataModel, EntityModel, RelationshipModel

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence
    from uuid import UUID

__all__ = [
    "DynamicDataRepository",
    "EntityRepository",
    "RelationshipRepository",
]


class EntityRepository(SQLAlchemyAsyncRepository[EntityModel]):
    """Repository for ``core_entities`` rows.

    Provides tenant-scoped lookups, metadata patching and traversal of
    relationship edges.
    """

    model_type = EntityModel

    async def get_in_org(
        self,
        entity_id: UUID,
        organization_id: str,
        *,
        entity_type: str | None = None,
        for_update: bool = False,
    ) -> EntityModel | None:
        """Get an entity by ID within an organization.

        Args:
            entity_id: The entity ID.
            organization_id: The organization the entity must belong to.
            entity_type: Optional type the entity must have.
            for_update: Lock the row for the rest of the transaction where the
                dialect supports ``SELECT ... FOR UPDATE``.

        Returns:
            The entity or None if not found.
        """
        conditions = [
            EntityModel.id == entity_id,
            EntityModel.organization_id == organization_id,
        ]
        if entity_type:
            conditions.append(EntityModel.entity_type == entity_type)

        stmt = select(EntityModel).where(and_(*conditions))
        if for_update:
            stmt = stmt.with_for_update()

        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def find_latest_by_field(
        self,
        organization_id: str,
        entity_type: str,
        field_name: str,
        field_value: str,
    ) -> EntityModel | None:
        """Find the most recently created entity whose text field matches.

        Args:
            organization_id: Tenant scope.
            entity_type: Entity type to search.
            field_name: Dynamic field name.
            field_value: Expected text value of the field.

        Returns:
            The newest matching entity or None.
        """
        stmt = (
            select(EntityModel)
            .join(DynamicDataModel, DynamicDataModel.entity_id == EntityModel.id)
            .where(
                and_(
                    EntityModel.organization_id == organization_id,
                    EntityModel.entity_type == entity_type,
                    DynamicDataModel.field_name == field_name,
                    DynamicDataModel.field_value_text == field_value,
                )
            )
            .order_by(EntityModel.created_at.desc(), EntityModel.id.desc())
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def find_by_code(
        self,
        organization_id: str,
        entity_type: str,
        entity_code: str,
    ) -> EntityModel | None:
        """Find an entity by its business code.

        Args:
            organization_id: Tenant scope.
            entity_type: Entity type.
            entity_code: Business code.

        Returns:
            The newest matching entity or None.
        """
        stmt = (
            select(EntityModel)
            .where(
                and_(
                    EntityModel.organization_id == organization_id,
                    EntityModel.entity_type == entity_type,
                    EntityModel.entity_code == entity_code,
                )
            )
            .order_by(EntityModel.created_at.desc(), EntityModel.id.desc())
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def find_linked(
        self,
        organization_id: str,
        from_entity_id: UUID,
        relationship_type: str,
        *,
        field_filters: Mapping[str, str] | None = None,
    ) -> Sequence[EntityModel]:
        """Find entities reached from ``from_entity_id`` by edges of one type.

        Args:
            organization_id: Tenant scope.
            from_entity_id: Source entity of the edges.
            relationship_type: Edge type to follow.
            field_filters: Optional text field values the targets must have.

        Returns:
            Target entities, newest first.
        """
        stmt = (
            select(EntityModel)
            .join(RelationshipModel, RelationshipModel.to_entity_id == EntityModel.id)
            .where(
                and_(
                    RelationshipModel.organization_id == organization_id,
                    RelationshipModel.from_entity_id == from_entity_id,
                    RelationshipModel.relationship_type == relationship_type,
                    EntityModel.organization_id == organization_id,
                )
            )
        )
        for field_name, field_value in (field_filters or {}).items():
            field_row = aliased(DynamicDataModel)
            stmt = stmt.join(
                field_row,
                and_(
                    field_row.entity_id == EntityModel.id,
                    field_row.field_name == field_name,
                    field_row.field_value_text == field_value,
                ),
            )

        stmt = stmt.order_by(EntityModel.created_at.desc(), EntityModel.id.desc())
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def patch_metadata(
        self,
        entity: EntityModel,
        changes: Mapping[str, Any],
        *,
        updated_by: str | None = None,
    ) -> EntityModel:
        """Merge ``changes`` into the entity's metadata map.

        A new dict is assigned so the JSON column is flagged as modified.

        Args:
            entity: The entity to patch.
            changes: Keys to set.
            updated_by: Optional user stamped as ``updated_by``.

        Returns:
            The patched entity.
        """
        entity.metadata_ = {**(entity.metadata_ or {}), **changes}
        if updated_by is not None:
            entity.updated_by = updated_by
        await self.session.flush()
        return entity

    async def get_user_roles(self, organization_id: str, user_id: str) -> set[str]:
        """Return the roles recorded on a user's entity.

        Users are ``USER`` entities whose ``entity_code`` is the user ID; their
        roles are the ``roles`` list in metadata.

        Args:
            organization_id: Tenant scope.
            user_id: The user ID.

        Returns:
            The user's roles, empty when the user has no entity.
        """
        user = await self.find_by_code(organization_id, WorkflowEntityType.USER.value, user_id)
        if user is None:
            return set()
        roles = (user.metadata_ or {}).get("roles") or []
        return {role for role in roles if isinstance(role, str)}


class DynamicDataRepository(SQLAlchemyAsyncRepository[DynamicDataModel]):
    """Repository for ``core_dynamic_data`` rows."""

    model_type = DynamicDataModel

    async def set_fields(
        self,
        entity: EntityModel,
        fields: Mapping[str, Any],
        *,
        smart_code: str | None = None,
    ) -> None:
        """Create or update typed fields of an entity.

        Args:
            entity: The owning entity.
            fields: Field names mapped to values.
            smart_code: Optional smart code stamped on new rows.
        """
        existing = {
            row.field_name: row
            for row in await self.list(
                DynamicDataModel.entity_id == entity.id,
                DynamicDataModel.field_name.in_(list(fields)),
            )
        }
        for field_name, value in fields.items():
            row = existing.get(field_name)
            if row is None:
                row = DynamicDataModel(
                    organization_id=entity.organization_id,
                    entity_id=entity.id,
                    field_name=field_name,
                    smart_code=smart_code,
                )
                self.session.add(row)
            row.assign(value)
        await self.session.flush()

    async def get_fields(self, entity_id: UUID) -> dict[str, Any]:
        """Return every field of one entity as a name -> value map."""
        return (await self.get_fields_for([entity_id])).get(entity_id, {})

    async def get_fields_for(self, entity_ids: Iterable[UUID]) -> dict[UUID, dict[str, Any]]:
        """Return the fields of several entities in one query.

        Args:
            entity_ids: Entity IDs to load.

        Returns:
            Mapping of entity ID to its name -> value map.
        """
        ids = list(entity_ids)
        fields: dict[UUID, dict[str, Any]] = {entity_id: {} for entity_id in ids}
        if not ids:
            return fields

        stmt = select(DynamicDataModel).where(DynamicDataModel.entity_id.in_(ids))
        result = await self.session.execute(stmt)
        for row in result.scalars().all():
            fields[row.entity_id][row.field_name] = row.value
        return fields


class RelationshipRepository(SQLAlchemyAsyncRepository[RelationshipModel]):
    """Repository for ``core_relationships`` rows."""

    model_type = RelationshipModel

    async def link(
        self,
        from_entity: EntityModel,
        to_entity: EntityModel,
        relationship_type: str,
        *,
        smart_code: str | None = None,
        created_by: str | None = None,
        relationship_data: dict[str, Any] | None = None,
    ) -> RelationshipModel:
        """Create a typed edge between two entities of the same organization.

        Args:
            from_entity: Source entity.
            to_entity: Target entity.
            relationship_type: Edge type.
            smart_code: Optional smart code.
            created_by: Optional user who created the edge.
            relationship_data: Optional edge payload.

        Returns:
            The new relationship.
        """
        relationship = RelationshipModel(
            organization_id=from_entity.organization_id,
            from_entity_id=from_entity.id,
            to_entity_id=to_entity.id,
            relationship_type=relationship_type,
            relationship_data=relationship_data or {},
            smart_code=smart_code,
            created_by=created_by,
        )
        return await self.add(relationship)
