"""Database persistence layer for entity-workflows.

This module provides SQLAlchemy models and repositories for the universal
entity store: entities, their typed dynamic fields and the relationships
between them.
"""

from __future__ import annotations

from entity_workflows.db.models import DynamicDataModel, EntityModel, RelationshipModel
from entity_workflows.db.repositories import (
    DynamicDataRepository,
    EntityRepository,
    RelationshipRepository,
)

__all__ = [
    "DynamicDataModel",
    "DynamicDataRepository",
    "EntityModel",
    "EntityRepository",
    "RelationshipModel",
    "RelationshipRepository",
]
