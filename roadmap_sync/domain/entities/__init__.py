"""
Entidades del dominio.
"""
from roadmap_sync.domain.entities.roadmap import (
    EntityType,
    Release,
    Feature,
    SourceSnapshot,
    IdentityMap,
    FieldChange,
    ChangeRecord,
)

__all__ = [
    "EntityType",
    "Release",
    "Feature",
    "SourceSnapshot",
    "IdentityMap",
    "FieldChange",
    "ChangeRecord",
]
