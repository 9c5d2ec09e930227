"""
Contadores y reporte final de una corrida.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from roadmap_sync.domain.entities import SourceSnapshot


class SyncPhase(Enum):
    """Estados del orquestador. FAILED es terminal y alcanzable desde cualquiera."""
    PENDING = "pending"
    BUILDING_INDEX = "building_index"
    FETCHING_SOURCE = "fetching_source"
    SYNCING_RELEASES = "syncing_releases"
    SYNCING_FEATURES = "syncing_features"
    RECONCILING_RELATIONS = "reconciling_relations"
    SUMMARIZING = "summarizing"
    DONE = "done"
    FAILED = "failed"


class UpsertOutcome(Enum):
    CREATED = "created"
    UPDATED = "updated"
    UNCHANGED = "unchanged"
    ERROR = "error"


@dataclass
class EntityStats:
    created: int = 0
    updated: int = 0
    unchanged: int = 0
    errors: int = 0

    def record(self, outcome: UpsertOutcome) -> None:
        name = outcome.value if outcome is not UpsertOutcome.ERROR else "errors"
        setattr(self, name, getattr(self, name) + 1)

    @property
    def total(self) -> int:
        return self.created + self.updated + self.unchanged + self.errors


@dataclass
class RelationStats:
    updated: int = 0
    skipped: int = 0
    errors: int = 0


@dataclass
class SyncReport:
    started_at: datetime
    dry_run: bool = False
    releases: EntityStats = field(default_factory=EntityStats)
    features: EntityStats = field(default_factory=EntityStats)
    relations: RelationStats = field(default_factory=RelationStats)
    skipped_source_features: int = 0
    phase: SyncPhase = SyncPhase.PENDING
    finished_at: Optional[datetime] = None
    duration_s: float = 0.0
    # Solo para export; no forma parte del resumen
    snapshot: Optional[SourceSnapshot] = field(default=None, repr=False, compare=False)

    @property
    def total_errors(self) -> int:
        return self.releases.errors + self.features.errors + self.relations.errors

    def to_dict(self) -> dict[str, Any]:
        return {
            "startedAt": self.started_at.isoformat(),
            "finishedAt": self.finished_at.isoformat() if self.finished_at else None,
            "duration": f"{self.duration_s:.1f}s",
            "dryRun": self.dry_run,
            "phase": self.phase.value,
            "releases": asdict(self.releases),
            "features": asdict(self.features),
            "relations": asdict(self.relations),
            "skippedSourceFeatures": self.skipped_source_features,
        }
