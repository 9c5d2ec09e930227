"""
Modelo de datos del roadmap: releases y features de ProductBoard.

Los registros fuente son inmutables y ya vienen normalizados (fechas
truncadas a dia, health en minusculas). El IdentityMap es el unico estado
mutable de la corrida: se reconstruye desde Notion al inicio de cada
ejecucion y se descarta al final.
"""
from __future__ import annotations

from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class EntityType(Enum):
    """Tipo de entidad sincronizada. Cada una vive en su propia base Notion."""
    RELEASE = "release"
    FEATURE = "feature"


@dataclass(frozen=True)
class Release:
    """Release de ProductBoard normalizado."""
    
    id: str                                 # ID externo (clave de correlacion)
    name: str
    start_date: Optional[str] = None        # "YYYY-MM-DD"
    end_date: Optional[str] = None
    state: Optional[str] = None             # upcoming, in-progress, completed...
    release_group: Optional[str] = None     # ID del release group
    product_manager: Optional[str] = None
    engineering_lead: Optional[str] = None
    
    @property
    def display_name(self) -> str:
        return self.name or self.id


@dataclass(frozen=True)
class Feature:
    """
    Feature de ProductBoard normalizado.
    
    release_ids conserva todas las asignaciones en el orden en que se
    encontraron; la primera es el release primario (relacion de un valor).
    """
    
    id: str
    name: str
    status: Optional[str] = None
    health: str = "unknown"
    product_manager: Optional[str] = None
    engineering_lead: Optional[str] = None
    link: Optional[str] = None              # deep-link a ProductBoard
    release_ids: Tuple[str, ...] = ()
    
    @property
    def primary_release_id(self) -> Optional[str]:
        return self.release_ids[0] if self.release_ids else None
    
    @property
    def display_name(self) -> str:
        return self.name or self.id


@dataclass
class SourceSnapshot:
    """Todo lo leido de ProductBoard en una corrida."""
    
    releases: List[Release] = field(default_factory=list)
    features: List[Feature] = field(default_factory=list)
    # release ID -> feature IDs asignados (orden de la fuente)
    assignments: Dict[str, List[str]] = field(default_factory=dict)
    # features asignados cuyo detalle no se pudo leer
    skipped_feature_ids: List[str] = field(default_factory=list)
    fetched_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    
    def summary(self) -> Dict[str, int]:
        """Cobertura de campos opcionales, util para revisar el export."""
        return {
            "totalReleases": len(self.releases),
            "totalFeatures": len(self.features),
            "skippedFeatures": len(self.skipped_feature_ids),
            "featuresWithProductManager": sum(1 for f in self.features if f.product_manager),
            "featuresWithEngineeringLead": sum(1 for f in self.features if f.engineering_lead),
            "featuresWithHealth": sum(1 for f in self.features if f.health != "unknown"),
            "featuresWithStatus": sum(1 for f in self.features if f.status),
            "featuresWithRelease": sum(1 for f in self.features if f.primary_release_id),
        }
    
    def to_dict(self) -> Dict[str, Any]:
        """Convierte el snapshot a diccionario serializable (export JSON)."""
        return {
            "fetchedAt": self.fetched_at.isoformat(),
            "summary": self.summary(),
            "releases": [asdict(r) for r in self.releases],
            "features": [
                {**asdict(f), "release_ids": list(f.release_ids)} for f in self.features
            ],
            "releaseFeatureMap": {k: list(v) for k, v in self.assignments.items()},
            "skippedFeatureIds": list(self.skipped_feature_ids),
        }


@dataclass
class IdentityMap:
    """
    ID externo -> page ID de Notion, por tipo de entidad.
    
    Se muta en el momento en que se crea una pagina para que los registros
    posteriores de la misma corrida la vean.
    """
    
    releases: Dict[str, str] = field(default_factory=dict)
    features: Dict[str, str] = field(default_factory=dict)
    
    def _bucket(self, entity_type: EntityType) -> Dict[str, str]:
        return self.releases if entity_type is EntityType.RELEASE else self.features
    
    def get(self, entity_type: EntityType, external_id: Optional[str]) -> Optional[str]:
        if not external_id:
            return None
        return self._bucket(entity_type).get(external_id)
    
    def register(self, entity_type: EntityType, external_id: str, page_id: str) -> None:
        self._bucket(entity_type)[external_id] = page_id


@dataclass(frozen=True)
class FieldChange:
    """Valor anterior (Notion) y nuevo (ProductBoard) de un campo."""
    old: Any
    new: Any


# nombre de campo -> cambio; solo campos que difieren
ChangeRecord = Dict[str, FieldChange]
