"""
AuditSink - registro de cada payload enviado a Notion.

Se inyecta en el UpsertExecutor y el RelationReconciler en lugar de
acumular en un array global:
- NullAuditSink: no guarda nada (default)
- InMemoryAuditSink: guarda en memoria (tests)
- JsonFileAuditSink: guarda en memoria y vuelca un JSON al final de la corrida

Uso:
    sink = JsonFileAuditSink(Path("logs"))
    ... corrida ...
    sink.flush(summary=report.to_dict())
"""
from __future__ import annotations

import copy
import json
import time
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol

from loguru import logger


@dataclass
class AuditEntry:
    """Una operacion de escritura contra Notion (o planeada, en dry-run)."""
    
    operation: str                          # create | update
    entity: str                             # release | feature | release-relations
    payload: Dict[str, Any]
    page_id: Optional[str] = None
    result: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    dry_run: bool = False
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    
    @staticmethod
    def summarize_result(page: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
        """Solo lo util de la respuesta de Notion."""
        if not page:
            return None
        return {
            "id": page.get("id"),
            "url": page.get("url"),
            "created_time": page.get("created_time"),
            "last_edited_time": page.get("last_edited_time"),
        }


class AuditSink(Protocol):
    def record(self, entry: AuditEntry) -> None: ...


class NullAuditSink:
    def record(self, entry: AuditEntry) -> None:
        return None


class InMemoryAuditSink:
    def __init__(self) -> None:
        self.entries: List[AuditEntry] = []
    
    def record(self, entry: AuditEntry) -> None:
        # Copia profunda: el caller puede seguir mutando el payload
        self.entries.append(copy.deepcopy(entry))
    
    def by_operation(self, operation: str, entity: Optional[str] = None) -> List[AuditEntry]:
        return [
            e for e in self.entries
            if e.operation == operation and (entity is None or e.entity == entity)
        ]


class JsonFileAuditSink(InMemoryAuditSink):
    """Acumula entradas y las escribe en notion-payloads-<epoch ms>.json."""
    
    def __init__(self, directory: Path) -> None:
        super().__init__()
        self.directory = Path(directory)
        self.started_at = datetime.now(timezone.utc)
        self.path = self.directory / f"notion-payloads-{int(time.time() * 1000)}.json"
    
    def flush(self, summary: Optional[Dict[str, Any]] = None) -> Path:
        self.directory.mkdir(parents=True, exist_ok=True)
        data = {
            "syncStartTime": self.started_at.isoformat(),
            "syncEndTime": datetime.now(timezone.utc).isoformat(),
            "summary": {**(summary or {}), "totalOperations": len(self.entries)},
            "operations": [asdict(e) for e in self.entries],
        }
        self.path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
        logger.info(f"Payloads Notion guardados en {self.path} ({len(self.entries)} operaciones)")
        return self.path
