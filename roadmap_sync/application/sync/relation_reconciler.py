"""
Reescritura de la relacion Release.Features.

Corre despues de sincronizar todos los releases y features: necesita el
page ID de cada feature. La relacion se reemplaza completa (no append).

Un release sin features asignados se omite por defecto, lo que significa
que si pierde todos sus features en ProductBoard su relacion NO se limpia.
clear_empty=True cambia ese comportamiento y escribe una relacion vacia.

Notion acepta hasta 100 items por propiedad relation en un request; con
mas features se escriben los primeros 100 y se loguea un warning.
"""

from __future__ import annotations

from typing import Optional

from loguru import logger

from roadmap_sync.application.sync.field_policy import SchemaSet
from roadmap_sync.application.sync.report import RelationStats
from roadmap_sync.domain.entities import Release
from roadmap_sync.infrastructure.external.notion.client import NotionClient
from roadmap_sync.shared.exceptions import NotionApiError
from roadmap_sync.shared.utils.audit_sink import AuditEntry, AuditSink, NullAuditSink

MAX_RELATION_ITEMS = 100


class RelationReconciler:
    def __init__(
        self,
        notion: NotionClient,
        schemas: SchemaSet,
        *,
        audit: Optional[AuditSink] = None,
        dry_run: bool = False,
        clear_empty: bool = False,
    ) -> None:
        self._notion = notion
        self._schema = schemas.release
        self._audit = audit or NullAuditSink()
        self._dry_run = dry_run
        self._clear_empty = clear_empty

    def reconcile_relations(
        self,
        releases: list[Release],
        release_page_map: dict[str, str],
        feature_page_map: dict[str, str],
        assignments: dict[str, list[str]],
    ) -> RelationStats:
        stats = RelationStats()
        for release in releases:
            release_page_id = release_page_map.get(release.id)
            if not release_page_id:
                stats.skipped += 1
                continue

            feature_page_ids: list[str] = []
            for feature_id in assignments.get(release.id) or []:
                page_id = feature_page_map.get(feature_id)
                if page_id and page_id not in feature_page_ids:
                    feature_page_ids.append(page_id)

            if not feature_page_ids and not self._clear_empty:
                stats.skipped += 1
                continue

            if len(feature_page_ids) > MAX_RELATION_ITEMS:
                logger.warning(
                    f"{release.display_name} tiene {len(feature_page_ids)} features; Notion acepta "
                    f"{MAX_RELATION_ITEMS} por relacion, se enlazan solo los primeros {MAX_RELATION_ITEMS}"
                )
                feature_page_ids = feature_page_ids[:MAX_RELATION_ITEMS]

            if self._write_relation(release, release_page_id, feature_page_ids):
                stats.updated += 1
            else:
                stats.errors += 1
        return stats

    def _write_relation(self, release: Release, page_id: str, feature_page_ids: list[str]) -> bool:
        properties = self._schema.build_relation(feature_page_ids)
        entry = AuditEntry(
            operation="update",
            entity="release-relations",
            payload={"page_id": page_id, "properties": properties},
            page_id=page_id,
            dry_run=self._dry_run,
        )

        if self._dry_run:
            self._audit.record(entry)
            logger.info(f"[dry-run] Enlazaria {release.display_name} con {len(feature_page_ids)} features")
            return True

        try:
            page = self._notion.update_page(page_id, properties)
        except NotionApiError as e:
            entry.error = str(e)
            self._audit.record(entry)
            logger.error(f"Error actualizando relaciones de '{release.display_name}': {e}")
            return False

        entry.result = AuditEntry.summarize_result(page)
        self._audit.record(entry)
        logger.info(f"Relaciones de {release.display_name}: {len(feature_page_ids)} features")
        return True
