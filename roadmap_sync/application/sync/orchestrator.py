"""
Servicio de sincronizacion ProductBoard -> Notion.

Diseño (resumen):
- Construye el IdentityMap paginando las dos bases Notion
- Lee ProductBoard (releases, assignments, detalle de features)
- Por cada release y luego por cada feature: lee la pagina, compara,
  crea / actualiza / no hace nada
- Reescribe Release.Features con el set completo de features
- Emite el resumen (created / updated / unchanged por tipo + duracion)

Orden garantizado: todos los releases antes que cualquier feature (el
feature necesita el page ID de su release), y todos los features antes de
reconciliar relaciones.

Solo dos fallos abortan la corrida: no poder indexar Notion y no poder
listar releases en ProductBoard. Todo lo demas es por registro.
"""

from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Callable, Optional, Union

from loguru import logger

from roadmap_sync.application.sync.change_detector import detect_changes
from roadmap_sync.application.sync.field_policy import SchemaSet, get_schema_set
from roadmap_sync.application.sync.index_builder import TargetIndexBuilder
from roadmap_sync.application.sync.page_state_reader import PageStateReader
from roadmap_sync.application.sync.relation_reconciler import RelationReconciler
from roadmap_sync.application.sync.report import (
    EntityStats,
    SyncPhase,
    SyncReport,
    UpsertOutcome,
)
from roadmap_sync.application.sync.upsert_executor import UpsertExecutor
from roadmap_sync.core.config import Settings
from roadmap_sync.domain.entities import EntityType, Feature, IdentityMap, Release, SourceSnapshot
from roadmap_sync.infrastructure.external.notion.client import NotionClient
from roadmap_sync.infrastructure.external.productboard.client import ProductBoardClient
from roadmap_sync.shared.exceptions import ExternalApiError, FatalSyncError
from roadmap_sync.shared.utils.audit_sink import AuditSink, NullAuditSink


class ProductBoardToNotionSync:
    """
    Orquestador de una corrida completa.
    """

    def __init__(
        self,
        *,
        source: ProductBoardClient,
        notion: NotionClient,
        releases_database_id: str,
        features_database_id: str,
        schemas: Optional[SchemaSet] = None,
        page_size: int = 100,
        audit: Optional[AuditSink] = None,
        dry_run: bool = False,
        clear_empty_release_relations: bool = False,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._source = source
        self._notion = notion
        self._schemas = schemas or get_schema_set()
        self._releases_db = releases_database_id
        self._features_db = features_database_id
        self._page_size = page_size
        self._audit = audit or NullAuditSink()
        self._dry_run = dry_run
        self._clear_empty = clear_empty_release_relations
        self._clock = clock
        self._phase = SyncPhase.PENDING

    @property
    def phase(self) -> SyncPhase:
        return self._phase

    def _enter(self, phase: SyncPhase, report: SyncReport) -> None:
        logger.debug(f"Fase: {self._phase.value} -> {phase.value}")
        self._phase = phase
        report.phase = phase

    def run_once(self) -> SyncReport:
        """
        Ejecuta una corrida completa.

        Raises:
            FatalSyncError: si falla el indice de Notion o el listado de releases
        """
        started = self._clock()
        report = SyncReport(started_at=datetime.now(timezone.utc), dry_run=self._dry_run)
        mode = " [dry-run]" if self._dry_run else ""
        logger.info(f"Iniciando sync incremental ProductBoard -> Notion{mode} (perfil '{self._schemas.profile}')")

        try:
            self._enter(SyncPhase.BUILDING_INDEX, report)
            identity = self._build_index()

            self._enter(SyncPhase.FETCHING_SOURCE, report)
            snapshot = self._fetch_source()
            report.snapshot = snapshot
            report.skipped_source_features = len(snapshot.skipped_feature_ids)

            reader = PageStateReader(self._notion, self._schemas)
            executor = UpsertExecutor(
                self._notion,
                self._schemas,
                identity,
                releases_database_id=self._releases_db,
                features_database_id=self._features_db,
                audit=self._audit,
                dry_run=self._dry_run,
            )

            self._enter(SyncPhase.SYNCING_RELEASES, report)
            logger.info(f"Sincronizando {len(snapshot.releases)} releases...")
            for release in snapshot.releases:
                self._sync_record(EntityType.RELEASE, release, None, identity, reader, executor, report.releases)

            self._enter(SyncPhase.SYNCING_FEATURES, report)
            logger.info(f"Sincronizando {len(snapshot.features)} features...")
            for feature in snapshot.features:
                release_page_id = identity.get(EntityType.RELEASE, feature.primary_release_id)
                self._sync_record(EntityType.FEATURE, feature, release_page_id, identity, reader, executor, report.features)

            self._enter(SyncPhase.RECONCILING_RELATIONS, report)
            logger.info("Actualizando relaciones Release -> Features...")
            reconciler = RelationReconciler(
                self._notion,
                self._schemas,
                audit=self._audit,
                dry_run=self._dry_run,
                clear_empty=self._clear_empty,
            )
            report.relations = reconciler.reconcile_relations(
                snapshot.releases,
                identity.releases,
                identity.features,
                snapshot.assignments,
            )

            self._enter(SyncPhase.SUMMARIZING, report)
            report.finished_at = datetime.now(timezone.utc)
            report.duration_s = self._clock() - started
            self._log_summary(report)
            self._enter(SyncPhase.DONE, report)
            return report
        except Exception:
            failed_in = self._phase
            self._phase = SyncPhase.FAILED
            report.phase = SyncPhase.FAILED
            logger.error(f"Sync abortado en fase '{failed_in.value}'")
            raise

    def _build_index(self) -> IdentityMap:
        builder = TargetIndexBuilder(
            self._notion,
            self._schemas,
            releases_database_id=self._releases_db,
            features_database_id=self._features_db,
            page_size=self._page_size,
        )
        try:
            return builder.build_index()
        except ExternalApiError as e:
            raise FatalSyncError(f"No se pudo indexar Notion: {e}", SyncPhase.BUILDING_INDEX.value) from e

    def _fetch_source(self) -> SourceSnapshot:
        try:
            return self._source.fetch_snapshot()
        except ExternalApiError as e:
            raise FatalSyncError(
                f"No se pudo listar releases en ProductBoard: {e}", SyncPhase.FETCHING_SOURCE.value
            ) from e

    def _sync_record(
        self,
        entity_type: EntityType,
        record: Union[Release, Feature],
        release_page_id: Optional[str],
        identity: IdentityMap,
        reader: PageStateReader,
        executor: UpsertExecutor,
        stats: EntityStats,
    ) -> None:
        existing = identity.get(entity_type, record.id)
        if existing is None:
            result = executor.upsert(entity_type, record, release_page_id)
            stats.record(result.outcome)
            return

        old = reader.read_tracked_fields(existing, entity_type)
        if old is None:
            # Estado desconocido: no se toca la pagina
            logger.info(f"{entity_type.value} '{record.display_name}' sin estado legible, se cuenta como sin cambios")
            stats.record(UpsertOutcome.UNCHANGED)
            return

        schema = self._schemas.for_type(entity_type)
        new = schema.source_values(record, release_page_id=release_page_id)
        changes = detect_changes(old, new, schema.compared_fields(new))
        result = executor.upsert(entity_type, record, release_page_id, existing, changes)
        stats.record(result.outcome)

    def _log_summary(self, report: SyncReport) -> None:
        logger.info("=" * 50)
        logger.info("Resumen del sync" + (" [dry-run]" if report.dry_run else ""))
        for label, stats in (("Releases", report.releases), ("Features", report.features)):
            logger.info(
                f"{label}: created={stats.created}, updated={stats.updated}, "
                f"unchanged={stats.unchanged}, errors={stats.errors}"
            )
        logger.info(
            f"Relaciones: updated={report.relations.updated}, "
            f"skipped={report.relations.skipped}, errors={report.relations.errors}"
        )
        if report.skipped_source_features:
            logger.info(f"Features omitidos en ProductBoard: {report.skipped_source_features}")
        logger.info(f"Duracion: {report.duration_s:.1f}s")


def build_from_settings(
    config: Settings,
    *,
    audit: Optional[AuditSink] = None,
    dry_run: bool = False,
) -> ProductBoardToNotionSync:
    """
    Constructor "oficial" del pipeline a partir de Settings.

    Valida las credenciales antes de crear cualquier cliente.
    """
    config.require_credentials()
    return ProductBoardToNotionSync(
        source=ProductBoardClient.from_settings(config),
        notion=NotionClient.from_settings(config),
        releases_database_id=config.NOTION_RELEASES_DB_ID,
        features_database_id=config.NOTION_FEATURES_DB_ID,
        schemas=get_schema_set(config.SYNC_FIELD_PROFILE),
        page_size=config.NOTION_PAGE_SIZE,
        audit=audit,
        dry_run=dry_run,
        clear_empty_release_relations=config.SYNC_CLEAR_EMPTY_RELEASE_RELATIONS,
    )
