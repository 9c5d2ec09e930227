"""
Create o update de una pagina Notion a partir de un registro de ProductBoard.

Reglas:
- Sin pagina existente -> create con todos los campos + ID externo; el
  page ID nuevo entra al IdentityMap de inmediato.
- Con pagina existente y cambios -> update con el payload completo del
  perfil (reenviar valores iguales es un no-op en Notion).
- Con pagina existente sin cambios -> ninguna llamada.
- Un fallo de create/update se loguea y se reporta como ERROR; nunca
  aborta la corrida.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union

from loguru import logger

from roadmap_sync.application.sync.change_detector import describe_changes
from roadmap_sync.application.sync.field_policy import SchemaSet
from roadmap_sync.application.sync.report import UpsertOutcome
from roadmap_sync.domain.entities import ChangeRecord, EntityType, Feature, IdentityMap, Release
from roadmap_sync.infrastructure.external.notion.client import NotionClient
from roadmap_sync.shared.exceptions import NotionApiError
from roadmap_sync.shared.utils.audit_sink import AuditEntry, AuditSink, NullAuditSink

DRY_RUN_PREFIX = "dry-run:"


@dataclass(frozen=True)
class UpsertResult:
    outcome: UpsertOutcome
    page_id: Optional[str]
    changes: Optional[ChangeRecord] = None


class UpsertExecutor:
    def __init__(
        self,
        notion: NotionClient,
        schemas: SchemaSet,
        identity: IdentityMap,
        *,
        releases_database_id: str,
        features_database_id: str,
        audit: Optional[AuditSink] = None,
        dry_run: bool = False,
    ) -> None:
        self._notion = notion
        self._schemas = schemas
        self._identity = identity
        self._database_ids = {
            EntityType.RELEASE: releases_database_id,
            EntityType.FEATURE: features_database_id,
        }
        self._audit = audit or NullAuditSink()
        self._dry_run = dry_run

    def upsert(
        self,
        entity_type: EntityType,
        record: Union[Release, Feature],
        release_page_id: Optional[str] = None,
        existing_page_id: Optional[str] = None,
        changes: Optional[ChangeRecord] = None,
    ) -> UpsertResult:
        """
        Args:
            entity_type: base destino
            record: registro normalizado de ProductBoard
            release_page_id: page ID del release primario (solo features)
            existing_page_id: page ID ya mapeado, o None para crear
            changes: resultado del ChangeDetector para la pagina existente
        """
        if existing_page_id is None:
            return self._create(entity_type, record, release_page_id)
        if not changes:
            return UpsertResult(UpsertOutcome.UNCHANGED, existing_page_id)
        return self._update(entity_type, record, release_page_id, existing_page_id, changes)

    def _create(
        self,
        entity_type: EntityType,
        record: Union[Release, Feature],
        release_page_id: Optional[str],
    ) -> UpsertResult:
        schema = self._schemas.for_type(entity_type)
        values = schema.source_values(record, release_page_id=release_page_id)
        properties = schema.build_properties(values, record.id)
        entry = AuditEntry(
            operation="create",
            entity=entity_type.value,
            payload={
                "parent": {"database_id": self._database_ids[entity_type]},
                "properties": properties,
            },
            dry_run=self._dry_run,
        )

        if self._dry_run:
            page_id = f"{DRY_RUN_PREFIX}{record.id}"
            entry.page_id = page_id
            self._audit.record(entry)
            self._identity.register(entity_type, record.id, page_id)
            logger.info(f"[dry-run] Crearia {entity_type.value}: {record.display_name}")
            return UpsertResult(UpsertOutcome.CREATED, page_id)

        try:
            page = self._notion.create_page(self._database_ids[entity_type], properties)
            page_id = page.get("id")
            if not page_id:
                raise NotionApiError("Notion devolvió la pagina creada sin 'id'")
        except NotionApiError as e:
            entry.error = str(e)
            self._audit.record(entry)
            logger.error(f"Error creando {entity_type.value} '{record.display_name}': {e}")
            return UpsertResult(UpsertOutcome.ERROR, None)

        entry.page_id = page_id
        entry.result = AuditEntry.summarize_result(page)
        self._audit.record(entry)
        self._identity.register(entity_type, record.id, page_id)
        logger.info(f"Creado {entity_type.value}: {record.display_name}")
        return UpsertResult(UpsertOutcome.CREATED, page_id)

    def _update(
        self,
        entity_type: EntityType,
        record: Union[Release, Feature],
        release_page_id: Optional[str],
        page_id: str,
        changes: ChangeRecord,
    ) -> UpsertResult:
        schema = self._schemas.for_type(entity_type)
        values = schema.source_values(record, release_page_id=release_page_id)
        properties = schema.build_properties(values, record.id)
        entry = AuditEntry(
            operation="update",
            entity=entity_type.value,
            payload={"page_id": page_id, "properties": properties},
            page_id=page_id,
            dry_run=self._dry_run,
        )

        if self._dry_run:
            self._audit.record(entry)
            logger.info(
                f"[dry-run] Actualizaria {entity_type.value} {record.display_name} "
                f"({len(changes)} cambios: {describe_changes(changes)})"
            )
            return UpsertResult(UpsertOutcome.UPDATED, page_id, changes)

        try:
            page = self._notion.update_page(page_id, properties)
        except NotionApiError as e:
            entry.error = str(e)
            self._audit.record(entry)
            logger.error(f"Error actualizando {entity_type.value} '{record.display_name}': {e}")
            return UpsertResult(UpsertOutcome.ERROR, page_id, changes)

        entry.result = AuditEntry.summarize_result(page)
        self._audit.record(entry)
        logger.info(
            f"Actualizado {entity_type.value} {record.display_name} "
            f"({len(changes)} cambios: {describe_changes(changes)})"
        )
        return UpsertResult(UpsertOutcome.UPDATED, page_id, changes)
