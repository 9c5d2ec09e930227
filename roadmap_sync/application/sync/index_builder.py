"""
Construccion del IdentityMap a partir de las paginas ya existentes en Notion.

Notion es la unica fuente de verdad del mapeo ID externo -> page ID: no se
persiste en ningun otro lado y se reconstruye en cada corrida.
"""

from __future__ import annotations

from loguru import logger

from roadmap_sync.application.sync.field_policy import EntitySchema, SchemaSet
from roadmap_sync.domain.entities import IdentityMap
from roadmap_sync.infrastructure.external.notion.client import NotionClient


class TargetIndexBuilder:
    def __init__(
        self,
        notion: NotionClient,
        schemas: SchemaSet,
        *,
        releases_database_id: str,
        features_database_id: str,
        page_size: int = 100,
    ) -> None:
        self._notion = notion
        self._schemas = schemas
        self._database_ids = {
            schemas.release.entity_type: releases_database_id,
            schemas.feature.entity_type: features_database_id,
        }
        self._page_size = page_size

    def build_index(self) -> IdentityMap:
        """
        Pagina ambas bases y mapea ID externo -> page ID.

        Los errores de Notion se propagan: sin indice no hay forma de
        evitar duplicados.
        """
        identity = IdentityMap()
        for schema in (self._schemas.release, self._schemas.feature):
            found = self._index_database(schema, identity)
            logger.info(f"{found} {schema.entity_type.value}s existentes en Notion")
        return identity

    def _index_database(self, schema: EntitySchema, identity: IdentityMap) -> int:
        database_id = self._database_ids[schema.entity_type]
        found = 0
        for page in self._notion.iter_database_pages(database_id, page_size=self._page_size):
            if page.get("archived") or page.get("in_trash"):
                continue
            external_id = schema.read_external_id(page)
            if not external_id:
                continue
            previous = identity.get(schema.entity_type, external_id)
            if previous and previous != page["id"]:
                logger.warning(
                    f"ID externo {external_id} duplicado en Notion "
                    f"({previous}, {page['id']}); se usa la primera pagina"
                )
                continue
            identity.register(schema.entity_type, external_id, page["id"])
            found += 1
        return found
