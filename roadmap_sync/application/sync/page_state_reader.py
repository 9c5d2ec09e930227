"""
Lectura del estado actual de una pagina Notion para deteccion de cambios.
"""

from __future__ import annotations

from typing import Any, Optional

from loguru import logger

from roadmap_sync.application.sync.field_policy import SchemaSet
from roadmap_sync.domain.entities import EntityType
from roadmap_sync.infrastructure.external.notion.client import NotionClient
from roadmap_sync.shared.exceptions import NotionApiError


class PageStateReader:
    """Devuelve los campos rastreados de una pagina, en forma normalizada."""

    def __init__(self, notion: NotionClient, schemas: SchemaSet) -> None:
        self._notion = notion
        self._schemas = schemas

    def read_tracked_fields(self, page_id: str, entity_type: EntityType) -> Optional[dict[str, Any]]:
        """
        Lee la pagina y extrae los campos del perfil activo.

        Returns:
            Snapshot o None si la lectura falla (estado desconocido).
        """
        try:
            page = self._notion.retrieve_page(page_id)
        except NotionApiError as e:
            logger.warning(f"No se pudo leer la pagina {page_id} ({entity_type.value}): {e}")
            return None
        return self._schemas.for_type(entity_type).read_values(page)
