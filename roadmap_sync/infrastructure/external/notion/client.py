"""
Cliente minimo de Notion REST API (sin SDKs externos).

Requisitos cubiertos:
- requests
- paginacion por cursor (has_more / next_cursor) expuesta como generator
- rate-limit: delay fijo despues de cada llamada + backoff en 429/5xx
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Iterator, Optional

import requests

from roadmap_sync.core.config import Settings
from roadmap_sync.infrastructure.external.http_client import JsonApiClient
from roadmap_sync.shared.exceptions import NotionApiError


@dataclass(frozen=True)
class NotionCredentials:
    token: str
    notion_version: str = "2022-06-28"


class NotionClient(JsonApiClient):
    """
    Cliente HTTP de Notion para paginas de base de datos.

    Importante:
    - No interpreta propiedades: eso lo hace notion.properties.
    - Cada metodo es una sola llamada logica; el delay fijo va incluido.
    """

    error_cls = NotionApiError

    def __init__(
        self,
        credentials: NotionCredentials,
        *,
        session: Optional[requests.Session] = None,
        base_url: str = "https://api.notion.com/v1",
        timeout_s: int = 30,
        max_retries: int = 3,
        request_delay_s: float = 0.35,
        sleep: Optional[Callable[[float], None]] = None,
    ) -> None:
        super().__init__(
            base_url=base_url,
            headers={
                "Authorization": f"Bearer {credentials.token}",
                "Notion-Version": credentials.notion_version,
                "Content-Type": "application/json",
            },
            session=session,
            timeout_s=timeout_s,
            max_retries=max_retries,
            request_delay_s=request_delay_s,
            sleep=sleep,
        )

    @classmethod
    def from_settings(cls, config: Settings, **kwargs: Any) -> "NotionClient":
        return cls(
            NotionCredentials(token=config.NOTION_API_KEY, notion_version=config.NOTION_VERSION),
            base_url=config.NOTION_API_BASE,
            timeout_s=config.HTTP_TIMEOUT_S,
            max_retries=config.HTTP_MAX_RETRIES,
            request_delay_s=config.NOTION_REQUEST_DELAY_S,
            **kwargs,
        )

    def iter_database_pages(
        self,
        database_id: str,
        *,
        page_size: int = 100,
    ) -> Iterator[dict[str, Any]]:
        """
        Itera todas las paginas de una base, pidiendo bloques de page_size.

        El generator es perezoso: la siguiente pagina de resultados se pide
        solo cuando el consumidor agota la actual.
        """
        cursor: Optional[str] = None
        while True:
            body: dict[str, Any] = {"page_size": page_size}
            if cursor:
                body["start_cursor"] = cursor

            payload = self._request_json("POST", f"/databases/{database_id}/query", json_body=body)
            for page in payload.get("results") or []:
                yield page

            cursor = payload.get("next_cursor")
            if not payload.get("has_more") or not cursor:
                break

    def retrieve_page(self, page_id: str) -> dict[str, Any]:
        return self._request_json("GET", f"/pages/{page_id}")

    def create_page(self, database_id: str, properties: dict[str, Any]) -> dict[str, Any]:
        return self._request_json(
            "POST",
            "/pages",
            json_body={"parent": {"database_id": database_id}, "properties": properties},
        )

    def update_page(self, page_id: str, properties: dict[str, Any]) -> dict[str, Any]:
        return self._request_json("PATCH", f"/pages/{page_id}", json_body={"properties": properties})

    def _error_from_response(
        self, resp: requests.Response, *, prefix: str = ""
    ) -> NotionApiError:
        """
        Notion responde {"object": "error", "code": "...", "message": "..."}.

        object_not_found casi siempre significa que la base no fue compartida
        con la integracion.
        """
        try:
            body = resp.json()
        except ValueError:
            body = {}
        api_code = body.get("code") if isinstance(body, dict) else None
        message = body.get("message") if isinstance(body, dict) else None

        head = f"Notion error {resp.status_code}"
        if prefix:
            head = f"{head} {prefix}"
        text = f"{head} ({api_code}): {message}" if api_code else f"{head}: {resp.text}"
        if api_code == "object_not_found":
            text += " - verifica que la base este compartida con la integracion"
        return NotionApiError(text, status_code=resp.status_code, api_code=api_code)
