"""
Fixtures compartidas: Notion en memoria, fuente ProductBoard falsa y
captura de logs de loguru.
"""
import copy
import json
from typing import Any, Dict, List, Optional
from unittest.mock import Mock

import pytest
import requests
from loguru import logger

from roadmap_sync.domain.entities import Feature, Release, SourceSnapshot
from roadmap_sync.shared.exceptions import NotionApiError

RELEASES_DB = "db-releases"
FEATURES_DB = "db-features"


def _stored_property(prop: Dict[str, Any]) -> Dict[str, Any]:
    """Convierte un valor de escritura al formato que devuelve Notion al leer."""
    for text_type in ("title", "rich_text"):
        if text_type in prop:
            return {
                "type": text_type,
                text_type: [
                    {"type": "text", "plain_text": item["text"]["content"], "text": item["text"]}
                    for item in prop[text_type]
                ],
            }
    (prop_type,) = prop.keys()
    return {"type": prop_type, **copy.deepcopy(prop)}


class FakeNotion:
    """
    Notion en memoria con la misma interfaz que NotionClient.

    fail_on permite simular errores por operacion:
    - "create": nombres (title) cuyo create falla
    - "update" / "retrieve": page IDs que fallan
    """

    def __init__(self) -> None:
        self.pages: Dict[str, Dict[str, Any]] = {}
        self.calls: List[tuple] = []
        self.fail_on: Dict[str, set] = {"create": set(), "update": set(), "retrieve": set()}
        self.query_error: Optional[Exception] = None
        self._seq = 0

    def add_page(self, database_id: str, properties: Dict[str, Any]) -> str:
        self._seq += 1
        page_id = f"page-{self._seq}"
        self.pages[page_id] = {
            "object": "page",
            "id": page_id,
            "url": f"https://www.notion.so/{page_id}",
            "parent": {"database_id": database_id},
            "properties": {name: _stored_property(value) for name, value in properties.items()},
        }
        return page_id

    def iter_database_pages(self, database_id, *, page_size=100):
        self.calls.append(("query", database_id))
        if self.query_error:
            raise self.query_error
        for page in list(self.pages.values()):
            if page["parent"]["database_id"] == database_id:
                yield copy.deepcopy(page)

    def retrieve_page(self, page_id):
        self.calls.append(("retrieve", page_id))
        if page_id in self.fail_on["retrieve"] or page_id not in self.pages:
            raise NotionApiError(f"Notion error 404 (object_not_found): {page_id}", 404, "object_not_found")
        return copy.deepcopy(self.pages[page_id])

    def create_page(self, database_id, properties):
        self.calls.append(("create", database_id, copy.deepcopy(properties)))
        title = "".join(i["text"]["content"] for i in properties.get("Name", {}).get("title", []))
        if title in self.fail_on["create"]:
            raise NotionApiError("Notion error 400 (validation_error): boom", 400, "validation_error")
        page_id = self.add_page(database_id, properties)
        return copy.deepcopy(self.pages[page_id])

    def update_page(self, page_id, properties):
        self.calls.append(("update", page_id, copy.deepcopy(properties)))
        if page_id in self.fail_on["update"]:
            raise NotionApiError("Notion error 409 (conflict_error): boom", 409, "conflict_error")
        page = self.pages[page_id]
        for name, value in properties.items():
            page["properties"][name] = _stored_property(value)
        return copy.deepcopy(page)

    # Helpers de asercion

    def calls_of(self, operation: str) -> List[tuple]:
        return [c for c in self.calls if c[0] == operation]

    def pages_in(self, database_id: str) -> List[Dict[str, Any]]:
        return [p for p in self.pages.values() if p["parent"]["database_id"] == database_id]

    def page_by_external_id(self, database_id: str, id_property: str, external_id: str) -> List[Dict[str, Any]]:
        return [
            p for p in self.pages_in(database_id)
            if "".join(i["plain_text"] for i in p["properties"].get(id_property, {}).get("rich_text", [])) == external_id
        ]


class FakeSource:
    """Fuente ProductBoard falsa: devuelve un snapshot armado en el test."""

    def __init__(self, releases: List[Release], features: List[Feature], skipped: Optional[List[str]] = None):
        self.releases = list(releases)
        self.features = list(features)
        self.skipped = list(skipped or [])
        self.error: Optional[Exception] = None

    def fetch_snapshot(self) -> SourceSnapshot:
        if self.error:
            raise self.error
        assignments: Dict[str, List[str]] = {r.id: [] for r in self.releases}
        for feature in self.features:
            for release_id in feature.release_ids:
                assignments.setdefault(release_id, []).append(feature.id)
        return SourceSnapshot(
            releases=list(self.releases),
            features=list(self.features),
            assignments=assignments,
            skipped_feature_ids=list(self.skipped),
        )


def json_response(status_code: int = 200, body: Any = None, headers: Optional[Dict[str, str]] = None) -> Mock:
    """Mock de requests.Response."""
    resp = Mock()
    resp.status_code = status_code
    resp.json.return_value = body if body is not None else {}
    resp.content = json.dumps(body).encode() if body is not None else b""
    resp.text = json.dumps(body) if body is not None else ""
    resp.headers = headers or {}
    return resp


def text_response(status_code: int, text: str) -> Mock:
    """Mock de requests.Response con un body que no es JSON (p.ej. HTML de un gateway)."""
    resp = Mock()
    resp.status_code = status_code
    resp.json.side_effect = requests.exceptions.JSONDecodeError("Expecting value", text, 0)
    resp.content = text.encode()
    resp.text = text
    resp.headers = {"Content-Type": "text/html"}
    return resp


@pytest.fixture
def fake_notion() -> FakeNotion:
    return FakeNotion()


@pytest.fixture
def log_records():
    """Captura (nivel, mensaje) de loguru durante el test."""
    records: List[tuple] = []
    handler_id = logger.add(
        lambda message: records.append((message.record["level"].name, message.record["message"])),
        level="DEBUG",
    )
    yield records
    logger.remove(handler_id)
