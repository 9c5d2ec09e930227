"""
Construccion y lectura de valores de propiedades Notion.

Los builders reciben el valor normalizado (o None) y devuelven el objeto
de propiedad que espera la API. Con None devuelven la forma "vacia" de
cada tipo, que en un PATCH limpia el valor existente.

Los readers hacen el camino inverso y devuelven el valor en la misma
forma que produce el cliente de ProductBoard, para poder comparar.
"""

from __future__ import annotations

from typing import Any, Callable, Iterable, Optional

PropertyBuilder = Callable[[Any], dict[str, Any]]
PropertyReader = Callable[[Optional[dict[str, Any]]], Any]


def _rich_text_items(value: Optional[str]) -> list[dict[str, Any]]:
    if value is None or value == "":
        return []
    return [{"text": {"content": str(value)}}]


def title(value: Optional[str]) -> dict[str, Any]:
    return {"title": _rich_text_items(value)}


def rich_text(value: Optional[str]) -> dict[str, Any]:
    return {"rich_text": _rich_text_items(value)}


def select(value: Optional[str]) -> dict[str, Any]:
    return {"select": {"name": str(value)} if value else None}


def url(value: Optional[str]) -> dict[str, Any]:
    return {"url": value or None}


def date(value: Optional[str]) -> dict[str, Any]:
    return {"date": {"start": value} if value else None}


def relation(page_ids: Optional[Iterable[str]]) -> dict[str, Any]:
    """Relacion completa (reemplazo total, no append)."""
    if page_ids is None:
        return {"relation": []}
    if isinstance(page_ids, str):
        page_ids = [page_ids]
    return {"relation": [{"id": page_id} for page_id in page_ids]}


def _plain_text(items: Optional[list[dict[str, Any]]]) -> str:
    return "".join((item or {}).get("plain_text") or "" for item in items or [])


def read_title(prop: Optional[dict[str, Any]]) -> str:
    return _plain_text((prop or {}).get("title"))


def read_rich_text(prop: Optional[dict[str, Any]]) -> Optional[str]:
    return _plain_text((prop or {}).get("rich_text")) or None


def read_select(prop: Optional[dict[str, Any]]) -> Optional[str]:
    option = (prop or {}).get("select")
    return option.get("name") if option else None


def read_url(prop: Optional[dict[str, Any]]) -> Optional[str]:
    return (prop or {}).get("url") or None


def read_date(prop: Optional[dict[str, Any]]) -> Optional[str]:
    value = (prop or {}).get("date")
    return value.get("start") if value else None


def read_relation_ids(prop: Optional[dict[str, Any]]) -> list[str]:
    return [item["id"] for item in (prop or {}).get("relation") or [] if item.get("id")]


def read_first_relation(prop: Optional[dict[str, Any]]) -> Optional[str]:
    ids = read_relation_ids(prop)
    return ids[0] if ids else None
