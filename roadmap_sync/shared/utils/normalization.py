"""
Normalizacion de valores crudos de ProductBoard.

Funciones puras, sin I/O: lo que devuelven es exactamente lo que se
guarda en Notion y lo que se compara contra Notion en la siguiente corrida.
"""
from typing import Any, Iterable, Optional

UNKNOWN_HEALTH = "unknown"


def format_date(value: Optional[str]) -> Optional[str]:
    """
    Trunca un timestamp ISO8601 a su fecha de calendario.
    
    "2025-05-05T00:00:00Z" -> "2025-05-05". Sin valor -> None.
    """
    if not value:
        return None
    return str(value).split("T", 1)[0]


def normalize_health(value: Any) -> str:
    """Health en minusculas; None, "" o ausente -> "unknown"."""
    if not value:
        return UNKNOWN_HEALTH
    return str(value).lower()


def extract_person(value: Any, keys: Iterable[str] = ("name", "displayName", "email")) -> Optional[str]:
    """
    Obtiene un nombre legible de un campo de persona de ProductBoard.
    
    Acepta un string plano o un objeto del que se toma la primera clave
    no vacia en el orden indicado.
    """
    if not value:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, dict):
        for key in keys:
            candidate = value.get(key)
            if candidate:
                return str(candidate)
    return None


def nested_get(data: Any, path: str) -> Any:
    """Lee una ruta "a.b.c" en dicts anidados; None si falta algun tramo."""
    current = data
    for part in path.split("."):
        if not isinstance(current, dict):
            return None
        current = current.get(part)
    return current
