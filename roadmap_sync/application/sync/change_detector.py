"""
Deteccion de cambios entre el estado conocido en Notion y la fuente.

Comparacion estricta por string: no hay orden semantico de fechas ni
numeros, solo igualdad. None es el marcador canonico de vacio.
"""

from __future__ import annotations

from typing import Any, Iterable, Optional

from roadmap_sync.domain.entities import ChangeRecord, FieldChange


def _coerce(value: Any) -> Optional[str]:
    return None if value is None else str(value)


def detect_changes(
    old: dict[str, Any],
    new: dict[str, Any],
    fields: Optional[Iterable[str]] = None,
) -> Optional[ChangeRecord]:
    """
    Compara dos snapshots campo a campo.

    Args:
        old: valores leidos de Notion
        new: valores normalizados de ProductBoard
        fields: campos a comparar (default: todas las claves de new)

    Returns:
        None si todos los campos son iguales; si no, campo -> FieldChange.
    """
    changes: ChangeRecord = {}
    for name in (fields if fields is not None else new.keys()):
        old_value = old.get(name)
        new_value = new.get(name)
        if _coerce(old_value) != _coerce(new_value):
            changes[name] = FieldChange(old=old_value, new=new_value)
    return changes or None


def describe_changes(changes: ChangeRecord) -> str:
    """Resumen de una linea para logs: campo: viejo -> nuevo."""
    return ", ".join(f"{name}: {change.old!r} -> {change.new!r}" for name, change in changes.items())
