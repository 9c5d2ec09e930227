"""
Tabla de campos sincronizados por tipo de entidad.

Aqui se decide, por campo:
- propiedad Notion destino y su tipo (builder/reader)
- si el campo se compara para detectar cambios
- que significa un valor vacio en la fuente:
    OMIT  -> no se envia; Notion conserva lo que tenga
    CLEAR -> se envia la forma vacia; Notion limpia el valor

El mismo FieldSpec construye el payload de create y el de update, asi el
conjunto de campos no puede divergir entre ambos caminos.

Este modulo no realiza I/O: solo define configuracion.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Union

from roadmap_sync.domain.entities import EntityType, Feature, Release
from roadmap_sync.infrastructure.external.notion import properties as props
from roadmap_sync.infrastructure.external.notion.properties import (
    PropertyBuilder,
    PropertyReader,
)
from roadmap_sync.shared.exceptions import ConfigurationError

# Clave del snapshot para el page ID del release primario de un feature
RELEASE_PAGE_FIELD = "release_page_id"


class EmptyValuePolicy(Enum):
    OMIT = "omit"
    CLEAR = "clear"


@dataclass(frozen=True)
class FieldSpec:
    """
    Un campo sincronizado.

    - name: clave en el snapshot (atributo del registro fuente, salvo
      release_page_id que se resuelve contra el IdentityMap)
    - notion_property: nombre de la propiedad en la base Notion
    """

    name: str
    notion_property: str
    builder: PropertyBuilder
    reader: PropertyReader
    on_empty: EmptyValuePolicy = EmptyValuePolicy.OMIT


@dataclass(frozen=True)
class EntitySchema:
    """Campos sincronizados de una base Notion."""

    entity_type: EntityType
    external_id_property: str
    fields: tuple[FieldSpec, ...]
    # Lado "muchos" de la relacion de dos vias (solo releases)
    relation_property: Optional[str] = None

    @property
    def field_names(self) -> tuple[str, ...]:
        return tuple(f.name for f in self.fields)

    def source_values(
        self,
        record: Union[Release, Feature],
        *,
        release_page_id: Optional[str] = None,
    ) -> dict[str, Any]:
        """Snapshot "nuevo" a partir del registro de ProductBoard."""
        values: dict[str, Any] = {}
        for f in self.fields:
            if f.name == RELEASE_PAGE_FIELD:
                values[f.name] = release_page_id
            else:
                values[f.name] = getattr(record, f.name)
        return values

    def read_values(self, page: dict[str, Any]) -> dict[str, Any]:
        """Snapshot "viejo" a partir de una pagina Notion."""
        page_props = page.get("properties") or {}
        return {f.name: f.reader(page_props.get(f.notion_property)) for f in self.fields}

    def read_external_id(self, page: dict[str, Any]) -> Optional[str]:
        prop = (page.get("properties") or {}).get(self.external_id_property)
        return props.read_rich_text(prop)

    def compared_fields(self, values: dict[str, Any]) -> tuple[str, ...]:
        """
        Campos que participan en la deteccion de cambios.

        Un campo OMIT sin valor en la fuente no se envia, asi que tampoco
        se compara: si se comparara, Notion nunca convergeria.
        """
        return tuple(
            f.name
            for f in self.fields
            if not (f.on_empty is EmptyValuePolicy.OMIT and _is_empty(values.get(f.name)))
        )

    def build_properties(self, values: dict[str, Any], external_id: str) -> dict[str, Any]:
        """Payload de propiedades (mismo para create y update)."""
        payload: dict[str, Any] = {
            self.external_id_property: props.rich_text(external_id),
        }
        for f in self.fields:
            value = values.get(f.name)
            if _is_empty(value) and f.on_empty is EmptyValuePolicy.OMIT:
                continue
            payload[f.notion_property] = f.builder(value)
        return payload

    def build_relation(self, page_ids: list[str]) -> dict[str, Any]:
        if not self.relation_property:
            raise ValueError(f"{self.entity_type.value} no tiene propiedad de relacion")
        return {self.relation_property: props.relation(page_ids)}


@dataclass(frozen=True)
class SchemaSet:
    profile: str
    release: EntitySchema
    feature: EntitySchema

    def for_type(self, entity_type: EntityType) -> EntitySchema:
        return self.release if entity_type is EntityType.RELEASE else self.feature


def _is_empty(value: Any) -> bool:
    return value is None or value == ""


def _release_fields(extended: bool) -> tuple[FieldSpec, ...]:
    fields = [
        FieldSpec("name", "Name", props.title, props.read_title, EmptyValuePolicy.CLEAR),
        FieldSpec("state", "State", props.select, props.read_select),
        FieldSpec(
            "release_group",
            "Release Group",
            props.rich_text,
            props.read_rich_text,
            EmptyValuePolicy.CLEAR if extended else EmptyValuePolicy.OMIT,
        ),
    ]
    if extended:
        fields += [
            FieldSpec("start_date", "Start Date", props.date, props.read_date, EmptyValuePolicy.CLEAR),
            FieldSpec("end_date", "End Date", props.date, props.read_date, EmptyValuePolicy.CLEAR),
            FieldSpec("product_manager", "Product Manager", props.rich_text, props.read_rich_text, EmptyValuePolicy.CLEAR),
            FieldSpec("engineering_lead", "Engineering Lead", props.rich_text, props.read_rich_text, EmptyValuePolicy.CLEAR),
        ]
    return tuple(fields)


def _feature_fields(extended: bool) -> tuple[FieldSpec, ...]:
    optional = EmptyValuePolicy.CLEAR if extended else EmptyValuePolicy.OMIT
    fields = [
        FieldSpec("name", "Name", props.title, props.read_title, EmptyValuePolicy.CLEAR),
        FieldSpec("status", "Status", props.select, props.read_select),
        FieldSpec("health", "Health Status", props.select, props.read_select),
        # Siempre se envia: un PM quitado en ProductBoard debe quitarse en Notion
        FieldSpec("product_manager", "Product Manager", props.rich_text, props.read_rich_text, EmptyValuePolicy.CLEAR),
        FieldSpec("link", "Productboard Link", props.url, props.read_url, optional),
        FieldSpec(RELEASE_PAGE_FIELD, "Release", props.relation, props.read_first_relation, optional),
    ]
    if extended:
        fields.append(
            FieldSpec("engineering_lead", "Engineering Lead", props.rich_text, props.read_rich_text, EmptyValuePolicy.CLEAR)
        )
    return tuple(fields)


FIELD_PROFILES = ("incremental", "extended")


def get_schema_set(profile: str = "incremental") -> SchemaSet:
    """
    Retorna la tabla de campos del perfil indicado.

    - incremental: el set minimo que compara el sync incremental.
    - extended: agrega fechas, PM y engineering lead, y limpia en Notion
      todo campo opcional que la fuente deje de informar.
    """
    key = (profile or "").strip().lower()
    if key not in FIELD_PROFILES:
        raise ConfigurationError(
            f"SYNC_FIELD_PROFILE invalido: '{profile}'. Valores posibles: {', '.join(FIELD_PROFILES)}"
        )
    extended = key == "extended"
    return SchemaSet(
        profile=key,
        release=EntitySchema(
            entity_type=EntityType.RELEASE,
            external_id_property="Productboard ID",
            fields=_release_fields(extended),
            relation_property="Features",
        ),
        feature=EntitySchema(
            entity_type=EntityType.FEATURE,
            external_id_property="Feature ID",
            fields=_feature_fields(extended),
        ),
    )
