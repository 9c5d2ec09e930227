"""
Cliente minimo de ProductBoard REST API v1 (sin SDKs externos).

Tres llamadas secuenciales:
1. GET /releases
2. GET /feature-release-assignments?release.id=<id>   (por release)
3. GET /features/<id>                                  (por feature)

Politica de fallos:
- Fallar al listar releases es fatal (no hay nada que sincronizar).
- Fallar en assignments de un release o en el detalle de un feature se
  loguea como warning y se trata como resultado vacio.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Iterator, Optional

import requests
from loguru import logger

from roadmap_sync.core.config import Settings
from roadmap_sync.domain.entities import Feature, Release, SourceSnapshot
from roadmap_sync.infrastructure.external.http_client import JsonApiClient
from roadmap_sync.shared.exceptions import ProductBoardApiError
from roadmap_sync.shared.utils.normalization import (
    extract_person,
    format_date,
    nested_get,
    normalize_health,
)


@dataclass(frozen=True)
class ProductBoardCredentials:
    token: str
    api_version: str = "1"


def parse_release(raw: dict[str, Any]) -> Release:
    """Mapea un release crudo de ProductBoard a Release."""
    return Release(
        id=str(raw["id"]),
        name=raw.get("name") or "",
        start_date=format_date(raw.get("startDate")),
        end_date=format_date(raw.get("endDate")),
        state=raw.get("state") or None,
        release_group=nested_get(raw, "releaseGroup.id") or None,
        product_manager=extract_person(raw.get("productManager"), ("name",)),
        engineering_lead=extract_person(raw.get("engineeringLead"), ("name",)),
    )


def parse_feature(
    raw: dict[str, Any],
    release_ids: tuple[str, ...] = (),
    feature_id: Optional[str] = None,
) -> Feature:
    """
    Mapea el detalle crudo de un feature a Feature.

    ProductBoard devuelve el PM como owner: {"email": "..."}; versiones
    anteriores del workspace usan productManager con name/displayName/email.
    feature_id (el ID pedido) tiene prioridad sobre raw["id"].
    """
    product_manager = nested_get(raw, "owner.email") or extract_person(raw.get("productManager"))
    return Feature(
        id=str(feature_id or raw["id"]),
        name=raw.get("name") or "",
        status=nested_get(raw, "status.name") or None,
        health=normalize_health(nested_get(raw, "lastHealthUpdate.status")),
        product_manager=product_manager,
        engineering_lead=extract_person(raw.get("engineeringLead")),
        link=nested_get(raw, "links.html") or None,
        release_ids=tuple(release_ids),
    )


class ProductBoardClient(JsonApiClient):
    """
    Cliente HTTP de ProductBoard. Expone generators y lecturas de alto nivel.
    """

    error_cls = ProductBoardApiError

    def __init__(
        self,
        credentials: ProductBoardCredentials,
        *,
        session: Optional[requests.Session] = None,
        base_url: str = "https://api.productboard.com",
        timeout_s: int = 30,
        max_retries: int = 3,
        request_delay_s: float = 0.05,
        sleep: Optional[Callable[[float], None]] = None,
    ) -> None:
        super().__init__(
            base_url=base_url,
            headers={
                "Authorization": f"Bearer {credentials.token}",
                "X-Version": credentials.api_version,
                "Content-Type": "application/json",
            },
            session=session,
            timeout_s=timeout_s,
            max_retries=max_retries,
            request_delay_s=request_delay_s,
            sleep=sleep,
        )

    @classmethod
    def from_settings(cls, config: Settings, **kwargs: Any) -> "ProductBoardClient":
        return cls(
            ProductBoardCredentials(
                token=config.PRODUCTBOARD_API_TOKEN,
                api_version=config.PRODUCTBOARD_API_VERSION,
            ),
            base_url=config.PRODUCTBOARD_API_BASE,
            timeout_s=config.HTTP_TIMEOUT_S,
            max_retries=config.HTTP_MAX_RETRIES,
            request_delay_s=config.PRODUCTBOARD_REQUEST_DELAY_S,
            **kwargs,
        )

    def iter_collection(
        self, path: str, *, params: Optional[dict[str, Any]] = None
    ) -> Iterator[dict[str, Any]]:
        """
        Itera los items de un endpoint de lista, siguiendo links.next.

        links.next ya trae la query completa, por eso solo la primera
        pagina lleva params.
        """
        next_path: Optional[str] = path
        next_params = params
        while next_path:
            payload = self._request_json("GET", next_path, params=next_params)
            for item in payload.get("data") or []:
                yield item
            next_path = nested_get(payload, "links.next")
            next_params = None

    def fetch_releases(self) -> list[Release]:
        """Lista todos los releases. Cualquier error se propaga (fatal)."""
        return [parse_release(raw) for raw in self.iter_collection("/releases")]

    def fetch_feature_assignments(self, release_id: str) -> list[str]:
        """IDs de features asignados a un release; [] si la llamada falla."""
        try:
            return [
                feature_id
                for feature_id in (
                    nested_get(item, "feature.id")
                    for item in self.iter_collection(
                        "/feature-release-assignments",
                        params={"release.id": release_id},
                    )
                )
                if feature_id
            ]
        except ProductBoardApiError as e:
            logger.warning(f"No se pudieron leer assignments del release {release_id}: {e}")
            return []

    def fetch_feature_detail(
        self, feature_id: str, release_ids: tuple[str, ...] = ()
    ) -> Optional[Feature]:
        """Detalle normalizado de un feature; None si la llamada falla."""
        try:
            payload = self._request_json("GET", f"/features/{feature_id}")
        except ProductBoardApiError as e:
            logger.warning(f"No se pudo leer el feature {feature_id}: {e}")
            return None

        raw = payload.get("data")
        if not raw or not isinstance(raw, dict):
            logger.warning(f"ProductBoard devolvió el feature {feature_id} sin 'data'")
            return None
        return parse_feature(raw, release_ids, feature_id)

    def fetch_snapshot(self) -> SourceSnapshot:
        """
        Lectura completa en tres pasos.

        Un feature asignado a varios releases se lee una sola vez; sus
        release_ids quedan en el orden de los releases.
        """
        releases = self.fetch_releases()
        logger.info(f"{len(releases)} releases en ProductBoard")

        assignments: dict[str, list[str]] = {}
        for i, release in enumerate(releases, start=1):
            feature_ids = self.fetch_feature_assignments(release.id)
            assignments[release.id] = feature_ids
            logger.debug(f"Release {i}/{len(releases)} {release.display_name}: {len(feature_ids)} features")

        # Orden de primera aparicion
        releases_by_feature: dict[str, list[str]] = {}
        for release_id, feature_ids in assignments.items():
            for feature_id in feature_ids:
                owners = releases_by_feature.setdefault(feature_id, [])
                if release_id not in owners:
                    owners.append(release_id)
        logger.info(f"{len(releases_by_feature)} features unicos asignados")

        features: list[Feature] = []
        skipped: list[str] = []
        for feature_id, release_ids in releases_by_feature.items():
            feature = self.fetch_feature_detail(feature_id, tuple(release_ids))
            if feature is None:
                skipped.append(feature_id)
                continue
            features.append(feature)

        if skipped:
            logger.info(f"{len(skipped)} features omitidos por error de lectura")

        return SourceSnapshot(
            releases=releases,
            features=features,
            assignments=assignments,
            skipped_feature_ids=skipped,
        )
