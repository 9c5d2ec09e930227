"""
Cliente HTTP JSON minimo compartido por ProductBoard y Notion.

Requisitos cubiertos:
- requests (Session reutilizable, inyectable en tests)
- rate-limit/backoff (429, 5xx)
- delay fijo despues de cada llamada (exitosa o no)
"""

from __future__ import annotations

import time
from typing import Any, Callable, Optional

import requests

from roadmap_sync.shared.exceptions import ExternalApiError


class JsonApiClient:
    """
    Base para clientes REST que hablan JSON.

    Importante:
    - Cada llamada publica (incluidos sus reintentos) termina con un sleep
      fijo de request_delay_s para respetar el limite por segundo del proveedor.
    - Las subclases definen error_cls y pueden refinar _error_from_response.
    """

    error_cls: type[ExternalApiError] = ExternalApiError

    def __init__(
        self,
        *,
        base_url: str,
        headers: dict[str, str],
        session: Optional[requests.Session] = None,
        timeout_s: int = 30,
        max_retries: int = 3,
        min_backoff_s: float = 0.8,
        max_backoff_s: float = 20.0,
        request_delay_s: float = 0.0,
        sleep: Optional[Callable[[float], None]] = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._headers = dict(headers)
        self._session = session or requests.Session()
        self._timeout_s = timeout_s
        self._max_retries = max_retries
        self._min_backoff_s = min_backoff_s
        self._max_backoff_s = max_backoff_s
        self._request_delay_s = request_delay_s
        self._sleep = sleep or time.sleep

    def _url(self, path: str) -> str:
        if path.startswith("http://") or path.startswith("https://"):
            return path
        return f"{self._base_url}/{path.lstrip('/')}"

    def _request_json(
        self,
        method: str,
        path: str,
        *,
        params: Optional[dict[str, Any]] = None,
        json_body: Optional[dict[str, Any]] = None,
    ) -> dict[str, Any]:
        """
        Request HTTP con backoff para 429/5xx.

        Estrategia:
        - 429: respeta Retry-After si existe, si no exponencial con jitter simple.
        - 5xx: exponencial con jitter.
        - 4xx (no 429): error inmediato (config/auth/permisos mal).
        """
        url = self._url(path)
        try:
            for attempt in range(self._max_retries + 1):
                try:
                    resp = self._session.request(
                        method=method,
                        url=url,
                        params=params,
                        json=json_body,
                        headers=self._headers,
                        timeout=self._timeout_s,
                    )
                except requests.RequestException as e:
                    raise self.error_cls(f"{method} {url} falló: {e}") from e

                if 200 <= resp.status_code < 300:
                    return self._decode_json(resp, method, url)

                # Errores recuperables
                if resp.status_code == 429 or 500 <= resp.status_code < 600:
                    if attempt >= self._max_retries:
                        raise self._error_from_response(
                            resp, prefix=f"tras {attempt} reintentos"
                        )
                    self._sleep(self._retry_delay(resp, attempt))
                    continue

                # Errores no recuperables
                raise self._error_from_response(resp)

            raise self.error_cls(f"{method} {url} agotó los reintentos")  # pragma: no cover
        finally:
            if self._request_delay_s > 0:
                self._sleep(self._request_delay_s)

    def _decode_json(self, resp: requests.Response, method: str, url: str) -> dict[str, Any]:
        """Body de una respuesta 2xx. Un body que no es un objeto JSON es un error de la API."""
        if not resp.content:
            return {}
        try:
            payload = resp.json()
        except ValueError as e:
            raise self.error_cls(
                f"{method} {url} devolvió JSON inválido: {resp.text[:200]}",
                status_code=resp.status_code,
            ) from e
        if not isinstance(payload, dict):
            raise self.error_cls(
                f"{method} {url} devolvió {type(payload).__name__} en lugar de un objeto JSON",
                status_code=resp.status_code,
            )
        return payload

    def _retry_delay(self, resp: requests.Response, attempt: int) -> float:
        retry_after = resp.headers.get("Retry-After")
        if retry_after:
            try:
                return float(retry_after)
            except ValueError:
                return self._min_backoff_s
        # Exponencial simple + jitter proporcional
        base = min(self._max_backoff_s, self._min_backoff_s * (2**attempt))
        return base + (0.15 * base)

    def _error_from_response(
        self, resp: requests.Response, *, prefix: str = ""
    ) -> ExternalApiError:
        label = self.error_cls.service_name
        head = f"{label} error {resp.status_code}"
        if prefix:
            head = f"{head} {prefix}"
        return self.error_cls(f"{head}: {resp.text}", status_code=resp.status_code)
