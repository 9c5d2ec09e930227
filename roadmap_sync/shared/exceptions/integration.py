"""
Excepciones de configuración e integración con APIs externas.
"""
from typing import Any, Optional

from roadmap_sync.shared.exceptions.base import SyncException


class ConfigurationError(SyncException):
    """Configuración ausente o inválida. Fatal antes de cualquier llamada de red."""
    
    def __init__(self, message: str, missing: Optional[list[str]] = None):
        super().__init__(
            message=message,
            error_code="INVALID_CONFIGURATION",
            details={"missing": list(missing or [])}
        )
        self.missing = list(missing or [])

    @classmethod
    def for_missing(cls, missing: list[str]) -> "ConfigurationError":
        return cls(f"Faltan variables de entorno obligatorias: {', '.join(missing)}", missing)


class ExternalApiError(SyncException):
    """Error HTTP o de transporte contra una API externa."""
    
    service_name = "external"
    
    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        api_code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            error_code=f"{self.service_name.upper()}_API_ERROR",
            details=details
        )
        self.status_code = status_code
        self.api_code = api_code


class ProductBoardApiError(ExternalApiError):
    """Error de integración con ProductBoard."""
    
    service_name = "productboard"


class NotionApiError(ExternalApiError):
    """Error de integración con Notion (p.ej. object_not_found, validation_error)."""
    
    service_name = "notion"


class FatalSyncError(SyncException):
    """Error que aborta la corrida completa (índice o listado de releases)."""
    
    def __init__(self, message: str, phase: str):
        super().__init__(
            message=message,
            error_code="FATAL_SYNC_ERROR",
            details={"phase": phase}
        )
        self.phase = phase
