"""
Excepciones del sync.
"""
from roadmap_sync.shared.exceptions.base import SyncException
from roadmap_sync.shared.exceptions.integration import (
    ConfigurationError,
    ExternalApiError,
    FatalSyncError,
    NotionApiError,
    ProductBoardApiError,
)

__all__ = [
    "SyncException",
    "ConfigurationError",
    "ExternalApiError",
    "FatalSyncError",
    "NotionApiError",
    "ProductBoardApiError",
]
