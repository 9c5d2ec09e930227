"""
Configuracion central del sync.
Gestiona variables de entorno (credenciales, IDs de bases Notion, throttling).

Las cuatro credenciales/IDs obligatorias tienen default vacio para que el
modulo se pueda importar sin entorno; se validan con require_credentials()
antes de la primera llamada de red.
"""
from pydantic import Field, computed_field
from pydantic_settings import BaseSettings

from roadmap_sync.shared.exceptions import ConfigurationError


REQUIRED_VARIABLES = (
    "PRODUCTBOARD_API_TOKEN",
    "NOTION_API_KEY",
    "NOTION_RELEASES_DB_ID",
    "NOTION_FEATURES_DB_ID",
)


class Settings(BaseSettings):
    """
    Clase de configuracion del sync.
    Lee variables de entorno y proporciona valores por defecto.
    """
    
    # Credenciales y bases destino (obligatorias)
    PRODUCTBOARD_API_TOKEN: str = Field(default="")
    NOTION_API_KEY: str = Field(default="")
    NOTION_RELEASES_DB_ID: str = Field(default="")
    NOTION_FEATURES_DB_ID: str = Field(default="")
    
    # ProductBoard (v1 obligatorio: v2 filtra assignments de otra forma)
    PRODUCTBOARD_API_BASE: str = Field(default="https://api.productboard.com")
    PRODUCTBOARD_API_VERSION: str = Field(default="1")
    PRODUCTBOARD_REQUEST_DELAY_S: float = Field(default=0.05)
    
    # Notion (~3 req/s documentado)
    NOTION_API_BASE: str = Field(default="https://api.notion.com/v1")
    NOTION_VERSION: str = Field(default="2022-06-28")
    NOTION_REQUEST_DELAY_S: float = Field(default=0.35)
    NOTION_PAGE_SIZE: int = Field(default=100)
    
    # HTTP
    HTTP_TIMEOUT_S: int = Field(default=30)
    HTTP_MAX_RETRIES: int = Field(default=3)
    
    # Comportamiento del sync
    SYNC_FIELD_PROFILE: str = Field(default="incremental")
    SYNC_CLEAR_EMPTY_RELEASE_RELATIONS: bool = Field(default=False)
    
    # Logging y artefactos
    LOG_LEVEL: str = Field(default="INFO")
    LOG_FILE: str = Field(default="logs/sync.log")
    SYNC_AUDIT_DIR: str = Field(default="logs")
    SYNC_EXPORT_DIR: str = Field(default="data")
    
    @computed_field
    @property
    def missing_credentials(self) -> list[str]:
        """Nombres de las variables obligatorias que no estan definidas."""
        return [name for name in REQUIRED_VARIABLES if not getattr(self, name).strip()]
    
    def require_credentials(self) -> None:
        """
        Valida las variables obligatorias.
        
        Raises:
            ConfigurationError: si falta al menos una (las lista todas)
        """
        missing = self.missing_credentials
        if missing:
            raise ConfigurationError.for_missing(missing)
    
    class Config:
        """Configuracion de Pydantic."""
        env_file = (".env", ".env.personal")
        case_sensitive = True
        extra = "ignore"  # Ignorar campos extra del .env

