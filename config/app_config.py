"""
Main Application Configuration.

Composes domain-specific configuration modules:
    - DatabaseConfig (PostgreSQL/PostGIS ledger + production table)
    - StorageConfig (artifact backend)
    - ImportConfig (engine behaviour, freeze switch)

Pattern:
    Composition over inheritance - domain configs are composed, not inherited.
"""

import os
from pydantic import BaseModel, Field

from .database_config import DatabaseConfig
from .storage_config import StorageConfig
from .import_config import ImportConfig
from .defaults import AppDefaults


class AppConfig(BaseModel):
    """Application configuration - composition of domain configs."""

    debug_mode: bool = Field(
        default=AppDefaults.DEBUG_MODE,
        description="Enable verbose diagnostics (DEBUG_MODE)"
    )

    environment: str = Field(
        default=AppDefaults.ENVIRONMENT,
        description="Environment name (dev, qa, prod)"
    )

    log_level: str = Field(
        default=AppDefaults.LOG_LEVEL,
        description="Root log level (LOG_LEVEL)"
    )

    host: str = Field(default=AppDefaults.HOST, description="HTTP bind address")
    port: int = Field(default=AppDefaults.PORT, description="HTTP port")

    database: DatabaseConfig
    storage: StorageConfig = Field(default_factory=StorageConfig)
    imports: ImportConfig = Field(default_factory=ImportConfig)

    @classmethod
    def from_environment(cls) -> "AppConfig":
        return cls(
            debug_mode=os.environ.get("DEBUG_MODE", "false").lower() == "true",
            environment=os.environ.get("ENVIRONMENT", AppDefaults.ENVIRONMENT),
            log_level=os.environ.get("LOG_LEVEL", AppDefaults.LOG_LEVEL),
            host=os.environ.get("HOST", AppDefaults.HOST),
            port=int(os.environ.get("PORT", str(AppDefaults.PORT))),
            database=DatabaseConfig.from_environment(),
            storage=StorageConfig.from_environment(),
            imports=ImportConfig.from_environment(),
        )
