"""
PostgreSQL/PostGIS Database Configuration.

Provides configuration for:
    - App schema: import_versions and import_jobs ledger tables
    - PostGIS schema: the production asset table the engine merges into

Both live in the same database so publish and rollback can mutate the
ledger and production inside a single transaction.

Exports:
    DatabaseConfig: Database configuration
"""

import os
from typing import Optional
from pydantic import BaseModel, Field

from .defaults import DatabaseDefaults, AzureDefaults


class DatabaseConfig(BaseModel):
    """
    PostgreSQL/PostGIS configuration with managed identity support.

    Supports both password-based and Azure Managed Identity authentication.
    """

    host: str = Field(
        ...,
        description="PostgreSQL server hostname",
        examples=["localhost"]
    )

    port: int = Field(
        default=DatabaseDefaults.PORT,
        description="PostgreSQL server port number"
    )

    user: Optional[str] = Field(
        default=None,
        description="PostgreSQL username for password-based authentication"
    )

    password: Optional[str] = Field(
        default=None,
        repr=False,
        description="PostgreSQL password from POSTGIS_PASSWORD environment variable"
    )

    database: str = Field(
        ...,
        description="PostgreSQL database name"
    )

    postgis_schema: str = Field(
        default=DatabaseDefaults.POSTGIS_SCHEMA,
        description="Schema holding the production asset table"
    )

    app_schema: str = Field(
        default=DatabaseDefaults.APP_SCHEMA,
        description="Schema holding import_versions and import_jobs"
    )

    production_table: str = Field(
        default=DatabaseDefaults.PRODUCTION_TABLE,
        description="Production asset table name inside postgis_schema"
    )

    use_managed_identity: bool = Field(
        default=False,
        description="""Use an Azure AD token instead of a password.

        When True the repository acquires a token for the Azure PostgreSQL
        scope with DefaultAzureCredential and connects as
        managed_identity_admin_name.

        Environment Variable: USE_MANAGED_IDENTITY
        """
    )

    managed_identity_admin_name: str = Field(
        default=AzureDefaults.MANAGED_IDENTITY_NAME,
        description="PostgreSQL role matching the managed identity (DB_ADMIN_MANAGED_IDENTITY_NAME)"
    )

    connection_timeout_seconds: int = Field(
        default=DatabaseDefaults.CONNECTION_TIMEOUT_SECONDS,
        description="Connection timeout in seconds"
    )

    @property
    def connection_string(self) -> str:
        """
        Build a password-auth connection string.

        Managed identity connections are built by the repository, which
        injects a fresh token as the password.
        """
        if self.use_managed_identity:
            return f"host={self.host} port={self.port} dbname={self.database}"
        if not self.user:
            raise ValueError("POSTGIS_USER is required for password authentication")
        password_part = f" password={self.password}" if self.password else ""
        return (
            f"host={self.host} port={self.port} dbname={self.database} "
            f"user={self.user}{password_part} connect_timeout={self.connection_timeout_seconds}"
        )

    def debug_dict(self) -> dict:
        """Debug output with masked password."""
        return {
            "host": self.host,
            "port": self.port,
            "user": self.user,
            "database": self.database,
            "password": "***MASKED***" if self.password else None,
            "managed_identity": self.use_managed_identity,
            "postgis_schema": self.postgis_schema,
            "app_schema": self.app_schema,
            "production_table": self.production_table,
        }

    @classmethod
    def from_environment(cls) -> "DatabaseConfig":
        """Load from environment variables."""
        return cls(
            host=os.environ.get("POSTGIS_HOST", "localhost"),
            port=int(os.environ.get("POSTGIS_PORT", str(DatabaseDefaults.PORT))),
            user=os.environ.get("POSTGIS_USER"),
            password=os.environ.get("POSTGIS_PASSWORD"),
            database=os.environ.get("POSTGIS_DATABASE", "postgres"),
            postgis_schema=os.environ.get("POSTGIS_SCHEMA", DatabaseDefaults.POSTGIS_SCHEMA),
            app_schema=os.environ.get("APP_SCHEMA", DatabaseDefaults.APP_SCHEMA),
            production_table=os.environ.get("PRODUCTION_TABLE", DatabaseDefaults.PRODUCTION_TABLE),
            use_managed_identity=os.environ.get("USE_MANAGED_IDENTITY", "false").lower() == "true",
            managed_identity_admin_name=os.environ.get(
                "DB_ADMIN_MANAGED_IDENTITY_NAME", AzureDefaults.MANAGED_IDENTITY_NAME
            ),
            connection_timeout_seconds=int(os.environ.get(
                "DB_CONNECTION_TIMEOUT", str(DatabaseDefaults.CONNECTION_TIMEOUT_SECONDS)
            )),
        )
