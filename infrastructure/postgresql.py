# ============================================================================
# IMPORT VERSIONING - POSTGRESQL UNIT OF WORK
# ============================================================================
# STATUS: Infrastructure - connection management and transactions
# PURPOSE: psycopg3 connections (password or managed identity) and transaction-scoped repositories
# EXPORTS: PostgreSQLRepository, PostgreSQLTransaction, PostgreSQLUnitOfWork
# DEPENDENCIES: psycopg, azure-identity
# PATTERNS: Unit of Work, Repository, context managers
# ============================================================================
"""
PostgreSQL connection management and unit of work.

One transaction owns one connection. The ledger repositories and the
production repository share it, so publish and rollback commit ledger and
production changes together or not at all.

Isolation:
    transaction(serializable=True) runs at SERIALIZABLE. Serialization
    failures and deadlocks become SerializationConflictError, which
    UnitOfWork.run() retries with a fresh transaction.

Exports:
    PostgreSQLRepository
    PostgreSQLTransaction
    PostgreSQLUnitOfWork
"""

import time
from contextlib import contextmanager
from typing import Iterator, Optional

import psycopg
from psycopg import IsolationLevel
from psycopg.rows import dict_row

from config import DatabaseConfig
from core.schema import ImportSchemaBuilder, deploy_import_schema
from exceptions import DatabaseError, SerializationConflictError
from util_logger import LoggerFactory, ComponentType
from .interface_repository import Transaction, UnitOfWork
from .job_repository import PostgreSQLJobRepository
from .production_repository import PostgreSQLProductionRepository
from .version_repository import PostgreSQLVersionRepository


logger = LoggerFactory.create_logger(ComponentType.REPOSITORY, "PostgreSQLRepository")

POSTGRES_TOKEN_SCOPE = "https://ossrdbms-aad.database.windows.net/.default"


class PostgreSQLRepository:
    """
    PostgreSQL connection source.

    Supports password authentication and Azure Managed Identity. With
    managed identity the password is a short-lived Azure AD token acquired
    per connection by DefaultAzureCredential.
    """

    def __init__(self, config: DatabaseConfig):
        self.config = config
        self._credential = None

    def _get_connection_string(self) -> str:
        if self.config.use_managed_identity:
            logger.debug("🔐 Using Azure Managed Identity for PostgreSQL authentication")
            return self._build_managed_identity_connection_string()
        return self.config.connection_string

    def _build_managed_identity_connection_string(self) -> str:
        from azure.identity import DefaultAzureCredential
        from azure.core.exceptions import ClientAuthenticationError

        if self._credential is None:
            self._credential = DefaultAzureCredential()
        try:
            token_response = self._credential.get_token(POSTGRES_TOKEN_SCOPE)
        except ClientAuthenticationError as e:
            logger.error(f"❌ Failed to acquire managed identity token: {e}")
            raise DatabaseError(f"Managed identity token acquisition failed: {e}") from e

        logger.debug(
            f"✅ Token acquired (expires in ~{token_response.expires_on - time.time():.0f}s)"
        )
        return (
            f"host={self.config.host} "
            f"port={self.config.port} "
            f"dbname={self.config.database} "
            f"user={self.config.managed_identity_admin_name} "
            f"password={token_response.token} "
            f"sslmode=require "
            f"connect_timeout={self.config.connection_timeout_seconds}"
        )

    @contextmanager
    def _get_connection(self) -> Iterator[psycopg.Connection]:
        """
        Context manager for one connection; always closed on exit.

        Raises:
            DatabaseError: connection could not be established
        """
        try:
            conn = psycopg.connect(self._get_connection_string(), row_factory=dict_row)
        except psycopg.OperationalError as e:
            logger.error(f"❌ PostgreSQL connection error: {e}")
            raise DatabaseError(f"Cannot connect to PostgreSQL at {self.config.host}: {e}") from e

        try:
            yield conn
        finally:
            conn.close()


class PostgreSQLTransaction(Transaction):
    """Ledger and production repositories sharing one open transaction."""

    def __init__(self, conn: psycopg.Connection, config: DatabaseConfig):
        self._versions = PostgreSQLVersionRepository(conn, config.app_schema)
        self._jobs = PostgreSQLJobRepository(conn, config.app_schema)
        self._production = PostgreSQLProductionRepository(
            conn, config.postgis_schema, config.production_table
        )

    @property
    def versions(self) -> PostgreSQLVersionRepository:
        return self._versions

    @property
    def jobs(self) -> PostgreSQLJobRepository:
        return self._jobs

    @property
    def production(self) -> PostgreSQLProductionRepository:
        return self._production


class PostgreSQLUnitOfWork(PostgreSQLRepository, UnitOfWork):
    """
    Transaction factory over fresh psycopg connections.

    Usage:
        uow = PostgreSQLUnitOfWork(get_config().database)
        with uow.transaction() as tx:
            version = tx.versions.get_version("IV-3f9a1c07")
    """

    @contextmanager
    def transaction(self, serializable: bool = False) -> Iterator[PostgreSQLTransaction]:
        with self._get_connection() as conn:
            conn.isolation_level = (
                IsolationLevel.SERIALIZABLE if serializable else IsolationLevel.READ_COMMITTED
            )
            try:
                with conn.transaction():
                    yield PostgreSQLTransaction(conn, self.config)
            except (psycopg.errors.SerializationFailure, psycopg.errors.DeadlockDetected) as e:
                raise SerializationConflictError(str(e)) from e
            except psycopg.Error as e:
                logger.error(f"❌ Transaction rolled back: {type(e).__name__}: {e}")
                raise DatabaseError(str(e)) from e

    def deploy_schema(self) -> int:
        """Create ledger and production tables if missing; returns statements executed."""
        builder = ImportSchemaBuilder(
            self.config.app_schema, self.config.postgis_schema, self.config.production_table
        )
        with self._get_connection() as conn:
            try:
                return deploy_import_schema(conn, builder)
            except psycopg.Error as e:
                logger.error(f"❌ Schema deployment rolled back: {type(e).__name__}: {e}")
                raise DatabaseError(str(e)) from e

    def ping(self) -> Optional[str]:
        """Return the server version string; used by /readyz."""
        with self._get_connection() as conn:
            try:
                row = conn.execute("SELECT version() AS version").fetchone()
            except psycopg.Error as e:
                raise DatabaseError(str(e)) from e
            return row["version"] if row else None
