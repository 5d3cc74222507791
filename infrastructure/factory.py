"""
Repository Factory - Central Creation Point.

Single point of instantiation for the unit of work and the artifact
store, chosen from AppConfig. Services receive these through their
constructors, so tests substitute in-memory implementations.

Exports:
    RepositoryFactory
"""

from typing import Optional

from config import AppConfig, get_config
from exceptions import ConfigurationError
from util_logger import LoggerFactory, ComponentType
from .artifact_store import BlobArtifactStore, IArtifactStore, LocalArtifactStore
from .interface_repository import UnitOfWork
from .postgresql import PostgreSQLUnitOfWork


logger = LoggerFactory.create_logger(ComponentType.FACTORY, "RepositoryFactory")


class RepositoryFactory:
    """Factory for repository and store instances."""

    @staticmethod
    def create_unit_of_work(config: Optional[AppConfig] = None) -> UnitOfWork:
        config = config or get_config()
        logger.info(
            f"🏭 Creating PostgreSQL unit of work "
            f"(host={config.database.host}, app_schema={config.database.app_schema})"
        )
        return PostgreSQLUnitOfWork(config.database)

    @staticmethod
    def create_artifact_store(config: Optional[AppConfig] = None) -> IArtifactStore:
        config = config or get_config()
        storage = config.storage
        if storage.backend == "local":
            logger.info(f"🏭 Creating local artifact store at {storage.local_root}")
            return LocalArtifactStore(storage.local_root)
        if storage.backend == "blob":
            logger.info(f"🏭 Creating blob artifact store ({storage.account_name}/{storage.container})")
            return BlobArtifactStore(
                container=storage.container,
                account_url=storage.account_url,
                connection_string=storage.connection_string,
            )
        raise ConfigurationError(f"Unknown artifact backend: {storage.backend}")
