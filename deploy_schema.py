#!/usr/bin/env python3
"""
Schema Deployment Script - ledger and production tables.

Creates the app schema tables (import_versions, import_jobs) and the
production asset table with its GIST index. Every statement is
IF NOT EXISTS, so running it against a deployed database is a no-op.

Usage:
    python deploy_schema.py
    import-deploy-schema            (console script)

Environment Variables Required:
    POSTGIS_HOST, POSTGIS_DATABASE, POSTGIS_USER
    POSTGIS_PASSWORD unless USE_MANAGED_IDENTITY=true
"""

import sys
from typing import Optional

from config import AppConfig, get_config
from exceptions import ConfigurationError, DatabaseError
from infrastructure import RepositoryFactory
from util_logger import LoggerFactory, ComponentType


logger = LoggerFactory.create_logger(ComponentType.SCHEMA, "SchemaDeployer")


def deploy(config: Optional[AppConfig] = None) -> int:
    """Deploy the schema; returns the number of statements executed."""
    config = config or get_config()
    database = config.database
    logger.info(
        f"🐘 Deploying schema to {database.host}:{database.database} "
        f"(app={database.app_schema}, production={database.postgis_schema}.{database.production_table})"
    )
    uow = RepositoryFactory.create_unit_of_work(config)
    return uow.deploy_schema()


def main() -> int:
    try:
        count = deploy()
    except (ConfigurationError, DatabaseError, ValueError) as e:
        logger.error(f"❌ Schema deployment failed: {e}")
        return 1
    logger.info(f"✅ Schema deployment complete ({count} statements)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
