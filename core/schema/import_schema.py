# ============================================================================
# IMPORT VERSIONING - SCHEMA DDL
# ============================================================================
# STATUS: Core - idempotent DDL for ledger and production tables
# PURPOSE: CREATE statements for import_versions, import_jobs and the production asset table
# EXPORTS: ImportSchemaBuilder, deploy_import_schema
# DEPENDENCIES: psycopg.sql
# ============================================================================
"""
Import Schema DDL.

All statements are idempotent (IF NOT EXISTS) and composed with
psycopg.sql so schema and table names are always quoted identifiers.

Tables:
    <app_schema>.import_versions   - version ledger
    <app_schema>.import_jobs       - job records; partial unique index
                                     allows one pending/running job per version
    <postgis_schema>.<production>  - production asset table (GIST indexed)

Usage:
    builder = ImportSchemaBuilder("app", "geo", "asset_records")
    for statement in builder.statements():
        cursor.execute(statement)
"""

from typing import List

import psycopg
from psycopg import sql

from util_logger import LoggerFactory, ComponentType


logger = LoggerFactory.create_logger(ComponentType.SCHEMA, "ImportSchemaBuilder")

ACTIVE_JOB_INDEX = "uq_import_jobs_active_version"


class ImportSchemaBuilder:
    """Generate DDL for the import engine tables."""

    def __init__(self, app_schema: str, postgis_schema: str, production_table: str):
        self.app_schema = app_schema
        self.postgis_schema = postgis_schema
        self.production_table = production_table

    def _app(self, table: str) -> sql.Composed:
        return sql.SQL("{}.{}").format(sql.Identifier(self.app_schema), sql.Identifier(table))

    def schemas(self) -> List[sql.Composed]:
        return [
            sql.SQL("CREATE EXTENSION IF NOT EXISTS postgis").format(),
            sql.SQL("CREATE SCHEMA IF NOT EXISTS {}").format(sql.Identifier(self.app_schema)),
            sql.SQL("CREATE SCHEMA IF NOT EXISTS {}").format(sql.Identifier(self.postgis_schema)),
        ]

    def versions_table(self) -> List[sql.Composed]:
        table = self._app("import_versions")
        return [
            sql.SQL("""
                CREATE TABLE IF NOT EXISTS {} (
                    version_id VARCHAR(32) PRIMARY KEY,
                    version_number INTEGER NOT NULL UNIQUE CHECK (version_number >= 1),
                    status VARCHAR(20) NOT NULL DEFAULT 'draft'
                        CHECK (status IN ('draft', 'published', 'archived', 'rolled_back')),
                    file_name TEXT NOT NULL,
                    file_type VARCHAR(20) NOT NULL CHECK (file_type IN ('geojson', 'geopackage')),
                    file_path TEXT NOT NULL,
                    canonical_path TEXT,
                    file_size_mb DOUBLE PRECISION NOT NULL DEFAULT 0,
                    feature_count INTEGER NOT NULL DEFAULT 0,
                    layer_name TEXT,
                    source_crs VARCHAR(64),
                    import_scope TEXT,
                    regional_refresh BOOLEAN NOT NULL DEFAULT FALSE,
                    default_data_source VARCHAR(32) NOT NULL DEFAULT 'official_ledger',
                    uploaded_by TEXT,
                    uploaded_at TIMESTAMPTZ NOT NULL DEFAULT now(),
                    published_by TEXT,
                    published_at TIMESTAMPTZ,
                    archived_at TIMESTAMPTZ,
                    rolled_back_at TIMESTAMPTZ,
                    snapshot_path TEXT,
                    diff_path TEXT,
                    added_count INTEGER,
                    updated_count INTEGER,
                    deactivated_count INTEGER,
                    notes TEXT,
                    CONSTRAINT chk_import_versions_published_snapshot
                        CHECK (status = 'draft' OR snapshot_path IS NOT NULL)
                )
            """).format(table),
            sql.SQL("CREATE INDEX IF NOT EXISTS {} ON {} (status)").format(
                sql.Identifier("idx_import_versions_status"), table
            ),
        ]

    def jobs_table(self) -> List[sql.Composed]:
        table = self._app("import_jobs")
        return [
            sql.SQL("""
                CREATE TABLE IF NOT EXISTS {} (
                    job_id VARCHAR(32) PRIMARY KEY,
                    version_id VARCHAR(32) NOT NULL REFERENCES {} (version_id) ON DELETE CASCADE,
                    job_type VARCHAR(20) NOT NULL CHECK (job_type IN ('validation', 'publish', 'rollback')),
                    status VARCHAR(20) NOT NULL DEFAULT 'pending'
                        CHECK (status IN ('pending', 'running', 'completed', 'failed')),
                    progress INTEGER NOT NULL DEFAULT 0 CHECK (progress BETWEEN 0 AND 100),
                    created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
                    started_at TIMESTAMPTZ,
                    completed_at TIMESTAMPTZ,
                    heartbeat_at TIMESTAMPTZ,
                    error_message TEXT,
                    result_summary JSONB
                )
            """).format(table, self._app("import_versions")),
            sql.SQL(
                "CREATE UNIQUE INDEX IF NOT EXISTS {} ON {} (version_id) "
                "WHERE status IN ('pending', 'running')"
            ).format(sql.Identifier(ACTIVE_JOB_INDEX), table),
            sql.SQL("CREATE INDEX IF NOT EXISTS {} ON {} (version_id, job_type, created_at DESC)").format(
                sql.Identifier("idx_import_jobs_version_type"), table
            ),
        ]

    def production_table_ddl(self) -> List[sql.Composed]:
        table = sql.SQL("{}.{}").format(
            sql.Identifier(self.postgis_schema), sql.Identifier(self.production_table)
        )
        return [
            sql.SQL("""
                CREATE TABLE IF NOT EXISTS {} (
                    id TEXT PRIMARY KEY,
                    geometry geometry(Geometry, 4326),
                    attributes JSONB NOT NULL DEFAULT '{{}}'::jsonb,
                    status VARCHAR(16) NOT NULL DEFAULT 'active' CHECK (status IN ('active', 'inactive')),
                    data_source VARCHAR(32),
                    updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
                )
            """).format(table),
            sql.SQL("CREATE INDEX IF NOT EXISTS {} ON {} USING GIST (geometry)").format(
                sql.Identifier(f"idx_{self.production_table}_geometry"), table
            ),
            sql.SQL("CREATE INDEX IF NOT EXISTS {} ON {} (status)").format(
                sql.Identifier(f"idx_{self.production_table}_status"), table
            ),
        ]

    def statements(self) -> List[sql.Composed]:
        return (
            self.schemas()
            + self.versions_table()
            + self.jobs_table()
            + self.production_table_ddl()
        )


def deploy_import_schema(conn: psycopg.Connection, builder: ImportSchemaBuilder) -> int:
    """
    Execute every DDL statement in one transaction.

    Returns:
        Number of statements executed
    """
    statements = builder.statements()
    with conn.transaction():
        with conn.cursor() as cursor:
            for statement in statements:
                cursor.execute(statement)
    logger.info(
        f"✅ Import schema deployed ({len(statements)} statements, "
        f"app={builder.app_schema}, production={builder.postgis_schema}.{builder.production_table})"
    )
    return len(statements)
