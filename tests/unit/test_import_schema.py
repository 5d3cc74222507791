"""
Schema DDL tests - statements are composed, idempotent and carry the
constraints the engine relies on.

Statements are rendered without a database connection (psycopg >= 3.2).
"""

import pytest
from psycopg import sql

from core.schema import ACTIVE_JOB_INDEX, ImportSchemaBuilder


def _flatten(statement: sql.Composable) -> str:
    return statement.as_string(None)


@pytest.fixture
def statements():
    builder = ImportSchemaBuilder("app", "geo", "asset_records")
    return [_flatten(s) for s in builder.statements()]


def test_every_statement_is_composed():
    builder = ImportSchemaBuilder("app", "geo", "asset_records")
    assert all(isinstance(s, sql.Composed) for s in builder.statements())


def test_statements_are_idempotent(statements):
    for text in statements:
        assert "IF NOT EXISTS" in text


def test_tables_are_schema_qualified(statements):
    combined = "\n".join(statements)
    assert '"app"."import_versions"' in combined
    assert '"app"."import_jobs"' in combined
    assert '"geo"."asset_records"' in combined


def test_one_active_job_per_version_index(statements):
    index = next(s for s in statements if ACTIVE_JOB_INDEX in s)
    assert "UNIQUE INDEX" in index
    assert "status IN ('pending', 'running')" in index


def test_published_rows_require_snapshot(statements):
    versions = next(s for s in statements if '"app"."import_versions" (' in s)
    assert "status = 'draft' OR snapshot_path IS NOT NULL" in versions
    assert "version_number INTEGER NOT NULL UNIQUE" in versions


def test_production_geometry_is_gist_indexed(statements):
    assert any("USING GIST (geometry)" in s and '"geo"."asset_records"' in s for s in statements)
