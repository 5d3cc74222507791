# ============================================================================
# BASE REPOSITORY - CONNECTION-BOUND POSTGRESQL REPOSITORY
# ============================================================================
# STATUS: Infrastructure - Repository hierarchy root
# PURPOSE: Shared query execution and value adaptation for transaction-bound repositories
# ============================================================================
"""
Base Repository.

Every PostgreSQL repository in this package is bound to a connection
whose transaction is owned by PostgreSQLUnitOfWork. Repositories never
commit; they only execute.

Architecture:
    BoundRepository (this file)
        |
    PostgreSQLVersionRepository, PostgreSQLJobRepository,
    PostgreSQLProductionRepository

Exports:
    BoundRepository
    db_value
"""

from enum import Enum
from typing import Any, Optional, Sequence

import psycopg
from psycopg import sql
from psycopg.types.json import Jsonb

from exceptions import ContractViolationError
from util_logger import LoggerFactory, ComponentType


logger = LoggerFactory.create_logger(ComponentType.REPOSITORY, "BoundRepository")


def db_value(value: Any) -> Any:
    """
    Adapt a Python value for a query parameter.

    Enums are stored by value (psycopg would dump them by name), and
    dicts/lists go to JSONB columns.
    """
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (dict, list)):
        return Jsonb(value)
    return value


class BoundRepository:
    """Repository operating on a connection inside an open transaction."""

    def __init__(self, conn: psycopg.Connection, schema_name: str):
        self.conn = conn
        self.schema_name = schema_name

    def _table(self, table_name: str) -> sql.Composed:
        return sql.SQL("{}.{}").format(sql.Identifier(self.schema_name), sql.Identifier(table_name))

    def _execute(
        self,
        query: sql.Composed,
        params: Optional[Sequence[Any]] = None,
        fetch: Optional[str] = None
    ) -> Any:
        """
        Execute a composed query on the bound connection.

        Args:
            query: psycopg.sql composition (plain strings are rejected)
            params: Query parameters for %s placeholders
            fetch: None | 'one' | 'all'

        Returns:
            Row(s) for fetch operations, otherwise affected row count
        """
        if not isinstance(query, sql.Composed):
            raise ContractViolationError(f"SECURITY: Query must be sql.Composed, got {type(query)}")
        if fetch not in (None, 'one', 'all'):
            raise ContractViolationError(f"Invalid fetch mode: {fetch}")

        with self.conn.cursor() as cursor:
            cursor.execute(query, params)
            if fetch == 'one':
                return cursor.fetchone()
            if fetch == 'all':
                return cursor.fetchall()
            return cursor.rowcount
