"""
PostgreSQL Version Repository - app.import_versions.

Exports:
    PostgreSQLVersionRepository
    VERSION_COLUMNS
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from psycopg import sql

from core.models import ImportVersion, VersionStatus
from exceptions import ContractViolationError, VersionNotFoundError
from .base import BoundRepository, db_value
from .interface_repository import IVersionRepository


VERSIONS_TABLE = "import_versions"

VERSION_COLUMNS = (
    "version_id", "version_number", "status",
    "file_name", "file_type", "file_path", "canonical_path", "file_size_mb", "feature_count",
    "layer_name", "source_crs", "import_scope", "regional_refresh", "default_data_source",
    "uploaded_by", "uploaded_at", "published_by", "published_at", "archived_at", "rolled_back_at",
    "snapshot_path", "diff_path",
    "added_count", "updated_count", "deactivated_count",
    "notes",
)

# version_id and version_number never change after insert
_UPDATABLE = set(VERSION_COLUMNS) - {"version_id", "version_number"}


class PostgreSQLVersionRepository(BoundRepository, IVersionRepository):
    """Ledger repository bound to one transaction."""

    @property
    def table(self) -> sql.Composed:
        return self._table(VERSIONS_TABLE)

    def next_version_number(self) -> int:
        # Serializes concurrent uploads; released at commit
        self._execute(
            sql.SQL("LOCK TABLE {} IN SHARE ROW EXCLUSIVE MODE").format(self.table)
        )
        row = self._execute(
            sql.SQL("SELECT COALESCE(MAX(version_number), 0) + 1 AS next FROM {}").format(self.table),
            fetch='one'
        )
        return int(row["next"])

    def create_version(self, version: ImportVersion) -> ImportVersion:
        data = version.model_dump()
        query = sql.SQL("INSERT INTO {} ({}) VALUES ({}) RETURNING *").format(
            self.table,
            sql.SQL(", ").join(sql.Identifier(c) for c in VERSION_COLUMNS),
            sql.SQL(", ").join(sql.Placeholder() for _ in VERSION_COLUMNS),
        )
        row = self._execute(query, [db_value(data[c]) for c in VERSION_COLUMNS], fetch='one')
        return ImportVersion(**row)

    def get_version(self, version_id: str, for_update: bool = False) -> Optional[ImportVersion]:
        query = sql.SQL("SELECT * FROM {} WHERE version_id = %s").format(self.table)
        if for_update:
            query = query + sql.SQL(" FOR UPDATE")
        row = self._execute(query, (version_id,), fetch='one')
        return ImportVersion(**row) if row else None

    def list_versions(
        self,
        status: Optional[VersionStatus] = None,
        limit: int = 20,
        offset: int = 0
    ) -> Tuple[List[ImportVersion], int]:
        where = sql.SQL("")
        params: List[Any] = []
        if status is not None:
            where = sql.SQL(" WHERE status = %s")
            params.append(db_value(status))

        total_row = self._execute(
            sql.SQL("SELECT COUNT(*) AS total FROM {}").format(self.table) + where,
            params, fetch='one'
        )
        rows = self._execute(
            sql.SQL("SELECT * FROM {}").format(self.table) + where
            + sql.SQL(" ORDER BY uploaded_at DESC, version_number DESC LIMIT %s OFFSET %s"),
            params + [limit, offset], fetch='all'
        )
        return [ImportVersion(**row) for row in rows], int(total_row["total"])

    def update_version(self, version_id: str, updates: Dict[str, Any]) -> ImportVersion:
        unknown = set(updates) - _UPDATABLE
        if unknown:
            raise ContractViolationError(f"Cannot update version columns: {sorted(unknown)}")
        if not updates:
            version = self.get_version(version_id)
            if version is None:
                raise VersionNotFoundError(version_id)
            return version

        columns = list(updates)
        query = sql.SQL("UPDATE {} SET {} WHERE version_id = %s RETURNING *").format(
            self.table,
            sql.SQL(", ").join(
                sql.SQL("{} = %s").format(sql.Identifier(c)) for c in columns
            ),
        )
        row = self._execute(
            query, [db_value(updates[c]) for c in columns] + [version_id], fetch='one'
        )
        if row is None:
            raise VersionNotFoundError(version_id)
        return ImportVersion(**row)

    def delete_version(self, version_id: str) -> bool:
        count = self._execute(
            sql.SQL("DELETE FROM {} WHERE version_id = %s").format(self.table), (version_id,)
        )
        return count > 0

    def archive_published(self, exclude_version_id: str, archived_at: datetime) -> List[str]:
        rows = self._execute(
            sql.SQL(
                "UPDATE {} SET status = %s, archived_at = %s "
                "WHERE status = %s AND version_id <> %s RETURNING version_id"
            ).format(self.table),
            (VersionStatus.ARCHIVED.value, archived_at, VersionStatus.PUBLISHED.value, exclude_version_id),
            fetch='all'
        )
        return [row["version_id"] for row in rows]
