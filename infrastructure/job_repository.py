"""
PostgreSQL Job Repository - app.import_jobs.

The partial unique index ``uq_import_jobs_active_version`` allows at most
one pending/running job per version; an insert that violates it becomes
JobAlreadyRunningError.

Exports:
    PostgreSQLJobRepository
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

import psycopg
from psycopg import sql

from core.models import ImportJob, JobStatus, JobType
from core.schema import ACTIVE_JOB_INDEX
from exceptions import ContractViolationError, JobAlreadyRunningError, JobNotFoundError
from util_logger import LoggerFactory, ComponentType
from .base import BoundRepository, db_value
from .interface_repository import IJobRepository


logger = LoggerFactory.create_logger(ComponentType.REPOSITORY, "PostgreSQLJobRepository")

JOBS_TABLE = "import_jobs"

JOB_COLUMNS = (
    "job_id", "version_id", "job_type", "status", "progress",
    "created_at", "started_at", "completed_at", "heartbeat_at",
    "error_message", "result_summary",
)

_UPDATABLE = set(JOB_COLUMNS) - {"job_id", "version_id", "job_type", "created_at"}
_ACTIVE = (JobStatus.PENDING.value, JobStatus.RUNNING.value)


def _job_params(values: Dict[str, Any], columns) -> List[Any]:
    params = []
    for column in columns:
        value = values[column]
        if column == "result_summary" and value is not None and not isinstance(value, dict):
            value = value.model_dump(mode="json", by_alias=True)
        params.append(db_value(value))
    return params


class PostgreSQLJobRepository(BoundRepository, IJobRepository):
    """Job repository bound to one transaction."""

    @property
    def table(self) -> sql.Composed:
        return self._table(JOBS_TABLE)

    def create_job(self, job: ImportJob) -> ImportJob:
        values = job.model_dump()
        values["result_summary"] = job.result_summary
        query = sql.SQL("INSERT INTO {} ({}) VALUES ({}) RETURNING *").format(
            self.table,
            sql.SQL(", ").join(sql.Identifier(c) for c in JOB_COLUMNS),
            sql.SQL(", ").join(sql.Placeholder() for _ in JOB_COLUMNS),
        )
        try:
            # Savepoint so a unique violation leaves the outer transaction usable
            with self.conn.transaction():
                row = self._execute(query, _job_params(values, JOB_COLUMNS), fetch='one')
        except psycopg.errors.UniqueViolation as e:
            constraint = e.diag.constraint_name if e.diag else None
            if constraint == ACTIVE_JOB_INDEX:
                logger.warning(f"⚠️ Active job already exists for {job.version_id}")
                raise JobAlreadyRunningError(job.version_id) from e
            raise
        return ImportJob(**row)

    def get_job(self, job_id: str) -> Optional[ImportJob]:
        row = self._execute(
            sql.SQL("SELECT * FROM {} WHERE job_id = %s").format(self.table), (job_id,), fetch='one'
        )
        return ImportJob(**row) if row else None

    def update_job(self, job_id: str, updates: Dict[str, Any]) -> ImportJob:
        unknown = set(updates) - _UPDATABLE
        if unknown:
            raise ContractViolationError(f"Cannot update job columns: {sorted(unknown)}")
        columns = list(updates)
        query = sql.SQL("UPDATE {} SET {} WHERE job_id = %s RETURNING *").format(
            self.table,
            sql.SQL(", ").join(sql.SQL("{} = %s").format(sql.Identifier(c)) for c in columns),
        )
        row = self._execute(query, _job_params(updates, columns) + [job_id], fetch='one')
        if row is None:
            raise JobNotFoundError(job_id)
        return ImportJob(**row)

    def get_active_job(self, version_id: str) -> Optional[ImportJob]:
        row = self._execute(
            sql.SQL(
                "SELECT * FROM {} WHERE version_id = %s AND status = ANY(%s) "
                "ORDER BY created_at DESC LIMIT 1"
            ).format(self.table),
            (version_id, list(_ACTIVE)), fetch='one'
        )
        return ImportJob(**row) if row else None

    def get_latest_job(
        self,
        version_id: str,
        job_type: JobType,
        status: Optional[JobStatus] = None
    ) -> Optional[ImportJob]:
        query = sql.SQL("SELECT * FROM {} WHERE version_id = %s AND job_type = %s").format(self.table)
        params: List[Any] = [version_id, job_type.value]
        if status is not None:
            query = query + sql.SQL(" AND status = %s")
            params.append(status.value)
        query = query + sql.SQL(" ORDER BY created_at DESC LIMIT 1")
        row = self._execute(query, params, fetch='one')
        return ImportJob(**row) if row else None

    def list_stale_jobs(self, heartbeat_before: datetime) -> List[ImportJob]:
        rows = self._execute(
            sql.SQL(
                "SELECT * FROM {} WHERE status = ANY(%s) "
                "AND COALESCE(heartbeat_at, created_at) < %s ORDER BY created_at"
            ).format(self.table),
            (list(_ACTIVE), heartbeat_before), fetch='all'
        )
        return [ImportJob(**row) for row in rows]

    def delete_jobs_for_version(self, version_id: str) -> int:
        return self._execute(
            sql.SQL("DELETE FROM {} WHERE version_id = %s").format(self.table), (version_id,)
        )
