"""
In-memory implementations of the repository interfaces.

One InMemoryUnitOfWork holds three tables. A transaction works on copies
of the tables and, on commit, writes back only the tables it modified, so
a nested transaction on the same thread (job progress reported from
inside a publish) is not overwritten by the outer commit.

Transactions are serialized by a re-entrant lock. ``fail_next_commits``
makes the next N serializable commits raise SerializationConflictError.
"""

import dataclasses
import threading
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple

from core.models import (
    ImportJob, ImportScope, ImportVersion, JobStatus, JobType,
    ProductionRecord, RecordStatus, VersionStatus
)
from exceptions import (
    ContractViolationError, JobAlreadyRunningError, JobNotFoundError,
    SerializationConflictError, VersionNotFoundError
)
from infrastructure.interface_repository import (
    IJobRepository, IProductionRepository, IVersionRepository, Transaction, UnitOfWork
)
from infrastructure.job_repository import _UPDATABLE as JOB_UPDATABLE
from infrastructure.version_repository import _UPDATABLE as VERSION_UPDATABLE


_ACTIVE = (JobStatus.PENDING, JobStatus.RUNNING)


def _copy_record(record: ProductionRecord) -> ProductionRecord:
    return dataclasses.replace(record, attributes=dict(record.attributes))


class _Tables:
    def __init__(self, versions=None, jobs=None, production=None):
        self.versions: Dict[str, ImportVersion] = dict(versions or {})
        self.jobs: Dict[str, ImportJob] = dict(jobs or {})
        self.production: Dict[str, ProductionRecord] = dict(production or {})


class InMemoryVersionRepository(IVersionRepository):

    def __init__(self, tx: "InMemoryTransaction"):
        self._tx = tx

    @property
    def _rows(self) -> Dict[str, ImportVersion]:
        return self._tx.tables.versions

    def next_version_number(self) -> int:
        return max((v.version_number for v in self._rows.values()), default=0) + 1

    def create_version(self, version: ImportVersion) -> ImportVersion:
        if version.version_id in self._rows:
            raise ValueError(f"duplicate version_id {version.version_id}")
        if any(v.version_number == version.version_number for v in self._rows.values()):
            raise ValueError(f"duplicate version_number {version.version_number}")
        self._tx.dirty.add("versions")
        self._rows[version.version_id] = version.model_copy(deep=True)
        return version.model_copy(deep=True)

    def get_version(self, version_id: str, for_update: bool = False) -> Optional[ImportVersion]:
        version = self._rows.get(version_id)
        return version.model_copy(deep=True) if version else None

    def list_versions(
        self,
        status: Optional[VersionStatus] = None,
        limit: int = 20,
        offset: int = 0
    ) -> Tuple[List[ImportVersion], int]:
        rows = [v for v in self._rows.values() if status is None or v.status == status]
        rows.sort(key=lambda v: (v.uploaded_at, v.version_number), reverse=True)
        return [v.model_copy(deep=True) for v in rows[offset:offset + limit]], len(rows)

    def update_version(self, version_id: str, updates: Dict[str, Any]) -> ImportVersion:
        unknown = set(updates) - VERSION_UPDATABLE
        if unknown:
            raise ContractViolationError(f"Cannot update version columns: {sorted(unknown)}")
        current = self._rows.get(version_id)
        if current is None:
            raise VersionNotFoundError(version_id)
        updated = ImportVersion.model_validate({**current.model_dump(), **updates})
        if updated.status != VersionStatus.DRAFT and updated.snapshot_path is None:
            # chk_import_versions_published_snapshot
            raise ValueError(f"{version_id}: non-draft version requires snapshot_path")
        self._tx.dirty.add("versions")
        self._rows[version_id] = updated
        return updated.model_copy(deep=True)

    def delete_version(self, version_id: str) -> bool:
        self._tx.dirty.add("versions")
        return self._rows.pop(version_id, None) is not None

    def archive_published(self, exclude_version_id: str, archived_at: datetime) -> List[str]:
        archived = []
        for version_id, version in list(self._rows.items()):
            if version.status == VersionStatus.PUBLISHED and version_id != exclude_version_id:
                self._rows[version_id] = version.model_copy(
                    update={"status": VersionStatus.ARCHIVED, "archived_at": archived_at}
                )
                archived.append(version_id)
        if archived:
            self._tx.dirty.add("versions")
        return archived


class InMemoryJobRepository(IJobRepository):

    def __init__(self, tx: "InMemoryTransaction"):
        self._tx = tx

    @property
    def _rows(self) -> Dict[str, ImportJob]:
        return self._tx.tables.jobs

    def create_job(self, job: ImportJob) -> ImportJob:
        if job.version_id not in self._tx.tables.versions:
            raise VersionNotFoundError(job.version_id)
        if job.status in _ACTIVE and self.get_active_job(job.version_id) is not None:
            raise JobAlreadyRunningError(job.version_id)
        self._tx.dirty.add("jobs")
        self._rows[job.job_id] = job.model_copy(deep=True)
        return job.model_copy(deep=True)

    def get_job(self, job_id: str) -> Optional[ImportJob]:
        job = self._rows.get(job_id)
        return job.model_copy(deep=True) if job else None

    def update_job(self, job_id: str, updates: Dict[str, Any]) -> ImportJob:
        unknown = set(updates) - JOB_UPDATABLE
        if unknown:
            raise ContractViolationError(f"Cannot update job columns: {sorted(unknown)}")
        current = self._rows.get(job_id)
        if current is None:
            raise JobNotFoundError(job_id)
        values = current.model_dump()
        for key, value in updates.items():
            if key == "result_summary" and value is not None and not isinstance(value, dict):
                value = value.model_dump(mode="json")
            values[key] = value
        updated = ImportJob.model_validate(values)
        self._tx.dirty.add("jobs")
        self._rows[job_id] = updated
        return updated.model_copy(deep=True)

    def get_active_job(self, version_id: str) -> Optional[ImportJob]:
        active = [j for j in self._rows.values() if j.version_id == version_id and j.status in _ACTIVE]
        active.sort(key=lambda j: j.created_at, reverse=True)
        return active[0].model_copy(deep=True) if active else None

    def get_latest_job(
        self,
        version_id: str,
        job_type: JobType,
        status: Optional[JobStatus] = None
    ) -> Optional[ImportJob]:
        jobs = [
            j for j in self._rows.values()
            if j.version_id == version_id and j.job_type == job_type
            and (status is None or j.status == status)
        ]
        jobs.sort(key=lambda j: j.created_at, reverse=True)
        return jobs[0].model_copy(deep=True) if jobs else None

    def list_stale_jobs(self, heartbeat_before: datetime) -> List[ImportJob]:
        stale = [
            j for j in self._rows.values()
            if j.status in _ACTIVE and (j.heartbeat_at or j.created_at) < heartbeat_before
        ]
        stale.sort(key=lambda j: j.created_at)
        return [j.model_copy(deep=True) for j in stale]

    def delete_jobs_for_version(self, version_id: str) -> int:
        doomed = [job_id for job_id, j in self._rows.items() if j.version_id == version_id]
        for job_id in doomed:
            del self._rows[job_id]
        if doomed:
            self._tx.dirty.add("jobs")
        return len(doomed)


class InMemoryProductionRepository(IProductionRepository):

    def __init__(self, tx: "InMemoryTransaction"):
        self._tx = tx

    @property
    def _rows(self) -> Dict[str, ProductionRecord]:
        return self._tx.tables.production

    def find_in_scope(self, scope: ImportScope, active_only: bool = True) -> List[ProductionRecord]:
        found = [
            r for r in self._rows.values()
            if scope.intersects(r.geometry) and (not active_only or r.is_active)
        ]
        return [_copy_record(r) for r in sorted(found, key=lambda r: r.id)]

    def find_by_ids(self, ids: Sequence[str]) -> List[ProductionRecord]:
        return [_copy_record(self._rows[i]) for i in sorted(set(ids)) if i in self._rows]

    def upsert_records(self, records: Sequence[ProductionRecord]) -> int:
        for record in records:
            self._rows[record.id] = _copy_record(record)
        if records:
            self._tx.dirty.add("production")
        return len(records)

    def set_status(self, ids: Sequence[str], status: RecordStatus) -> int:
        count = 0
        for record_id in ids:
            record = self._rows.get(record_id)
            if record is not None:
                self._rows[record_id] = dataclasses.replace(record, status=status)
                count += 1
        if count:
            self._tx.dirty.add("production")
        return count

    def delete_records(self, ids: Sequence[str]) -> int:
        count = 0
        for record_id in ids:
            if self._rows.pop(record_id, None) is not None:
                count += 1
        if count:
            self._tx.dirty.add("production")
        return count


class InMemoryTransaction(Transaction):

    def __init__(self, tables: _Tables):
        self.tables = tables
        self.dirty = set()
        self._versions = InMemoryVersionRepository(self)
        self._jobs = InMemoryJobRepository(self)
        self._production = InMemoryProductionRepository(self)

    @property
    def versions(self) -> InMemoryVersionRepository:
        return self._versions

    @property
    def jobs(self) -> InMemoryJobRepository:
        return self._jobs

    @property
    def production(self) -> InMemoryProductionRepository:
        return self._production


class InMemoryUnitOfWork(UnitOfWork):
    """Unit of work over in-memory tables; see module docstring."""

    def __init__(self):
        self.tables = _Tables()
        self.fail_next_commits = 0
        self.commits = 0
        self.rollbacks = 0
        self._lock = threading.RLock()

    @contextmanager
    def transaction(self, serializable: bool = False):
        with self._lock:
            tx = InMemoryTransaction(_Tables(
                self.tables.versions, self.tables.jobs, self.tables.production
            ))
            try:
                yield tx
            except BaseException:
                self.rollbacks += 1
                raise
            if serializable and self.fail_next_commits > 0:
                self.fail_next_commits -= 1
                self.rollbacks += 1
                raise SerializationConflictError("could not serialize access due to concurrent update")
            for table in tx.dirty:
                setattr(self.tables, table, getattr(tx.tables, table))
            self.commits += 1

    # Test helpers, outside any transaction

    def seed_production(self, records: Sequence[ProductionRecord]) -> None:
        with self._lock:
            for record in records:
                self.tables.production[record.id] = _copy_record(record)

    def production_state(self) -> Dict[str, ProductionRecord]:
        with self._lock:
            return {k: _copy_record(v) for k, v in self.tables.production.items()}

    def version(self, version_id: str) -> ImportVersion:
        with self._lock:
            return self.tables.versions[version_id].model_copy(deep=True)
