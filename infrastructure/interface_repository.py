"""
Repository Abstract Base Classes - Single Point of Truth.

Enforces exact method signatures across all repository implementations
(PostgreSQL in production, in-memory in the unit tests). All parameter
names, return types and method signatures are defined here.

Every repository is bound to one transaction. Services obtain a
Transaction from UnitOfWork.transaction() and use its ``versions``,
``jobs`` and ``production`` repositories; everything done through one
Transaction commits or rolls back together.

Exports:
    IVersionRepository: Ledger rows (import_versions)
    IJobRepository: Job rows (import_jobs)
    IProductionRepository: Production asset table
    Transaction: Bundle of repositories sharing one transaction
    UnitOfWork: Transaction factory with bounded serialization retry
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Callable, ContextManager, Dict, List, Optional, Sequence, Tuple, TypeVar

from core.models import (
    ImportJob, ImportScope, ImportVersion, JobStatus, JobType,
    ProductionRecord, RecordStatus, VersionStatus
)
from exceptions import SerializationConflictError
from util_logger import LoggerFactory, ComponentType


logger = LoggerFactory.create_logger(ComponentType.REPOSITORY, "UnitOfWork")

T = TypeVar("T")


class IVersionRepository(ABC):
    """Import version ledger interface."""

    @abstractmethod
    def next_version_number(self) -> int:
        """MAX(version_number) + 1, serialized against concurrent uploads."""
        pass

    @abstractmethod
    def create_version(self, version: ImportVersion) -> ImportVersion:
        pass

    @abstractmethod
    def get_version(self, version_id: str, for_update: bool = False) -> Optional[ImportVersion]:
        """Get version by ID; ``for_update`` row-locks it until the transaction ends."""
        pass

    @abstractmethod
    def list_versions(
        self,
        status: Optional[VersionStatus] = None,
        limit: int = 20,
        offset: int = 0
    ) -> Tuple[List[ImportVersion], int]:
        """Page of versions, newest upload first, plus the total matching count."""
        pass

    @abstractmethod
    def update_version(self, version_id: str, updates: Dict[str, Any]) -> ImportVersion:
        pass

    @abstractmethod
    def delete_version(self, version_id: str) -> bool:
        pass

    @abstractmethod
    def archive_published(self, exclude_version_id: str, archived_at: datetime) -> List[str]:
        """Move every other published version to archived; returns their ids."""
        pass


class IJobRepository(ABC):
    """Import job interface."""

    @abstractmethod
    def create_job(self, job: ImportJob) -> ImportJob:
        """
        Insert a job.

        Raises:
            JobAlreadyRunningError: the version already has a pending/running job
        """
        pass

    @abstractmethod
    def get_job(self, job_id: str) -> Optional[ImportJob]:
        pass

    @abstractmethod
    def update_job(self, job_id: str, updates: Dict[str, Any]) -> ImportJob:
        pass

    @abstractmethod
    def get_active_job(self, version_id: str) -> Optional[ImportJob]:
        pass

    @abstractmethod
    def get_latest_job(
        self,
        version_id: str,
        job_type: JobType,
        status: Optional[JobStatus] = None
    ) -> Optional[ImportJob]:
        pass

    @abstractmethod
    def list_stale_jobs(self, heartbeat_before: datetime) -> List[ImportJob]:
        """Pending/running jobs whose last heartbeat (or creation) is older than the cutoff."""
        pass

    @abstractmethod
    def delete_jobs_for_version(self, version_id: str) -> int:
        pass


class IProductionRepository(ABC):
    """Production asset table interface."""

    @abstractmethod
    def find_in_scope(self, scope: ImportScope, active_only: bool = True) -> List[ProductionRecord]:
        """Records whose geometry intersects the scope, ordered by id."""
        pass

    @abstractmethod
    def find_by_ids(self, ids: Sequence[str]) -> List[ProductionRecord]:
        pass

    @abstractmethod
    def upsert_records(self, records: Sequence[ProductionRecord]) -> int:
        """Insert or fully overwrite records by id."""
        pass

    @abstractmethod
    def set_status(self, ids: Sequence[str], status: RecordStatus) -> int:
        pass

    @abstractmethod
    def delete_records(self, ids: Sequence[str]) -> int:
        pass


class Transaction(ABC):
    """Repositories bound to one open transaction."""

    @property
    @abstractmethod
    def versions(self) -> IVersionRepository:
        pass

    @property
    @abstractmethod
    def jobs(self) -> IJobRepository:
        pass

    @property
    @abstractmethod
    def production(self) -> IProductionRepository:
        pass


class UnitOfWork(ABC):
    """
    Transaction factory.

    ``transaction()`` commits when the block exits normally and rolls back
    on any exception. Serialization failures and deadlocks surface as
    SerializationConflictError, which ``run()`` retries.
    """

    @abstractmethod
    def transaction(self, serializable: bool = False) -> ContextManager[Transaction]:
        pass

    def ping(self) -> Optional[str]:
        """
        Check the backing store answers; returns a server description if known.

        Raises:
            DatabaseError: the store cannot be reached
        """
        with self.transaction():
            pass
        return None

    def run(
        self,
        work: Callable[[Transaction, int], T],
        serializable: bool = True,
        max_retries: int = 0
    ) -> T:
        """
        Run ``work(tx, attempt)`` in a fresh transaction, retrying on
        serialization conflicts up to ``max_retries`` times.

        Each attempt starts from a fresh read; nothing from a failed
        attempt is visible because its transaction was rolled back.
        """
        attempt = 1
        while True:
            try:
                with self.transaction(serializable=serializable) as tx:
                    return work(tx, attempt)
            except SerializationConflictError as e:
                if attempt > max_retries:
                    logger.error(f"❌ Serialization conflict, giving up after {attempt} attempt(s): {e}")
                    raise
                logger.warning(f"🔄 Serialization conflict on attempt {attempt}, retrying: {e}")
                attempt += 1
