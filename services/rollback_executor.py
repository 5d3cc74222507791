# ============================================================================
# IMPORT VERSIONING - ROLLBACK EXECUTOR
# ============================================================================
# STATUS: Service - restores the snapshot captured by a publish
# PURPOSE: Return scoped production records to their pre-publish state
# EXPORTS: RollbackExecutor
# ============================================================================
"""
Rollback Executor.

Restores every record held in the version's snapshot to exactly its
captured state (geometry, attributes, status, data source) and removes
the records the publish inserted that the snapshot does not hold. The
snapshot is loaded before the transaction so an unreadable artifact
fails the job without touching production.
"""

from typing import Callable, Optional

from core.logic import can_version_transition
from core.models import RollbackResult, VersionStatus
from core.utils import utc_now
from exceptions import NoSnapshotError, NotPublishedError, VersionNotFoundError
from infrastructure.interface_repository import Transaction, UnitOfWork
from util_logger import LoggerFactory, ComponentType, log_exceptions
from .import_version_service import ImportVersionService
from .snapshot_manager import Snapshot, SnapshotManager


logger = LoggerFactory.create_logger(ComponentType.SERVICE, "RollbackExecutor")


class RollbackExecutor:
    """Undo a published import."""

    def __init__(
        self,
        uow: UnitOfWork,
        versions: ImportVersionService,
        snapshots: SnapshotManager,
        max_retries: int = 3
    ):
        self.uow = uow
        self.versions = versions
        self.snapshots = snapshots
        self.max_retries = max_retries

    @log_exceptions(ComponentType.SERVICE, "RollbackExecutor")
    def rollback(
        self,
        version_id: str,
        on_progress: Optional[Callable[[int], None]] = None
    ) -> RollbackResult:
        """
        Raises:
            VersionNotFoundError, NotPublishedError, NoSnapshotError, SnapshotUnreadableError
        """
        version = self.versions.get_version(version_id)
        if version.status != VersionStatus.PUBLISHED:
            raise NotPublishedError(version_id, version.status.value)
        if not version.snapshot_path:
            raise NoSnapshotError(f"Version {version_id} has no snapshot")

        snapshot = self.snapshots.load(version.snapshot_path)
        if on_progress:
            on_progress(20)

        def restore(tx: Transaction, attempt: int) -> RollbackResult:
            return self._restore(tx, attempt, version_id, snapshot)

        result = self.uow.run(restore, serializable=True, max_retries=self.max_retries)
        if on_progress:
            on_progress(100)
        logger.info(
            f"⏪ Rolled back {version_id}: {result.restored} restored, {result.removed} removed "
            f"from {result.snapshot_path}"
        )
        return result

    @staticmethod
    def _restore(tx: Transaction, attempt: int, version_id: str, snapshot: Snapshot) -> RollbackResult:
        version = tx.versions.get_version(version_id, for_update=True)
        if version is None:
            raise VersionNotFoundError(version_id)
        if not can_version_transition(version.status, VersionStatus.ROLLED_BACK, via_rollback=True):
            raise NotPublishedError(version_id, version.status.value)

        tx.production.upsert_records(snapshot.records)
        held = set(snapshot.record_ids)
        removed = tx.production.delete_records([i for i in snapshot.added_ids if i not in held])

        rolled_back_at = utc_now()
        tx.versions.update_version(version_id, {
            "status": VersionStatus.ROLLED_BACK,
            "rolled_back_at": rolled_back_at,
        })
        return RollbackResult(
            version_id=version_id,
            restored=len(snapshot.records),
            removed=removed,
            snapshot_path=snapshot.path,
            rolled_back_at=rolled_back_at,
            attempts=attempt,
        )
