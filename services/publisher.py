# ============================================================================
# IMPORT VERSIONING - PUBLISHER
# ============================================================================
# STATUS: Service - the only writer of production records for imports
# PURPOSE: Snapshot then apply a version's diff in one serializable transaction
# EXPORTS: Publisher
# DEPENDENCIES: infrastructure (unit of work, artifact store)
# ============================================================================
"""
Publisher.

``capture_then_apply`` is the whole publish transaction, in order:

    1. lock the version row and recheck that it is draft
    2. read in-scope production and compute the diff
    3. capture: write the snapshot and store its path on the version row
    4. apply: upsert added, update updated, deactivate (refresh only)
    5. write the diff artifact
    6. archive the previously published version, mark this one published

Steps 4-6 never run before step 3 has written the snapshot. Any
exception rolls the transaction back and the version stays draft.
Serialization conflicts restart from step 1 with a fresh read.
"""

from typing import Callable, Dict, List, Optional

from core.logic import can_version_transition
from core.models import (
    CanonicalFeature, DiffResult, ImportVersion, ProductionRecord,
    PublishResult, RecordStatus, VersionStatus
)
from core.utils import utc_now
from exceptions import EmptyScopeError, NotDraftError, ValidationFailedError, VersionNotFoundError
from infrastructure.artifact_store import IArtifactStore
from infrastructure.interface_repository import Transaction, UnitOfWork
from util_logger import LoggerFactory, ComponentType, log_exceptions
from .diff_engine import DiffEngine
from .import_version_service import ImportVersionService, diff_path_for
from .snapshot_manager import SnapshotManager


logger = LoggerFactory.create_logger(ComponentType.SERVICE, "Publisher")

ProgressCallback = Callable[[int], None]


def _noop(percent: int) -> None:
    pass


class Publisher:
    """Apply an import version to production."""

    def __init__(
        self,
        uow: UnitOfWork,
        store: IArtifactStore,
        versions: ImportVersionService,
        snapshots: SnapshotManager,
        diff_engine: DiffEngine,
        max_retries: int = 3
    ):
        self.uow = uow
        self.store = store
        self.versions = versions
        self.snapshots = snapshots
        self.diff_engine = diff_engine
        self.max_retries = max_retries

    @log_exceptions(ComponentType.SERVICE, "Publisher")
    def publish(
        self,
        version_id: str,
        published_by: Optional[str] = None,
        on_progress: Optional[ProgressCallback] = None
    ) -> PublishResult:
        """
        Raises:
            VersionNotFoundError, NotDraftError, EmptyScopeError, ValidationFailedError,
            SerializationConflictError (retries exhausted), DatabaseError
        """
        progress = on_progress or _noop

        version = self.versions.get_version(version_id)
        if not version.is_draft:
            raise NotDraftError(version_id, version.status.value)
        if version.scope is None:
            raise EmptyScopeError(f"Version {version_id} has no scope; configure it before publishing")

        features = self.versions.load_features(version)
        progress(10)

        validation = self.versions.validate(version, features)
        if not validation.valid:
            raise ValidationFailedError(version_id, len(validation.errors))
        progress(20)

        by_id = {f.feature_id: f for f in features if f.feature_id is not None}

        def capture_then_apply(tx: Transaction, attempt: int) -> PublishResult:
            return self._capture_then_apply(tx, attempt, version_id, features, by_id, published_by, progress)

        result = self.uow.run(capture_then_apply, serializable=True, max_retries=self.max_retries)
        progress(100)
        logger.info(
            f"🚀 Published {version_id}: +{result.added} ~{result.updated} -{result.deactivated} "
            f"={result.unchanged} (attempts={result.attempts})"
        )
        return result

    def _capture_then_apply(
        self,
        tx: Transaction,
        attempt: int,
        version_id: str,
        features: List[CanonicalFeature],
        by_id: Dict[str, CanonicalFeature],
        published_by: Optional[str],
        progress: ProgressCallback
    ) -> PublishResult:
        version = tx.versions.get_version(version_id, for_update=True)
        if version is None:
            raise VersionNotFoundError(version_id)
        if not can_version_transition(version.status, VersionStatus.PUBLISHED):
            raise NotDraftError(version_id, version.status.value)
        scope = version.scope

        diff = self.diff_engine.compute(
            features, scope, version.regional_refresh,
            tx.production.find_in_scope(scope, active_only=True),
            version_id=version_id,
        )
        progress(35)

        # Capture
        snapshot = self.snapshots.capture(
            tx, version_id, scope,
            touched_ids=diff.touched_ids(),
            added_ids=[f.id for f in diff.added],
            attempt=attempt,
        )
        tx.versions.update_version(version_id, {"snapshot_path": snapshot.path})
        progress(50)

        # Apply
        self._apply(tx, version, diff, by_id, {record.id: record for record in snapshot.records})
        progress(80)

        diff_path = diff_path_for(version_id)
        self.store.write(diff_path, diff.model_dump_json(by_alias=True).encode("utf-8"), overwrite=True)

        published_at = utc_now()
        archived = tx.versions.archive_published(version_id, published_at)
        if archived:
            logger.info(f"📦 Archived previously published version(s): {archived}")
        tx.versions.update_version(version_id, {
            "status": VersionStatus.PUBLISHED,
            "published_by": published_by,
            "published_at": published_at,
            "diff_path": diff_path,
            "added_count": diff.stats.added_count,
            "updated_count": diff.stats.updated_count,
            "deactivated_count": diff.stats.deactivated_count,
        })
        progress(95)

        return PublishResult(
            version_id=version_id,
            added=diff.stats.added_count,
            updated=diff.stats.updated_count,
            deactivated=diff.stats.deactivated_count,
            unchanged=diff.stats.unchanged_count,
            snapshot_path=snapshot.path,
            diff_path=diff_path,
            scope=diff.scope,
            published_at=published_at,
            attempts=attempt,
        )

    def _apply(
        self,
        tx: Transaction,
        version: ImportVersion,
        diff: DiffResult,
        by_id: Dict[str, CanonicalFeature],
        existing: Dict[str, ProductionRecord]
    ) -> None:
        default_source = version.default_data_source.value
        now = utc_now()

        added = []
        for entry in diff.added:
            feature = by_id[entry.id]
            # Inactive or out-of-scope records with this id are revived, not replaced
            stored = existing.get(entry.id)
            if stored is None:
                attributes = dict(feature.attributes)
                data_source = feature.data_source or default_source
            else:
                attributes = dict(stored.attributes or {})
                attributes.update({k: v for k, v in feature.attributes.items() if v is not None})
                data_source = feature.data_source or stored.data_source or default_source
            added.append(ProductionRecord(
                id=entry.id,
                geometry=feature.geometry,
                attributes=attributes,
                status=RecordStatus.ACTIVE,
                data_source=data_source,
                updated_at=now,
            ))

        updated = []
        for entry in diff.updated:
            feature = by_id[entry.id]
            attributes = dict((entry.previous or {}).get("attributes") or {})
            attributes.update({k: v for k, v in feature.attributes.items() if v is not None})
            updated.append(ProductionRecord(
                id=entry.id,
                geometry=feature.geometry,
                attributes=attributes,
                status=RecordStatus.ACTIVE,
                data_source=feature.data_source or default_source,
                updated_at=now,
            ))

        tx.production.upsert_records(added + updated)
        deactivated = 0
        if version.regional_refresh and diff.deactivated:
            deactivated = tx.production.set_status([f.id for f in diff.deactivated], RecordStatus.INACTIVE)
        logger.debug(
            f"Applied {version.version_id}: {len(added)} inserted, {len(updated)} updated, "
            f"{deactivated} deactivated"
        )
