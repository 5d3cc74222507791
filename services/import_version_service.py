# ============================================================================
# IMPORT VERSIONING - LEDGER SERVICE
# ============================================================================
# STATUS: Service - synchronous ledger operations
# PURPOSE: Upload, configure, list, delete, validate, preview and history for import versions
# EXPORTS: ImportVersionService
# DEPENDENCIES: infrastructure (unit of work, artifact store), vector (parser)
# ============================================================================
"""
Import Version Service.

Owns every synchronous operation on the version ledger. Input errors are
raised before any ledger row or job is created.

Artifact layout:
    imports/<versionId>/original.<ext>     uploaded bytes
    imports/<versionId>/canonical.geojson  EPSG:4326 features, written at configure
    diffs/<versionId>.json                 diff as applied, written at publish

Scope lock:
    The first successful configure parses the file and fixes the scope.
    Afterwards only default_data_source and regional_refresh may change;
    a different layer or source CRS raises ScopeLockedError.
"""

import os
from typing import List, Optional, Tuple

from pydantic import ValidationError

from config import ImportConfig
from core.logic import can_delete_version
from core.models import (
    CanonicalFeature, DataSource, DiffResult, ImportScope, ImportVersion,
    JobStatus, JobType, LayerInfo, ValidationResult, VersionStatus
)
from core.utils import generate_version_id
from exceptions import (
    ArtifactCorruptError, ArtifactNotFoundError, EmptyScopeError, InputError,
    JobAlreadyRunningError, NotDraftError, ParseError, ScopeLockedError,
    ValidationNotRunError, VersionImmutableError, VersionNotFoundError
)
from infrastructure.artifact_store import IArtifactStore
from infrastructure.interface_repository import UnitOfWork
from util_logger import LoggerFactory, ComponentType
from vector import FeatureParser, file_type_for_name
from .diff_engine import DiffEngine
from .import_validator import ImportValidator


logger = LoggerFactory.create_logger(ComponentType.SERVICE, "ImportVersionService")

BYTES_PER_MB = 1024 * 1024


def original_path_for(version_id: str, file_name: str) -> str:
    ext = os.path.splitext(file_name)[1].lower()
    return f"imports/{version_id}/original{ext}"


def canonical_path_for(version_id: str) -> str:
    return f"imports/{version_id}/canonical.geojson"


def diff_path_for(version_id: str) -> str:
    return f"diffs/{version_id}.json"


class ImportVersionService:
    """
    Ledger operations for import versions.

    Usage:
        service = ImportVersionService(uow, store, ImportConfig())
        version = service.upload(raw, "roads.geojson", uploaded_by="alice")
        version = service.configure(version.version_id, regional_refresh=True)
        diff = service.preview_diff(version.version_id)
    """

    def __init__(
        self,
        uow: UnitOfWork,
        store: IArtifactStore,
        config: ImportConfig,
        parser: Optional[FeatureParser] = None,
        validator: Optional[ImportValidator] = None,
        diff_engine: Optional[DiffEngine] = None
    ):
        self.uow = uow
        self.store = store
        self.config = config
        self.parser = parser or FeatureParser(id_property=config.id_property)
        self.validator = validator or ImportValidator(
            required_attributes=config.required_attributes,
            allowed_data_sources=config.allowed_data_sources,
            bounds=config.validation_bounds,
            id_property=config.id_property,
        )
        self.diff_engine = diff_engine or DiffEngine(tolerance=config.geometry_tolerance)

    # ------------------------------------------------------------------
    # Upload / configure
    # ------------------------------------------------------------------

    def upload(self, data: bytes, file_name: str, uploaded_by: Optional[str] = None) -> ImportVersion:
        """
        Store an uploaded file and create a draft version.

        Raises:
            UnsupportedFileTypeError, ParseError, InputError (too large)
        """
        file_type = file_type_for_name(file_name)
        size_mb = len(data) / BYTES_PER_MB
        if size_mb > self.config.max_upload_mb:
            raise InputError(
                f"File is {size_mb:.1f} MB; the limit is {self.config.max_upload_mb:g} MB"
            )
        if not data:
            raise ParseError(f"Uploaded file '{file_name}' is empty")

        feature_count = self.parser.count_features(data, file_type)

        version_id = generate_version_id()
        file_path = original_path_for(version_id, file_name)
        self.store.write(file_path, data)
        try:
            with self.uow.transaction() as tx:
                version = tx.versions.create_version(ImportVersion(
                    version_id=version_id,
                    version_number=tx.versions.next_version_number(),
                    file_name=file_name,
                    file_type=file_type,
                    file_path=file_path,
                    file_size_mb=round(size_mb, 4),
                    feature_count=feature_count,
                    uploaded_by=uploaded_by,
                ))
        except Exception:
            logger.error(f"❌ Ledger insert failed for {file_name}; removing stored upload {file_path}")
            self.store.delete_prefix(f"imports/{version_id}/")
            raise

        logger.info(
            f"📤 Uploaded {file_name} as {version.version_id} v{version.version_number} "
            f"({feature_count} features, {size_mb:.2f} MB)"
        )
        return version

    def list_layers(self, version_id: str) -> List[LayerInfo]:
        version = self.get_version(version_id)
        return self.parser.list_layers(self.store.read(version.file_path), version.file_type)

    def configure(
        self,
        version_id: str,
        layer_name: Optional[str] = None,
        source_crs: Optional[str] = None,
        default_data_source: Optional[DataSource] = None,
        regional_refresh: Optional[bool] = None
    ) -> ImportVersion:
        """
        Choose layer, CRS, data source and merge mode; compute the scope.

        Raises:
            NotDraftError, ScopeLockedError, LayerRequiredError, LayerNotFoundError,
            InvalidCRSError, ParseError, EmptyScopeError
        """
        version = self.get_version(version_id)
        self._require_draft(version)

        updates = {}
        if default_data_source is not None:
            updates["default_data_source"] = DataSource(default_data_source)
        if regional_refresh is not None:
            updates["regional_refresh"] = regional_refresh

        if version.is_configured:
            self._check_scope_lock(version, layer_name, source_crs)
        else:
            parsed = self.parser.parse(
                self.store.read(version.file_path), version.file_type,
                layer_name=layer_name, source_crs=source_crs,
            )
            if len(parsed) == 0:
                raise EmptyScopeError(f"Layer '{parsed.layer_name}' contains no features")
            if parsed.bounds is None:
                raise EmptyScopeError(f"Layer '{parsed.layer_name}' has no valid geometries")

            canonical_path = canonical_path_for(version.version_id)
            self.store.write(canonical_path, self.parser.to_canonical_bytes(parsed), overwrite=True)
            updates.update({
                "layer_name": parsed.layer_name,
                "source_crs": source_crs,
                "import_scope": ImportScope.from_bounds(parsed.bounds).to_string(),
                "canonical_path": canonical_path,
            })

        with self.uow.transaction() as tx:
            current = tx.versions.get_version(version_id, for_update=True)
            if current is None:
                raise VersionNotFoundError(version_id)
            self._require_draft(current)
            if current.is_configured and "import_scope" in updates:
                # Another configure fixed the scope first
                self._check_scope_lock(current, updates["layer_name"], source_crs)
                for key in ("layer_name", "source_crs", "import_scope", "canonical_path"):
                    updates.pop(key)
            version = tx.versions.update_version(version_id, updates)

        logger.info(
            f"⚙️ Configured {version_id}: layer={version.layer_name}, crs={version.source_crs}, "
            f"scope={version.import_scope}, refresh={version.regional_refresh}, "
            f"dataSource={version.default_data_source.value}"
        )
        return version

    @staticmethod
    def _check_scope_lock(version: ImportVersion, layer_name: Optional[str], source_crs: Optional[str]):
        if layer_name is not None and layer_name != version.layer_name:
            raise ScopeLockedError(
                f"Scope of {version.version_id} is fixed to layer '{version.layer_name}'"
            )
        if source_crs is not None and source_crs != version.source_crs:
            raise ScopeLockedError(
                f"Scope of {version.version_id} is fixed to source CRS '{version.source_crs}'"
            )

    @staticmethod
    def _require_draft(version: ImportVersion):
        if not version.is_draft:
            raise NotDraftError(version.version_id, version.status.value)

    # ------------------------------------------------------------------
    # Ledger reads and edits
    # ------------------------------------------------------------------

    def get_version(self, version_id: str) -> ImportVersion:
        with self.uow.transaction() as tx:
            version = tx.versions.get_version(version_id)
        if version is None:
            raise VersionNotFoundError(version_id)
        return version

    def list_versions(
        self,
        status: Optional[VersionStatus] = None,
        limit: int = 20,
        offset: int = 0
    ) -> Tuple[List[ImportVersion], int]:
        with self.uow.transaction() as tx:
            return tx.versions.list_versions(status=status, limit=limit, offset=offset)

    def delete_draft(self, version_id: str) -> bool:
        """
        Remove a draft version, its jobs and its artifacts.

        Raises:
            VersionNotFoundError, NotDraftError, JobAlreadyRunningError
        """
        with self.uow.transaction() as tx:
            version = tx.versions.get_version(version_id, for_update=True)
            if version is None:
                raise VersionNotFoundError(version_id)
            if not can_delete_version(version.status):
                raise NotDraftError(version_id, version.status.value)
            active = tx.jobs.get_active_job(version_id)
            if active is not None:
                raise JobAlreadyRunningError(version_id, active.job_id)
            tx.jobs.delete_jobs_for_version(version_id)
            tx.versions.delete_version(version_id)

        removed = self.store.delete_prefix(f"imports/{version_id}/")
        removed += self.store.delete_prefix(f"snapshots/{version_id}/")
        if self.store.delete(diff_path_for(version_id)):
            removed += 1
        logger.info(f"🗑️ Deleted draft {version_id} ({removed} artifact(s))")
        return True

    def update_notes(self, version_id: str, notes: Optional[str]) -> ImportVersion:
        with self.uow.transaction() as tx:
            version = tx.versions.get_version(version_id, for_update=True)
            if version is None:
                raise VersionNotFoundError(version_id)
            if version.status == VersionStatus.ROLLED_BACK:
                raise VersionImmutableError(version_id, version.status.value)
            return tx.versions.update_version(version_id, {"notes": notes})

    # ------------------------------------------------------------------
    # Features, validation, diff
    # ------------------------------------------------------------------

    def load_features(self, version: ImportVersion) -> List[CanonicalFeature]:
        """
        Canonical features written at configure.

        Raises:
            EmptyScopeError: version has not been configured
            ArtifactNotFoundError, ParseError
        """
        if not version.is_configured:
            raise EmptyScopeError(
                f"Version {version.version_id} has no scope yet; configure it first"
            )
        return self.parser.from_canonical_bytes(self.store.read(version.canonical_path)).features

    def validate(
        self,
        version: ImportVersion,
        features: Optional[List[CanonicalFeature]] = None
    ) -> ValidationResult:
        if features is None:
            features = self.load_features(version)
        return self.validator.validate(features, version.default_data_source.value)

    def run_validation(self, version_id: str, on_progress=None) -> ValidationResult:
        """Validation job body."""
        version = self.get_version(version_id)
        features = self.load_features(version)
        if on_progress:
            on_progress(50)
        return self.validate(version, features)

    def get_validation_result(self, version_id: str) -> ValidationResult:
        """
        Raises:
            VersionNotFoundError, ValidationNotRunError
        """
        with self.uow.transaction() as tx:
            if tx.versions.get_version(version_id) is None:
                raise VersionNotFoundError(version_id)
            job = tx.jobs.get_latest_job(version_id, JobType.VALIDATION, JobStatus.COMPLETED)
        if job is None or job.result_summary is None:
            raise ValidationNotRunError(version_id)
        return job.result_summary

    def preview_diff(self, version_id: str) -> DiffResult:
        """
        Diff against current production; read only and repeatable.

        Raises:
            VersionNotFoundError, EmptyScopeError
        """
        version = self.get_version(version_id)
        features = self.load_features(version)
        scope = version.scope
        with self.uow.transaction() as tx:
            records = tx.production.find_in_scope(scope, active_only=True)
        return self.diff_engine.compute(
            features, scope, version.regional_refresh, records, version_id=version_id
        )

    def get_applied_history(self, version_id: str) -> DiffResult:
        """
        Diff as applied at publish time.

        Raises:
            ArtifactNotFoundError: never published, or the artifact is gone
            ArtifactCorruptError: artifact exists but cannot be decoded
        """
        version = self.get_version(version_id)
        if not version.diff_path:
            raise ArtifactNotFoundError(None, f"Version {version_id} has never been published")
        raw = self.store.read(version.diff_path)
        try:
            return DiffResult.model_validate_json(raw)
        except ValidationError as e:
            raise ArtifactCorruptError(f"Diff artifact {version.diff_path} cannot be read: {e}") from e
