# ============================================================================
# IMPORT VERSIONING - CORE MODELS - IMPORT VERSION
# ============================================================================
# STATUS: Core data models - ledger row
# PURPOSE: Pydantic model for rows of app.import_versions
# EXPORTS: ImportVersion
# DEPENDENCIES: pydantic, core.models.enums, core.models.features
# PATTERNS: Data model pattern, no business logic beyond status checks
# ENTRY_POINTS: from core.models import ImportVersion
# ============================================================================

"""
Import Version Ledger Model

One ImportVersion per uploaded dataset attempt. The ledger is the single
source of truth the parser, validator, diff engine, publisher and
rollback executor read and write.

Lifecycle:
    upload      -> draft (file stored, feature_count recorded)
    configure   -> draft (layer/CRS/data source chosen, scope fixed)
    publish     -> published (snapshot_path + diff_path set)
    next publish-> archived
    rollback    -> rolled_back (terminal)
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from core.utils import utc_now
from .enums import DataSource, FileType, VersionStatus
from .features import ImportScope


class ImportVersion(BaseModel):
    """Database representation of an import version."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    version_id: str = Field(..., alias="id")
    version_number: int = Field(..., ge=1)
    status: VersionStatus = VersionStatus.DRAFT

    file_name: str
    file_type: FileType
    file_path: str
    canonical_path: Optional[str] = None
    file_size_mb: float = Field(default=0.0, ge=0)
    feature_count: int = Field(default=0, ge=0)

    layer_name: Optional[str] = None
    source_crs: Optional[str] = Field(default=None, alias="sourceCRS")
    import_scope: Optional[str] = None
    regional_refresh: bool = False
    default_data_source: DataSource = DataSource.OFFICIAL_LEDGER

    uploaded_by: Optional[str] = None
    uploaded_at: datetime = Field(default_factory=utc_now)
    published_by: Optional[str] = None
    published_at: Optional[datetime] = None
    archived_at: Optional[datetime] = None
    rolled_back_at: Optional[datetime] = None

    snapshot_path: Optional[str] = None
    diff_path: Optional[str] = None

    added_count: Optional[int] = None
    updated_count: Optional[int] = None
    deactivated_count: Optional[int] = None

    notes: Optional[str] = None

    @property
    def is_draft(self) -> bool:
        return self.status == VersionStatus.DRAFT

    @property
    def is_configured(self) -> bool:
        return self.import_scope is not None and self.canonical_path is not None

    @property
    def scope(self) -> Optional[ImportScope]:
        return ImportScope.parse(self.import_scope) if self.import_scope else None

    def to_api(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)
