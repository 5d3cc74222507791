"""
Result Models - validation report, diff, publish and rollback outcomes.

Every job stores one of ValidationResult / PublishResult / RollbackResult
as its result summary. Each carries a literal ``job_type`` tag so
JobResult is a tagged union that consumers can switch on exhaustively.

All models serialize with camelCase aliases for the HTTP surface.

Exports:
    ValidationIssue, ValidationWarning, ValidationResult
    DiffFeature, DiffStats, DiffResult
    PublishResult, RollbackResult
    JobResult
"""

from datetime import datetime
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from core.utils import utc_now


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ============================================================================
# VALIDATION
# ============================================================================

class ValidationIssue(_CamelModel):
    """A blocking per-feature error."""
    feature_index: int
    feature_id: Optional[str] = None
    field: str
    code: str
    message: str
    hint: Optional[str] = None


class ValidationWarning(_CamelModel):
    """A non-blocking finding. ``feature_index`` is -1 for file-level warnings."""
    feature_index: int
    feature_id: Optional[str] = None
    code: str
    message: str


class ValidationResult(_CamelModel):
    job_type: Literal["validation"] = "validation"
    valid: bool
    feature_count: int = Field(ge=0)
    errors: List[ValidationIssue] = Field(default_factory=list)
    warnings: List[ValidationWarning] = Field(default_factory=list)
    geometry_types: List[str] = Field(default_factory=list)
    missing_id_count: int = 0
    missing_data_source_count: int = 0
    validated_at: datetime = Field(default_factory=utc_now)


# ============================================================================
# DIFF
# ============================================================================

class DiffFeature(_CamelModel):
    """
    One classified record in a diff.

    For ``updated`` entries ``changed_fields`` lists attribute keys that
    differ and ``geometry_changed`` flags a geometry difference beyond
    tolerance; ``previous`` holds the production side before the change.
    """
    id: str
    geometry: Optional[Dict[str, Any]] = None
    attributes: Dict[str, Any] = Field(default_factory=dict)
    data_source: Optional[str] = None
    changed_fields: List[str] = Field(default_factory=list)
    geometry_changed: bool = False
    previous: Optional[Dict[str, Any]] = None


class DiffStats(_CamelModel):
    """
    Summary counts.

    Identity: scope_current_count == updated + deactivated + unchanged + retained.
    ``retained_count`` is always 0 under regional refresh.
    """
    scope_current_count: int = 0
    import_count: int = 0
    added_count: int = 0
    updated_count: int = 0
    deactivated_count: int = 0
    unchanged_count: int = 0
    retained_count: int = 0
    skipped_count: int = 0


class DiffResult(_CamelModel):
    version_id: Optional[str] = None
    scope: str
    regional_refresh: bool
    added: List[DiffFeature] = Field(default_factory=list)
    updated: List[DiffFeature] = Field(default_factory=list)
    deactivated: List[DiffFeature] = Field(default_factory=list)
    unchanged: int = 0
    stats: DiffStats = Field(default_factory=DiffStats)

    def touched_ids(self) -> List[str]:
        return sorted(
            [f.id for f in self.added]
            + [f.id for f in self.updated]
            + [f.id for f in self.deactivated]
        )


# ============================================================================
# PUBLISH / ROLLBACK
# ============================================================================

class PublishResult(_CamelModel):
    job_type: Literal["publish"] = "publish"
    success: bool = True
    version_id: str
    added: int
    updated: int
    deactivated: int
    unchanged: int
    snapshot_path: str
    diff_path: str
    scope: str
    published_at: datetime
    attempts: int = 1


class RollbackResult(_CamelModel):
    job_type: Literal["rollback"] = "rollback"
    success: bool = True
    version_id: str
    restored: int
    removed: int
    snapshot_path: str
    rolled_back_at: datetime
    attempts: int = 1


JobResult = Annotated[
    Union[ValidationResult, PublishResult, RollbackResult],
    Field(discriminator="job_type"),
]
