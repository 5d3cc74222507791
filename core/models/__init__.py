"""
Core Data Models Package.

Contains pure data structures without business logic.
All business logic is in the core.logic package.

Exports:
    ImportVersion, ImportJob: Ledger models
    VersionStatus, JobType, JobStatus, FileType, DataSource, RecordStatus: Enums
    ImportScope, LayerInfo, CanonicalFeature, ProductionRecord: Feature models
    ValidationResult, DiffResult, PublishResult, RollbackResult: Result models
"""

from .enums import (
    VersionStatus,
    JobType,
    JobStatus,
    FileType,
    DataSource,
    RecordStatus,
)

from .features import (
    ImportScope,
    LayerInfo,
    CanonicalFeature,
    ProductionRecord,
)

from .results import (
    ValidationIssue,
    ValidationWarning,
    ValidationResult,
    DiffFeature,
    DiffStats,
    DiffResult,
    PublishResult,
    RollbackResult,
    JobResult,
)

from .import_version import ImportVersion
from .import_job import ImportJob

__all__ = [
    'VersionStatus',
    'JobType',
    'JobStatus',
    'FileType',
    'DataSource',
    'RecordStatus',
    'ImportScope',
    'LayerInfo',
    'CanonicalFeature',
    'ProductionRecord',
    'ValidationIssue',
    'ValidationWarning',
    'ValidationResult',
    'DiffFeature',
    'DiffStats',
    'DiffResult',
    'PublishResult',
    'RollbackResult',
    'JobResult',
    'ImportVersion',
    'ImportJob',
]
