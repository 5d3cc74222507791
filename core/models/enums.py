"""
Pure Enumeration Types for the Import Engine.

Defines valid states for import versions, jobs and production records.
No business logic - pure type definitions only (transitions live in
core.logic.transitions).

Exports:
    VersionStatus: ImportVersion lifecycle
    JobType: Kind of background work
    JobStatus: ImportJob lifecycle
    FileType: Supported upload formats
    DataSource: Provenance tag on production records
    RecordStatus: Production record active flag
"""

from enum import Enum


class VersionStatus(str, Enum):
    """
    Valid status values for import versions.

    State transitions:
    - DRAFT -> PUBLISHED -> ARCHIVED (normal flow)
    - DRAFT -> (deleted, removed from ledger)
    - PUBLISHED -> ROLLED_BACK (rollback executor only)
    """

    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"
    ROLLED_BACK = "rolled_back"


class JobType(str, Enum):
    VALIDATION = "validation"
    PUBLISH = "publish"
    ROLLBACK = "rollback"


class JobStatus(str, Enum):
    """
    Valid status values for import jobs.

    State transitions:
    - PENDING -> RUNNING -> COMPLETED
    - PENDING -> RUNNING -> FAILED
    - PENDING -> FAILED (lease expired before the worker picked it up)
    """

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class FileType(str, Enum):
    GEOJSON = "geojson"
    GEOPACKAGE = "geopackage"


class DataSource(str, Enum):
    OSM_TEST = "osm_test"
    OFFICIAL_LEDGER = "official_ledger"
    MANUAL = "manual"


class RecordStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
