# ============================================================================
# IMPORT VERSIONING - EXCEPTIONS
# ============================================================================
# STATUS: Shared - used by every layer
# PURPOSE: Exception hierarchy separating contract violations, business failures and config errors
# EXPORTS: ContractViolationError, BusinessLogicError, InputError, StateError, ResourceNotFoundError
# DEPENDENCIES: None (standard library only)
# PATTERNS: Exception hierarchy for error categorization
# ENTRY_POINTS: Raised at component boundaries, mapped to HTTP status in routes
# ============================================================================

"""
Custom Exception Hierarchy

Distinguishes between:
1. Contract Violations (programming bugs that need fixing)
2. Business Logic Failures (expected runtime issues)
3. Configuration Errors (fatal misconfiguration)

Business failures are further split by how the caller should react:

    InputError             - bad upload / configuration input; never creates a job
    StateError             - request conflicts with the version or job state
    ResourceNotFoundError  - version, job or artifact does not exist
    ArtifactCorruptError   - artifact exists but cannot be deserialized
    DatabaseError          - transactional failure (constraint, connection)

Validation findings are NOT exceptions; they are data returned in
ValidationResult. Only publish turns an invalid result into
ValidationFailedError.
"""

from typing import Optional


class ContractViolationError(TypeError):
    """
    Raised when component contracts are violated (programming bugs).

    These should NEVER be caught and handled - they indicate bugs
    that need to be fixed in the code.

    Examples:
        - Repository receives string instead of VersionStatus enum
        - Job body returns a dict instead of a typed result model
    """
    pass


class BusinessLogicError(Exception):
    """
    Base class for expected runtime business logic failures.

    Subclasses represent specific categories of business failures.
    """
    pass


# ============================================================================
# INPUT ERRORS
# ============================================================================

class InputError(BusinessLogicError):
    """Client supplied input that cannot be processed."""
    pass


class UnsupportedFileTypeError(InputError):
    """Upload extension is not one of .geojson, .json, .gpkg."""

    def __init__(self, file_name: str):
        self.file_name = file_name
        super().__init__(
            f"Unsupported file type for '{file_name}'. "
            f"Supported extensions: .geojson, .json, .gpkg"
        )


class ParseError(InputError):
    """File is not a well-formed instance of its declared format."""
    pass


class LayerNotFoundError(InputError):
    """Configured layer does not exist in the file."""

    def __init__(self, layer_name: str, available: Optional[list] = None):
        self.layer_name = layer_name
        self.available = available or []
        message = f"Layer '{layer_name}' not found"
        if self.available:
            message += f". Available layers: {', '.join(self.available)}"
        super().__init__(message)


class LayerRequiredError(InputError):
    """Multi-layer file configured without choosing a layer."""
    pass


class InvalidCRSError(InputError):
    """Source CRS string cannot be interpreted."""
    pass


class EmptyScopeError(InputError):
    """No scope could be computed (no features or no valid geometries)."""
    pass


# ============================================================================
# STATE ERRORS
# ============================================================================

class StateError(BusinessLogicError):
    """Request conflicts with current version or job state."""
    pass


class NotDraftError(StateError):
    """Operation requires a draft version."""

    def __init__(self, version_id: str, status: str):
        self.version_id = version_id
        self.status = status
        super().__init__(f"Version {version_id} is {status}, expected draft")


class NotPublishedError(StateError):
    """Rollback requested for a version that is not currently published."""

    def __init__(self, version_id: str, status: str):
        self.version_id = version_id
        self.status = status
        super().__init__(f"Version {version_id} is {status}, expected published")


class NoSnapshotError(StateError):
    """Version has no snapshot to roll back to, or the artifact is gone."""
    pass


class JobAlreadyRunningError(StateError):
    """A pending or running job already exists for the version."""

    def __init__(self, version_id: str, job_id: Optional[str] = None):
        self.version_id = version_id
        self.job_id = job_id
        suffix = f" ({job_id})" if job_id else ""
        super().__init__(f"A job is already in progress for version {version_id}{suffix}")


class ScopeLockedError(StateError):
    """Layer or CRS change requested after the scope was fixed."""
    pass


class ValidationFailedError(StateError):
    """Publish refused because validation reports blocking errors."""

    def __init__(self, version_id: str, error_count: int):
        self.version_id = version_id
        self.error_count = error_count
        super().__init__(
            f"Validation failed for version {version_id}: {error_count} error(s)"
        )


class VersionImmutableError(StateError):
    """Rolled-back versions are terminal and accept no further changes."""

    def __init__(self, version_id: str, status: str):
        self.version_id = version_id
        self.status = status
        super().__init__(f"Version {version_id} is {status} and can no longer be modified")


class ImportsFrozenError(StateError):
    """Publishing is disabled by the process-wide freeze switch."""

    def __init__(self):
        super().__init__("Imports are frozen; publish is disabled")


# ============================================================================
# NOT FOUND
# ============================================================================

class ResourceNotFoundError(BusinessLogicError):
    """Requested resource does not exist."""
    pass


class VersionNotFoundError(ResourceNotFoundError):
    def __init__(self, version_id: str):
        self.version_id = version_id
        super().__init__(f"Import version not found: {version_id}")


class JobNotFoundError(ResourceNotFoundError):
    def __init__(self, job_id: str):
        self.job_id = job_id
        super().__init__(f"Import job not found: {job_id}")


class ArtifactNotFoundError(ResourceNotFoundError):
    """Artifact was never written, or was written and later lost."""

    def __init__(self, path: Optional[str], message: Optional[str] = None):
        self.path = path
        super().__init__(message or f"Artifact not found: {path}")


class ValidationNotRunError(ResourceNotFoundError):
    def __init__(self, version_id: str):
        self.version_id = version_id
        super().__init__(f"No completed validation for version {version_id}")


# ============================================================================
# ARTIFACT CORRUPTION
# ============================================================================

class ArtifactCorruptError(BusinessLogicError):
    """Artifact exists but cannot be deserialized."""
    pass


class SnapshotUnreadableError(ArtifactCorruptError):
    def __init__(self, path: str, reason: str):
        self.path = path
        super().__init__(f"Snapshot {path} cannot be read: {reason}")


# ============================================================================
# TRANSACTIONAL
# ============================================================================

class DatabaseError(BusinessLogicError):
    """
    Database operation failures.

    Examples:
        - Connection lost
        - Constraint violation
        - Transaction rollback
    """
    pass


class SerializationConflictError(DatabaseError):
    """Transaction aborted by a serialization failure or deadlock; safe to retry."""
    pass


class ConfigurationError(Exception):
    """
    System configuration error.

    Examples:
        - Missing required environment variables
        - Unknown artifact backend
    """
    pass
