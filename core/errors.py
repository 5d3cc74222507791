"""
Error Code Definitions and Classification.

Centralized error code management so every endpoint returns the same
error envelope and job failures carry a machine-readable code.

Exports:
    ErrorCode: Standardized error codes enum
    ErrorClassification: Error category enum
    error_code_for: Map an exception to its ErrorCode
    is_retryable: Helper to check if an error may succeed on resubmission
    get_http_status_code: HTTP status for an ErrorCode
    create_error_response: Standard error payload
"""

from enum import Enum
from typing import Dict, Any

import exceptions as exc


class ErrorCode(str, Enum):
    """
    Standardized error codes for all application errors.
    """

    # Input errors (HTTP 400, NOT RETRYABLE)
    UNSUPPORTED_FILE_TYPE = "UNSUPPORTED_FILE_TYPE"
    PARSE_ERROR = "PARSE_ERROR"
    LAYER_NOT_FOUND = "LAYER_NOT_FOUND"
    LAYER_REQUIRED = "LAYER_REQUIRED"
    INVALID_CRS = "INVALID_CRS"
    EMPTY_SCOPE = "EMPTY_SCOPE"
    INVALID_PARAMETER = "INVALID_PARAMETER"

    # State errors (HTTP 400/403/409, NOT RETRYABLE)
    NOT_DRAFT = "NOT_DRAFT"
    NOT_PUBLISHED = "NOT_PUBLISHED"
    NO_SNAPSHOT = "NO_SNAPSHOT"
    VALIDATION_FAILED = "VALIDATION_FAILED"
    SCOPE_LOCKED = "SCOPE_LOCKED"
    JOB_ALREADY_RUNNING = "JOB_ALREADY_RUNNING"
    IMPORTS_FROZEN = "IMPORTS_FROZEN"
    VERSION_IMMUTABLE = "VERSION_IMMUTABLE"

    # Not found (HTTP 404)
    VERSION_NOT_FOUND = "VERSION_NOT_FOUND"
    JOB_NOT_FOUND = "JOB_NOT_FOUND"
    ARTIFACT_NOT_FOUND = "ARTIFACT_NOT_FOUND"
    VALIDATION_NOT_RUN = "VALIDATION_NOT_RUN"
    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"

    # Artifact corruption (HTTP 500, NOT RETRYABLE)
    SNAPSHOT_UNREADABLE = "SNAPSHOT_UNREADABLE"
    ARTIFACT_CORRUPT = "ARTIFACT_CORRUPT"

    # Infrastructure (HTTP 500/503, RETRYABLE)
    SERIALIZATION_CONFLICT = "SERIALIZATION_CONFLICT"
    DATABASE_ERROR = "DATABASE_ERROR"
    STORAGE_ERROR = "STORAGE_ERROR"

    CONFIG_ERROR = "CONFIG_ERROR"
    UNEXPECTED_ERROR = "UNEXPECTED_ERROR"


class ErrorClassification(str, Enum):
    """Whether resubmitting the same request can succeed."""

    PERMANENT = "PERMANENT"  # Client or state error, won't fix itself
    TRANSIENT = "TRANSIENT"  # Temporary infrastructure issue


# Most specific class first; error_code_for walks this in order
_EXCEPTION_CODES = (
    (exc.UnsupportedFileTypeError, ErrorCode.UNSUPPORTED_FILE_TYPE),
    (exc.ParseError, ErrorCode.PARSE_ERROR),
    (exc.LayerNotFoundError, ErrorCode.LAYER_NOT_FOUND),
    (exc.LayerRequiredError, ErrorCode.LAYER_REQUIRED),
    (exc.InvalidCRSError, ErrorCode.INVALID_CRS),
    (exc.EmptyScopeError, ErrorCode.EMPTY_SCOPE),
    (exc.InputError, ErrorCode.INVALID_PARAMETER),
    (exc.NotDraftError, ErrorCode.NOT_DRAFT),
    (exc.NotPublishedError, ErrorCode.NOT_PUBLISHED),
    (exc.NoSnapshotError, ErrorCode.NO_SNAPSHOT),
    (exc.ValidationFailedError, ErrorCode.VALIDATION_FAILED),
    (exc.ScopeLockedError, ErrorCode.SCOPE_LOCKED),
    (exc.JobAlreadyRunningError, ErrorCode.JOB_ALREADY_RUNNING),
    (exc.ImportsFrozenError, ErrorCode.IMPORTS_FROZEN),
    (exc.VersionImmutableError, ErrorCode.VERSION_IMMUTABLE),
    (exc.VersionNotFoundError, ErrorCode.VERSION_NOT_FOUND),
    (exc.JobNotFoundError, ErrorCode.JOB_NOT_FOUND),
    (exc.ArtifactNotFoundError, ErrorCode.ARTIFACT_NOT_FOUND),
    (exc.ValidationNotRunError, ErrorCode.VALIDATION_NOT_RUN),
    (exc.ResourceNotFoundError, ErrorCode.RESOURCE_NOT_FOUND),
    (exc.SnapshotUnreadableError, ErrorCode.SNAPSHOT_UNREADABLE),
    (exc.ArtifactCorruptError, ErrorCode.ARTIFACT_CORRUPT),
    (exc.SerializationConflictError, ErrorCode.SERIALIZATION_CONFLICT),
    (exc.DatabaseError, ErrorCode.DATABASE_ERROR),
    (exc.ConfigurationError, ErrorCode.CONFIG_ERROR),
)

_TRANSIENT = {
    ErrorCode.SERIALIZATION_CONFLICT,
    ErrorCode.DATABASE_ERROR,
    ErrorCode.STORAGE_ERROR,
    ErrorCode.UNEXPECTED_ERROR,
}

_HTTP_STATUS: Dict[ErrorCode, int] = {
    ErrorCode.UNSUPPORTED_FILE_TYPE: 400,
    ErrorCode.PARSE_ERROR: 400,
    ErrorCode.LAYER_NOT_FOUND: 400,
    ErrorCode.LAYER_REQUIRED: 400,
    ErrorCode.INVALID_CRS: 400,
    ErrorCode.EMPTY_SCOPE: 400,
    ErrorCode.INVALID_PARAMETER: 400,
    ErrorCode.NOT_DRAFT: 400,
    ErrorCode.NOT_PUBLISHED: 400,
    ErrorCode.NO_SNAPSHOT: 400,
    ErrorCode.VALIDATION_FAILED: 400,
    ErrorCode.SCOPE_LOCKED: 409,
    ErrorCode.JOB_ALREADY_RUNNING: 409,
    ErrorCode.IMPORTS_FROZEN: 403,
    ErrorCode.VERSION_IMMUTABLE: 400,
    ErrorCode.VERSION_NOT_FOUND: 404,
    ErrorCode.JOB_NOT_FOUND: 404,
    ErrorCode.ARTIFACT_NOT_FOUND: 404,
    ErrorCode.VALIDATION_NOT_RUN: 404,
    ErrorCode.RESOURCE_NOT_FOUND: 404,
    ErrorCode.SERIALIZATION_CONFLICT: 503,
    ErrorCode.STORAGE_ERROR: 503,
}


def error_code_for(error: BaseException) -> ErrorCode:
    """
    Map an exception instance to its ErrorCode.

    Example:
        >>> error_code_for(exc.NotDraftError("IV-1", "published"))
        <ErrorCode.NOT_DRAFT: 'NOT_DRAFT'>
    """
    for exc_type, code in _EXCEPTION_CODES:
        if isinstance(error, exc_type):
            return code
    return ErrorCode.UNEXPECTED_ERROR


def get_error_classification(error_code: ErrorCode) -> ErrorClassification:
    if error_code in _TRANSIENT:
        return ErrorClassification.TRANSIENT
    return ErrorClassification.PERMANENT


def is_retryable(error_code: ErrorCode) -> bool:
    """True if resubmitting the same request may succeed."""
    return get_error_classification(error_code) == ErrorClassification.TRANSIENT


def get_http_status_code(error_code: ErrorCode) -> int:
    """
    Get the HTTP status code for an error code.

    Example:
        >>> get_http_status_code(ErrorCode.IMPORTS_FROZEN)
        403
    """
    return _HTTP_STATUS.get(error_code, 500)


def create_error_response(
    error_code: ErrorCode,
    message: str,
    **kwargs: Any
) -> Dict[str, Any]:
    """
    Create a standardized error response dictionary.

    Example:
        >>> create_error_response(ErrorCode.NOT_DRAFT, "Version IV-1 is published")
        {'success': False, 'error': 'NOT_DRAFT', 'message': '...', 'retryable': False, 'httpStatus': 400}
    """
    return {
        "success": False,
        "error": error_code.value,
        "message": message,
        "retryable": is_retryable(error_code),
        "httpStatus": get_http_status_code(error_code),
        **kwargs
    }
