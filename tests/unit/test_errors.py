"""
Error mapping tests - exception class to error code, HTTP status and
retryability.
"""

import pytest

from core.errors import (
    ErrorCode, create_error_response, error_code_for, get_http_status_code, is_retryable
)
from exceptions import (
    ArtifactNotFoundError, EmptyScopeError, ImportsFrozenError, JobAlreadyRunningError,
    LayerNotFoundError, NotDraftError, ParseError, ScopeLockedError, SerializationConflictError,
    UnsupportedFileTypeError, ValidationNotRunError, VersionNotFoundError
)


@pytest.mark.parametrize("error,code,status", [
    (UnsupportedFileTypeError("roads.csv"), ErrorCode.UNSUPPORTED_FILE_TYPE, 400),
    (ParseError("bad"), ErrorCode.PARSE_ERROR, 400),
    (LayerNotFoundError("bridges", ["roads"]), ErrorCode.LAYER_NOT_FOUND, 400),
    (EmptyScopeError("none"), ErrorCode.EMPTY_SCOPE, 400),
    (NotDraftError("IV-1", "published"), ErrorCode.NOT_DRAFT, 400),
    (ScopeLockedError("fixed"), ErrorCode.SCOPE_LOCKED, 409),
    (JobAlreadyRunningError("IV-1"), ErrorCode.JOB_ALREADY_RUNNING, 409),
    (ImportsFrozenError(), ErrorCode.IMPORTS_FROZEN, 403),
    (VersionNotFoundError("IV-1"), ErrorCode.VERSION_NOT_FOUND, 404),
    (ArtifactNotFoundError("diffs/IV-1.json"), ErrorCode.ARTIFACT_NOT_FOUND, 404),
    (ValidationNotRunError("IV-1"), ErrorCode.VALIDATION_NOT_RUN, 404),
    (SerializationConflictError("conflict"), ErrorCode.SERIALIZATION_CONFLICT, 503),
])
def test_exception_mapping(error, code, status):
    assert error_code_for(error) == code
    assert get_http_status_code(code) == status


def test_unknown_exception_is_unexpected():
    assert error_code_for(RuntimeError("boom")) == ErrorCode.UNEXPECTED_ERROR
    assert get_http_status_code(ErrorCode.UNEXPECTED_ERROR) == 500


def test_only_infrastructure_errors_are_retryable():
    assert is_retryable(ErrorCode.SERIALIZATION_CONFLICT)
    assert not is_retryable(ErrorCode.NOT_DRAFT)
    assert not is_retryable(ErrorCode.VALIDATION_FAILED)


def test_error_envelope():
    body = create_error_response(ErrorCode.NOT_DRAFT, "Version IV-1 is published")
    assert body == {
        "success": False,
        "error": "NOT_DRAFT",
        "message": "Version IV-1 is published",
        "retryable": False,
        "httpStatus": 400,
    }
