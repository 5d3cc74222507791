# ============================================================================
# IMPORT VERSIONING - HTTP ROUTES
# ============================================================================
# STATUS: Trigger layer - FastAPI router for /api/import-versions
# PURPOSE: Thin HTTP adapter over ImportVersionService and JobRunner
# EXPORTS: router, register_exception_handlers
# DEPENDENCIES: fastapi, python-multipart (uploads)
# ============================================================================
"""
Import Version Routes.

Every handler is a thin adapter: parse the request, call one service
method, wrap the result as ``{"data": ...}``. Errors are exceptions;
``register_exception_handlers`` maps them to the standard error envelope
through core.errors.

Synchronous endpoints return errors immediately. validate, publish and
rollback return the pending job; later failures surface on the job.

Endpoints (prefix /api/import-versions):
    POST   /upload                 multipart "file"
    GET    /                       ?status&limit&offset
    GET    /jobs/{job_id}
    GET    /{version_id}
    DELETE /{version_id}
    GET    /{version_id}/layers
    POST   /{version_id}/configure
    PATCH  /{version_id}/notes
    POST   /{version_id}/validate
    GET    /{version_id}/validation
    GET    /{version_id}/preview
    POST   /{version_id}/publish
    POST   /{version_id}/rollback
    GET    /{version_id}/history
"""

from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, File, Form, Query, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from core.errors import ErrorCode, create_error_response, error_code_for, get_http_status_code
from core.models import DataSource, JobType, VersionStatus
from exceptions import BusinessLogicError, ConfigurationError, ContractViolationError
from services import ImportVersionService, JobRunner
from util_logger import LoggerFactory, ComponentType


logger = LoggerFactory.create_logger(ComponentType.TRIGGER, "ImportVersionRoutes")

router = APIRouter(prefix="/api/import-versions", tags=["import-versions"])


# ============================================================================
# REQUEST BODIES
# ============================================================================

class _CamelRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ConfigureRequest(_CamelRequest):
    layer_name: Optional[str] = None
    source_crs: Optional[str] = Field(default=None, alias="sourceCRS")
    default_data_source: Optional[DataSource] = None
    regional_refresh: Optional[bool] = None


class NotesRequest(_CamelRequest):
    notes: Optional[str] = None


class JobRequest(_CamelRequest):
    requested_by: Optional[str] = None


# ============================================================================
# DEPENDENCIES
# ============================================================================

def get_version_service(request: Request) -> ImportVersionService:
    return request.app.state.version_service


def get_job_runner(request: Request) -> JobRunner:
    return request.app.state.job_runner


# ============================================================================
# UPLOAD / CONFIGURE
# ============================================================================

@router.post("/upload")
def upload_file(
    file: UploadFile = File(...),
    uploaded_by: Optional[str] = Form(default=None, alias="uploadedBy"),
    service: ImportVersionService = Depends(get_version_service),
):
    data = file.file.read()
    version = service.upload(data, file.filename or "", uploaded_by=uploaded_by)
    return {"data": version.to_api()}


@router.get("/{version_id}/layers")
def list_layers(version_id: str, service: ImportVersionService = Depends(get_version_service)):
    layers = service.list_layers(version_id)
    return {"data": [layer.model_dump(mode="json", by_alias=True) for layer in layers]}


@router.post("/{version_id}/configure")
def configure_version(
    version_id: str,
    body: ConfigureRequest,
    service: ImportVersionService = Depends(get_version_service),
):
    version = service.configure(
        version_id,
        layer_name=body.layer_name,
        source_crs=body.source_crs,
        default_data_source=body.default_data_source,
        regional_refresh=body.regional_refresh,
    )
    return {"data": version.to_api()}


# ============================================================================
# LEDGER
# ============================================================================

@router.get("/")
def list_versions(
    status: Optional[VersionStatus] = Query(default=None),
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    service: ImportVersionService = Depends(get_version_service),
):
    versions, total = service.list_versions(status=status, limit=limit, offset=offset)
    return {"data": [v.to_api() for v in versions], "total": total}


@router.get("/jobs/{job_id}")
def get_job(job_id: str, runner: JobRunner = Depends(get_job_runner)):
    return {"data": runner.get_job(job_id).to_api()}


@router.get("/{version_id}")
def get_version(version_id: str, service: ImportVersionService = Depends(get_version_service)):
    return {"data": service.get_version(version_id).to_api()}


@router.delete("/{version_id}")
def delete_version(version_id: str, service: ImportVersionService = Depends(get_version_service)):
    service.delete_draft(version_id)
    return {"success": True}


@router.patch("/{version_id}/notes")
def update_notes(
    version_id: str,
    body: NotesRequest,
    service: ImportVersionService = Depends(get_version_service),
):
    return {"data": service.update_notes(version_id, body.notes).to_api()}


# ============================================================================
# VALIDATION / PREVIEW / HISTORY
# ============================================================================

@router.get("/{version_id}/validation")
def get_validation(version_id: str, service: ImportVersionService = Depends(get_version_service)):
    result = service.get_validation_result(version_id)
    return {"data": result.model_dump(mode="json", by_alias=True)}


@router.get("/{version_id}/preview")
def preview_diff(version_id: str, service: ImportVersionService = Depends(get_version_service)):
    diff = service.preview_diff(version_id)
    return {"data": diff.model_dump(mode="json", by_alias=True)}


@router.get("/{version_id}/history")
def get_history(version_id: str, service: ImportVersionService = Depends(get_version_service)):
    diff = service.get_applied_history(version_id)
    return {"data": diff.model_dump(mode="json", by_alias=True)}


# ============================================================================
# JOBS
# ============================================================================

def _submit(runner: JobRunner, version_id: str, job_type: JobType, body: Optional[JobRequest]):
    job = runner.submit(version_id, job_type, requested_by=body.requested_by if body else None)
    return {"data": job.to_api()}


@router.post("/{version_id}/validate")
def validate_version(
    version_id: str,
    body: Optional[JobRequest] = None,
    runner: JobRunner = Depends(get_job_runner),
):
    return _submit(runner, version_id, JobType.VALIDATION, body)


@router.post("/{version_id}/publish")
def publish_version(
    version_id: str,
    body: Optional[JobRequest] = None,
    runner: JobRunner = Depends(get_job_runner),
):
    return _submit(runner, version_id, JobType.PUBLISH, body)


@router.post("/{version_id}/rollback")
def rollback_version(
    version_id: str,
    body: Optional[JobRequest] = None,
    runner: JobRunner = Depends(get_job_runner),
):
    return _submit(runner, version_id, JobType.ROLLBACK, body)


# ============================================================================
# ERROR MAPPING
# ============================================================================

def _error_response(code: ErrorCode, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=get_http_status_code(code),
        content=create_error_response(code, message),
    )


async def _business_error_handler(request: Request, error: BusinessLogicError) -> JSONResponse:
    code = error_code_for(error)
    status = get_http_status_code(code)
    if status >= 500:
        logger.error(f"❌ {request.method} {request.url.path}: {type(error).__name__}: {error}")
    else:
        logger.warning(f"⚠️ {request.method} {request.url.path}: {code.value}: {error}")
    return _error_response(code, str(error))


async def _request_validation_handler(request: Request, error: RequestValidationError) -> JSONResponse:
    details = "; ".join(
        f"{'.'.join(str(p) for p in e.get('loc', ()))}: {e.get('msg')}" for e in error.errors()
    )
    logger.warning(f"⚠️ {request.method} {request.url.path}: invalid request: {details}")
    return _error_response(ErrorCode.INVALID_PARAMETER, f"Invalid request: {details}")


async def _internal_error_handler(request: Request, error: Exception) -> JSONResponse:
    logger.error(
        f"❌ {request.method} {request.url.path}: {type(error).__name__}: {error}",
        exc_info=True,
    )
    return _error_response(error_code_for(error), str(error) or type(error).__name__)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(BusinessLogicError, _business_error_handler)
    app.add_exception_handler(RequestValidationError, _request_validation_handler)
    app.add_exception_handler(ContractViolationError, _internal_error_handler)
    app.add_exception_handler(ConfigurationError, _internal_error_handler)
