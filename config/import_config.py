"""
Import Engine Configuration.

Settings for the parser, validator, diff engine, publisher and job runner.

Key Settings:
    imports_frozen: Process-wide switch that disables publish
    geometry_tolerance: Coordinate tolerance (degrees) for geometry equality
    serialization_max_retries: Retries for publish/rollback on serialization conflicts
    job_lease_seconds: Heartbeat lease after which a running job is failed

Exports:
    ImportConfig
"""

import os
from typing import List, Optional, Tuple
from pydantic import BaseModel, Field, field_validator

from .defaults import ImportDefaults


def _split_csv(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


class ImportConfig(BaseModel):
    """Import engine configuration."""

    imports_frozen: bool = Field(
        default=ImportDefaults.IMPORTS_FROZEN,
        description="When true, publish submissions are rejected (IMPORTS_FROZEN). "
                    "Upload, validation and preview stay available."
    )

    geometry_tolerance: float = Field(
        default=ImportDefaults.GEOMETRY_TOLERANCE,
        gt=0,
        description="Per-coordinate tolerance in degrees used by the diff engine"
    )

    serialization_max_retries: int = Field(
        default=ImportDefaults.SERIALIZATION_MAX_RETRIES,
        ge=0,
        description="Retries after a serialization conflict before a publish/rollback fails"
    )

    job_max_workers: int = Field(
        default=ImportDefaults.JOB_MAX_WORKERS,
        ge=1,
        description="Thread pool size for background jobs"
    )

    job_lease_seconds: int = Field(
        default=ImportDefaults.JOB_LEASE_SECONDS,
        gt=0,
        description="A pending/running job without a heartbeat for this long is failed"
    )

    id_property: str = Field(
        default=ImportDefaults.ID_PROPERTY,
        description="Feature property holding the stable identifier"
    )

    required_attributes: List[str] = Field(
        default_factory=list,
        description="Properties every feature must carry (REQUIRED_ATTRIBUTES, comma separated)"
    )

    allowed_data_sources: List[str] = Field(
        default_factory=lambda: list(ImportDefaults.DATA_SOURCES),
        description="Accepted dataSource tags"
    )

    validation_bounds: Optional[Tuple[float, float, float, float]] = Field(
        default=None,
        description="Optional sanity bounds minx,miny,maxx,maxy; features outside get a warning "
                    "(VALIDATION_BOUNDS, e.g. '122,20,154,46')"
    )

    max_upload_mb: float = Field(
        default=ImportDefaults.MAX_UPLOAD_MB,
        gt=0,
        description="Upload size limit in megabytes"
    )

    @field_validator("validation_bounds")
    @classmethod
    def _check_bounds(cls, value):
        if value is not None:
            minx, miny, maxx, maxy = value
            if minx >= maxx or miny >= maxy:
                raise ValueError(f"validation_bounds must satisfy min < max, got {value}")
        return value

    def debug_dict(self) -> dict:
        return self.model_dump()

    @classmethod
    def from_environment(cls) -> "ImportConfig":
        bounds = _split_csv(os.environ.get("VALIDATION_BOUNDS"))
        data_sources = _split_csv(os.environ.get("ALLOWED_DATA_SOURCES"))
        return cls(
            imports_frozen=os.environ.get("IMPORTS_FROZEN", "false").lower() == "true",
            geometry_tolerance=float(os.environ.get(
                "GEOMETRY_TOLERANCE", str(ImportDefaults.GEOMETRY_TOLERANCE)
            )),
            serialization_max_retries=int(os.environ.get(
                "SERIALIZATION_MAX_RETRIES", str(ImportDefaults.SERIALIZATION_MAX_RETRIES)
            )),
            job_max_workers=int(os.environ.get("JOB_MAX_WORKERS", str(ImportDefaults.JOB_MAX_WORKERS))),
            job_lease_seconds=int(os.environ.get("JOB_LEASE_SECONDS", str(ImportDefaults.JOB_LEASE_SECONDS))),
            id_property=os.environ.get("ID_PROPERTY", ImportDefaults.ID_PROPERTY),
            required_attributes=_split_csv(os.environ.get("REQUIRED_ATTRIBUTES")),
            allowed_data_sources=data_sources or list(ImportDefaults.DATA_SOURCES),
            validation_bounds=tuple(float(b) for b in bounds) if bounds else None,
            max_upload_mb=float(os.environ.get("MAX_UPLOAD_MB", str(ImportDefaults.MAX_UPLOAD_MB))),
        )
