"""
Import Job Model - one asynchronous unit of work against a version.

The job record is what clients poll. It is immutable once terminal.

Exports:
    ImportJob
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from core.utils import utc_now
from .enums import JobStatus, JobType
from .results import JobResult


class ImportJob(BaseModel):
    """
    Database representation of an import job.

    ``progress`` is 0-100 and never decreases. ``heartbeat_at`` is
    refreshed on every progress report; the job runner's reaper fails
    jobs whose heartbeat is older than the configured lease.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    job_id: str = Field(..., alias="id")
    version_id: str
    job_type: JobType
    status: JobStatus = JobStatus.PENDING
    progress: int = Field(default=0, ge=0, le=100)

    created_at: datetime = Field(default_factory=utc_now)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    heartbeat_at: Optional[datetime] = None

    error_message: Optional[str] = None
    result_summary: Optional[JobResult] = None

    @property
    def is_active(self) -> bool:
        return self.status in (JobStatus.PENDING, JobStatus.RUNNING)

    @property
    def is_terminal(self) -> bool:
        return self.status in (JobStatus.COMPLETED, JobStatus.FAILED)

    def to_api(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)
