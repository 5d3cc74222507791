"""
Service Layer - Import Versioning.

Job handlers are registered here explicitly. No decorators, no
auto-discovery: if a job type is not in the dict build_job_handlers
returns, the job runner rejects it.

Handler contract (enforced by JobRunner):
    def handler(version_id: str, on_progress: Callable[[int], None],
                requested_by: Optional[str]) -> ValidationResult | PublishResult | RollbackResult

    - Raise on failure; the runner records str(error) on the job
    - Return the typed result for the job type; anything else fails the job

Exports:
    ImportVersionService, ImportValidator, DiffEngine, SnapshotManager,
    Publisher, RollbackExecutor, JobRunner, build_job_handlers
"""

from typing import Dict

from core.models import JobType
from .import_validator import ImportValidator, ValidationCode
from .diff_engine import DiffEngine
from .snapshot_manager import Snapshot, SnapshotManager
from .import_version_service import ImportVersionService
from .publisher import Publisher
from .rollback_executor import RollbackExecutor
from .job_runner import JobHandler, JobRunner


def build_job_handlers(
    version_service: ImportVersionService,
    publisher: Publisher,
    rollback_executor: RollbackExecutor
) -> Dict[JobType, JobHandler]:
    """Map every job type to the service call that performs it."""
    return {
        JobType.VALIDATION: lambda version_id, on_progress, requested_by: (
            version_service.run_validation(version_id, on_progress)
        ),
        JobType.PUBLISH: lambda version_id, on_progress, requested_by: (
            publisher.publish(version_id, requested_by, on_progress)
        ),
        JobType.ROLLBACK: lambda version_id, on_progress, requested_by: (
            rollback_executor.rollback(version_id, on_progress)
        ),
    }


__all__ = [
    'ImportValidator',
    'ValidationCode',
    'DiffEngine',
    'Snapshot',
    'SnapshotManager',
    'ImportVersionService',
    'Publisher',
    'RollbackExecutor',
    'JobHandler',
    'JobRunner',
    'build_job_handlers',
]
