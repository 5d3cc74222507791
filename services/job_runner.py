# ============================================================================
# IMPORT VERSIONING - JOB RUNNER
# ============================================================================
# STATUS: Service - background execution of validation, publish and rollback
# PURPOSE: Pollable job records, per-version exclusion, progress and lease reaping
# EXPORTS: JobRunner, JobHandler
# DEPENDENCIES: concurrent.futures, threading
# ============================================================================
"""
Job Runner.

A job is submitted synchronously (the caller gets the pending record at
once) and executed on a bounded thread pool. Lifecycle:

    pending -> running -> completed (result_summary set)
                       -> failed    (error_message set)

The terminal transition happens exactly once. Failed jobs are never
retried automatically; a retry is a new submission.

Per-version exclusion is layered:
    1. an in-process lock per version id serializes check-and-create
    2. the version row is locked FOR UPDATE while the active job is checked
    3. a partial unique index rejects a second pending/running row

Lease:
    Every progress report refreshes heartbeat_at. A pending/running job
    not executing in this process whose heartbeat is older than
    lease_seconds is failed with "lease expired". The reaper runs at
    service start and before each submission.
"""

import threading
import weakref
from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta
from typing import Callable, Dict, List, Optional, Set

from core.logic import can_job_transition, is_job_terminal
from core.models import (
    ImportJob, ImportVersion, JobStatus, JobType, PublishResult, RollbackResult,
    ValidationResult, VersionStatus
)
from core.utils import generate_job_id, utc_now
from exceptions import (
    ContractViolationError, EmptyScopeError, ImportsFrozenError, JobAlreadyRunningError,
    JobNotFoundError, NoSnapshotError, NotDraftError, NotPublishedError,
    ValidationFailedError, VersionNotFoundError
)
from infrastructure.interface_repository import UnitOfWork
from util_logger import LoggerFactory, ComponentType


logger = LoggerFactory.create_logger(ComponentType.JOB, "JobRunner")

# handler(version_id, on_progress, requested_by) -> typed result
JobHandler = Callable[[str, Callable[[int], None], Optional[str]], object]

_RESULT_TYPES = {
    JobType.VALIDATION: ValidationResult,
    JobType.PUBLISH: PublishResult,
    JobType.ROLLBACK: RollbackResult,
}

LEASE_EXPIRED_MESSAGE = "Job lease expired: no heartbeat for {seconds}s"


class JobRunner:
    """
    Submit and track import jobs.

    Usage:
        runner = JobRunner(uow, handlers, imports_frozen=config.imports.imports_frozen)
        job = runner.submit("IV-3f9a1c07", JobType.PUBLISH, requested_by="alice")
        job = runner.get_job(job.job_id)   # poll
    """

    def __init__(
        self,
        uow: UnitOfWork,
        handlers: Dict[JobType, JobHandler],
        imports_frozen: bool = False,
        lease_seconds: int = 900,
        max_workers: int = 4,
        executor: Optional[ThreadPoolExecutor] = None
    ):
        self.uow = uow
        self.handlers = dict(handlers)
        self.imports_frozen = imports_frozen
        self.lease_seconds = lease_seconds
        self.executor = executor or ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="import-job"
        )
        # Entries vanish once no submit holds or waits on the lock
        self._locks: "weakref.WeakValueDictionary[str, threading.Lock]" = weakref.WeakValueDictionary()
        self._locks_guard = threading.Lock()
        self._executing: Set[str] = set()

    def _version_lock(self, version_id: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(version_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[version_id] = lock
            return lock

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    def submit(self, version_id: str, job_type: JobType, requested_by: Optional[str] = None) -> ImportJob:
        """
        Create a pending job and schedule it.

        Raises:
            ImportsFrozenError: publish while imports are frozen
            VersionNotFoundError: unknown version
            NotDraftError, NotPublishedError, NoSnapshotError, EmptyScopeError,
            ValidationFailedError: the version cannot take this job type now
            JobAlreadyRunningError: the version has a pending or running job
        """
        job_type = JobType(job_type)
        if job_type == JobType.PUBLISH and self.imports_frozen:
            logger.warning(f"🧊 Publish of {version_id} rejected: imports are frozen")
            raise ImportsFrozenError()
        handler = self.handlers.get(job_type)
        if handler is None:
            raise ContractViolationError(f"No handler registered for job type {job_type.value}")

        with self._version_lock(version_id):
            self.reap_stale_jobs(version_id)
            with self.uow.transaction() as tx:
                version = tx.versions.get_version(version_id, for_update=True)
                if version is None:
                    raise VersionNotFoundError(version_id)
                self._check_submittable(tx, version, job_type)
                active = tx.jobs.get_active_job(version_id)
                if active is not None:
                    raise JobAlreadyRunningError(version_id, active.job_id)
                job = tx.jobs.create_job(ImportJob(
                    job_id=generate_job_id(),
                    version_id=version_id,
                    job_type=job_type,
                    status=JobStatus.PENDING,
                    heartbeat_at=utc_now(),
                ))

        logger.info(f"📋 Submitted {job_type.value} job {job.job_id} for {version_id}")
        self.executor.submit(self._execute, job, handler, requested_by)
        return job

    @staticmethod
    def _check_submittable(tx, version: ImportVersion, job_type: JobType) -> None:
        """State errors are raised here, before any job row exists."""
        version_id = version.version_id
        if job_type in (JobType.VALIDATION, JobType.PUBLISH) and not version.is_configured:
            raise EmptyScopeError(f"Version {version_id} has no scope yet; configure it first")

        if job_type == JobType.PUBLISH:
            if not version.is_draft:
                raise NotDraftError(version_id, version.status.value)
            # A completed validation that found errors blocks publish up front
            last = tx.jobs.get_latest_job(version_id, JobType.VALIDATION, JobStatus.COMPLETED)
            if last is not None and isinstance(last.result_summary, ValidationResult) \
                    and not last.result_summary.valid:
                raise ValidationFailedError(version_id, len(last.result_summary.errors))

        elif job_type == JobType.ROLLBACK:
            if version.status != VersionStatus.PUBLISHED:
                raise NotPublishedError(version_id, version.status.value)
            if not version.snapshot_path:
                raise NoSnapshotError(f"Version {version_id} has no snapshot for rollback")

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def _execute(self, job: ImportJob, handler: JobHandler, requested_by: Optional[str]) -> None:
        job_logger = LoggerFactory.create_with_context(
            ComponentType.JOB, "JobRunner",
            version_id=job.version_id, job_id=job.job_id, job_type=job.job_type.value,
        )
        self._executing.add(job.job_id)
        try:
            now = utc_now()
            if not self._transition(job.job_id, JobStatus.RUNNING, {
                "started_at": now, "heartbeat_at": now,
            }):
                return
            job_logger.info(f"▶️ Running {job.job_type.value} job")

            try:
                result = handler(
                    job.version_id,
                    lambda percent: self.report_progress(job.job_id, percent),
                    requested_by,
                )
                expected = _RESULT_TYPES[job.job_type]
                if not isinstance(result, expected):
                    raise ContractViolationError(
                        f"{job.job_type.value} handler returned {type(result).__name__}, "
                        f"expected {expected.__name__}"
                    )
            except Exception as e:
                job_logger.error(f"❌ Job failed: {type(e).__name__}: {e}")
                self._transition(job.job_id, JobStatus.FAILED, {
                    "error_message": str(e) or type(e).__name__,
                    "completed_at": utc_now(),
                })
                return

            self._transition(job.job_id, JobStatus.COMPLETED, {
                "progress": 100,
                "result_summary": result,
                "completed_at": utc_now(),
                "heartbeat_at": utc_now(),
            })
            job_logger.info("✅ Job completed")
        finally:
            self._executing.discard(job.job_id)

    def _transition(self, job_id: str, target: JobStatus, updates: dict) -> bool:
        """Move a job to ``target`` unless that is no longer allowed (e.g. reaped)."""
        with self.uow.transaction() as tx:
            current = tx.jobs.get_job(job_id)
            if current is None:
                raise JobNotFoundError(job_id)
            if not can_job_transition(current.status, target):
                logger.warning(
                    f"⚠️ Job {job_id} is {current.status.value}; not moving to {target.value}"
                )
                return False
            tx.jobs.update_job(job_id, {"status": target, **updates})
        return True

    # ------------------------------------------------------------------
    # Polling and progress
    # ------------------------------------------------------------------

    def get_job(self, job_id: str) -> ImportJob:
        with self.uow.transaction() as tx:
            job = tx.jobs.get_job(job_id)
        if job is None:
            raise JobNotFoundError(job_id)
        return job

    def report_progress(self, job_id: str, percent: int, status: Optional[JobStatus] = None) -> ImportJob:
        """
        Record progress; never decreases it and refreshes the heartbeat.

        Only the runner completes or fails a job, so ``status`` may only
        be RUNNING. Terminal jobs are returned unchanged.

        Raises:
            ContractViolationError: status is anything but RUNNING
        """
        if status is not None and JobStatus(status) != JobStatus.RUNNING:
            raise ContractViolationError(
                f"report_progress cannot move job {job_id} to {JobStatus(status).value}"
            )
        with self.uow.transaction() as tx:
            job = tx.jobs.get_job(job_id)
            if job is None:
                raise JobNotFoundError(job_id)
            if is_job_terminal(job.status):
                return job
            updates = {
                "progress": max(job.progress, min(100, max(0, int(percent)))),
                "heartbeat_at": utc_now(),
            }
            if status is not None and status != job.status and can_job_transition(job.status, status):
                updates["status"] = status
            return tx.jobs.update_job(job_id, updates)

    def reap_stale_jobs(self, version_id: Optional[str] = None) -> List[str]:
        """
        Fail pending/running jobs whose lease expired.

        Returns:
            Ids of jobs that were failed
        """
        cutoff = utc_now() - timedelta(seconds=self.lease_seconds)
        reaped = []
        with self.uow.transaction() as tx:
            for job in tx.jobs.list_stale_jobs(cutoff):
                if version_id is not None and job.version_id != version_id:
                    continue
                if job.job_id in self._executing:
                    continue
                tx.jobs.update_job(job.job_id, {
                    "status": JobStatus.FAILED,
                    "error_message": LEASE_EXPIRED_MESSAGE.format(seconds=self.lease_seconds),
                    "completed_at": utc_now(),
                })
                reaped.append(job.job_id)
        if reaped:
            logger.warning(f"🧹 Failed {len(reaped)} job(s) with expired lease: {reaped}")
        return reaped

    def shutdown(self, wait: bool = True) -> None:
        self.executor.shutdown(wait=wait)
