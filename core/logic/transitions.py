"""
State Transition Logic for Import Versions and Import Jobs.

Contains business rules for valid state transitions.
Separated from data models for clean architecture.

Exports:
    can_version_transition: Check if a version status transition is valid
    can_delete_version: Only drafts may be deleted
    can_job_transition: Check if a job status transition is valid
    get_job_terminal_states / get_job_active_states
    is_job_terminal

Dependencies:
    core.models.enums: VersionStatus, JobStatus
"""

from typing import List

from ..models.enums import JobStatus, VersionStatus


def can_version_transition(
    current: VersionStatus,
    target: VersionStatus,
    via_rollback: bool = False
) -> bool:
    """
    Check if a version can transition from current to target status.

    The graph is acyclic:
        draft -> published -> archived
        published -> rolled_back   (rollback executor only)

    Args:
        current: Current version status
        target: Target version status
        via_rollback: True only when called by the rollback executor

    Returns:
        True if transition is valid, False otherwise
    """
    if current == target:
        return False

    if current == VersionStatus.PUBLISHED and target == VersionStatus.ROLLED_BACK:
        return via_rollback

    transitions = {
        VersionStatus.DRAFT: [VersionStatus.PUBLISHED],
        VersionStatus.PUBLISHED: [VersionStatus.ARCHIVED],
        VersionStatus.ARCHIVED: [],  # Terminal state
        VersionStatus.ROLLED_BACK: []  # Terminal state
    }

    return target in transitions.get(current, [])


def can_delete_version(status: VersionStatus) -> bool:
    return status == VersionStatus.DRAFT


def can_job_transition(current: JobStatus, target: JobStatus) -> bool:
    """
    Check if a job can transition from current to target status.

    Same status is allowed (progress updates while running).

    Args:
        current: Current job status
        target: Target job status

    Returns:
        True if transition is valid, False otherwise
    """
    if current == target:
        return current in get_job_active_states()

    transitions = {
        JobStatus.PENDING: [JobStatus.RUNNING, JobStatus.FAILED],
        JobStatus.RUNNING: [JobStatus.COMPLETED, JobStatus.FAILED],
        JobStatus.COMPLETED: [],  # Terminal state
        JobStatus.FAILED: []  # Terminal state
    }

    return target in transitions.get(current, [])


def get_job_terminal_states() -> List[JobStatus]:
    return [JobStatus.COMPLETED, JobStatus.FAILED]


def get_job_active_states() -> List[JobStatus]:
    """Statuses that occupy a version's single job slot."""
    return [JobStatus.PENDING, JobStatus.RUNNING]


def is_job_terminal(status: JobStatus) -> bool:
    return status in get_job_terminal_states()
