"""
Exhaustive state machine transition tests.

Anti-overfitting: every (current, target) enum pair is tested.
No cherry-picked transitions - all combinations covered.
"""

import pytest

from core.models.enums import JobStatus, VersionStatus
from core.logic.transitions import (
    can_delete_version,
    can_job_transition,
    can_version_transition,
    get_job_active_states,
    get_job_terminal_states,
    is_job_terminal,
)


# ============================================================================
# DATA: Expected transition maps (source of truth for tests)
# ============================================================================

_VERSION_TRANSITIONS = {
    VersionStatus.DRAFT: {VersionStatus.PUBLISHED},
    VersionStatus.PUBLISHED: {VersionStatus.ARCHIVED},
    VersionStatus.ARCHIVED: set(),
    VersionStatus.ROLLED_BACK: set(),
}

_JOB_TRANSITIONS = {
    JobStatus.PENDING: {JobStatus.PENDING, JobStatus.RUNNING, JobStatus.FAILED},
    JobStatus.RUNNING: {JobStatus.RUNNING, JobStatus.COMPLETED, JobStatus.FAILED},
    JobStatus.COMPLETED: set(),
    JobStatus.FAILED: set(),
}

_VERSION_PAIRS = [(c, t) for c in VersionStatus for t in VersionStatus]
_JOB_PAIRS = [(c, t) for c in JobStatus for t in JobStatus]


# ============================================================================
# VERSION TRANSITIONS
# ============================================================================

class TestVersionTransitions:

    @pytest.mark.parametrize("current,target", _VERSION_PAIRS)
    def test_transition_matrix(self, current, target):
        expected = target in _VERSION_TRANSITIONS[current]
        assert can_version_transition(current, target) is expected

    @pytest.mark.parametrize("current", list(VersionStatus))
    def test_rolled_back_only_from_published_via_rollback(self, current):
        expected = current == VersionStatus.PUBLISHED
        assert can_version_transition(current, VersionStatus.ROLLED_BACK, via_rollback=True) is expected

    def test_rollback_target_requires_rollback_executor(self):
        assert can_version_transition(VersionStatus.PUBLISHED, VersionStatus.ROLLED_BACK) is False

    @pytest.mark.parametrize("status", list(VersionStatus))
    def test_nothing_returns_to_draft(self, status):
        assert can_version_transition(status, VersionStatus.DRAFT, via_rollback=True) is False

    @pytest.mark.parametrize("status", list(VersionStatus))
    def test_only_drafts_are_deletable(self, status):
        assert can_delete_version(status) is (status == VersionStatus.DRAFT)


# ============================================================================
# JOB TRANSITIONS
# ============================================================================

class TestJobTransitions:

    @pytest.mark.parametrize("current,target", _JOB_PAIRS)
    def test_transition_matrix(self, current, target):
        expected = target in _JOB_TRANSITIONS[current]
        assert can_job_transition(current, target) is expected

    def test_terminal_and_active_partition_all_statuses(self):
        terminal = set(get_job_terminal_states())
        active = set(get_job_active_states())
        assert terminal.isdisjoint(active)
        assert terminal | active == set(JobStatus)

    @pytest.mark.parametrize("status", list(JobStatus))
    def test_terminal_states_have_no_exit(self, status):
        if is_job_terminal(status):
            assert not any(can_job_transition(status, t) for t in JobStatus)
