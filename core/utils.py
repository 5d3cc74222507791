"""
Core utility functions.

Identifier generation and timestamp helpers used by the ledger.

Exports:
    generate_version_id: IV-xxxxxxxx
    generate_job_id: IJ-xxxxxxxx
    utc_now: Timezone-aware current time
"""

import secrets
from datetime import datetime, timezone


VERSION_ID_PREFIX = "IV-"
JOB_ID_PREFIX = "IJ-"


def _short_token() -> str:
    return secrets.token_hex(4)


def generate_version_id() -> str:
    """
    Generate a random import version id.

    Example:
        >>> generate_version_id()
        'IV-3f9a1c07'
    """
    return f"{VERSION_ID_PREFIX}{_short_token()}"


def generate_job_id() -> str:
    """Generate a random import job id (``IJ-`` + 8 hex chars)."""
    return f"{JOB_ID_PREFIX}{_short_token()}"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)
