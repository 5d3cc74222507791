"""
Config test fixtures - clean environment via monkeypatch.
"""

import pytest


@pytest.fixture
def clean_env(monkeypatch):
    """Remove all env vars that config modules might read, for isolation."""
    env_vars_to_clear = [
        "IMPORTS_FROZEN", "GEOMETRY_TOLERANCE", "SERIALIZATION_MAX_RETRIES",
        "JOB_MAX_WORKERS", "JOB_LEASE_SECONDS", "ID_PROPERTY", "REQUIRED_ATTRIBUTES",
        "ALLOWED_DATA_SOURCES", "VALIDATION_BOUNDS", "MAX_UPLOAD_MB",
        "ARTIFACT_BACKEND", "ARTIFACT_ROOT", "ARTIFACT_CONTAINER",
        "USE_MANAGED_IDENTITY", "PORT", "HOST",
    ]
    for var in env_vars_to_clear:
        monkeypatch.delenv(var, raising=False)
    return monkeypatch
