"""
Root conftest.py - sys.path, env vars, shared fixtures.

Sets up the test environment so all production code can be imported
without a database or Azure credentials. Services are wired against the
in-memory unit of work and a LocalArtifactStore under tmp_path.
"""

import os
import sys

import pytest

# Add project root to sys.path so 'core', 'services', 'config', etc. are importable
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)


@pytest.fixture(autouse=True, scope="session")
def set_minimal_env_vars():
    """
    Set minimal environment variables so configuration loads without
    real infrastructure.
    """
    defaults = {
        "POSTGIS_HOST": "localhost",
        "POSTGIS_DATABASE": "testdb",
        "POSTGIS_USER": "test",
        "POSTGIS_PASSWORD": "test",
        "POSTGIS_SCHEMA": "geo",
        "APP_SCHEMA": "app",
        "ARTIFACT_BACKEND": "local",
        "ENVIRONMENT": "dev",
    }
    for key, value in defaults.items():
        os.environ.setdefault(key, value)


@pytest.fixture
def import_config():
    from config import ImportConfig
    return ImportConfig()


@pytest.fixture
def uow():
    from tests.fakes.in_memory import InMemoryUnitOfWork
    return InMemoryUnitOfWork()


@pytest.fixture
def store(tmp_path):
    from infrastructure.artifact_store import LocalArtifactStore
    return LocalArtifactStore(str(tmp_path / "artifacts"))


@pytest.fixture
def engine(uow, store, import_config):
    """Every service wired together, without the job runner."""
    from tests.factories.model_factories import build_engine
    return build_engine(uow, store, import_config)
