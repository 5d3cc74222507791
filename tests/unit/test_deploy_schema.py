"""
Schema deployment script tests - wiring to the unit of work and exit codes.
"""

import pytest

import deploy_schema
from config import AppConfig, DatabaseConfig
from exceptions import DatabaseError


class _RecordingUnitOfWork:

    def __init__(self, error=None):
        self.calls = 0
        self.error = error

    def deploy_schema(self):
        self.calls += 1
        if self.error:
            raise self.error
        return 7


@pytest.fixture
def app_config():
    return AppConfig(database=DatabaseConfig(host="db.internal", database="assets", user="etl", password="x"))


def test_deploy_uses_the_configured_unit_of_work(monkeypatch, app_config):
    uow = _RecordingUnitOfWork()
    seen = []

    def create(config):
        seen.append(config)
        return uow

    monkeypatch.setattr(deploy_schema.RepositoryFactory, "create_unit_of_work", staticmethod(create))

    assert deploy_schema.deploy(app_config) == 7
    assert uow.calls == 1
    assert seen == [app_config]


def test_main_exit_codes(monkeypatch, app_config):
    monkeypatch.setattr(deploy_schema, "get_config", lambda: app_config)

    monkeypatch.setattr(
        deploy_schema.RepositoryFactory, "create_unit_of_work", staticmethod(lambda config: _RecordingUnitOfWork())
    )
    assert deploy_schema.main() == 0

    failing = _RecordingUnitOfWork(error=DatabaseError("connection refused"))
    monkeypatch.setattr(
        deploy_schema.RepositoryFactory, "create_unit_of_work", staticmethod(lambda config: failing)
    )
    assert deploy_schema.main() == 1
