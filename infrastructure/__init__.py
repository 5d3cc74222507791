"""
Infrastructure Package - Lazy Loading Implementation.

Repository, unit of work and artifact store implementations. Imports are
deferred until a name is first accessed so that importing the package
does not read configuration, construct Azure credentials or pull in
psycopg before the service has started.

Usage:
    from infrastructure import RepositoryFactory

    uow = RepositoryFactory.create_unit_of_work()
    store = RepositoryFactory.create_artifact_store()
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .factory import RepositoryFactory as _RepositoryFactory
    from .interface_repository import (
        IVersionRepository as _IVersionRepository,
        IJobRepository as _IJobRepository,
        IProductionRepository as _IProductionRepository,
        Transaction as _Transaction,
        UnitOfWork as _UnitOfWork,
    )
    from .artifact_store import (
        IArtifactStore as _IArtifactStore,
        LocalArtifactStore as _LocalArtifactStore,
        BlobArtifactStore as _BlobArtifactStore,
    )
    from .postgresql import PostgreSQLUnitOfWork as _PostgreSQLUnitOfWork


_LAZY = {
    "RepositoryFactory": ".factory",
    "IVersionRepository": ".interface_repository",
    "IJobRepository": ".interface_repository",
    "IProductionRepository": ".interface_repository",
    "Transaction": ".interface_repository",
    "UnitOfWork": ".interface_repository",
    "IArtifactStore": ".artifact_store",
    "LocalArtifactStore": ".artifact_store",
    "BlobArtifactStore": ".artifact_store",
    "PostgreSQLUnitOfWork": ".postgresql",
    "PostgreSQLTransaction": ".postgresql",
}


def __getattr__(name: str):
    """
    Lazy import mechanism - only imports when actually accessed.
    """
    module_name = _LAZY.get(name)
    if module_name is None:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
    import importlib
    module = importlib.import_module(module_name, __name__)
    return getattr(module, name)


__all__ = list(_LAZY)
