# ============================================================================
# IMPORT VERSIONING - HTTP SERVICE ENTRY POINT
# ============================================================================
# STATUS: Entry point - FastAPI application
# PURPOSE: Wire repositories, services and the job runner; serve the HTTP API
# EXPORTS: create_app
# DEPENDENCIES: fastapi, uvicorn
# ============================================================================
"""
Import Versioning Service.

Run:
    uvicorn import_service:create_app --factory --host 0.0.0.0 --port 8080
    python import_service.py

Lifespan:
    startup   - fail jobs whose lease expired while no process owned them
    shutdown  - wait for running jobs to finish

Health:
    /livez   - process is up
    /readyz  - ledger database answers (503 otherwise)

Schema:
    python deploy_schema.py   (idempotent; run before first start)

Tests build their own app with in-memory repositories:
    app = create_app(uow=fake_uow, store=LocalArtifactStore(tmp_path), import_config=ImportConfig())
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from config import ImportConfig, get_config
from exceptions import DatabaseError
from infrastructure import IArtifactStore, RepositoryFactory, UnitOfWork
from routes import import_versions_router, register_exception_handlers
from services import (
    DiffEngine, ImportVersionService, JobRunner, Publisher, RollbackExecutor,
    SnapshotManager, build_job_handlers
)
from util_logger import LoggerFactory, ComponentType


logger = LoggerFactory.create_logger(ComponentType.TRIGGER, "ImportService")


def create_app(
    uow: Optional[UnitOfWork] = None,
    store: Optional[IArtifactStore] = None,
    import_config: Optional[ImportConfig] = None
) -> FastAPI:
    """
    Build the FastAPI application.

    Anything not injected comes from get_config() via RepositoryFactory.
    """
    if uow is None or store is None or import_config is None:
        config = get_config()
        uow = uow or RepositoryFactory.create_unit_of_work(config)
        store = store or RepositoryFactory.create_artifact_store(config)
        import_config = import_config or config.imports

    diff_engine = DiffEngine(tolerance=import_config.geometry_tolerance)
    snapshots = SnapshotManager(store)
    version_service = ImportVersionService(uow, store, import_config, diff_engine=diff_engine)
    publisher = Publisher(
        uow, store, version_service, snapshots, diff_engine,
        max_retries=import_config.serialization_max_retries,
    )
    rollback_executor = RollbackExecutor(
        uow, version_service, snapshots,
        max_retries=import_config.serialization_max_retries,
    )
    job_runner = JobRunner(
        uow,
        build_job_handlers(version_service, publisher, rollback_executor),
        imports_frozen=import_config.imports_frozen,
        lease_seconds=import_config.job_lease_seconds,
        max_workers=import_config.job_max_workers,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("🚀 Import versioning service starting")
        if import_config.imports_frozen:
            logger.warning("🧊 Imports are frozen: publish requests will be rejected")
        job_runner.reap_stale_jobs()
        yield
        logger.info("🛑 Import versioning service stopping; waiting for running jobs")
        job_runner.shutdown(wait=True)

    app = FastAPI(
        title="Import Versioning",
        description="Upload, diff, publish and roll back geospatial vector imports",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.version_service = version_service
    app.state.publisher = publisher
    app.state.rollback_executor = rollback_executor
    app.state.job_runner = job_runner

    app.include_router(import_versions_router)
    register_exception_handlers(app)

    @app.get("/livez")
    def liveness_check():
        """Returns 200 while the process is running."""
        return {"status": "alive"}

    @app.get("/readyz")
    def readiness_check():
        """Returns 200 when the ledger database answers, 503 otherwise."""
        try:
            server = uow.ping()
        except DatabaseError as e:
            logger.warning(f"⚠️ Readiness check failed: {e}")
            return JSONResponse(status_code=503, content={"status": "not_ready", "database": False})
        return {"status": "ready", "database": True, "server": server}

    return app


if __name__ == "__main__":
    import uvicorn

    config = get_config()
    logger.info("=" * 60)
    logger.info("Import Versioning Service")
    logger.info(f"Port: {config.port}")
    logger.info("=" * 60)
    uvicorn.run(create_app(), host=config.host, port=config.port)
