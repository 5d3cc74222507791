"""
Routes module - FastAPI routers.

Structure:
    import_versions.py  - Import versioning endpoints (/api/import-versions/*)
"""

from .import_versions import router as import_versions_router, register_exception_handlers

__all__ = [
    'import_versions_router',
    'register_exception_handlers',
]
