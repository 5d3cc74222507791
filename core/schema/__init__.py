"""
Core Database Schema Package.

Exports:
    ImportSchemaBuilder: DDL for import_versions, import_jobs and the production table
    deploy_import_schema: Execute the DDL on a connection
"""

from .import_schema import ImportSchemaBuilder, deploy_import_schema, ACTIVE_JOB_INDEX

__all__ = [
    'ImportSchemaBuilder',
    'deploy_import_schema',
    'ACTIVE_JOB_INDEX',
]
