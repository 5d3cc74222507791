"""
Artifact Storage Configuration.

Uploaded originals, canonical GeoJSON, snapshots and diffs are opaque
write-once blobs addressed by path. Two backends:

    local - directory on disk (development, tests, single-node docker)
    blob  - Azure Blob Storage container via DefaultAzureCredential

Exports:
    StorageConfig
"""

import os
from typing import Literal, Optional
from pydantic import BaseModel, Field

from .defaults import StorageDefaults, AzureDefaults


class StorageConfig(BaseModel):
    """Artifact store selection and location."""

    backend: Literal["local", "blob"] = Field(
        default=StorageDefaults.BACKEND,
        description="Artifact backend: 'local' directory or Azure 'blob' container"
    )

    local_root: str = Field(
        default=StorageDefaults.LOCAL_ROOT,
        description="Root directory for the local backend (ARTIFACT_ROOT)"
    )

    container: str = Field(
        default=StorageDefaults.CONTAINER,
        description="Blob container for the blob backend (ARTIFACT_CONTAINER)"
    )

    account_name: str = Field(
        default=AzureDefaults.STORAGE_ACCOUNT_NAME,
        description="Storage account for the blob backend (STORAGE_ACCOUNT_NAME)"
    )

    connection_string: Optional[str] = Field(
        default=None,
        repr=False,
        description="Optional connection string; overrides managed identity (AZURE_STORAGE_CONNECTION_STRING)"
    )

    @property
    def account_url(self) -> str:
        return f"https://{self.account_name}.blob.core.windows.net"

    def debug_dict(self) -> dict:
        return {
            "backend": self.backend,
            "local_root": self.local_root,
            "container": self.container,
            "account_name": self.account_name,
            "connection_string": "***MASKED***" if self.connection_string else None,
        }

    @classmethod
    def from_environment(cls) -> "StorageConfig":
        return cls(
            backend=os.environ.get("ARTIFACT_BACKEND", StorageDefaults.BACKEND).lower(),
            local_root=os.environ.get("ARTIFACT_ROOT", StorageDefaults.LOCAL_ROOT),
            container=os.environ.get("ARTIFACT_CONTAINER", StorageDefaults.CONTAINER),
            account_name=os.environ.get("STORAGE_ACCOUNT_NAME", AzureDefaults.STORAGE_ACCOUNT_NAME),
            connection_string=os.environ.get("AZURE_STORAGE_CONNECTION_STRING"),
        )
