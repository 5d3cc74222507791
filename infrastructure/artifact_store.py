# ============================================================================
# IMPORT VERSIONING - ARTIFACT STORE
# ============================================================================
# STATUS: Infrastructure - write-once/read-many byte store
# PURPOSE: Original uploads, canonical GeoJSON, snapshots and diffs keyed by path
# EXPORTS: IArtifactStore, LocalArtifactStore, BlobArtifactStore
# DEPENDENCIES: azure-storage-blob, azure-identity
# PATTERNS: Repository pattern, DefaultAzureCredential
# ============================================================================
"""
Artifact Store.

Artifacts are opaque blobs addressed by a relative path that is stored on
the ledger row. Writes are write-once unless the caller explicitly allows
overwrite; reads of a missing path raise ArtifactNotFoundError so callers
can tell "never written" from "written and unreadable".

Backends:
    LocalArtifactStore - directory tree (development, tests, docker)
    BlobArtifactStore  - Azure Blob Storage container

Exports:
    IArtifactStore
    LocalArtifactStore
    BlobArtifactStore
"""

import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional

from azure.core.exceptions import ResourceExistsError, ResourceNotFoundError
from azure.identity import DefaultAzureCredential
from azure.storage.blob import BlobServiceClient, ContentSettings

from exceptions import ArtifactNotFoundError, ContractViolationError
from util_logger import LoggerFactory, ComponentType


logger = LoggerFactory.create_logger(ComponentType.REPOSITORY, "ArtifactStore")


def _content_type(path: str) -> str:
    if path.endswith(".geojson"):
        return "application/geo+json"
    if path.endswith(".json"):
        return "application/json"
    if path.endswith(".gpkg"):
        return "application/geopackage+sqlite3"
    return "application/octet-stream"


class IArtifactStore(ABC):
    """Write-once/read-many byte store keyed by relative path."""

    @abstractmethod
    def write(self, path: str, data: bytes, overwrite: bool = False) -> str:
        """
        Store ``data`` at ``path`` and return the path.

        Raises:
            FileExistsError: path exists and overwrite is False
        """
        pass

    @abstractmethod
    def read(self, path: str) -> bytes:
        """
        Raises:
            ArtifactNotFoundError: nothing stored at path
        """
        pass

    @abstractmethod
    def exists(self, path: str) -> bool:
        pass

    @abstractmethod
    def delete(self, path: str) -> bool:
        pass

    @abstractmethod
    def delete_prefix(self, prefix: str) -> int:
        pass


class LocalArtifactStore(IArtifactStore):
    """Artifacts as files under a root directory."""

    def __init__(self, root: str):
        self.root = Path(root).resolve()
        self.root.mkdir(parents=True, exist_ok=True)

    def _resolve(self, path: str) -> Path:
        target = (self.root / path).resolve()
        if self.root not in target.parents:
            raise ContractViolationError(f"Artifact path escapes store root: {path}")
        return target

    def write(self, path: str, data: bytes, overwrite: bool = False) -> str:
        target = self._resolve(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        mode = "wb" if overwrite else "xb"
        with open(target, mode) as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        logger.debug(f"💾 Wrote artifact {path} ({len(data)} bytes)")
        return path

    def read(self, path: str) -> bytes:
        target = self._resolve(path)
        if not target.is_file():
            raise ArtifactNotFoundError(path)
        return target.read_bytes()

    def exists(self, path: str) -> bool:
        return self._resolve(path).is_file()

    def delete(self, path: str) -> bool:
        target = self._resolve(path)
        if not target.is_file():
            return False
        target.unlink()
        return True

    def delete_prefix(self, prefix: str) -> int:
        base = self._resolve(prefix)
        if not base.exists():
            return 0
        files: List[Path] = [p for p in base.rglob("*") if p.is_file()] if base.is_dir() else [base]
        for file_path in files:
            file_path.unlink()
        for directory in sorted((p for p in base.rglob("*") if p.is_dir()), reverse=True):
            directory.rmdir()
        if base.is_dir():
            base.rmdir()
        return len(files)


class BlobArtifactStore(IArtifactStore):
    """
    Artifacts as blobs in one Azure Storage container.

    Authentication uses DefaultAzureCredential against the account URL
    unless a connection string is supplied.
    """

    def __init__(
        self,
        container: str,
        account_url: Optional[str] = None,
        connection_string: Optional[str] = None
    ):
        if connection_string:
            self.blob_service = BlobServiceClient.from_connection_string(connection_string)
        elif account_url:
            logger.info(f"Initializing BlobArtifactStore with DefaultAzureCredential for {account_url}")
            self.blob_service = BlobServiceClient(account_url=account_url, credential=DefaultAzureCredential())
        else:
            raise ContractViolationError("BlobArtifactStore needs an account URL or a connection string")
        self.container = container
        self.container_client = self.blob_service.get_container_client(container)

    def write(self, path: str, data: bytes, overwrite: bool = False) -> str:
        blob_client = self.container_client.get_blob_client(path)
        try:
            blob_client.upload_blob(
                data,
                overwrite=overwrite,
                content_settings=ContentSettings(content_type=_content_type(path)),
            )
        except ResourceExistsError as e:
            raise FileExistsError(f"Artifact already exists: {path}") from e
        logger.debug(f"💾 Uploaded artifact {self.container}/{path} ({len(data)} bytes)")
        return path

    def read(self, path: str) -> bytes:
        try:
            return self.container_client.get_blob_client(path).download_blob().readall()
        except ResourceNotFoundError as e:
            raise ArtifactNotFoundError(path) from e

    def exists(self, path: str) -> bool:
        return self.container_client.get_blob_client(path).exists()

    def delete(self, path: str) -> bool:
        try:
            self.container_client.delete_blob(path)
        except ResourceNotFoundError:
            return False
        return True

    def delete_prefix(self, prefix: str) -> int:
        names = [blob.name for blob in self.container_client.list_blobs(name_starts_with=prefix)]
        for name in names:
            self.container_client.delete_blob(name)
        return len(names)
