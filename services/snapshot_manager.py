# ============================================================================
# IMPORT VERSIONING - SNAPSHOT MANAGER
# ============================================================================
# STATUS: Service - pre-publish capture of production state
# PURPOSE: Write and read replayable GeoJSON snapshots of scoped production records
# EXPORTS: SnapshotManager, Snapshot
# DEPENDENCIES: shapely (via core.logic.geometry)
# ============================================================================
"""
Snapshot Manager.

A snapshot is a GeoJSON FeatureCollection holding every production
record in scope (any status) plus every record outside scope that the
change set touches. Each feature carries the record's complete state:

    properties: id, attributes, status, dataSource, updatedAt

Foreign members record provenance and the ids the publish is about to
insert, which rollback removes again unless the snapshot holds them:

    versionId, scope, capturedAt, addedIds

Snapshots are written once and never overwritten. Capture only reads
production.

Exports:
    SnapshotManager
    Snapshot
"""

import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Sequence

from shapely.errors import ShapelyError

from core.logic.geometry import geometry_from_geojson, geometry_to_geojson
from core.models import ImportScope, ProductionRecord, RecordStatus
from core.utils import utc_now
from exceptions import ArtifactNotFoundError, NoSnapshotError, SnapshotUnreadableError
from infrastructure.artifact_store import IArtifactStore
from infrastructure.interface_repository import Transaction
from util_logger import LoggerFactory, ComponentType


logger = LoggerFactory.create_logger(ComponentType.SERVICE, "SnapshotManager")


@dataclass
class Snapshot:
    """Deserialized snapshot artifact."""
    path: str
    version_id: str
    scope: str
    captured_at: datetime
    records: List[ProductionRecord] = field(default_factory=list)
    added_ids: List[str] = field(default_factory=list)

    @property
    def record_ids(self) -> List[str]:
        return [record.id for record in self.records]


def snapshot_path_for(version_id: str, captured_at: datetime, attempt: int) -> str:
    return f"snapshots/{version_id}/{captured_at.strftime('%Y%m%dT%H%M%S%fZ')}-a{attempt}.geojson"


class SnapshotManager:
    """Capture and load production snapshots."""

    def __init__(self, store: IArtifactStore):
        self.store = store

    def capture(
        self,
        tx: Transaction,
        version_id: str,
        scope: ImportScope,
        touched_ids: Sequence[str] = (),
        added_ids: Sequence[str] = (),
        attempt: int = 1
    ) -> Snapshot:
        """
        Read scoped and touched production records and persist them.

        Returns:
            Snapshot whose ``path`` must be stored on the ledger row before
            any production write in the same transaction
        """
        records: Dict[str, ProductionRecord] = {
            record.id: record for record in tx.production.find_in_scope(scope, active_only=False)
        }
        outside = [record_id for record_id in touched_ids if record_id not in records]
        for record in tx.production.find_by_ids(outside):
            records[record.id] = record

        captured_at = utc_now()
        snapshot = Snapshot(
            path=snapshot_path_for(version_id, captured_at, attempt),
            version_id=version_id,
            scope=scope.to_string(),
            captured_at=captured_at,
            records=[records[record_id] for record_id in sorted(records)],
            added_ids=sorted(added_ids),
        )
        self.store.write(snapshot.path, self._serialize(snapshot))
        logger.info(
            f"📸 Snapshot {snapshot.path}: {len(snapshot.records)} record(s), "
            f"{len(snapshot.added_ids)} id(s) to be added"
        )
        return snapshot

    def load(self, path: Optional[str]) -> Snapshot:
        """
        Raises:
            NoSnapshotError: no path, or nothing stored at it
            SnapshotUnreadableError: artifact exists but cannot be decoded
        """
        if not path:
            raise NoSnapshotError("Version has no snapshot")
        try:
            raw = self.store.read(path)
        except ArtifactNotFoundError as e:
            raise NoSnapshotError(f"Snapshot artifact missing: {path}") from e

        try:
            document = json.loads(raw.decode("utf-8"))
            if document.get("type") != "FeatureCollection":
                raise ValueError("not a FeatureCollection")
            records = [self._record(feature) for feature in document["features"]]
            return Snapshot(
                path=path,
                version_id=document["versionId"],
                scope=document["scope"],
                captured_at=datetime.fromisoformat(document["capturedAt"]),
                records=records,
                added_ids=list(document.get("addedIds") or []),
            )
        except (UnicodeDecodeError, ValueError, KeyError, TypeError, AttributeError, ShapelyError) as e:
            logger.error(f"❌ Snapshot {path} is unreadable: {e}")
            raise SnapshotUnreadableError(path, str(e)) from e

    @staticmethod
    def _serialize(snapshot: Snapshot) -> bytes:
        features = []
        for record in snapshot.records:
            features.append({
                "type": "Feature",
                "id": record.id,
                "geometry": geometry_to_geojson(record.geometry),
                "properties": {
                    "id": record.id,
                    "attributes": record.attributes,
                    "status": record.status.value,
                    "dataSource": record.data_source,
                    "updatedAt": record.updated_at.isoformat() if record.updated_at else None,
                },
            })
        document = {
            "type": "FeatureCollection",
            "versionId": snapshot.version_id,
            "scope": snapshot.scope,
            "capturedAt": snapshot.captured_at.isoformat(),
            "addedIds": snapshot.added_ids,
            "features": features,
        }
        return json.dumps(document).encode("utf-8")

    @staticmethod
    def _record(feature: dict) -> ProductionRecord:
        properties = feature["properties"]
        updated_at = properties.get("updatedAt")
        return ProductionRecord(
            id=str(properties["id"]),
            geometry=geometry_from_geojson(feature.get("geometry")),
            attributes=dict(properties.get("attributes") or {}),
            status=RecordStatus(properties["status"]),
            data_source=properties.get("dataSource"),
            updated_at=datetime.fromisoformat(updated_at) if updated_at else None,
        )
