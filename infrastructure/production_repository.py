# ============================================================================
# IMPORT VERSIONING - POSTGIS PRODUCTION REPOSITORY
# ============================================================================
# STATUS: Infrastructure - production asset table adapter
# PURPOSE: Scoped reads and import writes against geo.asset_records
# EXPORTS: PostgreSQLProductionRepository
# DEPENDENCIES: psycopg, shapely
# PATTERNS: Repository pattern, SQL composition
# ============================================================================
"""
PostGIS Production Repository.

The production table is owned by the asset domain. Imports only read it
by scope or by id and write it through publish and rollback. Geometry
crosses the wire as GeoJSON (ST_AsGeoJSON / ST_GeomFromGeoJSON) in
SRID 4326.

Exports:
    PostgreSQLProductionRepository
"""

import json
from typing import Any, Dict, List, Sequence

from psycopg import sql
from psycopg.types.json import Jsonb

from core.logic.geometry import geometry_from_geojson, geometry_to_geojson
from core.models import ImportScope, ProductionRecord, RecordStatus
from util_logger import LoggerFactory, ComponentType
from .base import BoundRepository
from .interface_repository import IProductionRepository


logger = LoggerFactory.create_logger(ComponentType.REPOSITORY, "PostgreSQLProductionRepository")


class PostgreSQLProductionRepository(BoundRepository, IProductionRepository):
    """Production asset table bound to one transaction."""

    def __init__(self, conn, schema_name: str, table_name: str):
        super().__init__(conn, schema_name)
        self.table_name = table_name

    @property
    def table(self) -> sql.Composed:
        return self._table(self.table_name)

    def _select(self) -> sql.Composed:
        return sql.SQL(
            "SELECT id, ST_AsGeoJSON(geometry) AS geometry, attributes, status, "
            "data_source, updated_at FROM {}"
        ).format(self.table)

    @staticmethod
    def _to_record(row: Dict[str, Any]) -> ProductionRecord:
        geometry = row["geometry"]
        attributes = row["attributes"] or {}
        if isinstance(attributes, str):
            attributes = json.loads(attributes)
        return ProductionRecord(
            id=row["id"],
            geometry=geometry_from_geojson(json.loads(geometry)) if geometry else None,
            attributes=attributes,
            status=RecordStatus(row["status"]),
            data_source=row["data_source"],
            updated_at=row["updated_at"],
        )

    def find_in_scope(self, scope: ImportScope, active_only: bool = True) -> List[ProductionRecord]:
        query = self._select() + sql.SQL(
            " WHERE geometry && ST_MakeEnvelope(%s, %s, %s, %s, 4326)"
            " AND ST_Intersects(geometry, ST_MakeEnvelope(%s, %s, %s, %s, 4326))"
        )
        bbox = [scope.minx, scope.miny, scope.maxx, scope.maxy]
        params: List[Any] = bbox + bbox
        if active_only:
            query = query + sql.SQL(" AND status = %s")
            params.append(RecordStatus.ACTIVE.value)
        query = query + sql.SQL(" ORDER BY id")

        rows = self._execute(query, params, fetch='all')
        logger.debug(f"🔍 {len(rows)} production records in {scope.to_string()} (active_only={active_only})")
        return [self._to_record(row) for row in rows]

    def find_by_ids(self, ids: Sequence[str]) -> List[ProductionRecord]:
        if not ids:
            return []
        rows = self._execute(
            self._select() + sql.SQL(" WHERE id = ANY(%s) ORDER BY id"),
            (list(ids),), fetch='all'
        )
        return [self._to_record(row) for row in rows]

    def upsert_records(self, records: Sequence[ProductionRecord]) -> int:
        if not records:
            return 0
        query = sql.SQL(
            "INSERT INTO {} (id, geometry, attributes, status, data_source, updated_at) "
            "VALUES (%s, ST_SetSRID(ST_GeomFromGeoJSON(%s), 4326), %s, %s, %s, COALESCE(%s, now())) "
            "ON CONFLICT (id) DO UPDATE SET "
            "geometry = EXCLUDED.geometry, attributes = EXCLUDED.attributes, "
            "status = EXCLUDED.status, data_source = EXCLUDED.data_source, "
            "updated_at = EXCLUDED.updated_at"
        ).format(self.table)
        params = [
            (
                record.id,
                json.dumps(geometry_to_geojson(record.geometry)) if record.geometry is not None else None,
                Jsonb(record.attributes or {}),
                record.status.value,
                record.data_source,
                record.updated_at,
            )
            for record in records
        ]
        with self.conn.cursor() as cursor:
            cursor.executemany(query, params)
        return len(params)

    def set_status(self, ids: Sequence[str], status: RecordStatus) -> int:
        if not ids:
            return 0
        return self._execute(
            sql.SQL("UPDATE {} SET status = %s, updated_at = now() WHERE id = ANY(%s)").format(self.table),
            (status.value, list(ids))
        )

    def delete_records(self, ids: Sequence[str]) -> int:
        if not ids:
            return 0
        return self._execute(
            sql.SQL("DELETE FROM {} WHERE id = ANY(%s)").format(self.table), (list(ids),)
        )
