# ============================================================================
# IMPORT VERSIONING - DIFF ENGINE
# ============================================================================
# STATUS: Service - pure comparison of import features against in-scope production
# PURPOSE: Classify records as added / updated / deactivated / unchanged
# EXPORTS: DiffEngine
# DEPENDENCIES: shapely (via core.logic.geometry)
# ============================================================================
"""
Diff Engine.

Pure function of its inputs: the canonical import features, the scope,
the merge mode and the active production records intersecting the scope.
The engine never queries or mutates anything itself, so computing the
same inputs twice yields identical results.

Classification (by stable identifier):
    added       - import id absent from in-scope active production
    updated     - id in both; an attribute the import supplies (non-null),
                  the dataSource it supplies, or the geometry differs
    unchanged   - id in both with no difference (count only)
    deactivated - in-scope production id absent from the import, only
                  when regional_refresh is true; otherwise counted as retained

Every list is sorted by id.
"""

from typing import Any, Dict, List, Optional, Sequence

from config.defaults import ImportDefaults
from core.logic.geometry import geometries_equal, geometry_to_geojson
from core.models import (
    CanonicalFeature, DiffFeature, DiffResult, DiffStats, ImportScope, ProductionRecord
)
from util_logger import LoggerFactory, ComponentType


logger = LoggerFactory.create_logger(ComponentType.SERVICE, "DiffEngine")

DATA_SOURCE_FIELD = ImportDefaults.DATA_SOURCE_PROPERTY


def _record_state(record: ProductionRecord) -> Dict[str, Any]:
    return {
        "geometry": geometry_to_geojson(record.geometry),
        "attributes": record.attributes,
        "status": record.status.value,
        "dataSource": record.data_source,
    }


class DiffEngine:
    """Compute a DiffResult; no side effects."""

    def __init__(self, tolerance: float = ImportDefaults.GEOMETRY_TOLERANCE):
        self.tolerance = tolerance

    def changed_fields(self, feature: CanonicalFeature, record: ProductionRecord) -> List[str]:
        """Attribute keys (plus dataSource) whose import value differs from production."""
        changed = [
            key for key, value in feature.attributes.items()
            if value is not None and record.attributes.get(key) != value
        ]
        if feature.data_source is not None and feature.data_source != record.data_source:
            changed.append(DATA_SOURCE_FIELD)
        return sorted(changed)

    def compute(
        self,
        features: Sequence[CanonicalFeature],
        scope: ImportScope,
        regional_refresh: bool,
        production_records: Sequence[ProductionRecord],
        version_id: Optional[str] = None
    ) -> DiffResult:
        """
        Args:
            features: Canonical import features
            scope: Import scope
            regional_refresh: Deactivate in-scope records absent from the import
            production_records: Active production records intersecting the scope
            version_id: Recorded on the result

        Returns:
            DiffResult with lists sorted by id
        """
        in_scope = {
            record.id: record for record in production_records
            if record.is_active and scope.intersects(record.geometry)
        }

        by_id: Dict[str, CanonicalFeature] = {}
        skipped = 0
        for feature in features:
            if feature.feature_id is None or feature.feature_id in by_id:
                skipped += 1
                continue
            by_id[feature.feature_id] = feature

        added: List[DiffFeature] = []
        updated: List[DiffFeature] = []
        unchanged = 0

        for feature_id in sorted(by_id):
            feature = by_id[feature_id]
            record = in_scope.get(feature_id)
            if record is None:
                added.append(DiffFeature(
                    id=feature_id,
                    geometry=geometry_to_geojson(feature.geometry),
                    attributes=feature.attributes,
                    data_source=feature.data_source,
                ))
                continue

            fields = self.changed_fields(feature, record)
            geometry_changed = not geometries_equal(feature.geometry, record.geometry, self.tolerance)
            if fields or geometry_changed:
                updated.append(DiffFeature(
                    id=feature_id,
                    geometry=geometry_to_geojson(feature.geometry),
                    attributes=feature.attributes,
                    data_source=feature.data_source,
                    changed_fields=fields,
                    geometry_changed=geometry_changed,
                    previous=_record_state(record),
                ))
            else:
                unchanged += 1

        absent = sorted(set(in_scope) - set(by_id))
        deactivated: List[DiffFeature] = []
        retained = 0
        if regional_refresh:
            for record_id in absent:
                record = in_scope[record_id]
                deactivated.append(DiffFeature(
                    id=record_id,
                    geometry=geometry_to_geojson(record.geometry),
                    attributes=record.attributes,
                    data_source=record.data_source,
                    previous=_record_state(record),
                ))
        else:
            retained = len(absent)

        stats = DiffStats(
            scope_current_count=len(in_scope),
            import_count=len(features),
            added_count=len(added),
            updated_count=len(updated),
            deactivated_count=len(deactivated),
            unchanged_count=unchanged,
            retained_count=retained,
            skipped_count=skipped,
        )
        logger.info(
            f"📊 Diff {version_id or '-'} {scope.to_string()}: +{stats.added_count} "
            f"~{stats.updated_count} -{stats.deactivated_count} ={stats.unchanged_count} "
            f"(in scope {stats.scope_current_count}, retained {retained}, skipped {skipped})"
        )
        return DiffResult(
            version_id=version_id,
            scope=scope.to_string(),
            regional_refresh=regional_refresh,
            added=added,
            updated=updated,
            deactivated=deactivated,
            unchanged=unchanged,
            stats=stats,
        )
