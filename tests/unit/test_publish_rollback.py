"""
Publish and rollback tests - snapshot-before-apply, atomicity,
serialization retries and exact restoration of scoped production.
"""

import pytest

from core.models import RecordStatus, VersionStatus
from core.logic.geometry import geometries_equal
from exceptions import (
    NoSnapshotError, NotDraftError, NotPublishedError, SerializationConflictError,
    SnapshotUnreadableError, ValidationFailedError
)
from tests.factories.model_factories import geojson_feature, make_record, road_coords, upload_and_configure


def _seed_roads(uow):
    """Two active in-scope records and one far away."""
    records = [
        make_record("R1", road_coords(139.70, 35.60), attributes={"name": "first", "width": 4.0}),
        make_record("R2", road_coords(139.71, 35.61), attributes={"name": "second", "width": 5.0}),
        make_record("FAR", road_coords(141.00, 37.00), attributes={"name": "far", "width": 3.0}),
    ]
    uow.seed_production(records)
    return records


def _import_features():
    """R1 unchanged, R2 moved, R3 new; R2/R3 span the whole scope."""
    return [
        geojson_feature("R1", road_coords(139.70, 35.60), name="first", width=4.0),
        geojson_feature("R2", road_coords(139.7105, 35.61), name="second", width=5.0),
        geojson_feature("R3", road_coords(139.72, 35.62), name="third", width=6.0),
    ]


def _same_state(a, b):
    return (
        a.status == b.status
        and a.attributes == b.attributes
        and a.data_source == b.data_source
        and geometries_equal(a.geometry, b.geometry, 1e-9)
    )


class TestPublish:

    def test_publish_applies_diff_and_marks_published(self, engine, uow):
        _seed_roads(uow)
        version = upload_and_configure(engine, _import_features())

        result = engine.publisher.publish(version.version_id, "alice")

        assert (result.added, result.updated, result.deactivated, result.unchanged) == (1, 1, 0, 1)
        assert result.attempts == 1
        production = uow.production_state()
        assert production["R3"].status == RecordStatus.ACTIVE
        assert production["R3"].data_source == version.default_data_source.value
        assert production["R2"].geometry.coords[0][0] == pytest.approx(139.7105)

        published = uow.version(version.version_id)
        assert published.status == VersionStatus.PUBLISHED
        assert published.published_by == "alice"
        assert published.snapshot_path == result.snapshot_path
        assert (published.added_count, published.updated_count, published.deactivated_count) == (1, 1, 0)
        assert engine.store.exists(result.snapshot_path)

    def test_snapshot_holds_pre_publish_state(self, engine, uow):
        seeded = {r.id: r for r in _seed_roads(uow)}
        version = upload_and_configure(engine, _import_features())

        result = engine.publisher.publish(version.version_id)
        snapshot = engine.snapshots.load(result.snapshot_path)

        assert snapshot.record_ids == ["R1", "R2"]
        assert snapshot.added_ids == ["R3"]
        assert snapshot.version_id == version.version_id
        for record in snapshot.records:
            assert _same_state(record, seeded[record.id])

    def test_updated_attributes_are_merged(self, engine, uow):
        uow.seed_production([
            make_record("R1", road_coords(139.70, 35.60), attributes={"name": "old", "lanes": 2}),
        ])
        version = upload_and_configure(engine, [
            geojson_feature("R1", road_coords(139.70, 35.60), name="new", lanes=None),
            geojson_feature("R9", road_coords(139.75, 35.65), name="other"),
        ])
        engine.publisher.publish(version.version_id)
        assert uow.production_state()["R1"].attributes == {"name": "new", "lanes": 2}

    def test_revived_record_keeps_stored_attributes(self, engine, uow):
        uow.seed_production([
            make_record("R1", road_coords(139.70, 35.60), status=RecordStatus.INACTIVE,
                        attributes={"name": "old", "lanes": 2, "ward": "Naka"}, data_source="official_ledger"),
        ])
        version = upload_and_configure(engine, [geojson_feature("R1", road_coords(139.70, 35.60), name="new")])

        result = engine.publisher.publish(version.version_id)

        assert result.added == 1
        revived = uow.production_state()["R1"]
        assert revived.status == RecordStatus.ACTIVE
        assert revived.attributes == {"name": "new", "lanes": 2, "ward": "Naka"}
        assert revived.data_source == "official_ledger"

    def test_refresh_deactivates_absent_records(self, engine, uow):
        _seed_roads(uow)
        version = upload_and_configure(engine, [
            geojson_feature("R1", road_coords(139.70, 35.60), name="first", width=4.0),
            geojson_feature("R3", road_coords(139.72, 35.62), name="third", width=6.0),
        ], regional_refresh=True)

        result = engine.publisher.publish(version.version_id)

        assert result.deactivated == 1
        production = uow.production_state()
        assert production["R2"].status == RecordStatus.INACTIVE
        assert production["FAR"].status == RecordStatus.ACTIVE

    def test_second_publish_is_refused(self, engine, uow):
        version = upload_and_configure(engine, _import_features())
        engine.publisher.publish(version.version_id)
        with pytest.raises(NotDraftError):
            engine.publisher.publish(version.version_id)

    def test_publishing_archives_previous_version(self, engine, uow):
        first = upload_and_configure(engine, _import_features())
        engine.publisher.publish(first.version_id)
        second = upload_and_configure(engine, [geojson_feature("R4", road_coords(139.73, 35.63))])
        engine.publisher.publish(second.version_id)

        assert uow.version(first.version_id).status == VersionStatus.ARCHIVED
        assert uow.version(first.version_id).archived_at is not None
        assert uow.version(second.version_id).status == VersionStatus.PUBLISHED
        with pytest.raises(NotPublishedError):
            engine.rollback.rollback(first.version_id)

    def test_invalid_import_is_rejected_before_any_write(self, engine, uow):
        _seed_roads(uow)
        before = uow.production_state()
        version = upload_and_configure(engine, [
            geojson_feature("R1", road_coords(139.70, 35.60)),
            geojson_feature(None, road_coords(139.71, 35.60)),
        ])

        with pytest.raises(ValidationFailedError):
            engine.publisher.publish(version.version_id)

        assert uow.version(version.version_id).status == VersionStatus.DRAFT
        assert uow.version(version.version_id).snapshot_path is None
        assert uow.production_state().keys() == before.keys()
        assert all(_same_state(uow.production_state()[k], before[k]) for k in before)

    def test_failure_after_capture_rolls_everything_back(self, engine, uow, monkeypatch):
        _seed_roads(uow)
        before = uow.production_state()
        version = upload_and_configure(engine, _import_features(), regional_refresh=True)

        def broken_apply(*args, **kwargs):
            raise RuntimeError("disk full")

        monkeypatch.setattr(engine.publisher, "_apply", broken_apply)
        with pytest.raises(RuntimeError):
            engine.publisher.publish(version.version_id)

        failed = uow.version(version.version_id)
        assert failed.status == VersionStatus.DRAFT
        assert failed.snapshot_path is None
        after = uow.production_state()
        assert after.keys() == before.keys()
        assert all(_same_state(after[k], before[k]) for k in before)

    def test_serialization_conflict_is_retried(self, engine, uow):
        _seed_roads(uow)
        version = upload_and_configure(engine, _import_features())
        uow.fail_next_commits = 1

        result = engine.publisher.publish(version.version_id)

        assert result.attempts == 2
        assert result.snapshot_path.endswith("-a2.geojson")
        assert uow.version(version.version_id).snapshot_path == result.snapshot_path

    def test_exhausted_retries_leave_draft(self, engine, uow):
        _seed_roads(uow)
        version = upload_and_configure(engine, _import_features())
        uow.fail_next_commits = engine.config.serialization_max_retries + 1

        with pytest.raises(SerializationConflictError):
            engine.publisher.publish(version.version_id)
        assert uow.version(version.version_id).status == VersionStatus.DRAFT
        assert "R3" not in uow.production_state()


class TestRollback:

    def test_publish_then_rollback_restores_production(self, engine, uow):
        _seed_roads(uow)
        before = uow.production_state()
        version = upload_and_configure(engine, _import_features(), regional_refresh=True)
        engine.publisher.publish(version.version_id)

        result = engine.rollback.rollback(version.version_id)

        after = uow.production_state()
        assert after.keys() == before.keys()
        assert all(_same_state(after[k], before[k]) for k in before)
        assert result.restored == 2
        assert result.removed == 1
        rolled_back = uow.version(version.version_id)
        assert rolled_back.status == VersionStatus.ROLLED_BACK
        assert rolled_back.rolled_back_at is not None

    def test_reactivated_record_returns_to_inactive(self, engine, uow):
        uow.seed_production([
            make_record("R1", road_coords(139.70, 35.60), status=RecordStatus.INACTIVE,
                        attributes={"name": "retired"}),
        ])
        version = upload_and_configure(engine, [geojson_feature("R1", road_coords(139.70, 35.60), name="back")])
        engine.publisher.publish(version.version_id)
        assert uow.production_state()["R1"].status == RecordStatus.ACTIVE

        engine.rollback.rollback(version.version_id)
        restored = uow.production_state()["R1"]
        assert restored.status == RecordStatus.INACTIVE
        assert restored.attributes == {"name": "retired"}

    def test_rollback_twice_is_refused(self, engine, uow):
        version = upload_and_configure(engine, _import_features())
        engine.publisher.publish(version.version_id)
        engine.rollback.rollback(version.version_id)
        with pytest.raises(NotPublishedError):
            engine.rollback.rollback(version.version_id)

    def test_draft_cannot_be_rolled_back(self, engine):
        version = upload_and_configure(engine, _import_features())
        with pytest.raises(NotPublishedError):
            engine.rollback.rollback(version.version_id)

    def test_missing_snapshot_artifact(self, engine, uow):
        version = upload_and_configure(engine, _import_features())
        result = engine.publisher.publish(version.version_id)
        engine.store.delete(result.snapshot_path)

        with pytest.raises(NoSnapshotError):
            engine.rollback.rollback(version.version_id)
        assert uow.version(version.version_id).status == VersionStatus.PUBLISHED

    def test_unreadable_snapshot_leaves_production_untouched(self, engine, uow):
        _seed_roads(uow)
        version = upload_and_configure(engine, _import_features())
        result = engine.publisher.publish(version.version_id)
        published = uow.production_state()
        engine.store.write(result.snapshot_path, b"{\"type\": \"FeatureCollection\"", overwrite=True)

        with pytest.raises(SnapshotUnreadableError):
            engine.rollback.rollback(version.version_id)

        assert uow.version(version.version_id).status == VersionStatus.PUBLISHED
        assert uow.production_state().keys() == published.keys()

    def test_rollback_retries_serialization_conflicts(self, engine, uow):
        _seed_roads(uow)
        version = upload_and_configure(engine, _import_features())
        engine.publisher.publish(version.version_id)
        uow.fail_next_commits = 2

        result = engine.rollback.rollback(version.version_id)
        assert result.attempts == 3
        assert "R3" not in uow.production_state()
