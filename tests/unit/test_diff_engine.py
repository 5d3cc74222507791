"""
Diff engine tests - classification, merge modes and count identity.
"""

import random

import pytest

from core.models import RecordStatus
from services import DiffEngine
from tests.factories.model_factories import make_canonical, make_record, make_scope, road_coords


SCOPE = make_scope(139.69, 35.59, 139.76, 35.64)


@pytest.fixture
def engine():
    return DiffEngine(tolerance=1e-5)


def _scenario_a():
    """One unchanged, one shifted, one new."""
    same = {"name": "same road", "width": 4.0}
    production = [
        make_record("KEEP", road_coords(139.70, 35.60), attributes=dict(same)),
        make_record("MOVE", road_coords(139.71, 35.61), attributes={"name": "moved", "width": 6.0}),
    ]
    features = [
        make_canonical(0, "KEEP", road_coords(139.70, 35.60), attributes=dict(same)),
        make_canonical(1, "MOVE", road_coords(139.7105, 35.61), attributes={"name": "moved", "width": 6.0}),
        make_canonical(2, "NEW", road_coords(139.72, 35.62)),
    ]
    return features, production


def _assert_identity(diff):
    s = diff.stats
    assert s.scope_current_count == s.updated_count + s.deactivated_count + s.unchanged_count + s.retained_count


class TestScenarios:

    def test_scenario_a_without_refresh(self, engine):
        features, production = _scenario_a()
        diff = engine.compute(features, SCOPE, False, production)

        assert [f.id for f in diff.added] == ["NEW"]
        assert [f.id for f in diff.updated] == ["MOVE"]
        assert diff.unchanged == 1
        assert diff.deactivated == []
        assert (diff.stats.added_count, diff.stats.updated_count,
                diff.stats.unchanged_count, diff.stats.deactivated_count) == (1, 1, 1, 0)
        assert diff.updated[0].geometry_changed is True
        assert diff.updated[0].changed_fields == []
        _assert_identity(diff)

    def test_scenario_b_with_refresh(self, engine):
        features, production = _scenario_a()
        production.append(make_record("GONE", road_coords(139.73, 35.63)))
        diff = engine.compute(features, SCOPE, True, production)

        assert [f.id for f in diff.deactivated] == ["GONE"]
        assert diff.stats.deactivated_count == 1
        assert diff.stats.retained_count == 0
        assert diff.deactivated[0].previous["status"] == "active"
        _assert_identity(diff)

    def test_absent_records_are_retained_without_refresh(self, engine):
        features, production = _scenario_a()
        production.append(make_record("GONE", road_coords(139.73, 35.63)))
        diff = engine.compute(features, SCOPE, False, production)

        assert diff.deactivated == []
        assert diff.stats.retained_count == 1
        _assert_identity(diff)


class TestClassification:

    def test_attribute_change_lists_fields(self, engine):
        record = make_record("R", road_coords(139.70, 35.60), attributes={"name": "old", "width": 4.0},
                             data_source="official_ledger")
        feature = make_canonical(0, "R", road_coords(139.70, 35.60),
                                 attributes={"name": "new", "width": 4.0}, data_source="manual")
        diff = engine.compute([feature], SCOPE, False, [record])

        assert diff.updated[0].changed_fields == ["dataSource", "name"]
        assert diff.updated[0].geometry_changed is False
        assert diff.updated[0].previous["attributes"] == {"name": "old", "width": 4.0}

    def test_null_import_attributes_do_not_count_as_changes(self, engine):
        record = make_record("R", road_coords(139.70, 35.60), attributes={"name": "kept", "width": 4.0})
        feature = make_canonical(0, "R", road_coords(139.70, 35.60), attributes={"name": None, "width": 4.0})
        diff = engine.compute([feature], SCOPE, False, [record])
        assert diff.unchanged == 1

    def test_reversed_geometry_within_tolerance_is_unchanged(self, engine):
        attrs = {"name": "n", "width": 3.0}
        record = make_record("R", road_coords(139.70, 35.60), attributes=dict(attrs))
        reversed_coords = list(reversed(road_coords(139.70, 35.60)))
        reversed_coords[0][0] += 1e-7
        feature = make_canonical(0, "R", reversed_coords, attributes=dict(attrs))
        assert engine.compute([feature], SCOPE, False, [record]).unchanged == 1

    def test_inactive_production_record_is_treated_as_added(self, engine):
        record = make_record("R", road_coords(139.70, 35.60), status=RecordStatus.INACTIVE)
        feature = make_canonical(0, "R", road_coords(139.70, 35.60))
        diff = engine.compute([feature], SCOPE, True, [record])
        assert [f.id for f in diff.added] == ["R"]
        assert diff.stats.scope_current_count == 0

    def test_out_of_scope_production_is_ignored(self, engine):
        far = make_record("FAR", road_coords(140.50, 36.50))
        diff = engine.compute([make_canonical(0, "A", road_coords(139.70, 35.60))], SCOPE, True, [far])
        assert diff.deactivated == []
        assert diff.stats.scope_current_count == 0

    def test_missing_and_duplicate_ids_are_skipped(self, engine):
        features = [
            make_canonical(0, "A", road_coords(139.70, 35.60)),
            make_canonical(1, None, road_coords(139.71, 35.60)),
            make_canonical(2, "A", road_coords(139.72, 35.60)),
        ]
        diff = engine.compute(features, SCOPE, False, [])
        assert [f.id for f in diff.added] == ["A"]
        assert diff.stats.skipped_count == 2
        assert diff.stats.import_count == 3


class TestProperties:

    def test_compute_is_repeatable(self, engine):
        features, production = _scenario_a()
        production.append(make_record("GONE", road_coords(139.73, 35.63)))
        first = engine.compute(features, SCOPE, True, production, version_id="IV-1")
        second = engine.compute(features, SCOPE, True, production, version_id="IV-1")
        assert first.model_dump() == second.model_dump()

    def test_lists_are_sorted_regardless_of_input_order(self, engine):
        ids = [f"F{i:02d}" for i in range(12)]
        shuffled = ids[:]
        random.shuffle(shuffled)
        features = [make_canonical(i, fid, road_coords(139.70 + i * 0.001, 35.60)) for i, fid in enumerate(shuffled)]
        diff = engine.compute(features, SCOPE, False, [])
        assert [f.id for f in diff.added] == ids

    @pytest.mark.parametrize("refresh", [True, False])
    def test_count_identity_on_random_inputs(self, engine, refresh):
        production = [
            make_record(f"P{i}", road_coords(139.70 + random.uniform(0, 0.05), 35.60 + random.uniform(0, 0.03)))
            for i in range(20)
        ]
        features = []
        for i, record in enumerate(random.sample(production, 12)):
            coords = [list(c) for c in record.geometry.coords]
            if random.random() < 0.5:
                coords[0][0] += 0.001
            features.append(make_canonical(i, record.id, coords, attributes=dict(record.attributes)))
        features.append(make_canonical(99, "BRAND-NEW", road_coords(139.71, 35.61)))

        diff = engine.compute(features, SCOPE, refresh, production)
        _assert_identity(diff)
        assert diff.stats.added_count == 1
        if not refresh:
            assert diff.stats.deactivated_count == 0
