"""
Validator tests - blocking errors vs non-blocking warnings.
"""

import pytest
from shapely.geometry import LineString, Point, Polygon

from core.models import CanonicalFeature
from services import ImportValidator, ValidationCode
from tests.factories.model_factories import make_canonical, road_coords


def _codes(items):
    return [item.code for item in items]


@pytest.fixture
def validator():
    return ImportValidator()


class TestErrors:

    def test_clean_import_is_valid(self, validator):
        features = [
            make_canonical(0, "A", road_coords(139.70, 35.60), data_source="manual"),
            make_canonical(1, "B", road_coords(139.71, 35.60), data_source="osm_test"),
        ]
        result = validator.validate(features, "official_ledger")
        assert result.valid is True
        assert result.errors == []
        assert result.feature_count == 2
        assert result.geometry_types == ["LineString"]

    def test_missing_identifier_blocks(self, validator):
        features = [
            make_canonical(0, "A", road_coords(139.70, 35.60)),
            make_canonical(1, None, road_coords(139.71, 35.60)),
        ]
        result = validator.validate(features, "official_ledger")

        assert result.valid is False
        assert result.missing_id_count == 1
        assert _codes(result.errors) == [ValidationCode.MISSING_ID.value]
        assert result.errors[0].feature_index == 1
        assert result.errors[0].hint

    def test_duplicate_identifier_blocks(self, validator):
        features = [
            make_canonical(0, "A", road_coords(139.70, 35.60)),
            make_canonical(1, "A", road_coords(139.71, 35.60)),
        ]
        result = validator.validate(features, "official_ledger")
        assert _codes(result.errors) == [ValidationCode.DUPLICATE_ID.value]
        assert result.errors[0].feature_index == 1

    def test_missing_and_empty_geometry(self, validator):
        features = [
            make_canonical(0, "A", None),
            CanonicalFeature(index=1, feature_id="B", geometry=LineString(), attributes={}),
        ]
        result = validator.validate(features, "official_ledger")
        assert _codes(result.errors) == [
            ValidationCode.MISSING_GEOMETRY.value, ValidationCode.EMPTY_GEOMETRY.value,
        ]
        assert {e.field for e in result.errors} == {"geometry"}

    def test_required_attributes(self):
        validator = ImportValidator(required_attributes=["name", "id"])
        features = [
            make_canonical(0, "A", road_coords(139.70, 35.60), attributes={"name": "main st"}),
            make_canonical(1, "B", road_coords(139.71, 35.60), attributes={"name": ""}),
            make_canonical(2, "C", road_coords(139.72, 35.60), attributes={}),
        ]
        result = validator.validate(features, "official_ledger")
        assert _codes(result.errors) == [ValidationCode.MISSING_ATTRIBUTE.value] * 2
        assert [e.feature_id for e in result.errors] == ["B", "C"]

    def test_unknown_data_source(self, validator):
        features = [make_canonical(0, "A", road_coords(139.70, 35.60), data_source="scraped")]
        result = validator.validate(features, "official_ledger")
        assert _codes(result.errors) == [ValidationCode.INVALID_DATA_SOURCE.value]


class TestWarnings:

    def test_missing_data_source_is_one_summary_warning(self, validator):
        features = [make_canonical(i, f"F{i}", road_coords(139.70 + i * 0.01, 35.60)) for i in range(3)]
        result = validator.validate(features, "manual")

        assert result.valid is True
        assert result.missing_data_source_count == 3
        assert _codes(result.warnings) == [ValidationCode.MISSING_DATA_SOURCE.value]
        assert result.warnings[0].feature_index == -1
        assert "manual" in result.warnings[0].message

    def test_point_geometry_is_unusual_not_fatal(self, validator):
        feature = CanonicalFeature(index=0, feature_id="P", geometry=Point(139.7, 35.6),
                                   attributes={}, data_source="manual")
        result = validator.validate([feature], "official_ledger")
        assert result.valid is True
        assert _codes(result.warnings) == [ValidationCode.UNUSUAL_GEOMETRY_TYPE.value]
        assert result.geometry_types == ["Point"]

    def test_self_intersecting_polygon_is_a_warning(self, validator):
        bowtie = Polygon([(0, 0), (1, 1), (1, 0), (0, 1), (0, 0)])
        feature = CanonicalFeature(index=0, feature_id="X", geometry=bowtie, attributes={},
                                   data_source="manual")
        result = validator.validate([feature], "official_ledger")
        assert result.valid is True
        assert ValidationCode.INVALID_GEOMETRY.value in _codes(result.warnings)

    def test_out_of_bounds_warning(self):
        validator = ImportValidator(bounds=(122.0, 20.0, 154.0, 46.0))
        features = [
            make_canonical(0, "IN", road_coords(139.70, 35.60), data_source="manual"),
            make_canonical(1, "OUT", road_coords(2.35, 48.85), data_source="manual"),
        ]
        result = validator.validate(features, "official_ledger")
        assert result.valid is True
        assert [(w.code, w.feature_id) for w in result.warnings] == [
            (ValidationCode.OUT_OF_BOUNDS.value, "OUT")
        ]

    def test_result_serializes_camel_case(self, validator):
        result = validator.validate([make_canonical(0, None, road_coords(139.70, 35.60))], "manual")
        payload = result.model_dump(mode="json", by_alias=True)
        assert payload["jobType"] == "validation"
        assert payload["missingIdCount"] == 1
        assert payload["errors"][0]["featureIndex"] == 0
