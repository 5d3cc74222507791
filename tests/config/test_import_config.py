"""
Configuration loading tests - defaults, environment overrides and the
singleton.
"""

import pytest
from pydantic import ValidationError

from config import AppConfig, ImportConfig, debug_config, get_config, reset_config


class TestImportConfig:

    def test_defaults(self, clean_env):
        config = ImportConfig.from_environment()
        assert config.imports_frozen is False
        assert config.geometry_tolerance == pytest.approx(1e-5)
        assert config.serialization_max_retries == 3
        assert config.job_lease_seconds == 900
        assert config.id_property == "id"
        assert config.required_attributes == []
        assert config.allowed_data_sources == ["osm_test", "official_ledger", "manual"]
        assert config.validation_bounds is None

    def test_environment_overrides(self, clean_env):
        clean_env.setenv("IMPORTS_FROZEN", "TRUE")
        clean_env.setenv("GEOMETRY_TOLERANCE", "0.0001")
        clean_env.setenv("REQUIRED_ATTRIBUTES", "name, width ,")
        clean_env.setenv("VALIDATION_BOUNDS", "122,20,154,46")
        clean_env.setenv("ID_PROPERTY", "road_id")

        config = ImportConfig.from_environment()
        assert config.imports_frozen is True
        assert config.geometry_tolerance == pytest.approx(1e-4)
        assert config.required_attributes == ["name", "width"]
        assert config.validation_bounds == (122.0, 20.0, 154.0, 46.0)
        assert config.id_property == "road_id"

    def test_inverted_bounds_rejected(self, clean_env):
        clean_env.setenv("VALIDATION_BOUNDS", "154,46,122,20")
        with pytest.raises(ValidationError):
            ImportConfig.from_environment()

    @pytest.mark.parametrize("field,value", [
        ("geometry_tolerance", 0),
        ("job_max_workers", 0),
        ("serialization_max_retries", -1),
        ("max_upload_mb", 0),
    ])
    def test_out_of_range_values(self, field, value):
        with pytest.raises(ValidationError):
            ImportConfig(**{field: value})


class TestAppConfig:

    def test_singleton_and_reset(self, clean_env):
        reset_config()
        try:
            first = get_config()
            assert get_config() is first
            clean_env.setenv("IMPORTS_FROZEN", "true")
            reset_config()
            assert get_config().imports.imports_frozen is True
        finally:
            reset_config()

    def test_debug_config_masks_password(self, clean_env):
        reset_config()
        try:
            info = debug_config()
            assert info["database"]["password"] in ("***MASKED***", None)
            assert "imports" in info
        finally:
            reset_config()

    def test_database_is_required(self):
        with pytest.raises(ValidationError):
            AppConfig()
