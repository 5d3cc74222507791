"""
Configuration Defaults - Single source of truth for all default values.

Organization:
    - AzureDefaults: placeholders that MUST be overridden when blob storage
      or managed identity is used (fail-fast)
    - DatabaseDefaults, StorageDefaults, ImportDefaults, AppDefaults:
      safe universal defaults

Usage:
    from config.defaults import DatabaseDefaults, ImportDefaults

    # In Pydantic Field definitions:
    port: int = Field(default=DatabaseDefaults.PORT, ...)
"""


# =============================================================================
# AZURE RESOURCE DEFAULTS (MUST override for a real tenant)
# =============================================================================

class AzureDefaults:
    """
    Intentionally invalid placeholders. Seeing these in an error message
    means the corresponding environment variable was not set.
    """

    # Override: DB_ADMIN_MANAGED_IDENTITY_NAME
    MANAGED_IDENTITY_NAME = "your-managed-identity-name"

    # Override: STORAGE_ACCOUNT_NAME
    STORAGE_ACCOUNT_NAME = "your-storage-account-name"


# =============================================================================
# DATABASE DEFAULTS
# =============================================================================

class DatabaseDefaults:
    """Database configuration reference values."""

    PORT = 5432
    POSTGIS_SCHEMA = "geo"       # production asset table lives here
    APP_SCHEMA = "app"           # import_versions, import_jobs
    PRODUCTION_TABLE = "asset_records"
    CONNECTION_TIMEOUT_SECONDS = 30


# =============================================================================
# STORAGE DEFAULTS
# =============================================================================

class StorageDefaults:
    """
    Artifact store defaults.

    Artifact layout (same for every backend):
        imports/<versionId>/original.<ext>
        imports/<versionId>/canonical.geojson
        snapshots/<versionId>/<captured>-a<attempt>.geojson
        diffs/<versionId>.json
    """

    BACKEND = "local"                # local | blob
    LOCAL_ROOT = "./artifacts"
    CONTAINER = "import-artifacts"


# =============================================================================
# IMPORT ENGINE DEFAULTS
# =============================================================================

class ImportDefaults:
    """Import engine behaviour."""

    IMPORTS_FROZEN = False

    # Degrees in EPSG:4326; about one metre at mid latitudes
    GEOMETRY_TOLERANCE = 0.00001

    SERIALIZATION_MAX_RETRIES = 3
    JOB_MAX_WORKERS = 4

    # A running job with no heartbeat for this long is failed by the reaper
    JOB_LEASE_SECONDS = 900

    ID_PROPERTY = "id"
    DATA_SOURCE_PROPERTY = "dataSource"
    DEFAULT_DATA_SOURCE = "official_ledger"
    DATA_SOURCES = ("osm_test", "official_ledger", "manual")

    EXPECTED_GEOMETRY_TYPES = ("LineString", "MultiLineString", "Polygon", "MultiPolygon")

    MAX_UPLOAD_MB = 200
    CANONICAL_CRS = "EPSG:4326"


# =============================================================================
# APPLICATION DEFAULTS
# =============================================================================

class AppDefaults:
    """Process-level defaults."""

    ENVIRONMENT = "dev"
    DEBUG_MODE = False
    LOG_LEVEL = "INFO"
    HOST = "0.0.0.0"
    PORT = 8080
