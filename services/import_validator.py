# ============================================================================
# IMPORT VERSIONING - VALIDATOR
# ============================================================================
# STATUS: Service - structural/semantic validation of canonical features
# PURPOSE: Produce a ValidationResult; errors block publish, warnings never do
# EXPORTS: ImportValidator, ValidationCode
# DEPENDENCIES: shapely
# ============================================================================
"""
Import Validator.

Findings are data, not exceptions. ``validate`` never touches the ledger
or production; the job runner stores the returned ValidationResult as the
job's result summary, and the publisher re-runs it as a gate.

Error codes (block publish):
    MISSING_GEOMETRY, EMPTY_GEOMETRY, MISSING_ID, DUPLICATE_ID,
    MISSING_ATTRIBUTE, INVALID_DATA_SOURCE

Warning codes (never block):
    UNUSUAL_GEOMETRY_TYPE, INVALID_GEOMETRY, OUT_OF_BOUNDS,
    MISSING_DATA_SOURCE (one summary entry, feature_index -1)

Exports:
    ImportValidator
    ValidationCode
"""

from enum import Enum
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from shapely.validation import explain_validity

from config.defaults import ImportDefaults
from core.models import CanonicalFeature, ValidationIssue, ValidationResult, ValidationWarning
from util_logger import LoggerFactory, ComponentType


logger = LoggerFactory.create_logger(ComponentType.VALIDATOR, "ImportValidator")


class ValidationCode(str, Enum):
    MISSING_GEOMETRY = "MISSING_GEOMETRY"
    EMPTY_GEOMETRY = "EMPTY_GEOMETRY"
    MISSING_ID = "MISSING_ID"
    DUPLICATE_ID = "DUPLICATE_ID"
    MISSING_ATTRIBUTE = "MISSING_ATTRIBUTE"
    INVALID_DATA_SOURCE = "INVALID_DATA_SOURCE"

    UNUSUAL_GEOMETRY_TYPE = "UNUSUAL_GEOMETRY_TYPE"
    INVALID_GEOMETRY = "INVALID_GEOMETRY"
    OUT_OF_BOUNDS = "OUT_OF_BOUNDS"
    MISSING_DATA_SOURCE = "MISSING_DATA_SOURCE"


class ImportValidator:
    """
    Validate canonical import features.

    Usage:
        validator = ImportValidator(required_attributes=["name"])
        result = validator.validate(parsed.features, default_data_source="official_ledger")
        if not result.valid:
            ...
    """

    def __init__(
        self,
        required_attributes: Optional[Sequence[str]] = None,
        allowed_data_sources: Optional[Sequence[str]] = None,
        bounds: Optional[Tuple[float, float, float, float]] = None,
        expected_geometry_types: Sequence[str] = ImportDefaults.EXPECTED_GEOMETRY_TYPES,
        id_property: str = ImportDefaults.ID_PROPERTY
    ):
        self.required_attributes = list(required_attributes or [])
        self.allowed_data_sources = set(allowed_data_sources or ImportDefaults.DATA_SOURCES)
        self.bounds = bounds
        self.expected_geometry_types = set(expected_geometry_types)
        self.id_property = id_property

    def validate(
        self,
        features: Iterable[CanonicalFeature],
        default_data_source: str
    ) -> ValidationResult:
        errors: List[ValidationIssue] = []
        warnings: List[ValidationWarning] = []
        geometry_types = set()
        seen_ids: Dict[str, int] = {}
        feature_count = 0
        missing_id_count = 0
        missing_data_source_count = 0

        for feature in features:
            feature_count += 1
            errors.extend(self._check_geometry(feature, warnings, geometry_types))

            if feature.feature_id is None:
                missing_id_count += 1
                errors.append(self._issue(
                    feature, self.id_property, ValidationCode.MISSING_ID,
                    "Feature has no stable identifier",
                    hint=f"Add a unique '{self.id_property}' property to every feature",
                ))
            elif feature.feature_id in seen_ids:
                errors.append(self._issue(
                    feature, self.id_property, ValidationCode.DUPLICATE_ID,
                    f"Identifier '{feature.feature_id}' already used by feature "
                    f"{seen_ids[feature.feature_id]}",
                    hint="Identifiers must be unique within one import",
                ))
            else:
                seen_ids[feature.feature_id] = feature.index

            for attribute in self.required_attributes:
                if attribute == self.id_property:
                    continue
                if feature.attributes.get(attribute) in (None, ""):
                    errors.append(self._issue(
                        feature, attribute, ValidationCode.MISSING_ATTRIBUTE,
                        f"Required attribute '{attribute}' is missing",
                        hint=f"Provide a value for '{attribute}'",
                    ))

            if feature.data_source is None:
                missing_data_source_count += 1
            elif feature.data_source not in self.allowed_data_sources:
                errors.append(self._issue(
                    feature, ImportDefaults.DATA_SOURCE_PROPERTY, ValidationCode.INVALID_DATA_SOURCE,
                    f"Unknown data source '{feature.data_source}'",
                    hint=f"Use one of: {', '.join(sorted(self.allowed_data_sources))}",
                ))

        if missing_data_source_count:
            warnings.append(ValidationWarning(
                feature_index=-1,
                code=ValidationCode.MISSING_DATA_SOURCE.value,
                message=f"{missing_data_source_count} feature(s) have no dataSource; "
                        f"'{default_data_source}' will be applied",
            ))

        result = ValidationResult(
            valid=not errors,
            feature_count=feature_count,
            errors=errors,
            warnings=warnings,
            geometry_types=sorted(geometry_types),
            missing_id_count=missing_id_count,
            missing_data_source_count=missing_data_source_count,
        )
        logger.info(
            f"{'✅' if result.valid else '❌'} Validated {feature_count} features: "
            f"{len(errors)} error(s), {len(warnings)} warning(s)"
        )
        return result

    def _check_geometry(
        self,
        feature: CanonicalFeature,
        warnings: List[ValidationWarning],
        geometry_types: set
    ) -> List[ValidationIssue]:
        geometry = feature.geometry
        if geometry is None:
            return [self._issue(
                feature, "geometry", ValidationCode.MISSING_GEOMETRY,
                "Feature has no geometry", hint="Every feature needs a geometry",
            )]
        if geometry.is_empty:
            return [self._issue(
                feature, "geometry", ValidationCode.EMPTY_GEOMETRY,
                "Feature geometry is empty", hint="Remove the feature or supply coordinates",
            )]

        geometry_types.add(geometry.geom_type)
        if geometry.geom_type not in self.expected_geometry_types:
            warnings.append(self._warning(
                feature, ValidationCode.UNUSUAL_GEOMETRY_TYPE,
                f"Geometry type {geometry.geom_type} is not a line or polygon type",
            ))
        if not geometry.is_valid:
            warnings.append(self._warning(
                feature, ValidationCode.INVALID_GEOMETRY,
                f"Invalid geometry: {explain_validity(geometry)}",
            ))
        if self.bounds is not None:
            minx, miny, maxx, maxy = geometry.bounds
            bx0, by0, bx1, by1 = self.bounds
            if minx < bx0 or miny < by0 or maxx > bx1 or maxy > by1:
                warnings.append(self._warning(
                    feature, ValidationCode.OUT_OF_BOUNDS,
                    f"Geometry extends outside the expected area {list(self.bounds)}",
                ))
        return []

    @staticmethod
    def _issue(
        feature: CanonicalFeature,
        field: str,
        code: ValidationCode,
        message: str,
        hint: Optional[str] = None
    ) -> ValidationIssue:
        return ValidationIssue(
            feature_index=feature.index,
            feature_id=feature.feature_id,
            field=field,
            code=code.value,
            message=message,
            hint=hint,
        )

    @staticmethod
    def _warning(feature: CanonicalFeature, code: ValidationCode, message: str) -> ValidationWarning:
        return ValidationWarning(
            feature_index=feature.index,
            feature_id=feature.feature_id,
            code=code.value,
            message=message,
        )
