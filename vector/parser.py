"""
Feature Parser & Normalizer.

Turns stored upload bytes into an ordered list of CanonicalFeature in
EPSG:4326, independent of source format or source CRS. Also reads and
writes the canonical GeoJSON artifact produced at configure time, so
later validation, preview and publish never re-run format drivers or
reprojection.

Exports:
    FeatureParser
    ParsedFeatures
    file_type_for_name
"""

import datetime as dt
import json
import math
import os
from dataclasses import dataclass, field
from io import BytesIO
from typing import Any, Dict, List, Optional

import numpy as np
import pandas as pd
from geopandas import GeoDataFrame
from pyproj import CRS
from pyproj.exceptions import CRSError

from config.defaults import ImportDefaults
from core.logic.geometry import (
    Bounds, compute_bounds, geometry_from_geojson, geometry_to_geojson
)
from core.models import CanonicalFeature, FileType, LayerInfo
from exceptions import InvalidCRSError, ParseError, UnsupportedFileTypeError
from util_logger import LoggerFactory, ComponentType
from .converter_registry import ConverterRegistry


logger = LoggerFactory.create_logger(ComponentType.ADAPTER, "FeatureParser")


def file_type_for_name(file_name: str) -> FileType:
    """
    Map an upload file name to its FileType by extension.

    Raises:
        UnsupportedFileTypeError: extension has no registered converter
    """
    ext = os.path.splitext(file_name or "")[1].lower().lstrip(".")
    registry = ConverterRegistry.instance()
    if not ext or not registry.is_supported(ext):
        raise UnsupportedFileTypeError(file_name)
    return registry.get_converter(ext).file_type


def _json_value(value: Any) -> Any:
    """Convert pandas/numpy cell values into plain JSON-compatible values."""
    if value is None:
        return None
    if pd.api.types.is_scalar(value) and pd.isna(value):
        return None
    if isinstance(value, np.generic):
        value = value.item()
    if isinstance(value, float) and not math.isfinite(value):
        return None
    if isinstance(value, (pd.Timestamp, dt.datetime, dt.date, dt.time)):
        return value.isoformat()
    if isinstance(value, bytes):
        return value.hex()
    if isinstance(value, np.ndarray):
        return [_json_value(v) for v in value.tolist()]
    return value


def _stringify_id(value: Any) -> Optional[str]:
    """
    Stable identifiers are compared as strings.

    Integer ids that pandas widened to float (because another row had no
    id) are turned back into "42" rather than "42.0".
    """
    value = _json_value(value)
    if value is None:
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    text = str(value).strip()
    return text or None


@dataclass
class ParsedFeatures:
    """
    Result of a parse: features in file order plus their combined bounds.

    Backed by a list, so it can be iterated any number of times.
    """
    features: List[CanonicalFeature] = field(default_factory=list)
    bounds: Optional[Bounds] = None
    layer_name: Optional[str] = None
    source_crs: Optional[str] = None

    def __iter__(self):
        return iter(self.features)

    def __len__(self) -> int:
        return len(self.features)


class FeatureParser:
    """
    Parse vector uploads into canonical features.

    Usage:
        parser = FeatureParser()
        layers = parser.list_layers(raw_bytes, FileType.GEOPACKAGE)
        parsed = parser.parse(raw_bytes, FileType.GEOPACKAGE, layer_name="roads",
                              source_crs="EPSG:6675")
    """

    def __init__(
        self,
        id_property: str = ImportDefaults.ID_PROPERTY,
        data_source_property: str = ImportDefaults.DATA_SOURCE_PROPERTY
    ):
        self.id_property = id_property
        self.data_source_property = data_source_property
        self.registry = ConverterRegistry.instance()

    # ------------------------------------------------------------------
    # Source files
    # ------------------------------------------------------------------

    def list_layers(self, data: bytes, file_type: FileType) -> List[LayerInfo]:
        converter = self.registry.get_converter_for_type(file_type)
        return converter.list_layers(BytesIO(data))

    def count_features(self, data: bytes, file_type: FileType) -> int:
        """Total features across all layers; used for the upload audit count."""
        return sum(layer.feature_count for layer in self.list_layers(data, file_type))

    def parse(
        self,
        data: bytes,
        file_type: FileType,
        layer_name: Optional[str] = None,
        source_crs: Optional[str] = None
    ) -> ParsedFeatures:
        """
        Read one layer and normalize it to canonical features.

        Args:
            data: Raw file bytes
            file_type: Declared format
            layer_name: Layer for multi-layer formats
            source_crs: Overrides the CRS declared by the file

        Raises:
            ParseError, LayerNotFoundError, LayerRequiredError, InvalidCRSError
        """
        converter = self.registry.get_converter_for_type(file_type)
        layer_name = converter.resolve_layer(BytesIO(data), layer_name)
        gdf = converter.convert(BytesIO(data), layer_name=layer_name)
        gdf = self._reproject(gdf, source_crs)

        features = self._features_from_frame(gdf)
        bounds = compute_bounds(f.geometry for f in features)

        logger.info(
            f"📥 Parsed {len(features)} features "
            f"(layer={layer_name or '-'}, source_crs={source_crs or 'as declared'})"
        )
        return ParsedFeatures(
            features=features,
            bounds=bounds,
            layer_name=layer_name,
            source_crs=source_crs,
        )

    def _reproject(self, gdf: GeoDataFrame, source_crs: Optional[str]) -> GeoDataFrame:
        target = ImportDefaults.CANONICAL_CRS
        if source_crs:
            try:
                crs = CRS.from_user_input(source_crs)
            except CRSError as e:
                raise InvalidCRSError(f"Invalid source CRS '{source_crs}': {e}") from e
            gdf = gdf.set_crs(crs, allow_override=True)
        elif gdf.crs is None:
            logger.warning("No CRS defined, assuming EPSG:4326")
            gdf = gdf.set_crs(target)

        if not gdf.crs.equals(CRS.from_user_input(target)):
            logger.info(f"Reprojecting from {gdf.crs.to_string()} to {target}")
            try:
                gdf = gdf.to_crs(target)
            except CRSError as e:
                raise InvalidCRSError(f"Cannot reproject from {gdf.crs}: {e}") from e
        return gdf

    def _features_from_frame(self, gdf: GeoDataFrame) -> List[CanonicalFeature]:
        geometry_column = gdf.geometry.name
        attributes = gdf.drop(columns=[geometry_column])
        # A frame with no attribute columns yields no records at all
        if len(attributes.columns):
            records = attributes.to_dict(orient="records")
        else:
            records = [{} for _ in range(len(gdf))]
        features = []
        for index, (row, geometry) in enumerate(zip(records, gdf.geometry.values)):
            properties = {str(k): _json_value(v) for k, v in row.items()}
            features.append(self._canonical(index, geometry, properties))
        return features

    def _canonical(self, index: int, geometry, properties: Dict[str, Any]) -> CanonicalFeature:
        feature_id = _stringify_id(properties.pop(self.id_property, None))
        data_source = properties.pop(self.data_source_property, None)
        return CanonicalFeature(
            index=index,
            feature_id=feature_id,
            geometry=geometry,
            attributes=properties,
            data_source=str(data_source) if data_source not in (None, "") else None,
        )

    # ------------------------------------------------------------------
    # Canonical artifact
    # ------------------------------------------------------------------

    def to_feature_collection(self, features: List[CanonicalFeature]) -> Dict[str, Any]:
        out = []
        for feature in features:
            properties = dict(feature.attributes)
            if feature.feature_id is not None:
                properties[self.id_property] = feature.feature_id
            if feature.data_source is not None:
                properties[self.data_source_property] = feature.data_source
            out.append({
                "type": "Feature",
                "geometry": geometry_to_geojson(feature.geometry),
                "properties": properties,
            })
        return {"type": "FeatureCollection", "features": out}

    def to_canonical_bytes(self, parsed: ParsedFeatures) -> bytes:
        return json.dumps(self.to_feature_collection(parsed.features)).encode("utf-8")

    def from_canonical_bytes(self, data: bytes) -> ParsedFeatures:
        """
        Read a canonical artifact written by to_canonical_bytes.

        Raises:
            ParseError: If the artifact is not a FeatureCollection
        """
        try:
            document = json.loads(data.decode("utf-8"))
            raw_features = document["features"]
        except (UnicodeDecodeError, json.JSONDecodeError, KeyError, TypeError) as e:
            raise ParseError(f"Canonical artifact is not a FeatureCollection: {e}") from e

        features = []
        for index, raw in enumerate(raw_features):
            geometry = geometry_from_geojson(raw.get("geometry"))
            properties = dict(raw.get("properties") or {})
            features.append(self._canonical(index, geometry, properties))
        return ParsedFeatures(
            features=features,
            bounds=compute_bounds(f.geometry for f in features),
        )
