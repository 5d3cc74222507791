"""
GeoJSON to GeoDataFrame Converter.

Handles .geojson and .json files containing GeoJSON data.
GeoJSON is a single-layer format; list_layers always returns one entry.
"""

import json
from io import BytesIO
from typing import List, Optional

from geopandas import GeoDataFrame
from geopandas import read_file as gpd_read_file

from core.models import FileType, LayerInfo
from exceptions import LayerNotFoundError, ParseError
from util_logger import LoggerFactory, ComponentType
from .converter_registry import ConverterRegistry


logger = LoggerFactory.create_logger(ComponentType.ADAPTER, "GeoJSONConverter")

DEFAULT_LAYER_NAME = "features"
_GEOJSON_TYPES = {"FeatureCollection", "Feature"}


@ConverterRegistry.instance().register('geojson', 'json')
class GeoJSONConverter:
    """
    Converts GeoJSON files to GeoDataFrame.

    Usage:
        converter = GeoJSONConverter()
        gdf = converter.convert(geojson_data)
    """

    @property
    def supported_extensions(self) -> list[str]:
        return ['geojson', 'json']

    @property
    def file_type(self) -> FileType:
        return FileType.GEOJSON

    def _check_document(self, data: BytesIO) -> dict:
        try:
            document = json.loads(data.getvalue().decode("utf-8-sig"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise ParseError(f"File is not valid JSON: {e}") from e

        if not isinstance(document, dict) or document.get("type") not in _GEOJSON_TYPES:
            raise ParseError(
                "File is not a GeoJSON FeatureCollection or Feature "
                f"(type={document.get('type') if isinstance(document, dict) else type(document).__name__})"
            )
        return document

    def list_layers(self, data: BytesIO) -> List[LayerInfo]:
        document = self._check_document(data)
        gdf = self.convert(data)
        geometry_types = sorted({t for t in gdf.geometry.geom_type.dropna().unique()})
        return [LayerInfo(
            name=document.get("name") or DEFAULT_LAYER_NAME,
            feature_count=len(gdf),
            geometry_type=", ".join(geometry_types) or None,
        )]

    def resolve_layer(self, data: BytesIO, layer_name: Optional[str]) -> str:
        """
        The single layer's name. A different explicit name is an error.

        Raises:
            LayerNotFoundError: ``layer_name`` is not this document's layer
        """
        name = self._check_document(data).get("name") or DEFAULT_LAYER_NAME
        if layer_name and layer_name != name:
            raise LayerNotFoundError(layer_name, [name])
        return name

    def convert(self, data: BytesIO, layer_name: Optional[str] = None) -> GeoDataFrame:
        """
        Convert GeoJSON to GeoDataFrame.

        ``layer_name`` is accepted for interface symmetry and ignored.

        Raises:
            ParseError: If data is not valid GeoJSON
        """
        document = self._check_document(data)
        if document.get("type") == "FeatureCollection" and not document.get("features"):
            return GeoDataFrame(geometry=[], crs="EPSG:4326")
        logger.debug("Reading GeoJSON file")

        try:
            gdf = gpd_read_file(BytesIO(data.getvalue()))
        except Exception as e:
            raise ParseError(f"Error reading GeoJSON file: {e}") from e

        logger.info(
            f"GeoJSON converted to GeoDataFrame: {len(gdf)} rows, "
            f"geometry type: {gdf.geometry.geom_type.dropna().unique().tolist()}"
        )
        return gdf
