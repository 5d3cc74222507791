"""
GeoPackage to GeoDataFrame Converter.

Handles .gpkg files, which can contain multiple layers. A layer name is
required unless the package holds exactly one layer.
"""

from io import BytesIO
from typing import List, Optional

import pyogrio
from geopandas import GeoDataFrame
from geopandas import read_file as gpd_read_file

from core.models import FileType, LayerInfo
from exceptions import LayerNotFoundError, LayerRequiredError, ParseError
from util_logger import LoggerFactory, ComponentType
from .converter_registry import ConverterRegistry


logger = LoggerFactory.create_logger(ComponentType.ADAPTER, "GeoPackageConverter")


@ConverterRegistry.instance().register('gpkg')
class GeoPackageConverter:
    """
    Converts GeoPackage (.gpkg) files to GeoDataFrame.

    Usage:
        converter = GeoPackageConverter()
        layers = converter.list_layers(gpkg_data)
        gdf = converter.convert(gpkg_data, layer_name='roads')
    """

    @property
    def supported_extensions(self) -> list[str]:
        return ['gpkg']

    @property
    def file_type(self) -> FileType:
        return FileType.GEOPACKAGE

    def list_layers(self, data: BytesIO) -> List[LayerInfo]:
        raw = data.getvalue()
        try:
            listed = pyogrio.list_layers(raw)
        except Exception as e:
            raise ParseError(f"File is not a readable GeoPackage: {e}") from e

        layers = []
        for name, geometry_type in listed:
            try:
                info = pyogrio.read_info(raw, layer=name)
            except Exception as e:
                raise ParseError(f"Cannot read GeoPackage layer '{name}': {e}") from e
            layers.append(LayerInfo(
                name=str(name),
                feature_count=int(info.get("features") or 0),
                geometry_type=geometry_type,
            ))

        logger.debug(f"GeoPackage layers: {[layer.name for layer in layers]}")
        return layers

    def resolve_layer(self, data: BytesIO, layer_name: Optional[str]) -> str:
        """
        Pick the layer to read.

        Raises:
            LayerRequiredError: several layers exist and none was named
            LayerNotFoundError: the named layer does not exist
        """
        names = [layer.name for layer in self.list_layers(data)]
        if not names:
            raise ParseError("GeoPackage contains no layers")
        if not layer_name:
            if len(names) == 1:
                return names[0]
            raise LayerRequiredError(
                f"GeoPackage has {len(names)} layers; choose one of: {', '.join(names)}"
            )
        if layer_name not in names:
            raise LayerNotFoundError(layer_name, names)
        return layer_name

    def convert(self, data: BytesIO, layer_name: Optional[str] = None) -> GeoDataFrame:
        """
        Convert one GeoPackage layer to GeoDataFrame.

        Raises:
            ParseError, LayerNotFoundError, LayerRequiredError
        """
        layer = self.resolve_layer(data, layer_name)
        logger.debug(f"Reading GeoPackage layer: {layer}")

        try:
            gdf = gpd_read_file(BytesIO(data.getvalue()), layer=layer)
        except Exception as e:
            raise ParseError(f"Error reading GeoPackage layer '{layer}': {e}") from e

        logger.info(
            f"GeoPackage layer '{layer}' converted to GeoDataFrame: "
            f"{len(gdf)} rows, geometry type: {gdf.geometry.geom_type.dropna().unique().tolist()}"
        )
        return gdf
