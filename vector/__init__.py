"""
Vector File Converters and Feature Parser.

Converters are registered via decorators and retrieved by file extension
or FileType. The FeatureParser sits on top and produces canonical
EPSG:4326 features.

Supported Formats:
- GeoJSON (.geojson, .json)
- GeoPackage (.gpkg)

Usage:
    from vector import FeatureParser, file_type_for_name

    file_type = file_type_for_name("roads.gpkg")
    parsed = FeatureParser().parse(raw, file_type, layer_name="roads")
"""

from .converter_registry import ConverterRegistry
from .converter_base import VectorConverter

# Importing the converters triggers registration via decorators
from .geojson_converter import GeoJSONConverter
from .geopackage_converter import GeoPackageConverter

from .parser import FeatureParser, ParsedFeatures, file_type_for_name


__all__ = [
    'ConverterRegistry',
    'VectorConverter',
    'GeoJSONConverter',
    'GeoPackageConverter',
    'FeatureParser',
    'ParsedFeatures',
    'file_type_for_name',
]
